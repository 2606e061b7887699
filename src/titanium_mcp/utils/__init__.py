"""Utility modules for titanium-mcp."""

from .project import (
    ProjectRootConfig,
    configure_project_root,
    find_titanium_project_root,
    get_project_root,
    parse_file_uri,
    read_app_id,
)

__all__ = [
    "get_project_root",
    "parse_file_uri",
    "configure_project_root",
    "find_titanium_project_root",
    "read_app_id",
    "ProjectRootConfig",
]
