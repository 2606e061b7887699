"""Project root detection utilities.

Provides utilities for determining the project root directory from multiple sources:
1. MCP Roots from client (via Context.list_roots())
2. Environment variables (TITANIUM_PROJECT_ROOT, MCP_PROJECT_ROOT)
3. Explicit --project path
4. Startup CWD (when --project-from-cwd is used)
"""

from __future__ import annotations

import logging
import os
import re
import sys
import xml.etree.ElementTree as ET
from collections.abc import Iterator
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING
from urllib.parse import unquote, urlparse

if TYPE_CHECKING:
    from mcp.server.fastmcp import Context

logger = logging.getLogger(__name__)

APP_MARKER = "tiapp.xml"
MODULE_MARKERS = ("timodule.xml", "manifest")

MODULE_ID_PATTERN = re.compile(r"^moduleid\s*:\s*(\S+)\s*$", re.MULTILINE)


@dataclass
class ProjectRootConfig:
    """Configuration for project root detection."""

    startup_cwd: Path | None = None
    """CWD captured at server startup (when --project-from-cwd is used)."""

    use_project_from_cwd: bool = False
    """Whether --project-from-cwd flag was provided."""

    explicit_project_path: Path | None = None
    """Explicit project path from --project flag."""

    env_var_names: tuple[str, ...] = field(
        default_factory=lambda: ("TITANIUM_PROJECT_ROOT", "MCP_PROJECT_ROOT")
    )
    """Environment variable names to check for project root."""


# Global configuration (set at startup)
_config: ProjectRootConfig = ProjectRootConfig()


def configure_project_root(
    *,
    use_project_from_cwd: bool = False,
    explicit_project_path: str | Path | None = None,
    startup_cwd: str | Path | None = None,
) -> None:
    """Configure project root detection.

    Should be called once at server startup.
    """
    global _config
    _config = ProjectRootConfig(
        use_project_from_cwd=use_project_from_cwd,
        explicit_project_path=Path(explicit_project_path) if explicit_project_path else None,
        startup_cwd=Path(startup_cwd) if startup_cwd else None,
    )
    logger.debug(
        f"Project root configured: use_cwd={use_project_from_cwd}, "
        f"explicit={explicit_project_path}, startup_cwd={startup_cwd}"
    )


def get_config() -> ProjectRootConfig:
    """Get current project root configuration."""
    return _config


def parse_file_uri(uri: str) -> Path | None:
    """Parse a file:// URI to a Path.

    Handles platform-specific path formats:
    - Unix: file:///home/user/project → /home/user/project
    - Windows: file:///C:/Users/project → C:\\Users\\project
    - Windows UNC: file://server/share → \\\\server\\share

    Returns:
        Path object if parsing succeeds, None otherwise
    """
    try:
        parsed = urlparse(str(uri))

        if parsed.scheme != "file":
            logger.warning(f"Not a file URI: {uri}")
            return None

        path_str = unquote(parsed.path)

        if sys.platform == "win32":
            # file:///C:/path → parsed.path = "/C:/path"
            if path_str.startswith("/") and len(path_str) > 2 and path_str[2] == ":":
                path_str = path_str[1:]
            if parsed.netloc:
                path_str = f"\\\\{parsed.netloc}{path_str}"

        path = Path(path_str)
        if not path.is_absolute():
            logger.warning(f"Parsed path is not absolute: {path}")
            return None

        return path

    except Exception as e:
        logger.warning(f"Failed to parse file URI '{uri}': {e}")
        return None


def find_titanium_project_root(start_dir: Path | None = None) -> Path:
    """Find a Titanium project root by walking up from a directory.

    Searches for project markers in this order:
    1. tiapp.xml (app project)
    2. timodule.xml / manifest (module project)
    3. .git (git root as fallback)

    Falls back to start_dir if no marker is found.
    """
    current = (start_dir or Path.cwd()).resolve()

    def ancestors() -> Iterator[Path]:
        """Yield current directory and ancestors."""
        yield current
        yield from current.parents

    for directory in ancestors():
        if (directory / APP_MARKER).is_file():
            return directory

    for directory in ancestors():
        if any((directory / marker).is_file() for marker in MODULE_MARKERS):
            return directory

    for directory in ancestors():
        if (directory / ".git").exists():
            return directory

    return current


def read_app_id(project_dir: str | Path) -> str | None:
    """Application id of an app (tiapp.xml <id>) or module (manifest moduleid).

    Returns:
        The id, or None if it cannot be read
    """
    project = Path(project_dir)
    tiapp = project / APP_MARKER
    if tiapp.is_file():
        try:
            root = ET.parse(tiapp).getroot()
        except (OSError, ET.ParseError) as e:
            logger.warning(f"Cannot read {tiapp}: {e}")
            return None
        # tiapp.xml may declare a default namespace
        for element in root:
            if element.tag.rsplit("}", 1)[-1] == "id" and element.text:
                return element.text.strip()
        return None

    manifest = project / "manifest"
    if manifest.is_file():
        try:
            match = MODULE_ID_PATTERN.search(manifest.read_text(encoding="utf-8"))
        except OSError as e:
            logger.warning(f"Cannot read {manifest}: {e}")
            return None
        return match.group(1) if match else None

    return None


async def get_project_root(ctx: Context | None = None) -> Path | None:
    """Determine the project root directory from available sources.

    Priority order:
    1. MCP Roots from client (via ctx.list_roots()) - if client supports it
    2. Environment variable (TITANIUM_PROJECT_ROOT or MCP_PROJECT_ROOT)
    3. Explicit --project path (if configured)
    4. Startup CWD with Titanium marker search (if --project-from-cwd)

    Args:
        ctx: MCP Context for accessing client-provided roots.
             Can be None if called outside of tool context.

    Returns:
        Path to project root, or None if not determinable
    """
    if ctx is not None:
        try:
            roots = await ctx.session.list_roots()
            root_list = roots.roots if roots else []
            if root_list:
                uri = str(root_list[0].uri)
                path = parse_file_uri(uri)
                if path and path.exists() and path.is_dir():
                    logger.info(f"Using project root from MCP client: {path}")
                    return path
                logger.warning(f"MCP root path invalid or not accessible: {path}")
            else:
                logger.info("MCP client did not provide any roots")
        except Exception as e:
            # Client may not support roots
            logger.info(f"Could not get roots from client: {e}")

    return get_project_root_sync()


def get_project_root_sync() -> Path | None:
    """Synchronous version of get_project_root (without MCP roots)."""
    config = get_config()

    for env_var in config.env_var_names:
        env_value = os.environ.get(env_var)
        if env_value:
            path = Path(env_value)
            if path.exists() and path.is_dir():
                logger.info(f"Using project root from {env_var}: {path}")
                return path
            logger.warning(f"{env_var}={env_value} - path does not exist or is not a directory")

    if config.explicit_project_path:
        if config.explicit_project_path.exists() and config.explicit_project_path.is_dir():
            return config.explicit_project_path
        logger.warning(f"Explicit project path not valid: {config.explicit_project_path}")

    if config.use_project_from_cwd and config.startup_cwd:
        return find_titanium_project_root(config.startup_cwd)

    if config.startup_cwd:
        return config.startup_cwd

    return None
