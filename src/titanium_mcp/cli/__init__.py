"""Titanium CLI argument construction.

Maps typed build/package/create/clean options to quoted argument vectors
matching the `appc`/`ti` command grammar.
"""

from .arguments import (
    CliCommand,
    build_arguments,
    clean_arguments,
    create_app_arguments,
    create_module_arguments,
    normalize_drive_letter,
    package_arguments,
    quote,
)
from .options import (
    AndroidKeystore,
    BuildOptions,
    CleanOptions,
    CreateOptions,
    IosSigning,
    PackageOptions,
    WindowsSigning,
)
from .targets import Platform, ProjectType

__all__ = [
    "CliCommand",
    "build_arguments",
    "package_arguments",
    "create_app_arguments",
    "create_module_arguments",
    "clean_arguments",
    "quote",
    "normalize_drive_letter",
    "BuildOptions",
    "PackageOptions",
    "CreateOptions",
    "CleanOptions",
    "IosSigning",
    "AndroidKeystore",
    "WindowsSigning",
    "Platform",
    "ProjectType",
]
