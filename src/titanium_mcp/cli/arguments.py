"""Argument construction for the Titanium CLI.

Each builder maps a typed options record to an ordered list of tokens:
- Every token is quote-wrapped so values with spaces (certificate names,
  paths) stay a single shell word
- Path values get an upper-case drive letter on Windows filesystems
- No I/O: building arguments from well-formed options cannot fail
"""

from __future__ import annotations

import os
import re
from enum import Enum
from typing import Final

from ..config import DEFAULT_DISTRIBUTION_OUTPUT_DIR
from .options import BuildOptions, CleanOptions, CreateOptions, PackageOptions
from .targets import APP_STORE_TARGET, PHYSICAL_DEVICE_TARGET, Platform, ProjectType


class CliCommand(str, Enum):
    """Titanium CLI subcommands."""

    RUN = "run"
    NEW = "new"
    CLEAN = "clean"


NO_PROMPT_FLAG: Final[str] = "--no-prompt"

# Targets that run locally without a device id
LOCAL_TARGETS: Final[frozenset[str]] = frozenset({"ws-local"})

DRIVE_LETTER_PATTERN: Final[re.Pattern[str]] = re.compile(r"^([a-zA-Z]):")


def quote(value: object) -> str:
    """Wrap a single token in double quotes, escaping embedded quotes."""
    text = str(value).replace("\"", "\\\"")
    return f"\"{text}\""


def normalize_drive_letter(path: str, windows: bool | None = None) -> str:
    """Upper-case the drive letter of a Windows path.

    Args:
        path: Path to normalise
        windows: Force Windows behaviour; defaults to the running OS

    Returns:
        Path with an upper-case drive letter, unchanged elsewhere
    """
    if windows is None:
        windows = os.name == "nt"
    if not windows:
        return path
    return DRIVE_LETTER_PATTERN.sub(lambda m: f"{m.group(1).upper()}:", path, count=1)


def _quoted(tokens: list[str]) -> list[str]:
    return [quote(token) for token in tokens]


def build_arguments(options: BuildOptions, windows: bool | None = None) -> list[str]:
    """Arguments for building and running an app or module.

    Args:
        options: Build options
        windows: Force Windows path handling; defaults to the running OS

    Returns:
        Quoted argument vector (without the CLI executable)
    """
    args = [
        CliCommand.RUN.value,
        "--platform",
        options.platform,
        "--log-level",
        options.log_level,
        "--project-dir",
        normalize_drive_letter(options.project_dir, windows),
    ]

    if options.project_type == ProjectType.APP:
        args.extend(["--target", str(options.target)])

        if options.device_id and options.target not in LOCAL_TARGETS:
            args.extend(["--device-id", options.device_id])

        if (
            options.platform == Platform.IOS.value
            and options.target == PHYSICAL_DEVICE_TARGET
            and options.ios is not None
        ):
            args.extend(
                [
                    "--developer-name",
                    options.ios.certificate,
                    "--pp-uuid",
                    options.ios.provisioning_profile,
                ]
            )

        if options.liveview:
            args.append("--liveview")

    if options.platform == Platform.ANDROID.value and options.debug_port:
        args.extend(["--debug-host", f"/localhost:{options.debug_port}"])

    if options.skip_js_minify:
        args.append("--skip-js-minify")
    if options.source_maps:
        args.append("--source-maps")
    if options.deploy_type:
        args.extend(["--deploy-type", options.deploy_type])
    if options.build_only:
        args.append("--build-only")

    return _quoted(args)


def package_arguments(options: PackageOptions, windows: bool | None = None) -> list[str]:
    """Arguments for packaging to a distribution target."""
    args = [
        CliCommand.RUN.value,
        "--platform",
        options.platform,
        "--target",
        options.target,
        "--log-level",
        options.log_level,
        "--project-dir",
        normalize_drive_letter(options.project_dir, windows),
    ]

    # App Store builds go to Xcode's archive location
    if options.target != APP_STORE_TARGET:
        output_dir = options.output_dir or os.path.join(
            options.project_dir, DEFAULT_DISTRIBUTION_OUTPUT_DIR
        )
        args.extend(["--output-dir", normalize_drive_letter(output_dir, windows)])

    if options.platform == Platform.ANDROID.value and options.android is not None:
        keystore = options.android
        args.extend(
            [
                "--keystore",
                normalize_drive_letter(keystore.location, windows),
                "--alias",
                keystore.alias,
                "--store-password",
                keystore.password,
            ]
        )
        if keystore.key_password:
            args.extend(["--key-password", keystore.key_password])
    elif options.platform == Platform.IOS.value and options.ios is not None:
        args.extend(
            [
                "--distribution-name",
                options.ios.certificate,
                "--pp-uuid",
                options.ios.provisioning_profile,
            ]
        )
    elif options.platform == Platform.WINDOWS.value and options.windows is not None:
        signing = options.windows
        if signing.publisher_id:
            args.extend(["--win-publisher-id", signing.publisher_id])
        if signing.certificate:
            args.extend(["--win-cert", normalize_drive_letter(signing.certificate, windows)])
        if signing.password:
            args.extend(["--pfx-password", signing.password])

    return _quoted(args)


def _create_arguments(
    options: CreateOptions, project_kind: str, windows: bool | None
) -> list[str]:
    args = [
        CliCommand.NEW.value,
        "--type",
        project_kind,
        "--name",
        options.name,
        "--id",
        options.app_id,
        "--project-dir",
        normalize_drive_letter(os.path.join(options.workspace_dir, options.name), windows),
        "--platforms",
        ",".join(options.platforms),
        NO_PROMPT_FLAG,
        "--log-level",
        options.log_level,
    ]
    if options.force:
        args.append("--force")
    return args


def create_app_arguments(options: CreateOptions, windows: bool | None = None) -> list[str]:
    """Arguments for creating a new app project."""
    args = _create_arguments(options, "titanium", windows)
    # Enabling services emits --no-enable-services, never a positive flag
    if not options.enable_services:
        args.append("--no-services")
    else:
        args.append("--no-enable-services")
    return _quoted(args)


def create_module_arguments(options: CreateOptions, windows: bool | None = None) -> list[str]:
    """Arguments for creating a new native module project."""
    return _quoted(_create_arguments(options, "timodule", windows))


def clean_arguments(options: CleanOptions, windows: bool | None = None) -> list[str]:
    """Arguments for cleaning a project's build output."""
    return _quoted(
        [
            "ti",
            CliCommand.CLEAN.value,
            "--project-dir",
            normalize_drive_letter(options.project_dir, windows),
            "--log-level",
            options.log_level,
        ]
    )
