"""Typed option records rendered into Titanium CLI arguments."""

from __future__ import annotations

from dataclasses import dataclass, field

from ..config import DEFAULT_CLI_LOG_LEVEL
from .targets import Platform, ProjectType, normalised_platform, target_for_name


@dataclass(frozen=True)
class IosSigning:
    """iOS code signing selection."""

    certificate: str
    """Certificate display name, e.g. "iPhone Developer: Jane Doe (ABC123)"."""
    provisioning_profile: str
    """Provisioning profile UUID."""


@dataclass(frozen=True)
class AndroidKeystore:
    """Android keystore used to sign packages."""

    location: str
    alias: str
    password: str = ""
    key_password: str | None = None


@dataclass(frozen=True)
class WindowsSigning:
    """Windows certificate and publisher."""

    certificate: str | None = None
    password: str | None = None
    publisher_id: str | None = None


def _check_signing(
    platform: str,
    ios: IosSigning | None,
    android: AndroidKeystore | None,
    windows: WindowsSigning | None = None,
) -> None:
    if ios is not None and platform != Platform.IOS.value:
        raise ValueError(f"iOS signing given for platform {platform}")
    if android is not None and platform != Platform.ANDROID.value:
        raise ValueError(f"Android keystore given for platform {platform}")
    if windows is not None and platform != Platform.WINDOWS.value:
        raise ValueError(f"Windows signing given for platform {platform}")


@dataclass(frozen=True)
class BuildOptions:
    """Options for `run` builds on a simulator, emulator or device."""

    platform: str
    project_dir: str
    target: str | None = None
    device_id: str | None = None
    project_type: ProjectType = ProjectType.APP
    log_level: str = DEFAULT_CLI_LOG_LEVEL
    ios: IosSigning | None = None
    debug_port: int | None = None
    liveview: bool = False
    skip_js_minify: bool = False
    source_maps: bool = False
    deploy_type: str | None = None
    build_only: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "platform", normalised_platform(self.platform))
        object.__setattr__(self, "project_type", ProjectType(self.project_type))
        if self.project_type == ProjectType.APP and not self.target:
            raise ValueError("A target is required to build an app")
        if self.target:
            object.__setattr__(self, "target", target_for_name(self.target, self.platform))
        _check_signing(self.platform, self.ios, None)


@dataclass(frozen=True)
class PackageOptions:
    """Options for packaging to a distribution target."""

    platform: str
    project_dir: str
    target: str
    output_dir: str | None = None
    project_type: ProjectType = ProjectType.APP
    log_level: str = DEFAULT_CLI_LOG_LEVEL
    ios: IosSigning | None = None
    android: AndroidKeystore | None = None
    windows: WindowsSigning | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "platform", normalised_platform(self.platform))
        object.__setattr__(self, "project_type", ProjectType(self.project_type))
        object.__setattr__(self, "target", target_for_name(self.target, self.platform))
        _check_signing(self.platform, self.ios, self.android, self.windows)


@dataclass(frozen=True)
class CreateOptions:
    """Options for creating a new app or module project."""

    name: str
    app_id: str
    workspace_dir: str
    platforms: tuple[str, ...] = field(default_factory=tuple)
    project_type: ProjectType = ProjectType.APP
    log_level: str = "trace"
    force: bool = False
    enable_services: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "platforms", tuple(normalised_platform(p) for p in self.platforms)
        )
        object.__setattr__(self, "project_type", ProjectType(self.project_type))


@dataclass(frozen=True)
class CleanOptions:
    """Options for cleaning build output."""

    project_dir: str
    log_level: str = DEFAULT_CLI_LOG_LEVEL
