"""Platform and target catalogue for the Titanium CLI."""

from __future__ import annotations

import re
import sys
from enum import Enum
from typing import Final


class Platform(str, Enum):
    """Supported build platforms."""

    ANDROID = "android"
    IOS = "ios"
    WINDOWS = "windows"


class ProjectType(str, Enum):
    """Titanium project kinds."""

    APP = "app"
    MODULE = "module"


# Targets per platform, in display order
PLATFORM_TARGETS: Final[dict[Platform, tuple[str, ...]]] = {
    Platform.ANDROID: ("emulator", "device", "dist-playstore"),
    Platform.IOS: ("simulator", "device", "dist-adhoc", "dist-appstore"),
    Platform.WINDOWS: (
        "dist-phonestore",
        "dist-winstore",
        "wp-emulator",
        "wp-device",
        "ws-local",
    ),
}

TARGET_NAMES: Final[dict[str, str]] = {
    "dist-adhoc": "Ad-Hoc",
    "dist-appstore": "App Store",
    "dist-playstore": "Play Store",
}

DISTRIBUTION_PREFIX: Final[str] = "dist"
APP_STORE_TARGET: Final[str] = "dist-appstore"
PHYSICAL_DEVICE_TARGET: Final[str] = "device"

APP_ID_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"^[a-zA-Z_][a-zA-Z0-9]*(\.[a-zA-Z0-9]+)+$"
)


def normalised_platform(platform: str | Platform) -> str:
    """Normalise platform aliases (iphone/ipad are ios)."""
    value = platform.value if isinstance(platform, Platform) else str(platform)
    if value in ("iphone", "ipad"):
        return Platform.IOS.value
    return value.lower()


def host_platforms(host: str | None = None) -> list[str]:
    """Platforms that can be built on the current host OS."""
    host = host or sys.platform
    if host == "darwin":
        return [Platform.IOS.value, Platform.ANDROID.value]
    if host == "win32":
        return [Platform.ANDROID.value, Platform.WINDOWS.value]
    if host.startswith("linux"):
        return [Platform.ANDROID.value]
    return []


def name_for_platform(platform: str | Platform) -> str:
    """Display name for a platform."""
    value = normalised_platform(platform)
    return {"android": "Android", "ios": "iOS", "windows": "Windows"}.get(value, value)


def name_for_target(target: str) -> str:
    """Display name for a target."""
    target = target.lower()
    if target in ("device", "emulator", "simulator"):
        return target.capitalize()
    return TARGET_NAMES.get(target, target)


def target_for_name(name: str, platform: str | None = None) -> str:
    """Target id for a display name."""
    for target, display in TARGET_NAMES.items():
        if name == display:
            return target
    name = name.lower()
    if name in ("device", "emulator") and platform == Platform.WINDOWS.value:
        return f"wp-{name}"
    return name


def targets_for_platform(platform: str | Platform) -> list[str]:
    """All targets for a platform."""
    try:
        key = Platform(normalised_platform(platform))
    except ValueError:
        return []
    return list(PLATFORM_TARGETS[key])


def is_distribution_target(target: str) -> bool:
    """Whether a target is a packaging destination."""
    return target.startswith(DISTRIBUTION_PREFIX)


def run_targets_for_platform(platform: str | Platform) -> list[str]:
    """Targets that can be run or debugged (distribution targets excluded)."""
    return [t for t in targets_for_platform(platform) if not is_distribution_target(t)]


def validate_app_id(app_id: str) -> bool:
    """Check an application id (reverse domain, at least two segments)."""
    return bool(APP_ID_PATTERN.match(app_id))


def provisioning_profile_matches_app_id(profile_app_id: str, app_id: str) -> bool:
    """Whether an iOS provisioning profile app id covers an application id."""
    profile_app_id = str(profile_app_id)
    if profile_app_id == "*":
        return True
    if profile_app_id == app_id:
        return True
    # Limited wildcard, e.g. com.example.*
    if profile_app_id.endswith("*"):
        return app_id.startswith(profile_app_id[:-1])
    return False
