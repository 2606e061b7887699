"""Debug configuration records and last-session persistence."""

from __future__ import annotations

import asyncio
import json
import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Protocol

from ..cli.options import BuildOptions, IosSigning
from ..cli.targets import PHYSICAL_DEVICE_TARGET, Platform

logger = logging.getLogger(__name__)


class RequestKind(str, Enum):
    """Debug request kinds."""

    LAUNCH = "launch"
    ATTACH = "attach"


# launch.json key -> attribute
_CONFIG_KEYS: dict[str, str] = {
    "request": "request",
    "name": "name",
    "projectDir": "project_dir",
    "platform": "platform",
    "port": "port",
    "debugPort": "debug_port",
    "logLevel": "log_level",
    "target": "target",
    "deviceId": "device_id",
    "deviceName": "device_name",
    "iOSCertificate": "ios_certificate",
    "iOSProvisioningProfile": "ios_provisioning_profile",
}


@dataclass
class DebugConfiguration:
    """Launch/attach configuration, filled in field by field."""

    request: str = RequestKind.LAUNCH.value
    name: str | None = None
    project_dir: str | None = None
    platform: str | None = None
    port: int | None = None
    debug_port: int | None = None
    log_level: str | None = None
    target: str | None = None
    device_id: str | None = None
    device_name: str | None = None
    ios_certificate: str | None = None
    ios_provisioning_profile: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)
    """Keys this tooling does not interpret (e.g. preLaunchTask)."""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> DebugConfiguration:
        """Create from a launch.json style dictionary."""
        known: dict[str, Any] = {}
        extra: dict[str, Any] = {}
        for key, value in data.items():
            if key in _CONFIG_KEYS:
                known[_CONFIG_KEYS[key]] = value
            else:
                extra[key] = value
        return cls(**known, extra=extra)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a launch.json style dictionary."""
        result: dict[str, Any] = dict(self.extra)
        for key, attr in _CONFIG_KEYS.items():
            value = getattr(self, attr)
            if value is not None:
                result[key] = value
        return result

    @property
    def is_attach(self) -> bool:
        """Whether this is an attach request."""
        return self.request == RequestKind.ATTACH.value

    @property
    def is_resolvable(self) -> bool:
        """Whether platform and target are both known."""
        return bool(self.platform and self.target)

    @property
    def needs_ios_signing(self) -> bool:
        """Whether launching requires a certificate and provisioning profile."""
        return (
            self.platform == Platform.IOS.value
            and self.target == PHYSICAL_DEVICE_TARGET
            and not self.is_attach
        )

    def to_build_options(self) -> BuildOptions:
        """Build options for running this configuration.

        Raises:
            ValueError: If platform or target is not set yet
        """
        if not self.is_resolvable:
            raise ValueError("Debug configuration needs a platform and target")
        ios = None
        if self.needs_ios_signing and self.ios_certificate and self.ios_provisioning_profile:
            ios = IosSigning(self.ios_certificate, self.ios_provisioning_profile)
        options: dict[str, Any] = {}
        if self.log_level:
            options["log_level"] = self.log_level
        return BuildOptions(
            platform=str(self.platform),
            project_dir=self.project_dir or os.getcwd(),
            target=self.target,
            device_id=self.device_id,
            ios=ios,
            debug_port=self.debug_port,
            **options,
        )


@dataclass
class LastDebugState:
    """Target and device of the last debug session for one platform."""

    target: str
    device_id: str
    device_name: str
    ios_certificate: str | None = None
    ios_provisioning_profile: str | None = None

    @classmethod
    def from_dict(cls, data: Any) -> LastDebugState:
        """Parse a persisted record.

        Raises:
            ValueError: If the record is malformed
        """
        if not isinstance(data, Mapping):
            raise ValueError(f"Last debug state is not a mapping: {data!r}")
        values: dict[str, str | None] = {}
        for key in ("target", "deviceId"):
            value = data.get(key)
            if not isinstance(value, str) or not value:
                raise ValueError(f"Last debug state has no {key}")
            values[key] = value
        device_name = data.get("deviceName")
        if device_name is not None and not isinstance(device_name, str):
            raise ValueError("Last debug state has invalid deviceName")
        # Records saved from a preset deviceId carry no name
        values["deviceName"] = device_name or values["deviceId"]
        for key in ("iOSCertificate", "iOSProvisioningProfile"):
            value = data.get(key)
            if value is not None and not isinstance(value, str):
                raise ValueError(f"Last debug state has invalid {key}")
            values[key] = value
        return cls(
            target=values["target"] or "",
            device_id=values["deviceId"] or "",
            device_name=values["deviceName"] or "",
            ios_certificate=values["iOSCertificate"],
            ios_provisioning_profile=values["iOSProvisioningProfile"],
        )

    @classmethod
    def from_configuration(cls, config: DebugConfiguration) -> LastDebugState:
        """Snapshot the target and device selection of a configuration."""
        return cls(
            target=config.target or "",
            device_id=config.device_id or "",
            device_name=config.device_name or config.device_id or "",
            ios_certificate=config.ios_certificate,
            ios_provisioning_profile=config.ios_provisioning_profile,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for persistence."""
        result: dict[str, Any] = {
            "target": self.target,
            "deviceId": self.device_id,
            "deviceName": self.device_name,
        }
        if self.ios_certificate is not None:
            result["iOSCertificate"] = self.ios_certificate
        if self.ios_provisioning_profile is not None:
            result["iOSProvisioningProfile"] = self.ios_provisioning_profile
        return result

    def apply_to(self, config: DebugConfiguration) -> None:
        """Copy target, device and signing into a configuration."""
        config.target = self.target
        config.device_id = self.device_id
        config.device_name = self.device_name
        config.ios_certificate = self.ios_certificate
        config.ios_provisioning_profile = self.ios_provisioning_profile


class StateStore(Protocol):
    """Key-value store for per-platform last debug state."""

    async def get(self, key: str) -> Any: ...

    async def set(self, key: str, value: Any) -> None: ...


class MemoryStateStore:
    """State store living for the host session."""

    def __init__(self, initial: Mapping[str, Any] | None = None):
        self._values: dict[str, Any] = dict(initial or {})

    async def get(self, key: str) -> Any:
        return self._values.get(key)

    async def set(self, key: str, value: Any) -> None:
        self._values[key] = value


class JsonFileStateStore:
    """State store persisted as a JSON object in a file.

    An unreadable or malformed file reads as empty.
    """

    def __init__(self, path: str | Path):
        self._path = Path(path)
        self._lock = asyncio.Lock()

    @property
    def path(self) -> Path:
        """Backing file."""
        return self._path

    def _load(self) -> dict[str, Any]:
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as e:
            logger.warning(f"Ignoring unreadable state file {self._path}: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    async def get(self, key: str) -> Any:
        async with self._lock:
            return self._load().get(key)

    async def set(self, key: str, value: Any) -> None:
        async with self._lock:
            data = self._load()
            data[key] = value
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(json.dumps(data, indent=2), encoding="utf-8")
