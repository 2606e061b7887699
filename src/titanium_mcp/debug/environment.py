"""Devices and iOS signing identities known to the Titanium CLI."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Protocol

from ..cli.targets import Platform, normalised_platform
from ..errors import ConfigurationError
from ..process.session import ProcessSession

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Device:
    """A simulator, emulator or physical device."""

    udid: str
    name: str
    version: str | None = None


@dataclass(frozen=True)
class Certificate:
    """An iOS signing certificate."""

    name: str
    fullname: str
    expired: bool = False
    invalid: bool = False
    pem: str | None = None

    @property
    def label(self) -> str:
        """Display name passed to --developer-name / --distribution-name."""
        return self.name


@dataclass(frozen=True)
class ProvisioningProfile:
    """An iOS provisioning profile."""

    uuid: str
    name: str
    app_id: str
    expired: bool = False
    certs: tuple[str, ...] = field(default_factory=tuple)


# Signing kind per target
CERTIFICATE_KINDS: dict[str, str] = {
    "run": "developer",
    "package": "distribution",
}

PROFILE_KINDS: dict[str, str] = {
    "device": "development",
    "dist-adhoc": "adhoc",
    "dist-appstore": "distribution",
}


class DeviceCatalog(Protocol):
    """Source of devices, certificates and provisioning profiles."""

    async def devices(self, platform: str, target: str) -> list[Device]: ...

    async def ios_certificates(self, kind: str) -> list[Certificate]: ...

    async def ios_provisioning_profiles(self, target: str) -> list[ProvisioningProfile]: ...


def _strip_pem(pem: str | None) -> str:
    if not pem:
        return ""
    lines = [line.strip() for line in pem.splitlines()]
    return "".join(line for line in lines if line and not line.startswith("-----"))


class CliDeviceCatalog:
    """Device catalog backed by `ti info -o json`.

    The info document is fetched once per platform and cached.
    """

    def __init__(self, session: ProcessSession):
        self._session = session
        self._info: dict[str, dict[str, Any]] = {}

    async def _platform_info(self, platform: str) -> dict[str, Any]:
        if platform not in self._info:
            response = await self._session.run_buffered(
                ["ti", "info", "-o", "json", "-t", platform]
            )
            try:
                data = json.loads(response.stdout)
            except ValueError as e:
                raise ConfigurationError(f"Could not parse `ti info` output: {e}") from e
            if not isinstance(data, dict):
                raise ConfigurationError("Unexpected `ti info` output")
            self._info[platform] = data.get(platform) or {}
        return self._info[platform]

    def refresh(self) -> None:
        """Forget cached info."""
        self._info.clear()

    async def devices(self, platform: str, target: str) -> list[Device]:
        platform = normalised_platform(platform)
        if platform == Platform.ANDROID.value:
            info = await self._platform_info(platform)
            key = "emulators" if target == "emulator" else "devices"
            return [
                Device(
                    udid=str(d.get("id") or d.get("udid") or d.get("name")),
                    name=str(d.get("name") or d.get("id")),
                    version=d.get("sdk-version") or d.get("release"),
                )
                for d in info.get(key) or []
            ]
        if platform == Platform.IOS.value:
            info = await self._platform_info(platform)
            if target == "simulator":
                simulators = (info.get("simulators") or {}).get("ios") or {}
                return [
                    Device(udid=str(sim["udid"]), name=str(sim["name"]), version=version)
                    for version, sims in sorted(simulators.items(), reverse=True)
                    for sim in sims
                ]
            return [
                Device(udid=str(d["udid"]), name=str(d["name"]), version=d.get("productVersion"))
                for d in info.get("devices") or []
                if d.get("udid") != "itunes"
            ]
        return []

    async def ios_certificates(self, kind: str) -> list[Certificate]:
        info = await self._platform_info(Platform.IOS.value)
        cert_kind = CERTIFICATE_KINDS.get(kind, kind)
        keychains = (info.get("certs") or {}).get("keychains") or {}
        certificates: list[Certificate] = []
        for keychain in keychains.values():
            for cert in keychain.get(cert_kind) or []:
                certificates.append(
                    Certificate(
                        name=str(cert.get("name")),
                        fullname=str(cert.get("fullname") or cert.get("name")),
                        expired=bool(cert.get("expired")),
                        invalid=bool(cert.get("invalid")),
                        pem=cert.get("pem"),
                    )
                )
        return certificates

    async def ios_provisioning_profiles(self, target: str) -> list[ProvisioningProfile]:
        info = await self._platform_info(Platform.IOS.value)
        profile_kind = PROFILE_KINDS.get(target, "development")
        return [
            ProvisioningProfile(
                uuid=str(p["uuid"]),
                name=str(p.get("name") or p["uuid"]),
                app_id=str(p.get("appId") or "*"),
                expired=bool(p.get("expired")),
                certs=tuple(_strip_pem(c) for c in p.get("certs") or []),
            )
            for p in (info.get("provisioning") or {}).get(profile_kind) or []
        ]


def profile_signed_by(profile: ProvisioningProfile, certificate: Certificate) -> bool:
    """Whether a profile embeds a certificate (unknown certs match)."""
    if not profile.certs or not certificate.pem:
        return True
    return _strip_pem(certificate.pem) in profile.certs
