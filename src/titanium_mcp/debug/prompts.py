"""Interactive selection helpers.

All questions go through a Prompter. A dismissed question raises
UserCancellation; callers decide what that means for their step.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol

from pydantic import BaseModel, Field

from ..cli.options import AndroidKeystore
from ..cli.targets import (
    host_platforms,
    name_for_platform,
    name_for_target,
    provisioning_profile_matches_app_id,
)
from ..errors import ConfigurationError, UserCancellation
from .environment import (
    Certificate,
    DeviceCatalog,
    ProvisioningProfile,
    profile_signed_by,
)

if TYPE_CHECKING:
    from mcp.server.fastmcp import Context

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PickItem:
    """One option of a choose-one question."""

    label: str
    id: str
    description: str | None = None
    value: Any = None


class Prompter(Protocol):
    """Interactive question capability."""

    async def choose_one(
        self, items: Sequence[PickItem], *, placeholder: str | None = None
    ) -> PickItem: ...

    async def confirm(self, question: str) -> bool: ...

    async def input_text(
        self, prompt: str, *, default: str | None = None, password: bool = False
    ) -> str: ...


# ============== Selection Helpers ==============


async def select_platform(
    prompter: Prompter, platforms: Sequence[str] | None = None
) -> PickItem:
    """Ask for a build platform."""
    items = [
        PickItem(label=name_for_platform(p), id=p)
        for p in (platforms if platforms is not None else host_platforms())
    ]
    if not items:
        raise ConfigurationError("No platforms are available on this host")
    return await prompter.choose_one(items, placeholder="Select a platform")


async def select_device(
    prompter: Prompter, catalog: DeviceCatalog, platform: str, target: str
) -> PickItem:
    """Ask for a device of a platform and target; the item id is the udid."""
    devices = await catalog.devices(platform, target)
    if not devices:
        raise ConfigurationError(
            f"No {name_for_target(target)} devices found for {name_for_platform(platform)}"
        )
    items = [
        PickItem(
            label=device.name,
            id=device.udid,
            description=device.version,
            value=device,
        )
        for device in devices
    ]
    return await prompter.choose_one(items, placeholder="Select a device")


async def select_ios_certificate(
    prompter: Prompter, catalog: DeviceCatalog, kind: str = "run"
) -> Certificate:
    """Ask for a valid iOS certificate (kind is run or package)."""
    certificates = [
        c for c in await catalog.ios_certificates(kind) if not c.expired and not c.invalid
    ]
    if not certificates:
        raise ConfigurationError("No valid iOS certificates found")
    items = [
        PickItem(label=cert.label, id=cert.fullname, value=cert) for cert in certificates
    ]
    selected = await prompter.choose_one(items, placeholder="Select a certificate")
    return selected.value


async def select_ios_provisioning_profile(
    prompter: Prompter,
    catalog: DeviceCatalog,
    certificate: Certificate,
    target: str,
    app_id: str,
) -> ProvisioningProfile:
    """Ask for a provisioning profile usable with a certificate and app id."""
    profiles = [
        p
        for p in await catalog.ios_provisioning_profiles(target)
        if not p.expired
        and provisioning_profile_matches_app_id(p.app_id, app_id)
        and profile_signed_by(p, certificate)
    ]
    if not profiles:
        raise ConfigurationError(f"No provisioning profiles found for {app_id}")
    items = [
        PickItem(label=profile.name, id=profile.uuid, description=profile.uuid, value=profile)
        for profile in profiles
    ]
    selected = await prompter.choose_one(items, placeholder="Select a provisioning profile")
    return selected.value


async def enter_android_keystore_info(
    prompter: Prompter,
    default_location: str | None = None,
    ask_password: bool = False,
) -> AndroidKeystore:
    """Ask for keystore location and alias (and optionally passwords)."""
    location = await prompter.input_text("Keystore location", default=default_location)
    if not location:
        raise UserCancellation("No keystore location was entered")
    alias = await prompter.input_text("Keystore alias")
    if not alias:
        raise UserCancellation("No keystore alias was entered")
    password = ""
    if ask_password:
        password = await prompter.input_text("Keystore password", password=True)
    return AndroidKeystore(location=location, alias=alias, password=password)


async def yes_no_question(prompter: Prompter, question: str) -> bool:
    """Ask a yes/no question."""
    return await prompter.confirm(question)


# ============== MCP Elicitation ==============


class Selection(BaseModel):
    """Elicited choice."""

    choice: str = Field(description="Number or label of the option to select")


class Confirmation(BaseModel):
    """Elicited yes/no answer."""

    confirmed: bool = Field(description="Yes or no")


class TextInput(BaseModel):
    """Elicited free text."""

    value: str = Field(description="Value to use")


class ElicitationPrompter:
    """Prompter asking questions through MCP elicitation.

    Declined or cancelled elicitations raise UserCancellation.
    """

    def __init__(self, ctx: Context):
        self._ctx = ctx

    async def _elicit(self, message: str, schema: type[BaseModel]) -> Any:
        result = await self._ctx.elicit(message=message, schema=schema)
        if result.action != "accept":
            logger.info(f"Elicitation {result.action}: {message.splitlines()[0]}")
            raise UserCancellation()
        return result.data

    async def choose_one(
        self, items: Sequence[PickItem], *, placeholder: str | None = None
    ) -> PickItem:
        if not items:
            raise ConfigurationError("Nothing to choose from")
        lines = [placeholder or "Select an option"]
        for index, item in enumerate(items, 1):
            suffix = f" ({item.description})" if item.description else ""
            lines.append(f"{index}. {item.label}{suffix}")
        data = await self._elicit("\n".join(lines), Selection)
        answer = str(data.choice).strip()

        if answer.isdigit() and 1 <= int(answer) <= len(items):
            return items[int(answer) - 1]
        for item in items:
            if answer.lower() in (item.label.lower(), item.id.lower()):
                return item
        raise UserCancellation(f"Unknown selection: {answer}")

    async def confirm(self, question: str) -> bool:
        data = await self._elicit(question, Confirmation)
        return bool(data.confirmed)

    async def input_text(
        self, prompt: str, *, default: str | None = None, password: bool = False
    ) -> str:
        message = f"{prompt} (default: {default})" if default and not password else prompt
        data = await self._elicit(message, TextInput)
        value = str(data.value).strip()
        return value or (default or "")
