"""Debug configuration resolver.

Fills in the missing fields of a launch/attach configuration, strictly in
this order, asking the user where needed:

1. projectDir      workspace folder
2. port/debugPort  9000
3. logLevel        configured CLI log level
4. platform        asked; attach on Android is rejected
5. target          asked; may resume the last debug session
6. device          asked unless resumed
7. iOS signing     asked for iOS device launches unless resumed
8. last session    saved for android/ios once everything resolved
"""

from __future__ import annotations

import logging
import os
from collections.abc import Awaitable, Callable, Mapping, Sequence
from typing import Any, TypeVar

from ..cli.targets import Platform, name_for_target, run_targets_for_platform
from ..config import TitaniumConfig
from ..errors import ConfigurationError, ResolutionCancelled, UserCancellation
from ..utils.project import read_app_id
from .environment import DeviceCatalog
from .prompts import (
    PickItem,
    Prompter,
    select_device,
    select_ios_certificate,
    select_ios_provisioning_profile,
    select_platform,
)
from .state import DebugConfiguration, LastDebugState, StateStore

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_DEBUG_PORT = 9000
LAST_SESSION_ID = "last"
PERSISTED_PLATFORMS = (Platform.ANDROID.value, Platform.IOS.value)

ANDROID_ATTACH_UNSUPPORTED = "Attaching to a running Android app is currently not supported"


def _cancelled_message(what: str) -> str:
    return f"Failed to start debug session as no {what} was selected"


class DebugConfigurationResolver:
    """Resolves incomplete debug configurations interactively."""

    def __init__(
        self,
        prompter: Prompter,
        catalog: DeviceCatalog,
        store: StateStore,
        *,
        config: TitaniumConfig | None = None,
        app_id_provider: Callable[[str], str | None] | None = None,
        platforms: Sequence[str] | None = None,
    ):
        """Initialize resolver.

        Args:
            prompter: Asks the user questions
            catalog: Lists devices and signing identities
            store: Per-platform last debug state
            config: Default log level source
            app_id_provider: Application id for a project directory
            platforms: Selectable platforms (host platforms if not provided)
        """
        self._prompter = prompter
        self._catalog = catalog
        self._store = store
        self._config = config or TitaniumConfig()
        self._app_id_provider = app_id_provider or read_app_id
        self._platforms = platforms

    async def _ask(self, what: str, question: Callable[[], Awaitable[T]]) -> T:
        """Run one interactive step, naming the step if the user cancels."""
        try:
            return await question()
        except UserCancellation as e:
            raise ResolutionCancelled(_cancelled_message(what)) from e

    async def load_last_state(self, platform: str) -> LastDebugState | None:
        """Last debug state of a platform, None if absent or malformed."""
        if platform not in PERSISTED_PLATFORMS:
            return None
        record = await self._store.get(platform)
        if record is None:
            return None
        try:
            return LastDebugState.from_dict(record)
        except ValueError as e:
            logger.debug(f"Ignoring last {platform} debug state: {e}")
            return None

    async def resolve(
        self,
        configuration: DebugConfiguration | Mapping[str, Any],
        workspace_folder: str | None = None,
    ) -> DebugConfiguration:
        """Resolve all missing fields of a configuration.

        Args:
            configuration: Configuration record or launch.json dictionary
            workspace_folder: Default project directory

        Returns:
            Fully resolved configuration

        Raises:
            ResolutionCancelled: If the user dismisses a question
            ConfigurationError: For unsupported combinations
        """
        if isinstance(configuration, DebugConfiguration):
            config = configuration
        else:
            config = DebugConfiguration.from_dict(configuration)

        if not config.project_dir:
            config.project_dir = workspace_folder or os.getcwd()

        if not config.port:
            config.port = DEFAULT_DEBUG_PORT
        if not config.debug_port:
            config.debug_port = DEFAULT_DEBUG_PORT

        if not config.log_level:
            config.log_level = self._config.log_level

        if not config.platform:
            selected = await self._ask(
                "platform", lambda: select_platform(self._prompter, self._platforms)
            )
            config.platform = selected.id

        if config.platform == Platform.ANDROID.value and config.is_attach:
            raise ConfigurationError(ANDROID_ATTACH_UNSUPPORTED)

        if not config.target:
            await self._ask("target", lambda: self._resolve_target(config))

        if not config.device_id:
            device = await self._ask(
                "device",
                lambda: select_device(
                    self._prompter, self._catalog, str(config.platform), str(config.target)
                ),
            )
            config.device_id = device.id
            config.device_name = device.label

        if config.needs_ios_signing and not config.ios_certificate:
            await self._ask("code signing information", lambda: self._resolve_signing(config))

        if config.platform in PERSISTED_PLATFORMS:
            state = LastDebugState.from_configuration(config)
            await self._store.set(str(config.platform), state.to_dict())
            logger.info(f"Saved last {config.platform} debug session ({state.target})")

        return config

    async def _resolve_target(self, config: DebugConfiguration) -> None:
        platform = str(config.platform)
        last_state = await self.load_last_state(platform)
        items = [
            PickItem(label=name_for_target(target), id=target)
            for target in run_targets_for_platform(platform)
        ]
        if last_state is not None:
            items.append(
                PickItem(
                    label=f"Last debug session ({last_state.target} - {last_state.device_name})",
                    id=LAST_SESSION_ID,
                    value=last_state,
                )
            )

        selected = await self._prompter.choose_one(items, placeholder="Select a target")
        if selected.id == LAST_SESSION_ID and last_state is not None:
            last_state.apply_to(config)
        else:
            config.target = selected.id

    async def _resolve_signing(self, config: DebugConfiguration) -> None:
        project_dir = str(config.project_dir)
        app_id = self._app_id_provider(project_dir)
        if not app_id:
            raise ConfigurationError(f"Could not determine the application id of {project_dir}")

        certificate = await select_ios_certificate(self._prompter, self._catalog, "run")
        profile = await select_ios_provisioning_profile(
            self._prompter, self._catalog, certificate, str(config.target), app_id
        )
        config.ios_certificate = certificate.label
        config.ios_provisioning_profile = profile.uuid
