"""Task execution - runs a declarative build/package task once.

A task definition is rendered into CLI arguments and driven through the
captured-output mode of a ProcessSession. The host's cancellation event is
translated into a kill request.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

from ..cli.arguments import build_arguments, package_arguments
from ..cli.options import AndroidKeystore, BuildOptions, IosSigning, PackageOptions
from ..cli.targets import (
    PHYSICAL_DEVICE_TARGET,
    Platform,
    ProjectType,
    is_distribution_target,
    name_for_platform,
    name_for_target,
    normalised_platform,
)
from ..config import TitaniumConfig
from ..errors import ConfigurationError
from .output import OutputSink
from .session import ProcessSession

if TYPE_CHECKING:
    from ..debug.environment import DeviceCatalog
    from ..debug.prompts import Prompter

logger = logging.getLogger(__name__)

WORKSPACE_FOLDER_VARIABLE = "${workspaceFolder}"


class TaskKind(str, Enum):
    """Task types understood by the host."""

    BUILD = "titanium-build"
    PACKAGE = "titanium-package"


@dataclass(frozen=True)
class TaskDefinition:
    """Declarative build or package task."""

    type: TaskKind
    platform: str
    project_dir: str = WORKSPACE_FOLDER_VARIABLE
    project_type: ProjectType = ProjectType.APP
    label: str | None = None
    target: str | None = None
    device_id: str | None = None
    build_only: bool = False
    log_level: str | None = None
    ios: IosSigning | None = None
    android: AndroidKeystore | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "type", TaskKind(self.type))
        object.__setattr__(self, "platform", normalised_platform(self.platform))
        object.__setattr__(self, "project_type", ProjectType(self.project_type))

    @classmethod
    def from_descriptor(cls, descriptor: Mapping[str, Any]) -> TaskDefinition:
        """Parse a task descriptor ({label, type, titaniumBuild: {...}}).

        Raises:
            ValueError: If the descriptor is malformed
        """
        build = descriptor.get("titaniumBuild")
        if not isinstance(build, Mapping):
            raise ValueError("Task descriptor has no titaniumBuild section")
        if not build.get("platform"):
            raise ValueError("Task descriptor has no platform")

        ios = None
        ios_info = build.get("ios")
        if isinstance(ios_info, Mapping):
            ios = IosSigning(
                certificate=str(ios_info["certificate"]),
                provisioning_profile=str(ios_info["provisioningProfile"]),
            )

        android = None
        keystore = (build.get("android") or {}).get("keystore")
        if isinstance(keystore, Mapping):
            android = AndroidKeystore(
                location=str(keystore["location"]),
                alias=str(keystore["alias"]),
                password=str(keystore.get("password") or ""),
                key_password=keystore.get("privateKeyPassword"),
            )

        return cls(
            type=TaskKind(descriptor.get("type", TaskKind.BUILD.value)),
            platform=str(build["platform"]),
            project_dir=str(build.get("projectDir") or WORKSPACE_FOLDER_VARIABLE),
            project_type=ProjectType(build.get("projectType", ProjectType.APP.value)),
            label=descriptor.get("label"),
            target=build.get("target"),
            device_id=build.get("deviceId"),
            build_only=bool(build.get("buildOnly", False)),
            log_level=build.get("logLevel"),
            ios=ios,
            android=android,
        )

    def to_descriptor(self) -> dict[str, Any]:
        """Convert to a task descriptor. Keystore passwords are not written."""
        build: dict[str, Any] = {
            "platform": self.platform,
            "projectType": self.project_type.value,
            "projectDir": self.project_dir,
        }
        if self.target:
            build["target"] = self.target
        if self.device_id:
            build["deviceId"] = self.device_id
        if self.build_only:
            build["buildOnly"] = True
        if self.log_level:
            build["logLevel"] = self.log_level
        if self.ios is not None:
            build["ios"] = {
                "certificate": self.ios.certificate,
                "provisioningProfile": self.ios.provisioning_profile,
            }
        if self.android is not None:
            build["android"] = {
                "keystore": {
                    "alias": self.android.alias,
                    "location": self.android.location,
                }
            }
        descriptor: dict[str, Any] = {"type": self.type.value, "titaniumBuild": build}
        if self.label:
            descriptor = {"label": self.label, **descriptor}
        return descriptor


@dataclass
class TaskExecutionContext:
    """Where and how a task runs."""

    folder: str
    cancellation: asyncio.Event = field(default_factory=asyncio.Event)
    sink: OutputSink | None = None


@dataclass
class TaskResult:
    """Terminal event of a task execution."""

    label: str
    exit_code: int | None = None
    cancelled: bool = False
    rejected: bool = False

    @property
    def success(self) -> bool:
        """Whether the task ran and exited with code 0."""
        return not self.cancelled and not self.rejected and self.exit_code == 0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result: dict[str, Any] = {"label": self.label, "success": self.success}
        if self.exit_code is not None:
            result["exitCode"] = self.exit_code
        if self.cancelled:
            result["cancelled"] = True
        if self.rejected:
            result["rejected"] = True
        return result


class TaskExecution:
    """Runs one task definition exactly once."""

    def __init__(
        self,
        definition: TaskDefinition,
        context: TaskExecutionContext,
        session: ProcessSession | None = None,
        config: TitaniumConfig | None = None,
    ):
        """Initialize task execution.

        Args:
            definition: Task to run
            context: Folder, cancellation event and output sink
            session: Process session (created on the context sink if not provided)
            config: CLI settings
        """
        self._definition = definition
        self._context = context
        self._config = config or TitaniumConfig()
        self._session = session or ProcessSession(
            command=self._config.cli_path,
            sink=context.sink or OutputSink(),
        )
        self._started = False

    @property
    def label(self) -> str:
        """Task label."""
        return self._definition.label or default_task_label(
            self._definition.platform, self._definition.target
        )

    @property
    def session(self) -> ProcessSession:
        """Process session the task runs on."""
        return self._session

    def _project_dir(self) -> str:
        project_dir = self._definition.project_dir or WORKSPACE_FOLDER_VARIABLE
        return project_dir.replace(WORKSPACE_FOLDER_VARIABLE, self._context.folder)

    def arguments(self) -> list[str]:
        """Render the definition into quoted CLI arguments.

        Raises:
            ConfigurationError: If required fields are missing
        """
        definition = self._definition
        project_dir = self._project_dir()
        log_level = definition.log_level or self._config.log_level
        is_app = definition.project_type == ProjectType.APP

        if definition.type == TaskKind.BUILD:
            if is_app and not definition.target:
                raise ConfigurationError("A target is required to build an app")
            return build_arguments(
                BuildOptions(
                    platform=definition.platform,
                    project_dir=project_dir,
                    target=definition.target,
                    device_id=definition.device_id,
                    project_type=definition.project_type,
                    log_level=log_level,
                    ios=definition.ios,
                    build_only=definition.build_only,
                )
            )

        if not definition.target:
            raise ConfigurationError("A distribution target is required to package")
        if definition.platform == Platform.ANDROID.value and is_app:
            if definition.android is None or not definition.android.password:
                raise ConfigurationError(
                    "Packaging for Android requires a keystore location, alias and password"
                )
        if definition.platform == Platform.IOS.value and is_app and definition.ios is None:
            raise ConfigurationError(
                "Packaging for iOS requires a certificate and provisioning profile"
            )
        return package_arguments(
            PackageOptions(
                platform=definition.platform,
                project_dir=project_dir,
                target=definition.target,
                output_dir=self._config.distribution_output_dir(project_dir),
                project_type=definition.project_type,
                log_level=log_level,
                ios=definition.ios,
                android=definition.android,
            )
        )

    async def _watch_cancellation(self) -> None:
        await self._context.cancellation.wait()
        logger.info(f"Task {self.label} cancelled")
        self._session.kill()

    async def run(self) -> TaskResult:
        """Run the task and wait for its process to close.

        Raises:
            RuntimeError: If this execution already ran
            ConfigurationError: If the definition cannot be rendered
        """
        if self._started:
            raise RuntimeError(f"Task {self.label} has already been executed")
        self._started = True

        args = self.arguments()
        if self._context.cancellation.is_set():
            return TaskResult(label=self.label, cancelled=True)

        watcher = asyncio.create_task(self._watch_cancellation())
        try:
            result = await self._session.run_captured(args, cwd=self._context.folder)
        finally:
            watcher.cancel()

        if result is None:
            return TaskResult(label=self.label, rejected=True)
        return TaskResult(
            label=self.label,
            exit_code=result.exit_code,
            cancelled=result.cancelled,
        )


def default_task_label(platform: str, target: str | None) -> str:
    """Label such as "Titanium - iOS Simulator"."""
    label = f"Titanium - {name_for_platform(platform)}"
    if target:
        label = f"{label} {name_for_target(target)}"
    return label


async def generate_task(
    prompter: Prompter,
    catalog: DeviceCatalog,
    *,
    platform: str,
    target: str,
    project_dir: str,
    project_type: ProjectType | str = ProjectType.APP,
    device_id: str | None = None,
    app_id: str | None = None,
) -> TaskDefinition:
    """Build a task definition for a device or distribution target.

    Asks whether to include signing information and, if so, asks for it.

    Raises:
        UserCancellation: If the user dismisses a question
        ConfigurationError: If signing is requested without an app id
    """
    # Deferred: debug.environment imports process.session
    from ..debug.prompts import (
        enter_android_keystore_info,
        select_ios_certificate,
        select_ios_provisioning_profile,
        yes_no_question,
    )

    platform = normalised_platform(platform)
    project_type = ProjectType(project_type)
    package = is_distribution_target(target)
    ios = None
    android = None

    if project_type == ProjectType.APP:
        wants_ios_signing = platform == Platform.IOS.value and (
            package or target == PHYSICAL_DEVICE_TARGET
        )
        if wants_ios_signing and await yes_no_question(prompter, "Select signing information?"):
            if not app_id:
                raise ConfigurationError("An application id is required to select a profile")
            certificate = await select_ios_certificate(
                prompter, catalog, "package" if package else "run"
            )
            profile = await select_ios_provisioning_profile(
                prompter, catalog, certificate, target, app_id
            )
            ios = IosSigning(certificate=certificate.fullname, provisioning_profile=profile.uuid)
        elif (
            package
            and platform == Platform.ANDROID.value
            and await yes_no_question(prompter, "Select keystore information?")
        ):
            android = await enter_android_keystore_info(prompter)

    return TaskDefinition(
        type=TaskKind.PACKAGE if package else TaskKind.BUILD,
        platform=platform,
        project_dir=project_dir,
        project_type=project_type,
        label=default_task_label(platform, target),
        target=target if project_type == ProjectType.APP else None,
        device_id=device_id if project_type == ProjectType.APP and not package else None,
        ios=ios,
        android=android,
    )
