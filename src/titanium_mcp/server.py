"""MCP Server for Titanium builds and debug configuration."""

from __future__ import annotations

import json
import logging
import os
from typing import Any

from mcp.server.fastmcp import Context, FastMCP

from .cli import (
    AndroidKeystore,
    BuildOptions,
    CleanOptions,
    CreateOptions,
    IosSigning,
    PackageOptions,
    WindowsSigning,
    build_arguments,
    clean_arguments,
    create_app_arguments,
    create_module_arguments,
    package_arguments,
)
from .cli.targets import (
    host_platforms,
    name_for_target,
    normalised_platform,
    targets_for_platform,
    validate_app_id,
)
from .config import TitaniumConfig
from .debug import (
    CliDeviceCatalog,
    DebugConfigurationResolver,
    ElicitationPrompter,
    JsonFileStateStore,
    MemoryStateStore,
    StateStore,
)
from .errors import ConfigurationError
from .process import (
    BUILD_IN_PROGRESS_MESSAGE,
    LoggingNotifier,
    ProcessSession,
    TaskDefinition,
    TaskExecution,
    TaskExecutionContext,
    generate_task,
)
from .utils.project import get_project_root, read_app_id

logger = logging.getLogger(__name__)

# Global state (single client mode)
_config: TitaniumConfig | None = None
_notifier: LoggingNotifier | None = None
_session: ProcessSession | None = None
_store: StateStore | None = None
_catalog: CliDeviceCatalog | None = None
_initial_project_path: str | None = None
_running_task: TaskExecutionContext | None = None


def get_config() -> TitaniumConfig:
    """Get or load configuration."""
    global _config
    if _config is None:
        _config = TitaniumConfig.from_env()
    return _config


def get_notifier() -> LoggingNotifier:
    """Get the notifier collecting user-facing messages."""
    global _notifier
    if _notifier is None:
        _notifier = LoggingNotifier()
    return _notifier


def get_session() -> ProcessSession:
    """Get or create the process session.

    Note: Single client mode - one captured build at a time.
    """
    global _session
    if _session is None:
        config = get_config()
        _session = ProcessSession(
            "Titanium",
            config.cli_path,
            notifier=get_notifier(),
            use_terminal_for_build=config.use_terminal_for_build,
        )
    return _session


def get_state_store() -> StateStore:
    """Get the last-debug-state store."""
    global _store
    if _store is None:
        state_file = get_config().state_file
        _store = JsonFileStateStore(state_file) if state_file else MemoryStateStore()
    return _store


def get_catalog() -> CliDeviceCatalog:
    """Get the CLI-backed device catalog."""
    global _catalog
    if _catalog is None:
        _catalog = CliDeviceCatalog(get_session())
    return _catalog


def fresh_catalog() -> CliDeviceCatalog:
    """Device catalog with cached `ti info` output dropped.

    Devices come and go between tool calls; within one call the cache holds.
    """
    catalog = get_catalog()
    catalog.refresh()
    return catalog


async def resolve_project_dir(ctx: Context, project_dir: str | None) -> str:
    """Project directory for a tool call.

    Uses the explicit argument, then MCP roots and configured paths.

    Raises:
        ConfigurationError: If no project directory can be determined
    """
    if project_dir:
        return os.path.abspath(project_dir)
    root = await get_project_root(ctx)
    if root is not None:
        return str(root)
    if _initial_project_path:
        return _initial_project_path
    raise ConfigurationError("Cannot determine the project directory, pass project_dir")


def build_status(session: ProcessSession) -> dict[str, Any]:
    """State of the build channel and its last result."""
    last = session.last_result
    return {
        "state": session.state.value,
        "running": session.is_running,
        "lastResult": last.to_dict() if last else None,
        "summary": last.to_summary() if last else None,
        "outputRevealed": session.sink.revealed,
    }


def track_task(context: TaskExecutionContext) -> bool:
    """Make a task cancellable through stop_build.

    Returns:
        False if another task is already tracked
    """
    global _running_task
    if _running_task is not None:
        return False
    _running_task = context
    return True


def untrack_task(context: TaskExecutionContext) -> None:
    """Forget a task, leaving any other tracked task in place."""
    global _running_task
    if _running_task is context:
        _running_task = None


def cancel_running_task() -> bool:
    """Signal cancellation to the tracked task."""
    if _running_task is None:
        return False
    _running_task.cancellation.set()
    return True


def _with_messages(response: dict[str, Any]) -> dict[str, Any]:
    """Attach pending user notifications to a tool response."""
    messages = get_notifier().drain()
    if messages:
        response["messages"] = [{"level": m.level, "message": m.message} for m in messages]
    return response


def _ok(data: Any) -> dict[str, Any]:
    return _with_messages({"success": True, "data": data})


def _error(error: Exception) -> dict[str, Any]:
    response: dict[str, Any] = {"success": False, "error": str(error)}
    to_dict = getattr(error, "to_dict", None)
    if callable(to_dict):
        response["details"] = to_dict()
    return _with_messages(response)


def create_server(project_path: str | None = None) -> FastMCP:
    """Create and configure the MCP server.

    Args:
        project_path: Initial project directory. Can be overridden per call
            or by MCP client roots.
    """
    global _initial_project_path
    _initial_project_path = os.path.abspath(project_path) if project_path else None
    mcp = FastMCP("titanium-mcp")
    session = get_session()
    config = get_config()

    # Resource update notifications
    from pydantic import AnyUrl

    async def notify_status_changed(ctx: Context) -> None:
        """Notify client that titanium://status has changed."""
        try:
            if ctx.session:
                await ctx.session.send_resource_updated(AnyUrl("titanium://status"))
        except Exception:
            pass  # Notification failure shouldn't break the tool

    session.on_running_change(
        lambda running: logger.info(f"Titanium build running: {running}")
    )

    async def run_build(ctx: Context, args: list[str], cwd: str) -> dict[str, Any]:
        await notify_status_changed(ctx)
        result = await session.run_command(args, cwd=cwd)
        await notify_status_changed(ctx)
        if result is None:
            if config.use_terminal_for_build:
                return _ok({"started": True, "mode": "terminal"})
            return _error(RuntimeError(BUILD_IN_PROGRESS_MESSAGE))
        data = result.to_dict()
        data["outputTail"] = session.sink.tail(30)
        return _ok(data)

    # ============== Build Tools ==============

    @mcp.tool()
    async def build_app(
        ctx: Context,
        platform: str,
        target: str | None = None,
        device_id: str | None = None,
        project_dir: str | None = None,
        project_type: str = "app",
        log_level: str | None = None,
        ios_certificate: str | None = None,
        ios_provisioning_profile: str | None = None,
        debug_port: int | None = None,
        liveview: bool = False,
        skip_js_minify: bool = False,
        source_maps: bool = False,
        deploy_type: str | None = None,
        build_only: bool = False,
    ) -> dict:
        """
        Build and run a Titanium app or module.

        Only one build runs at a time; a second request while one is running
        is rejected. Output is captured (see get_build_output) unless the
        server is configured to use a terminal.

        Args:
            platform: android, ios or windows
            target: simulator, emulator, device, ... (required for apps)
            device_id: Device or simulator udid
            project_dir: Project directory (defaults to the project root)
            project_type: app or module
            log_level: CLI log level (defaults to TITANIUM_LOG_LEVEL)
            ios_certificate: Developer certificate name (iOS device builds)
            ios_provisioning_profile: Provisioning profile UUID (iOS device builds)
            debug_port: Android debugger port
            liveview: Enable LiveView
            skip_js_minify: Skip JavaScript minification
            source_maps: Generate source maps
            deploy_type: development, test or production
            build_only: Build without installing or launching
        """
        try:
            cwd = await resolve_project_dir(ctx, project_dir)
            ios = None
            if ios_certificate and ios_provisioning_profile:
                ios = IosSigning(ios_certificate, ios_provisioning_profile)
            options = BuildOptions(
                platform=platform,
                project_dir=cwd,
                target=target,
                device_id=device_id,
                project_type=project_type,
                log_level=log_level or config.log_level,
                ios=ios,
                debug_port=debug_port,
                liveview=liveview,
                skip_js_minify=skip_js_minify,
                source_maps=source_maps,
                deploy_type=deploy_type,
                build_only=build_only,
            )
            return await run_build(ctx, build_arguments(options), cwd)
        except Exception as e:
            return _error(e)

    @mcp.tool()
    async def package_app(
        ctx: Context,
        platform: str,
        target: str,
        project_dir: str | None = None,
        output_dir: str | None = None,
        log_level: str | None = None,
        ios_certificate: str | None = None,
        ios_provisioning_profile: str | None = None,
        keystore_location: str | None = None,
        keystore_alias: str | None = None,
        keystore_password: str | None = None,
        key_password: str | None = None,
        windows_certificate: str | None = None,
        windows_certificate_password: str | None = None,
        windows_publisher_id: str | None = None,
    ) -> dict:
        """
        Package a Titanium app for distribution (dist-* targets).

        Args:
            platform: android, ios or windows
            target: dist-playstore, dist-adhoc, dist-appstore, dist-winstore, ...
            project_dir: Project directory (defaults to the project root)
            output_dir: Output directory (defaults to TITANIUM_DISTRIBUTION_OUTPUT_DIR)
            log_level: CLI log level
            ios_certificate: Distribution certificate name (iOS)
            ios_provisioning_profile: Provisioning profile UUID (iOS)
            keystore_location: Keystore path (Android)
            keystore_alias: Keystore alias (Android)
            keystore_password: Keystore password (Android)
            key_password: Private key password (Android, optional)
            windows_certificate: Certificate file (Windows)
            windows_certificate_password: Certificate password (Windows)
            windows_publisher_id: Publisher id (Windows)
        """
        try:
            cwd = await resolve_project_dir(ctx, project_dir)
            platform = normalised_platform(platform)
            ios = android = windows = None
            if platform == "ios":
                if not (ios_certificate and ios_provisioning_profile):
                    raise ConfigurationError(
                        "Packaging for iOS requires ios_certificate and ios_provisioning_profile"
                    )
                ios = IosSigning(ios_certificate, ios_provisioning_profile)
            elif platform == "android":
                if not (keystore_location and keystore_alias and keystore_password):
                    raise ConfigurationError(
                        "Packaging for Android requires keystore_location, "
                        "keystore_alias and keystore_password"
                    )
                android = AndroidKeystore(
                    keystore_location, keystore_alias, keystore_password, key_password
                )
            elif platform == "windows":
                windows = WindowsSigning(
                    windows_certificate, windows_certificate_password, windows_publisher_id
                )
            options = PackageOptions(
                platform=platform,
                project_dir=cwd,
                target=target,
                output_dir=output_dir or config.distribution_output_dir(cwd),
                log_level=log_level or config.log_level,
                ios=ios,
                android=android,
                windows=windows,
            )
            return await run_build(ctx, package_arguments(options), cwd)
        except Exception as e:
            return _error(e)

    @mcp.tool()
    async def create_app(
        ctx: Context,
        name: str,
        app_id: str,
        platforms: list[str],
        workspace_dir: str | None = None,
        force: bool = False,
        enable_services: bool = False,
    ) -> dict:
        """
        Create a new Titanium app in workspace_dir/name.

        Args:
            name: App name
            app_id: Application id, e.g. com.example.myapp
            platforms: Platforms to include, e.g. ["android", "ios"]
            workspace_dir: Parent directory (defaults to the project root)
            force: Overwrite an existing project
            enable_services: Enable platform services
        """
        try:
            if not validate_app_id(app_id):
                raise ConfigurationError(f"Invalid application id: {app_id}")
            workspace = await resolve_project_dir(ctx, workspace_dir)
            options = CreateOptions(
                name=name,
                app_id=app_id,
                workspace_dir=workspace,
                platforms=tuple(platforms),
                force=force,
                enable_services=enable_services,
            )
            result = await session.run_in_background(
                create_app_arguments(options),
                cwd=workspace,
                failure_message="Failed to create the application, please check the output.",
            )
            data = result.to_dict()
            data["projectDir"] = os.path.join(workspace, name)
            return _ok(data)
        except Exception as e:
            return _error(e)

    @mcp.tool()
    async def create_module(
        ctx: Context,
        name: str,
        module_id: str,
        platforms: list[str],
        workspace_dir: str | None = None,
        force: bool = False,
    ) -> dict:
        """
        Create a new Titanium native module in workspace_dir/name.

        Args:
            name: Module name
            module_id: Module id, e.g. com.example.mymodule
            platforms: Platforms to include
            workspace_dir: Parent directory (defaults to the project root)
            force: Overwrite an existing project
        """
        try:
            if not validate_app_id(module_id):
                raise ConfigurationError(f"Invalid module id: {module_id}")
            workspace = await resolve_project_dir(ctx, workspace_dir)
            options = CreateOptions(
                name=name,
                app_id=module_id,
                workspace_dir=workspace,
                platforms=tuple(platforms),
                project_type="module",
                force=force,
            )
            result = await session.run_in_background(
                create_module_arguments(options),
                cwd=workspace,
                failure_message="Failed to create the module, please check the output.",
            )
            data = result.to_dict()
            data["projectDir"] = os.path.join(workspace, name)
            return _ok(data)
        except Exception as e:
            return _error(e)

    @mcp.tool()
    async def clean_project(ctx: Context, project_dir: str | None = None) -> dict:
        """Remove a project's build output."""
        try:
            cwd = await resolve_project_dir(ctx, project_dir)
            options = CleanOptions(project_dir=cwd, log_level=config.log_level)
            return await run_build(ctx, clean_arguments(options), cwd)
        except Exception as e:
            return _error(e)

    @mcp.tool()
    async def stop_build(ctx: Context) -> dict:
        """Kill the running build, if any."""
        try:
            cancel_running_task()
            stopped = session.kill()
            await notify_status_changed(ctx)
            return _ok({"stopped": stopped})
        except Exception as e:
            return _error(e)

    @mcp.tool()
    async def get_build_status() -> dict:
        """Get whether a build is running and the last build result."""
        try:
            return _ok(build_status(session))
        except Exception as e:
            return _error(e)

    @mcp.tool()
    async def get_build_output(lines: int | None = None, clear: bool = False) -> dict:
        """
        Get captured CLI output.

        Args:
            lines: Only return the last N lines
            clear: Clear the output after reading
        """
        try:
            output = "\n".join(session.sink.tail(lines)) if lines else session.sink.text
            if clear:
                session.sink.clear()
            return _ok({"output": output})
        except Exception as e:
            return _error(e)

    @mcp.tool()
    async def list_targets(platform: str | None = None) -> dict:
        """List platforms available on this host and their targets."""
        try:
            platforms = [normalised_platform(platform)] if platform else host_platforms()
            return _ok(
                {
                    p: [{"id": t, "name": name_for_target(t)} for t in targets_for_platform(p)]
                    for p in platforms
                }
            )
        except Exception as e:
            return _error(e)

    # ============== Debug / Task Tools ==============

    @mcp.tool()
    async def resolve_debug_configuration(
        ctx: Context, configuration: dict[str, Any] | None = None
    ) -> dict:
        """
        Complete a launch/attach debug configuration interactively.

        Missing fields (platform, target, device, iOS signing) are asked for
        through elicitation. The target question offers the last debug
        session of the platform when one exists.

        Args:
            configuration: launch.json style configuration (request, platform,
                target, deviceId, iOSCertificate, ...). Missing keys are resolved.
        """
        try:
            workspace = await resolve_project_dir(ctx, None)
            resolver = DebugConfigurationResolver(
                ElicitationPrompter(ctx),
                fresh_catalog(),
                get_state_store(),
                config=config,
            )
            resolved = await resolver.resolve(configuration or {}, workspace)
            data = resolved.to_dict()
            data["arguments"] = build_arguments(resolved.to_build_options())
            return _ok(data)
        except Exception as e:
            return _error(e)

    @mcp.tool()
    async def run_task(ctx: Context, task: dict[str, Any]) -> dict:
        """
        Run a titanium-build or titanium-package task descriptor.

        Args:
            task: {label, type, titaniumBuild: {platform, projectType, projectDir,
                target, deviceId, ios, android}}
        """
        try:
            definition = TaskDefinition.from_descriptor(task)
            folder = await resolve_project_dir(ctx, None)
            context = TaskExecutionContext(folder=folder, sink=session.sink)
            execution = TaskExecution(definition, context, session, config)
            track_task(context)
            try:
                await notify_status_changed(ctx)
                result = await execution.run()
            finally:
                untrack_task(context)
                await notify_status_changed(ctx)
            data = result.to_dict()
            data["outputTail"] = session.sink.tail(30)
            return _ok(data)
        except Exception as e:
            return _error(e)

    @mcp.tool()
    async def generate_task_definition(
        ctx: Context,
        platform: str,
        target: str,
        device_id: str | None = None,
        project_dir: str | None = None,
        project_type: str = "app",
    ) -> dict:
        """
        Generate a task descriptor for a device or distribution target.

        Asks whether to include signing information. The descriptor can be
        added to .vscode/tasks.json or passed to run_task.
        """
        try:
            folder = await resolve_project_dir(ctx, project_dir)
            definition = await generate_task(
                ElicitationPrompter(ctx),
                fresh_catalog(),
                platform=platform,
                target=target,
                project_dir=folder,
                project_type=project_type,
                device_id=device_id,
                app_id=read_app_id(folder),
            )
            return _ok(definition.to_descriptor())
        except Exception as e:
            return _error(e)

    # ============== Resources ==============

    @mcp.resource("titanium://status", mime_type="application/json")
    async def status_resource() -> str:
        """Build state and last result."""
        return json.dumps(build_status(session), indent=2)

    @mcp.resource("titanium://output", mime_type="text/plain")
    async def output_resource() -> str:
        """Captured CLI output of the current or last build."""
        return session.sink.text

    return mcp


def shutdown() -> None:
    """Kill any running build and release the terminal."""
    if _session is not None:
        _session.dispose()
