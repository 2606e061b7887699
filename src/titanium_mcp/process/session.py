"""Process session - owns the external CLI process and its output.

State machine:
IDLE → RUNNING → SUCCEEDED | FAILED | CANCELLED
     ↑_______________________________|

Execution modes:
- Terminal: command line written into a visible shell, nothing captured
- Captured: single-flight, streamed into the output sink, exit code reported
- Background: streamed into the output sink, not guarded, raises on failure
- Buffered: output accumulated and returned, raises on failure
"""

from __future__ import annotations

import asyncio
import logging
import os
import time
from collections.abc import Callable, Sequence

from ..cli.arguments import NO_PROMPT_FLAG, quote
from ..config import DEFAULT_CLI_PATH
from ..errors import ProcessFailure
from .host import LoggingNotifier, Notifier, ShellTerminal, Terminal
from .output import OutputSink
from .state import CommandResponse, CommandResult, ProcessState

logger = logging.getLogger(__name__)

BUILD_IN_PROGRESS_MESSAGE = "A build is already in progress"
TRUNCATED_LINE_MARKER = "... [line truncated]\n"

# Per-line read limit for subprocess pipes
STREAM_LIMIT: int = 1_048_576

TI_COMMAND = "ti"


def is_ti_executable(command: str) -> bool:
    """Whether the CLI executable is `ti` rather than `appc`."""
    name = os.path.basename(command.strip('"'))
    return os.path.splitext(name)[0].lower() == TI_COMMAND


class ProcessSession:
    """Single captured-output channel for the Titanium CLI.

    At most one captured run is live at a time. A second request while one is
    running is rejected, never queued.
    """

    def __init__(
        self,
        name: str = "Titanium",
        command: str = DEFAULT_CLI_PATH,
        *,
        sink: OutputSink | None = None,
        notifier: Notifier | None = None,
        terminal_factory: Callable[[str], Terminal] | None = None,
        use_terminal_for_build: bool = False,
    ):
        """Initialize process session.

        Args:
            name: Channel name, used for the sink and the terminal
            command: CLI executable (appc or ti)
            sink: Output sink (created if not provided)
            notifier: User notifications (logging notifier if not provided)
            terminal_factory: Creates the interactive terminal on first use
            use_terminal_for_build: Route run_command to the terminal
        """
        self._name = name
        self._command = command
        self._sink = sink or OutputSink(name)
        self._notifier = notifier or LoggingNotifier()
        self._terminal_factory = terminal_factory or ShellTerminal
        self._terminal: Terminal | None = None
        self._use_terminal_for_build = use_terminal_for_build
        self._state = ProcessState.IDLE
        self._process: asyncio.subprocess.Process | None = None
        self._kill_requested = False
        self._last_result: CommandResult | None = None
        self._state_listeners: list[Callable[[ProcessState], None]] = []
        self._running_listeners: list[Callable[[bool], None]] = []

    @property
    def name(self) -> str:
        """Channel name."""
        return self._name

    @property
    def command(self) -> str:
        """CLI executable."""
        return self._command

    @property
    def sink(self) -> OutputSink:
        """Captured output."""
        return self._sink

    @property
    def notifier(self) -> Notifier:
        """User notifications."""
        return self._notifier

    @property
    def state(self) -> ProcessState:
        """Current process state."""
        return self._state

    @property
    def is_running(self) -> bool:
        """Whether a captured run is active."""
        return self._state == ProcessState.RUNNING

    @property
    def last_result(self) -> CommandResult | None:
        """Last captured run result."""
        return self._last_result

    def set_command_path(self, command: str) -> None:
        """Change the CLI executable for later runs."""
        self._command = command

    def on_state_change(self, listener: Callable[[ProcessState], None]) -> None:
        """Register state change listener."""
        self._state_listeners.append(listener)

    def on_running_change(self, listener: Callable[[bool], None]) -> None:
        """Register listener for the running flag."""
        self._running_listeners.append(listener)

    def _set_state(self, new_state: ProcessState) -> None:
        """Update state and notify listeners."""
        old_state = self._state
        self._state = new_state
        if old_state == new_state:
            return
        logger.info(f"Process state: {old_state.value} -> {new_state.value}")
        for listener in self._state_listeners:
            try:
                listener(new_state)
            except Exception:
                logger.exception("State listener error")
        was_running = old_state == ProcessState.RUNNING
        if was_running != self.is_running:
            for running_listener in self._running_listeners:
                try:
                    running_listener(self.is_running)
                except Exception:
                    logger.exception("Running listener error")

    def _command_line(self, args: Sequence[str], command: str | None = None) -> str:
        executable = command or self._command
        args = list(args)
        # `ti` subcommands are spelled `appc ti ...`; the ti CLI takes them bare
        if args and args[0].strip('"') == TI_COMMAND and is_ti_executable(executable):
            args = args[1:]
        return " ".join([executable, *args])

    def _ensure_terminal(self) -> Terminal:
        if self._terminal is None:
            self._terminal = self._terminal_factory(self._name)
        return self._terminal

    # ============== Terminal Mode ==============

    def execute_command(self, command_line: str) -> None:
        """Write a raw command line into the terminal."""
        terminal = self._ensure_terminal()
        terminal.show()
        terminal.clear()
        terminal.send_text(command_line)

    def run_in_terminal(self, args: Sequence[str]) -> None:
        """Write a CLI invocation into the terminal."""
        self.execute_command(self._command_line(args))

    async def run_command(
        self,
        args: Sequence[str],
        *,
        force_terminal: bool = False,
        cwd: str | None = None,
    ) -> CommandResult | None:
        """Run a CLI invocation in the configured mode.

        Returns:
            Result of a captured run, None in terminal mode or when rejected
        """
        if self._use_terminal_for_build or force_terminal:
            self.run_in_terminal(args)
            return None
        return await self.run_captured(args, cwd=cwd)

    # ============== Captured Mode ==============

    async def _spawn(self, command_line: str, cwd: str | None) -> asyncio.subprocess.Process:
        # Tokens are pre-quoted for the shell
        return await asyncio.create_subprocess_shell(
            command_line,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=cwd,
            limit=STREAM_LIMIT,
        )

    async def _pump(
        self,
        stream: asyncio.StreamReader | None,
        on_data: Callable[[str], None],
    ) -> None:
        if stream is None:
            return
        truncated = False
        while True:
            try:
                line = await stream.readline()
            except ValueError:
                # Over the stream limit; the reader already discarded the chunk
                if not truncated and not self._kill_requested:
                    logger.debug("Output line exceeded stream limit, truncating")
                    on_data(TRUNCATED_LINE_MARKER)
                truncated = True
                continue
            if not line:
                break
            if self._kill_requested:
                break
            truncated = False
            on_data(line.decode("utf-8", errors="replace"))

    @staticmethod
    def _kill_process(process: asyncio.subprocess.Process) -> None:
        try:
            process.kill()
        except ProcessLookupError:
            logger.debug("Process already exited")

    async def run_captured(
        self,
        args: Sequence[str],
        cwd: str | None = None,
    ) -> CommandResult | None:
        """Run a CLI invocation with output captured into the sink.

        Args:
            args: Quoted CLI arguments
            cwd: Working directory

        Returns:
            Command result, or None if another captured run is active
        """
        if self.is_running:
            self._notifier.show_info(BUILD_IN_PROGRESS_MESSAGE)
            return None

        args = list(args)
        if NO_PROMPT_FLAG not in args and quote(NO_PROMPT_FLAG) not in args:
            args.append(quote(NO_PROMPT_FLAG))
        command_line = self._command_line(args)

        self._kill_requested = False
        self._set_state(ProcessState.RUNNING)
        self._sink.clear()
        self._sink.append(f"{command_line}\n\n")
        self._sink.show()
        start_time = time.perf_counter()
        logger.info(f"Running: {command_line}")

        process = None
        try:
            process = await self._spawn(command_line, cwd)
            self._process = process
            if self._kill_requested:
                self.kill()
            await asyncio.gather(
                self._pump(process.stdout, self._sink.append),
                self._pump(process.stderr, self._sink.append),
            )
            exit_code = await process.wait()
        except asyncio.CancelledError:
            self.kill()
            self._finish(command_line, None, True, start_time)
            raise
        except Exception:
            if process is not None:
                self._kill_process(process)
                await process.wait()
            self._set_state(ProcessState.FAILED)
            raise
        finally:
            self._process = None

        result = self._finish(command_line, exit_code, self._kill_requested, start_time)
        if not result.success and not result.cancelled:
            self._notifier.show_error(
                f"Command failed with exit code {exit_code}, please check the output."
            )
            self._sink.show()
        return result

    def _finish(
        self,
        command_line: str,
        exit_code: int | None,
        cancelled: bool,
        start_time: float,
    ) -> CommandResult:
        result = CommandResult(
            command=command_line,
            exit_code=exit_code,
            cancelled=cancelled,
            duration_ms=(time.perf_counter() - start_time) * 1000,
        )
        self._last_result = result
        self._set_state(result.state)
        return result

    def kill(self) -> bool:
        """Kill the active captured process.

        Returns:
            True if a run was active
        """
        if self._process is None and not self.is_running:
            return False

        self._kill_requested = True
        if self._process is not None:
            self._kill_process(self._process)
            self._process = None
        return True

    # ============== Background / Buffered ==============

    async def run_in_background(
        self,
        args: Sequence[str],
        cwd: str | None = None,
        failure_message: str = "Command failed, please check the output.",
    ) -> CommandResult:
        """Run a CLI invocation outside the single-flight guard.

        Output still streams into the sink.

        Raises:
            ProcessFailure: If the command exits non-zero
        """
        command_line = self._command_line(args)
        self._sink.clear()
        self._sink.append(f"{command_line}\n\n")
        start_time = time.perf_counter()
        logger.info(f"Running in background: {command_line}")

        process = await self._spawn(command_line, cwd)
        try:
            await asyncio.gather(
                self._pump(process.stdout, self._sink.append),
                self._pump(process.stderr, self._sink.append),
            )
            exit_code = await process.wait()
        except BaseException:
            self._kill_process(process)
            raise
        result = CommandResult(
            command=command_line,
            exit_code=exit_code,
            duration_ms=(time.perf_counter() - start_time) * 1000,
        )
        if exit_code:
            self._notifier.show_error(failure_message)
            self._sink.show()
            raise ProcessFailure(failure_message, exit_code=exit_code)
        return result

    async def run_buffered(
        self,
        args: Sequence[str],
        command: str | None = None,
        cwd: str | None = None,
    ) -> CommandResponse:
        """Run a command to completion and return its output.

        Args:
            args: Command arguments
            command: Executable, defaults to the CLI
            cwd: Working directory

        Raises:
            ProcessFailure: If the command exits non-zero. The partial
                output is attached to the exception.
        """
        command_line = self._command_line(args, command)
        logger.debug(f"Running buffered: {command_line}")
        process = await self._spawn(command_line, cwd)
        stdout_bytes, stderr_bytes = await process.communicate()
        stdout = (stdout_bytes or b"").decode("utf-8", errors="replace")
        stderr = (stderr_bytes or b"").decode("utf-8", errors="replace")
        if process.returncode:
            raise ProcessFailure(
                f"{command_line} exited with code {process.returncode}",
                exit_code=process.returncode,
                stdout=stdout,
                stderr=stderr,
            )
        return CommandResponse(stdout=stdout, stderr=stderr)

    def dispose(self) -> None:
        """Kill any active run and release the terminal."""
        self.kill()
        if self._terminal is not None:
            self._terminal.dispose()
            self._terminal = None
        self._state_listeners.clear()
        self._running_listeners.clear()
