"""Runs configured external tools over transient text content."""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from types import TracebackType

from tool_runner.scratch import ScratchFileTracker
from tool_runner.substitution import substitute_in_args
from tool_runner.task_queue import TaskQueue
from tool_runner.tool_configuration import ToolConfiguration
from tool_runner.tool_definition import ToolDefinition

logger = logging.getLogger(__name__)

ToolErrorCallback = Callable[[str], None]


@dataclass(slots=True)
class ProcessResult:
    """Exit code and captured output of one tool process."""

    exit_code: int
    stdout: str
    stderr: str


class ToolRunner:
    """Runs external tools described by a :class:`ToolConfiguration`.

    One runner is one execution context: it owns the scratch directory for
    tool input files and the queue bounding how many tools run at once.
    Failures of the tools themselves are never raised. They are passed to
    the caller's error callback and the tool's output becomes ``""``.
    """

    def __init__(
        self,
        tool_configuration: ToolConfiguration,
        *,
        max_jobs: int | None = None,
        scratch_root: Path | None = None,
    ) -> None:
        self.tool_configuration = tool_configuration
        self._queue: TaskQueue[str] = TaskQueue(max_jobs)
        self._scratch_root = scratch_root
        self._scratch: ScratchFileTracker | None = None
        self._disposed = False

    @property
    def max_jobs(self) -> int:
        return self._queue.max_jobs

    @property
    def scratch(self) -> ScratchFileTracker:
        if self._disposed:
            raise RuntimeError("ToolRunner has already been disposed.")
        if self._scratch is None:
            self._scratch = ScratchFileTracker(self._scratch_root)
        return self._scratch

    def run(
        self,
        args: Sequence[str],
        content: str,
        tool_error_callback: ToolErrorCallback,
        environment: Mapping[str, str] | None = None,
    ) -> asyncio.Task[str]:
        """Queue a tool run and return a task resolving to the tool's stdout.

        The tool name is the first element of ``args``; the remaining elements
        are its arguments and may reference ``$INPUT`` (a file holding
        ``content``), ``$TOOL_COMMAND`` and any ``environment`` key.
        """

        if not args:
            raise ValueError("Tool arguments must start with a tool name.")
        if self._disposed:
            raise RuntimeError("ToolRunner has already been disposed.")
        args = list(args)
        environment = dict(environment or {})
        return self._queue.add(
            lambda: self._run(args, content, tool_error_callback, environment),
        )

    async def wait(self) -> None:
        """Wait for every queued tool run, including ones queued meanwhile."""

        await self._queue.tasks_complete()

    def dispose(self) -> None:
        """Remove scratch files. Call once no more tools will be run.

        Runs still queued at this point report an error and produce ``""``.
        """

        if self._disposed:
            return
        self._disposed = True
        if self._scratch is not None:
            self._scratch.dispose()

    async def __aenter__(self) -> ToolRunner:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        try:
            await self.wait()
        finally:
            self.dispose()

    async def _run(
        self,
        args: list[str],
        content: str,
        tool_error_callback: ToolErrorCallback,
        environment: dict[str, str],
    ) -> str:
        tool_name, tool_args = args[0], args[1:]
        if self._disposed:
            message = (
                f'Tool "{tool_name}" was not run: the tool runner was disposed '
                "before the run started."
            )
            logger.warning("Tool %s queued after runner disposal", tool_name)
            tool_error_callback(message)
            return ""
        tool = self.tool_configuration.get(tool_name)
        if tool is None:
            message = (
                f'Unable to find definition for tool "{tool_name}" in tool map. '
                f"Did you add it to {self.tool_configuration.source}?"
            )
            logger.warning("Unknown tool %s", tool_name)
            tool_error_callback(message)
            return ""

        env_with_input = {
            "INPUT": str(self.scratch.write_temporary_file(content)),
            "TOOL_COMMAND": tool.command[0],
            **tool.extra_environment(),
            **environment,
        }

        await self._ensure_setup(tool_name, tool, env_with_input, tool_error_callback)

        args_with_input = [*tool.command, *substitute_in_args(tool_args, env_with_input)]
        tool_state = await tool.resolve(tool_name, args_with_input)
        try:
            return await self._run_process(
                tool_name,
                content,
                tool_state.command_path,
                tool_state.args,
                env_with_input,
                tool_error_callback=tool_error_callback,
            )
        finally:
            if tool_state.on_process_complete is not None:
                await tool_state.on_process_complete()

    async def _ensure_setup(
        self,
        tool_name: str,
        tool: ToolDefinition,
        environment: dict[str, str],
        tool_error_callback: ToolErrorCallback,
    ) -> None:
        if not tool.needs_setup:
            return
        async with tool.setup_lock:
            if not tool.needs_setup:
                return
            command_path, args = tool.setup_invocation()
            logger.info("Running setup for tool %s: %s", tool_name, command_path)
            try:
                # Setup output is not used.
                await self._run_process(
                    tool_name,
                    "",
                    command_path,
                    args,
                    environment,
                    tool_error_callback=tool_error_callback,
                )
            finally:
                tool.setup_complete = True

    async def _run_process(  # noqa: PLR0913
        self,
        tool_name: str,
        content: str,
        command_path: str,
        args: list[str],
        environment: dict[str, str],
        *,
        tool_error_callback: ToolErrorCallback,
    ) -> str:
        """Run one process and return its stdout, or ``""`` after reporting a failure."""

        command_string = " ".join([command_path, *args])
        try:
            result = await _spawn(command_path, args, {**os.environ, **environment})
        except OSError as error:
            message = (
                f'Failed to run tool "{tool_name}" as "{command_string}" from {os.getcwd()}: '
                f"{error}\n"
                f"Input to {tool_name} was:\n"
                f"{content}"
            )
            logger.warning("Failed to run tool %s: %s", tool_name, error)
            tool_error_callback(message)
            return ""

        if result.exit_code != 0:
            message = (
                f'Tool "{tool_name}" returned non-zero exit code ({result.exit_code}) '
                f'when run as "{command_string}" from {os.getcwd()}\n'
                f"Input to {tool_name} was:\n"
                f"{content}\n"
                f"Stderr output was:\n{result.stderr}\n"
            )
            logger.warning("Tool %s exited with code %d", tool_name, result.exit_code)
            tool_error_callback(message)
            return ""
        return result.stdout


async def _spawn(command_path: str, args: list[str], env: dict[str, str]) -> ProcessResult:
    process = await asyncio.create_subprocess_exec(
        command_path,
        *args,
        env=env,
        stdin=asyncio.subprocess.DEVNULL,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    stdout, stderr = await process.communicate()
    return ProcessResult(
        exit_code=process.returncode if process.returncode is not None else -1,
        stdout=stdout.decode("utf-8", errors="replace"),
        stderr=stderr.decode("utf-8", errors="replace"),
    )
