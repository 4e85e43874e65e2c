"""Tool definitions and their per-invocation command resolution."""

from __future__ import annotations

import asyncio
import sys
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field

from tool_runner.bytecode_cache import BytecodeCache

PYTHON_SCRIPT_SUFFIXES = (".py", ".pyw")

# Runs a compiled script as __main__ with the source directory first on sys.path.
# argv: -c <source script> <compiled script> <script args>...
COMPILED_SCRIPT_BOOTSTRAP = (
    "import os, runpy, sys; "
    "source, compiled = sys.argv[1], sys.argv[2]; "
    "sys.path[0] = os.path.dirname(os.path.abspath(source)); "
    "sys.argv = [source, *sys.argv[3:]]; "
    "runpy.run_path(compiled, run_name=\"__main__\")"
)


@dataclass(slots=True)
class ToolState:
    """Executable, arguments and optional completion hook for one invocation."""

    command_path: str
    args: list[str]
    on_process_complete: Callable[[], Awaitable[None]] | None = None


@dataclass(slots=True, eq=False)
class ToolDefinition:
    """A tool backed by an arbitrary executable.

    ``command`` holds the executable followed by fixed base arguments.
    ``setup_command`` is run once before the first invocation, if present.
    """

    command: list[str]
    setup_command: list[str] = field(default_factory=list)
    description: str = ""
    setup_complete: bool = False
    _setup_lock: asyncio.Lock = field(default_factory=asyncio.Lock, init=False, repr=False)

    def __post_init__(self) -> None:
        if not self.command:
            raise ValueError("Tool command must contain at least the executable.")
        self.command = list(self.command)
        self.setup_command = list(self.setup_command)

    @classmethod
    def from_args(
        cls,
        command: Sequence[str],
        setup_command: Sequence[str] = (),
        *,
        description: str = "",
        bytecode_cache: BytecodeCache | None = None,
    ) -> ToolDefinition:
        """Build the definition variant that matches the command's executable."""

        if command and is_python_script(command[0]):
            return PythonToolDefinition(
                command=list(command),
                setup_command=list(setup_command),
                description=description,
                bytecode_cache=bytecode_cache or BytecodeCache(),
            )
        return ToolDefinition(
            command=list(command),
            setup_command=list(setup_command),
            description=description,
        )

    @property
    def setup_lock(self) -> asyncio.Lock:
        """Guard serializing the one-time setup across concurrent invocations."""

        return self._setup_lock

    @property
    def needs_setup(self) -> bool:
        return bool(self.setup_command) and not self.setup_complete

    def extra_environment(self) -> dict[str, str]:
        """Environment entries this variant adds for its tool invocations."""

        return {}

    def setup_invocation(self) -> tuple[str, list[str]]:
        """Executable and arguments for running the setup command."""

        args = list(self.setup_command)
        if is_python_script(args[0]):
            return sys.executable, args
        return args[0], args[1:]

    async def resolve(self, tool_name: str, args: list[str]) -> ToolState:
        """Return the executable and arguments to run for ``args``.

        ``args`` starts with the tool's fixed command.
        """

        del tool_name
        return ToolState(command_path=args[0], args=list(args[1:]))


@dataclass(slots=True, eq=False)
class PythonToolDefinition(ToolDefinition):
    """A tool whose executable is a Python script run by this interpreter."""

    bytecode_cache: BytecodeCache = field(default_factory=BytecodeCache)

    def extra_environment(self) -> dict[str, str]:
        environment = {"PYTHON_BYTECODE_CACHE": str(self.bytecode_cache.cache_dir)}
        if self.setup_command:
            environment["PYTHON_SETUP_COMMAND"] = self.setup_command[0]
        return environment

    async def resolve(self, tool_name: str, args: list[str]) -> ToolState:
        del tool_name
        script, script_args = args[0], list(args[1:])
        cached = self.bytecode_cache.get(script)
        interpreter_args = ["-X", f"pycache_prefix={self.bytecode_cache.pycache_prefix}"]
        if cached.claim_priming():
            return ToolState(
                command_path=sys.executable,
                args=[*interpreter_args, script, *script_args],
                on_process_complete=cached.complete_priming,
            )
        await cached.wait_ready()
        if not cached.compiled:
            return ToolState(
                command_path=sys.executable,
                args=[*interpreter_args, script, *script_args],
            )
        return ToolState(
            command_path=sys.executable,
            args=[
                *interpreter_args,
                "-c",
                COMPILED_SCRIPT_BOOTSTRAP,
                script,
                str(cached.compiled_path),
                *script_args,
            ],
        )


def is_python_script(executable: str) -> bool:
    return executable.lower().endswith(PYTHON_SCRIPT_SUFFIXES)
