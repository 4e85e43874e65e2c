"""Tool configuration: the map of tool names to definitions."""

from __future__ import annotations

import shlex
import sys
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from tool_runner.bytecode_cache import BytecodeCache
from tool_runner.tool_definition import ToolDefinition

_PLATFORM_KEYS = {"linux": "linux", "darwin": "macos", "win32": "windows"}


class ToolConfigurationError(ValueError):
    """Raised when a tool configuration file cannot be used."""


@dataclass(slots=True)
class ToolConfiguration:
    """Available tools plus the resources they share."""

    tools: dict[str, ToolDefinition] = field(default_factory=dict)
    source: str = "the tool configuration"
    bytecode_cache: BytecodeCache = field(default_factory=BytecodeCache)

    @classmethod
    def from_file(
        cls,
        path: Path,
        *,
        cache_dir: Path | None = None,
        platform: str | None = None,
    ) -> ToolConfiguration:
        """Load a YAML file whose top-level ``tools`` key maps names to definitions."""

        try:
            raw = yaml.safe_load(path.read_text(encoding="utf-8"))
        except OSError as error:
            raise ToolConfigurationError(
                f"Unable to read tool configuration {str(path)!r}: {error}",
            ) from error
        except yaml.YAMLError as error:
            raise ToolConfigurationError(
                f"Invalid YAML in tool configuration {str(path)!r}: {error}",
            ) from error

        if raw is None:
            raw = {}
        if not isinstance(raw, dict):
            raise ToolConfigurationError(
                f"Tool configuration {str(path)!r} must be a mapping.",
            )
        return cls.from_mapping(
            raw.get("tools") or {},
            source=str(path),
            base_dir=path.parent,
            cache_dir=cache_dir,
            platform=platform,
        )

    @classmethod
    def from_mapping(  # noqa: PLR0913
        cls,
        tools_map: Mapping[str, Any],
        *,
        source: str = "the tool configuration",
        base_dir: Path | None = None,
        cache_dir: Path | None = None,
        platform: str | None = None,
    ) -> ToolConfiguration:
        if not isinstance(tools_map, Mapping):
            raise ToolConfigurationError(f"'tools' in {source} must be a mapping.")
        platform_key = _PLATFORM_KEYS.get(platform or sys.platform, "linux")
        bytecode_cache = BytecodeCache(cache_dir)
        tools: dict[str, ToolDefinition] = {}
        for name, entry in tools_map.items():
            tools[str(name)] = _parse_tool(
                str(name),
                entry,
                source=source,
                base_dir=base_dir,
                platform_key=platform_key,
                bytecode_cache=bytecode_cache,
            )
        return cls(tools=tools, source=source, bytecode_cache=bytecode_cache)

    def __contains__(self, name: object) -> bool:
        return name in self.tools

    def get(self, name: str) -> ToolDefinition | None:
        return self.tools.get(name)

    def dispose(self) -> None:
        self.bytecode_cache.dispose()


def _parse_tool(  # noqa: PLR0913
    name: str,
    entry: Any,
    *,
    source: str,
    base_dir: Path | None,
    platform_key: str,
    bytecode_cache: BytecodeCache,
) -> ToolDefinition:
    if not isinstance(entry, Mapping):
        raise ToolConfigurationError(f"Tool {name!r} in {source} must be a mapping.")

    command = _parse_command(
        name,
        entry.get(platform_key, entry.get("command")),
        field_name=f"{platform_key}/command",
        source=source,
    )
    if not command:
        raise ToolConfigurationError(
            f"Tool {name!r} in {source} must define a non-empty 'command' "
            f"(or '{platform_key}').",
        )
    setup_command = _parse_command(
        name,
        entry.get(f"setup_{platform_key}", entry.get("setup_command")),
        field_name=f"setup_{platform_key}/setup_command",
        source=source,
    )
    description = entry.get("description") or ""
    if not isinstance(description, str):
        raise ToolConfigurationError(
            f"Tool {name!r} in {source} has a non-string 'description'.",
        )

    return ToolDefinition.from_args(
        _anchor_executable(command, base_dir),
        _anchor_executable(setup_command, base_dir),
        description=description.strip(),
        bytecode_cache=bytecode_cache,
    )


def _parse_command(name: str, value: Any, *, field_name: str, source: str) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return shlex.split(value)
    if isinstance(value, list) and all(isinstance(part, str | int | float) for part in value):
        return [str(part) for part in value]
    raise ToolConfigurationError(
        f"Tool {name!r} in {source}: '{field_name}' must be a string or a list of strings.",
    )


def _anchor_executable(command: list[str], base_dir: Path | None) -> list[str]:
    """Make a relative executable absolute when it exists under ``base_dir``."""

    if not command or base_dir is None:
        return command
    executable = Path(command[0]).expanduser()
    if executable.is_absolute():
        return [str(executable), *command[1:]]
    candidate = base_dir / executable
    if candidate.exists():
        return [str(candidate.absolute()), *command[1:]]
    return command
