"""Controllers for tool-runner CLI commands."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from pathlib import Path

from tool_runner.config import Settings
from tool_runner.runner import ToolRunner
from tool_runner.tool_configuration import ToolConfiguration


@dataclass(slots=True)
class ToolRunCommand:
    """CLI input for a single tool invocation."""

    config_path: Path | None
    args: tuple[str, ...]
    content: str
    environment: dict[str, str] = field(default_factory=dict)
    max_jobs: int | None = None


@dataclass(slots=True)
class ToolListCommand:
    """CLI input for listing configured tools."""

    config_path: Path | None


@dataclass(slots=True)
class ToolRunResult:
    """Tool output plus any reported errors."""

    output: str
    errors: list[str]

    @property
    def success(self) -> bool:
        return not self.errors


class ToolRunnerCliController:
    """Translate CLI commands into tool runner calls."""

    def run(self, command: ToolRunCommand) -> ToolRunResult:
        settings = self._settings(command.config_path)
        if command.max_jobs is not None:
            settings.max_jobs = command.max_jobs
        settings.validate()
        settings.configure_logging()
        configuration = ToolConfiguration.from_file(
            settings.config_path,
            cache_dir=settings.cache_dir,
        )
        try:
            return asyncio.run(self._run(settings, configuration, command))
        finally:
            configuration.dispose()

    def list_tools(self, command: ToolListCommand) -> list[str]:
        settings = self._settings(command.config_path)
        configuration = ToolConfiguration.from_file(settings.config_path)
        if not configuration.tools:
            return [f"No tools configured in {configuration.source}."]
        lines = [f"Tools in {configuration.source}:"]
        for name, tool in sorted(configuration.tools.items()):
            line = f"- {name}: {' '.join(tool.command)}"
            if tool.setup_command:
                line += f" (setup: {' '.join(tool.setup_command)})"
            lines.append(line)
            if tool.description:
                lines.append(f"  {tool.description}")
        return lines

    @staticmethod
    def _settings(config_path: Path | None) -> Settings:
        return Settings.from_env(config_path=config_path)

    @staticmethod
    async def _run(
        settings: Settings,
        configuration: ToolConfiguration,
        command: ToolRunCommand,
    ) -> ToolRunResult:
        errors: list[str] = []
        async with ToolRunner(
            configuration,
            max_jobs=settings.max_jobs,
            scratch_root=settings.scratch_root,
        ) as runner:
            output = await runner.run(
                list(command.args),
                command.content,
                errors.append,
                environment=command.environment,
            )
        return ToolRunResult(output=output, errors=errors)
