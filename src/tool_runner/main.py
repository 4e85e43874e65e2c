"""CLI entrypoint for tool-runner."""

from pathlib import Path

import rich_click as click

from tool_runner import __version__
from tool_runner.controllers import ToolListCommand, ToolRunCommand, ToolRunnerCliController
from tool_runner.tool_configuration import ToolConfigurationError

click.rich_click.USE_MARKDOWN = True
CONTROLLER = ToolRunnerCliController()


@click.group()
@click.version_option(version=__version__, prog_name="tool-runner")
def tool_runner() -> None:
    """Run configured external tools over text content."""


@tool_runner.command(
    "run",
    context_settings={"ignore_unknown_options": True, "allow_interspersed_args": False},
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(path_type=Path),
    default=None,
    help="Tool configuration YAML. Defaults to TOOL_RUNNER_CONFIG or tool_runner.yaml.",
)
@click.option(
    "--input",
    "input_file",
    type=click.File("r", encoding="utf-8"),
    default=None,
    help="File whose content is passed to the tool as $INPUT. Use - for stdin.",
)
@click.option(
    "--env",
    "env_pairs",
    multiple=True,
    help="Extra KEY=VALUE substitution and environment entry. Can be repeated.",
)
@click.option(
    "--max-jobs",
    type=click.IntRange(min=1),
    default=None,
    help="Maximum number of tool processes alive at once.",
)
@click.argument("tool_args", nargs=-1, required=True, type=click.UNPROCESSED)
def run_tool(
    config_path: Path | None,
    input_file,
    env_pairs: tuple[str, ...],
    max_jobs: int | None,
    tool_args: tuple[str, ...],
) -> None:
    """Run TOOL with ARGS and print its output.

    The first argument names the tool; `$INPUT` in the remaining arguments
    is replaced by the path of a file holding the input content. Options go
    before TOOL; everything after it is passed to the tool unchanged.
    """

    try:
        result = CONTROLLER.run(
            ToolRunCommand(
                config_path=config_path,
                args=tool_args,
                content=input_file.read() if input_file is not None else "",
                environment=_parse_env_pairs(env_pairs),
                max_jobs=max_jobs,
            ),
        )
    except (ToolConfigurationError, ValueError) as error:
        raise click.ClickException(str(error)) from error

    if result.output:
        click.echo(result.output, nl=False)
    for message in result.errors:
        click.echo(message, err=True)
    if not result.success:
        raise click.ClickException(f"Tool {tool_args[0]!r} failed.")


@tool_runner.command("list")
@click.option(
    "--config",
    "config_path",
    type=click.Path(path_type=Path),
    default=None,
    help="Tool configuration YAML. Defaults to TOOL_RUNNER_CONFIG or tool_runner.yaml.",
)
def list_tools(config_path: Path | None) -> None:
    """List configured tools."""

    try:
        lines = CONTROLLER.list_tools(ToolListCommand(config_path=config_path))
    except ToolConfigurationError as error:
        raise click.ClickException(str(error)) from error
    _emit_lines(lines)


def _parse_env_pairs(pairs: tuple[str, ...]) -> dict[str, str]:
    environment: dict[str, str] = {}
    for pair in pairs:
        key, separator, value = pair.partition("=")
        key = key.strip()
        if not separator or not key:
            raise click.BadParameter(
                f"Expected KEY=VALUE, got {pair!r}.",
                param_hint="--env",
            )
        environment[key] = value
    return environment


def _emit_lines(lines: list[str]) -> None:
    for line in lines:
        click.echo(line)


if __name__ == "__main__":  # pragma: no cover
    tool_runner()
