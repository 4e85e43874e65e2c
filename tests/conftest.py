"""Shared test fixtures."""

from __future__ import annotations

import sys
import textwrap
from collections.abc import Callable
from pathlib import Path

import pytest

from tool_runner.tool_definition import ToolDefinition

ScriptWriter = Callable[[str, str], Path]


@pytest.fixture()
def write_script(tmp_path: Path) -> ScriptWriter:
    """Write a small Python tool script under ``tmp_path/bin`` and return its path."""

    bin_dir = tmp_path / "bin"
    bin_dir.mkdir(exist_ok=True)

    def _write(name: str, body: str) -> Path:
        path = bin_dir / name
        path.write_text(textwrap.dedent(body).lstrip(), encoding="utf-8")
        return path

    return _write


@pytest.fixture(autouse=True)
def _clean_tool_runner_env(monkeypatch) -> None:
    for name in (
        "TOOL_RUNNER_CONFIG",
        "TOOL_RUNNER_MAX_JOBS",
        "TOOL_RUNNER_SCRATCH_ROOT",
        "TOOL_RUNNER_CACHE_DIR",
        "TOOL_RUNNER_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)


def interpreter_tool(
    script: Path,
    *args: str,
    setup_script: Path | None = None,
) -> ToolDefinition:
    """Generic tool running ``script`` through the test interpreter."""

    return ToolDefinition(
        command=[sys.executable, str(script), *args],
        setup_command=[sys.executable, str(setup_script)] if setup_script else [],
    )


ECHO_ARGS_SCRIPT = """
import sys

print("\\n".join(sys.argv[1:]), end="")
"""

CAT_INPUT_SCRIPT = """
import sys

print(sys.argv[1])
with open(sys.argv[1], encoding="utf-8", newline="") as handle:
    sys.stdout.write(handle.read())
"""

PRINT_OK_SCRIPT = """
print("OK", end="")
"""

FAIL_SCRIPT = """
import sys

sys.stderr.write("boom on stderr")
sys.exit(int(sys.argv[1]) if len(sys.argv) > 1 else 2)
"""

COUNT_SETUP_SCRIPT = """
import os

with open(os.environ["SETUP_LOG"], "a", encoding="utf-8") as handle:
    handle.write("setup\\n")
"""

TIMED_SCRIPT = """
import os
import sys
import time

started = time.time()
time.sleep(float(sys.argv[2]))
finished = time.time()
name = os.path.basename(sys.argv[1])
with open(os.path.join(os.environ["LOG_DIR"], name), "w", encoding="utf-8") as handle:
    handle.write(f"{started} {finished}")
print(name, end="")
"""
