"""Scratch directory holding transient tool input files."""

from __future__ import annotations

import logging
import shutil
import tempfile
from pathlib import Path

logger = logging.getLogger(__name__)

SCRATCH_DIR_PREFIX = "tool_runner_"


class ScratchFileTracker:
    """Allocates uniquely numbered input files inside one scratch directory.

    The directory is created on first use and removed as a whole by
    :meth:`dispose`. Individual files are never deleted.
    """

    def __init__(self, root_dir: Path | None = None) -> None:
        self.root_dir = root_dir
        self._directory: Path | None = None
        self._file_count = 0
        self._disposed = False

    @property
    def directory(self) -> Path:
        if self._disposed:
            raise RuntimeError("Scratch directory has already been disposed.")
        if self._directory is None:
            self._directory = Path(
                tempfile.mkdtemp(prefix=SCRATCH_DIR_PREFIX, dir=self.root_dir),
            ).absolute()
            logger.debug("Created scratch directory %s", self._directory)
        return self._directory

    @property
    def file_count(self) -> int:
        return self._file_count

    def create_temporary_file(self) -> Path:
        """Create a new empty file and return its absolute path."""

        directory = self.directory
        self._file_count += 1
        path = directory / f"input_{self._file_count}"
        path.write_text("", encoding="utf-8")
        return path

    def write_temporary_file(self, content: str) -> Path:
        path = self.create_temporary_file()
        path.write_text(content, encoding="utf-8", newline="")
        return path

    def dispose(self) -> None:
        """Remove the scratch directory. Call once no more files are needed."""

        if self._disposed:
            return
        self._disposed = True
        directory = self._directory
        self._directory = None
        if directory is None or not directory.exists():
            return
        try:
            shutil.rmtree(directory)
        except OSError:
            logger.debug("Failed to remove scratch directory %s", directory, exc_info=True)
