"""Shared compiled-bytecode cache for Python script tools.

The first invocation of a script primes the cache: it runs from source with
``-X pycache_prefix`` pointing into the cache, and when it finishes the
script itself is compiled next to its imports. Later invocations wait for
that and run the compiled file through a bootstrap that keeps the
script's own directory first on the import path.
"""

from __future__ import annotations

import asyncio
import hashlib
import logging
import py_compile
import shutil
import tempfile
from pathlib import Path

logger = logging.getLogger(__name__)

CACHE_DIR_PREFIX = "tool_runner_bytecode_"


class CachedScript:
    """Cache slot for one tool script."""

    def __init__(self, script_path: Path, compiled_path: Path) -> None:
        self.script_path = script_path
        self.compiled_path = compiled_path
        self.compiled = False
        self._claimed = False
        self._ready = asyncio.Event()

    @property
    def ready(self) -> bool:
        return self._ready.is_set()

    def claim_priming(self) -> bool:
        """Return True exactly once, for the invocation that primes the slot."""

        if self._claimed:
            return False
        self._claimed = True
        return True

    async def wait_ready(self) -> None:
        await self._ready.wait()

    async def complete_priming(self) -> None:
        """Compile the script into the cache and release waiting invocations."""

        try:
            await asyncio.to_thread(self._compile)
        finally:
            self._ready.set()

    def _compile(self) -> None:
        try:
            self.compiled_path.parent.mkdir(parents=True, exist_ok=True)
            py_compile.compile(
                str(self.script_path),
                cfile=str(self.compiled_path),
                doraise=True,
            )
            self.compiled = True
        except (py_compile.PyCompileError, OSError) as error:
            logger.warning(
                "Could not compile %s into bytecode cache: %s",
                self.script_path,
                error,
            )


class BytecodeCache:
    """Directory of compiled tool scripts shared by one tool configuration."""

    def __init__(self, cache_dir: Path | None = None) -> None:
        self._cache_dir = cache_dir
        self._owns_dir = cache_dir is None
        self._scripts: dict[Path, CachedScript] = {}

    @property
    def cache_dir(self) -> Path:
        if self._cache_dir is None:
            self._cache_dir = Path(tempfile.mkdtemp(prefix=CACHE_DIR_PREFIX))
        self._cache_dir.mkdir(parents=True, exist_ok=True)
        return self._cache_dir.absolute()

    @property
    def pycache_prefix(self) -> Path:
        return self.cache_dir / "pycache"

    def get(self, script: str | Path) -> CachedScript:
        script_path = Path(script).absolute()
        cached = self._scripts.get(script_path)
        if cached is None:
            digest = hashlib.sha256(str(script_path).encode("utf-8")).hexdigest()[:16]
            compiled_path = self.cache_dir / "scripts" / f"{script_path.stem}_{digest}.pyc"
            cached = CachedScript(script_path, compiled_path)
            self._scripts[script_path] = cached
        return cached

    def dispose(self) -> None:
        """Remove the cache directory if it was created by this cache."""

        self._scripts.clear()
        if not self._owns_dir or self._cache_dir is None:
            return
        directory = self._cache_dir
        self._cache_dir = None
        if not directory.exists():
            return
        try:
            shutil.rmtree(directory)
        except OSError:
            logger.debug("Failed to remove bytecode cache %s", directory, exc_info=True)
