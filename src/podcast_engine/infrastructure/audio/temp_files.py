"""Scoped temporary files released on every exit path."""

from __future__ import annotations

import asyncio
import logging
import secrets
import tempfile
from pathlib import Path
from types import TracebackType

logger = logging.getLogger(__name__)


class ScopedTempFiles:
    """Track temp paths created during one call and delete them on exit.

    Paths are registered before anything is written, so partially written files
    and outputs produced by external tools are removed as well. Missing files are
    ignored during cleanup; other deletion errors are logged, never raised.
    """

    def __init__(
        self,
        *,
        prefix: str,
        suffix: str,
        directory: Path | None = None,
    ) -> None:
        self._prefix = prefix
        self._suffix = suffix
        self._directory = directory or Path(tempfile.gettempdir())
        self._paths: list[Path] = []

    @property
    def paths(self) -> list[Path]:
        return list(self._paths)

    def allocate(self, label: str) -> Path:
        """Return a new unique path and register it for cleanup."""

        name = f"{self._prefix}-{label}-{secrets.token_hex(4)}{self._suffix}"
        path = self._directory / name
        self._paths.append(path)
        return path

    async def write(self, label: str, data: bytes) -> Path:
        """Write data to a new registered path and return it."""

        path = self.allocate(label)
        await asyncio.to_thread(path.write_bytes, data)
        return path

    def cleanup(self) -> int:
        """Attempt to delete every registered path; return how many were removed."""

        removed = 0
        for path in self._paths:
            try:
                path.unlink()
            except FileNotFoundError:
                continue
            except OSError as error:
                logger.error("temp_file_cleanup_failed path=%s error=%s", path, error)
                continue
            removed += 1
        self._paths.clear()
        return removed

    async def __aenter__(self) -> ScopedTempFiles:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        removed = await asyncio.to_thread(self.cleanup)
        logger.debug("temp_files_released prefix=%s removed=%s", self._prefix, removed)
