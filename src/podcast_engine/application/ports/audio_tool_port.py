"""Port for the external audio-processing tool."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol


class AudioToolError(RuntimeError):
    """Raised when the external audio tool fails or returns unusable output."""


@dataclass(frozen=True)
class AudioMetadata:
    """Subset of probe metadata consumed by the audio pipeline."""

    duration_seconds: float | None
    raw: dict[str, Any]


class AudioToolPort(Protocol):
    """Concatenation and metadata-probe contract."""

    async def merge(self, *, inputs: Sequence[Path], output: Path) -> None:
        """Concatenate inputs in order into output or raise AudioToolError."""

    async def probe(self, *, path: Path) -> AudioMetadata:
        """Return metadata for path or raise AudioToolError."""
