"""ffmpeg/ffprobe subprocess adapter implementing the audio tool port."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Sequence
from pathlib import Path

from podcast_engine.application.ports.audio_tool_port import (
    AudioMetadata,
    AudioToolError,
    AudioToolPort,
)

logger = logging.getLogger(__name__)

_STDERR_TAIL_CHARS = 2000


class FfmpegAudioTool(AudioToolPort):
    """Run ffmpeg for ordered concatenation and ffprobe for metadata."""

    def __init__(self, *, ffmpeg_bin: str = "ffmpeg", ffprobe_bin: str = "ffprobe") -> None:
        self._ffmpeg_bin = ffmpeg_bin
        self._ffprobe_bin = ffprobe_bin

    async def merge(self, *, inputs: Sequence[Path], output: Path) -> None:
        """Concatenate inputs in order into output using the concat filter."""

        if not inputs:
            raise AudioToolError("ffmpeg merge requires at least one input")

        args = [self._ffmpeg_bin, "-hide_banner", "-nostdin", "-y"]
        for path in inputs:
            args.extend(["-i", str(path)])
        streams = "".join(f"[{index}:a]" for index in range(len(inputs)))
        args.extend(
            [
                "-filter_complex",
                f"{streams}concat=n={len(inputs)}:v=0:a=1[out]",
                "-map",
                "[out]",
                str(output),
            ]
        )

        logger.info("ffmpeg_merge_started inputs=%s output=%s", len(inputs), output)
        returncode, _, stderr = await self._run(args)
        if returncode != 0:
            raise AudioToolError(
                f"ffmpeg merge failed with exit code {returncode}: {_tail(stderr)}"
            )
        logger.info("ffmpeg_merge_finished output=%s", output)

    async def probe(self, *, path: Path) -> AudioMetadata:
        """Return container metadata reported by ffprobe."""

        args = [
            self._ffprobe_bin,
            "-v",
            "error",
            "-print_format",
            "json",
            "-show_format",
            str(path),
        ]
        returncode, stdout, stderr = await self._run(args)
        if returncode != 0:
            raise AudioToolError(
                f"ffprobe failed with exit code {returncode}: {_tail(stderr)}"
            )

        try:
            payload = json.loads(stdout.decode("utf-8", errors="replace") or "{}")
        except json.JSONDecodeError as error:
            raise AudioToolError("ffprobe returned invalid JSON metadata") from error
        if not isinstance(payload, dict):
            raise AudioToolError("ffprobe returned non-object JSON metadata")

        return AudioMetadata(duration_seconds=_parse_duration(payload), raw=payload)

    async def _run(self, args: list[str]) -> tuple[int, bytes, bytes]:
        try:
            process = await asyncio.create_subprocess_exec(
                *args,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as error:
            raise AudioToolError(f"failed to start {args[0]}: {error}") from error

        stdout, stderr = await process.communicate()
        return int(process.returncode or 0), stdout, stderr


def _parse_duration(payload: dict[str, object]) -> float | None:
    format_section = payload.get("format")
    if not isinstance(format_section, dict):
        return None
    raw_duration = format_section.get("duration")
    if isinstance(raw_duration, bool) or raw_duration is None:
        return None
    try:
        return float(raw_duration)
    except (TypeError, ValueError):
        return None


def _tail(stderr: bytes) -> str:
    return stderr.decode("utf-8", errors="replace").strip()[-_STDERR_TAIL_CHARS:]
