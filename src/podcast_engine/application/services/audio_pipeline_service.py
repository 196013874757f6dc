"""Stitch synthesized dialogue audio into one asset and encode it for transport."""

from __future__ import annotations

import asyncio
import logging
import math
from collections.abc import Awaitable, Sequence
from typing import TypeVar
from pathlib import Path

from podcast_engine.application.ports.audio_tool_port import AudioToolError, AudioToolPort
from podcast_engine.domain.audio_asset import AUDIO_FORMAT, AudioAsset, encode_data_uri
from podcast_engine.infrastructure.audio.temp_files import ScopedTempFiles

logger = logging.getLogger(__name__)

T = TypeVar("T")


class NoValidAudioInputError(ValueError):
    """Raised when stitching is requested without any usable audio buffer."""


class AudioStitchError(RuntimeError):
    """Raised when the external tool fails to merge audio segments."""


class AudioPipelineService:
    """Audio stitching, duration probing, and data URI encoding."""

    def __init__(self, *, audio_tool: AudioToolPort, temp_dir: Path | None = None) -> None:
        self._audio_tool = audio_tool
        self._temp_dir = temp_dir

    async def stitch_audio(
        self,
        buffers: Sequence[bytes | None],
        *,
        process_id: str,
    ) -> bytes:
        """Concatenate non-empty buffers in order and return the merged bytes."""

        valid_buffers = [buffer for buffer in buffers if buffer is not None]
        if not valid_buffers:
            logger.error("audio_stitch_rejected process_id=%s reason=no_valid_buffers", process_id)
            raise NoValidAudioInputError("Cannot stitch audio: no valid audio buffers provided")

        logger.info(
            "audio_stitch_started process_id=%s segments=%s",
            process_id,
            len(valid_buffers),
        )
        async with ScopedTempFiles(
            prefix=f"audio-{process_id}",
            suffix=f".{AUDIO_FORMAT}",
            directory=self._temp_dir,
        ) as temp_files:
            inputs: list[Path] = []
            for index, buffer in enumerate(valid_buffers):
                inputs.append(await temp_files.write(f"segment-{index}", buffer))
            output = temp_files.allocate("final")

            try:
                await _run_to_completion(self._audio_tool.merge(inputs=inputs, output=output))
            except AudioToolError as error:
                logger.error("audio_stitch_failed process_id=%s error=%s", process_id, error)
                raise AudioStitchError(f"Audio stitching failed: {error}") from error

            merged = await asyncio.to_thread(output.read_bytes)

        logger.info("audio_stitch_finished process_id=%s bytes=%s", process_id, len(merged))
        return merged

    async def get_audio_duration(self, buffer: bytes) -> int:
        """Return duration in whole seconds, or 0 when it cannot be determined."""

        async with ScopedTempFiles(
            prefix="duration-probe",
            suffix=f".{AUDIO_FORMAT}",
            directory=self._temp_dir,
        ) as temp_files:
            try:
                path = await temp_files.write("input", buffer)
                metadata = await _run_to_completion(self._audio_tool.probe(path=path))
            except Exception as error:  # noqa: BLE001
                logger.warning("audio_duration_probe_failed error=%s", error)
                return 0

        duration = metadata.duration_seconds
        if duration is None or not math.isfinite(duration) or duration < 0:
            logger.warning("audio_duration_missing metadata_keys=%s", sorted(metadata.raw))
            return 0
        return int(math.floor(duration + 0.5))

    def encode_to_base64(self, buffer: bytes) -> str:
        """Return the buffer as a base64 data URI with the fixed audio MIME type."""

        return encode_data_uri(buffer)

    async def build_asset(
        self,
        buffers: Sequence[bytes | None],
        *,
        process_id: str,
    ) -> AudioAsset:
        """Stitch buffers and attach best-effort duration metadata."""

        merged = await self.stitch_audio(buffers, process_id=process_id)
        duration = await self.get_audio_duration(merged)
        return AudioAsset(audio_bytes=merged, duration_seconds=duration or None)


async def _run_to_completion(awaitable: Awaitable[T]) -> T:
    """Await an external tool call, letting it finish even if the caller is cancelled."""

    task = asyncio.ensure_future(awaitable)
    try:
        return await asyncio.shield(task)
    except asyncio.CancelledError:
        await asyncio.wait([task])
        if not task.cancelled() and task.exception() is not None:
            logger.warning("audio_tool_failed_after_cancel error=%s", task.exception())
        raise
