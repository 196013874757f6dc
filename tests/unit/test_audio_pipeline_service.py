from __future__ import annotations

import asyncio
import base64
from collections.abc import Sequence
from pathlib import Path

import pytest

from podcast_engine.application.ports.audio_tool_port import AudioMetadata, AudioToolError
from podcast_engine.application.services.audio_pipeline_service import (
    AudioPipelineService,
    AudioStitchError,
    NoValidAudioInputError,
)
from podcast_engine.domain.audio_asset import decode_data_uri

VALID_AUDIO_PREFIX = b"FAKEAUDIO"


class FakeAudioTool:
    """Concatenate bytes like a lossless merge; probe reports 1 second per 10 bytes."""

    def __init__(self, *, fail_merge: bool = False, write_partial_output: bool = False) -> None:
        self.fail_merge = fail_merge
        self.write_partial_output = write_partial_output
        self.merge_calls: list[tuple[list[Path], Path]] = []
        self.probe_calls: list[Path] = []
        self.existing_inputs_at_merge: list[bool] = []

    async def merge(self, *, inputs: Sequence[Path], output: Path) -> None:
        self.merge_calls.append((list(inputs), output))
        self.existing_inputs_at_merge = [path.exists() for path in inputs]
        if self.write_partial_output:
            output.write_bytes(b"partial")
        if self.fail_merge:
            raise AudioToolError("ffmpeg merge failed with exit code 1: boom")
        output.write_bytes(b"".join(path.read_bytes() for path in inputs))

    async def probe(self, *, path: Path) -> AudioMetadata:
        self.probe_calls.append(path)
        data = path.read_bytes()
        if not data.startswith(VALID_AUDIO_PREFIX):
            raise AudioToolError("ffprobe failed with exit code 1: Invalid data")
        return AudioMetadata(duration_seconds=len(data) / 10, raw={"format": {}})


class StaticProbeTool(FakeAudioTool):
    def __init__(self, metadata: AudioMetadata) -> None:
        super().__init__()
        self.metadata = metadata

    async def probe(self, *, path: Path) -> AudioMetadata:
        self.probe_calls.append(path)
        return self.metadata


def _service(tool: FakeAudioTool, tmp_path: Path) -> AudioPipelineService:
    return AudioPipelineService(audio_tool=tool, temp_dir=tmp_path)


@pytest.mark.asyncio
async def test_stitch_skips_missing_buffers_and_preserves_order(tmp_path: Path) -> None:
    tool = FakeAudioTool()
    service = _service(tool, tmp_path)

    merged = await service.stitch_audio([b"AAA", b"BBB", None, b"CCC"], process_id="p1")

    assert merged == b"AAABBBCCC"
    assert len(tool.merge_calls) == 1
    inputs, output = tool.merge_calls[0]
    assert len(inputs) == 3
    assert tool.existing_inputs_at_merge == [True, True, True]
    assert all(path.name.startswith("audio-p1-segment-") for path in inputs)
    assert [path.name.split("-")[3] for path in inputs] == ["0", "1", "2"]
    assert output not in inputs
    assert list(tmp_path.iterdir()) == []


@pytest.mark.asyncio
async def test_stitch_without_buffers_fails_before_creating_files(tmp_path: Path) -> None:
    tool = FakeAudioTool()
    service = _service(tool, tmp_path)

    with pytest.raises(NoValidAudioInputError):
        await service.stitch_audio([], process_id="p2")
    with pytest.raises(NoValidAudioInputError):
        await service.stitch_audio([None, None], process_id="p2")

    assert tool.merge_calls == []
    assert list(tmp_path.iterdir()) == []


@pytest.mark.asyncio
async def test_stitch_failure_raises_and_removes_every_temp_file(tmp_path: Path) -> None:
    tool = FakeAudioTool(fail_merge=True, write_partial_output=True)
    service = _service(tool, tmp_path)

    with pytest.raises(AudioStitchError) as error_info:
        await service.stitch_audio([b"AAA", b"BBB"], process_id="p3")

    assert isinstance(error_info.value.__cause__, AudioToolError)
    assert list(tmp_path.iterdir()) == []


@pytest.mark.asyncio
async def test_reused_process_id_gets_distinct_temp_names(tmp_path: Path) -> None:
    tool = FakeAudioTool()
    service = _service(tool, tmp_path)

    results = await asyncio.gather(
        service.stitch_audio([b"A1", b"A2"], process_id="same"),
        service.stitch_audio([b"B1", b"B2"], process_id="same"),
    )

    assert sorted(results) == [b"A1A2", b"B1B2"]
    used = [path for inputs, output in tool.merge_calls for path in [*inputs, output]]
    assert len(set(used)) == len(used) == 6
    assert list(tmp_path.iterdir()) == []


@pytest.mark.asyncio
async def test_cancelled_stitch_waits_for_merge_then_cleans_up(tmp_path: Path) -> None:
    merge_started = asyncio.Event()
    release_merge = asyncio.Event()
    finished: list[bool] = []

    class SlowAudioTool(FakeAudioTool):
        async def merge(self, *, inputs: Sequence[Path], output: Path) -> None:
            merge_started.set()
            await release_merge.wait()
            output.write_bytes(b"merged")
            finished.append(True)

    service = _service(SlowAudioTool(), tmp_path)
    task = asyncio.create_task(service.stitch_audio([b"A", b"B"], process_id="p4"))
    await merge_started.wait()

    task.cancel()
    await asyncio.sleep(0)
    assert not task.done()
    release_merge.set()

    with pytest.raises(asyncio.CancelledError):
        await task
    assert finished == [True]
    assert list(tmp_path.iterdir()) == []


@pytest.mark.asyncio
async def test_cancelled_duration_lookup_waits_for_tool_before_cleanup(tmp_path: Path) -> None:
    lookup_started = asyncio.Event()
    release_lookup = asyncio.Event()
    input_seen_after_release: list[bool] = []

    class SlowMetadataTool(FakeAudioTool):
        async def probe(self, *, path: Path) -> AudioMetadata:
            lookup_started.set()
            await release_lookup.wait()
            input_seen_after_release.append(path.exists())
            return AudioMetadata(duration_seconds=1.0, raw={"format": {}})

    service = _service(SlowMetadataTool(), tmp_path)
    task = asyncio.create_task(service.get_audio_duration(VALID_AUDIO_PREFIX))
    await lookup_started.wait()

    task.cancel()
    await asyncio.sleep(0)
    assert not task.done()
    release_lookup.set()

    with pytest.raises(asyncio.CancelledError):
        await task
    assert input_seen_after_release == [True]
    assert list(tmp_path.iterdir()) == []


@pytest.mark.asyncio
async def test_duration_is_rounded_seconds(tmp_path: Path) -> None:
    tool = FakeAudioTool()
    service = _service(tool, tmp_path)

    duration = await service.get_audio_duration(VALID_AUDIO_PREFIX + b"x" * 16)

    assert duration == 3
    assert len(tool.probe_calls) == 1
    assert tool.probe_calls[0].name.startswith("duration-probe-input-")
    assert list(tmp_path.iterdir()) == []


@pytest.mark.asyncio
async def test_duration_of_invalid_audio_is_zero(tmp_path: Path) -> None:
    service = _service(FakeAudioTool(), tmp_path)

    assert await service.get_audio_duration(b"definitely not audio") == 0
    assert list(tmp_path.iterdir()) == []


@pytest.mark.parametrize("duration", [None, float("nan"), float("inf"), -1.0])
@pytest.mark.asyncio
async def test_duration_without_usable_value_is_zero(
    tmp_path: Path,
    duration: float | None,
) -> None:
    tool = StaticProbeTool(AudioMetadata(duration_seconds=duration, raw={"format": {}}))
    service = _service(tool, tmp_path)

    assert await service.get_audio_duration(b"bytes") == 0


@pytest.mark.asyncio
async def test_duration_write_failure_is_zero(tmp_path: Path) -> None:
    service = AudioPipelineService(audio_tool=FakeAudioTool(), temp_dir=tmp_path / "missing")

    assert await service.get_audio_duration(VALID_AUDIO_PREFIX) == 0


@pytest.mark.parametrize("buffer", [b"", b"\x00\xff\x10", bytes(range(256)) * 3])
def test_encode_to_base64_round_trips(tmp_path: Path, buffer: bytes) -> None:
    service = _service(FakeAudioTool(), tmp_path)

    data_uri = service.encode_to_base64(buffer)

    assert data_uri.startswith("data:audio/mp3;base64,")
    assert base64.b64decode(data_uri.split(",", 1)[1]) == buffer
    assert decode_data_uri(data_uri) == buffer


@pytest.mark.asyncio
async def test_build_asset_attaches_duration(tmp_path: Path) -> None:
    service = _service(FakeAudioTool(), tmp_path)

    asset = await service.build_asset(
        [VALID_AUDIO_PREFIX, b"0123456789", None],
        process_id="p5",
    )

    assert asset.audio_bytes == VALID_AUDIO_PREFIX + b"0123456789"
    assert asset.duration_seconds == 2
    assert decode_data_uri(asset.to_data_uri()) == asset.audio_bytes
