"""
Tests for FFmpegDecoder with the tool runner replaced.
"""

import asyncio
from pathlib import Path

import pytest

from pipeline.errors import ExternalToolFailure, ExtractionError, ValidationError
from pipeline.planner import Segment
from pipeline.tools import ToolResult
from video import ffmpeg_decoder
from video.ffmpeg_decoder import FFmpegDecoder


class RecordingRunner:
    """Stands in for run_tool; writes the output file named last in argv."""

    def __init__(self, returncode=0, stdout="", stderr="", write_output=True):
        self.commands = []
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        self.write_output = write_output

    async def __call__(self, cmd, stage, timeout, segment_index=None):
        self.commands.append((list(cmd), stage, segment_index))
        if self.write_output and self.returncode == 0:
            Path(cmd[-1]).write_bytes(b"data")
        return ToolResult(self.returncode, self.stdout, self.stderr)


@pytest.fixture
def decoder():
    return FFmpegDecoder(ffmpeg_path="ffmpeg", ffprobe_path="ffprobe", audio_sample_rate=16000, timeout=30)


class TestExtract:

    def test_cut_and_audio_commands(self, decoder, tmp_path, monkeypatch):
        runner = RecordingRunner()
        monkeypatch.setattr(ffmpeg_decoder, "run_tool", runner)

        extracted = asyncio.run(decoder.extract_segment(tmp_path / "in.mp4", Segment(2, 60.0, 120.0), tmp_path))

        assert extracted.video_path == tmp_path / "segment-0002.mp4"
        assert extracted.audio_path == tmp_path / "segment-0002.wav"
        cut, audio = [c[0] for c in runner.commands]
        assert cut[cut.index("-ss") + 1] == "60.000"
        assert cut[cut.index("-t") + 1] == "60.000"
        assert cut[cut.index("-c:v") + 1] == "libx264"
        assert audio[audio.index("-i") + 1] == str(extracted.video_path)
        assert "-vn" in audio
        assert audio[audio.index("-ar") + 1] == "16000"
        assert audio[audio.index("-ac") + 1] == "1"
        assert audio[audio.index("-c:a") + 1] == "pcm_s16le"
        assert {c[2] for c in runner.commands} == {2}

    def test_tool_failure_carries_segment_and_stderr(self, decoder, tmp_path, monkeypatch):
        monkeypatch.setattr(ffmpeg_decoder, "run_tool", RecordingRunner(returncode=1, stderr="Invalid data"))

        with pytest.raises(ExtractionError) as excinfo:
            asyncio.run(decoder.extract_segment(tmp_path / "in.mp4", Segment(3, 120.0, 150.0), tmp_path))

        assert excinfo.value.segment_index == 3
        assert "Invalid data" in str(excinfo.value)

    def test_missing_output_is_a_failure(self, decoder, tmp_path, monkeypatch):
        monkeypatch.setattr(ffmpeg_decoder, "run_tool", RecordingRunner(write_output=False))

        with pytest.raises(ExtractionError):
            asyncio.run(decoder.extract_segment(tmp_path / "in.mp4", Segment(1, 0.0, 60.0), tmp_path))


class TestProbe:

    def test_parses_duration(self, decoder, tmp_path, monkeypatch):
        runner = RecordingRunner(stdout="150.250000\n", write_output=False)
        monkeypatch.setattr(ffmpeg_decoder, "run_tool", runner)

        assert asyncio.run(decoder.probe_duration(tmp_path / "in.mp4")) == 150.25
        assert runner.commands[0][0][0] == "ffprobe"

    def test_unreadable_duration(self, decoder, tmp_path, monkeypatch):
        monkeypatch.setattr(ffmpeg_decoder, "run_tool", RecordingRunner(stdout="N/A\n", write_output=False))
        with pytest.raises(ExternalToolFailure):
            asyncio.run(decoder.probe_duration(tmp_path / "in.mp4"))

    def test_zero_duration(self, decoder, tmp_path, monkeypatch):
        monkeypatch.setattr(ffmpeg_decoder, "run_tool", RecordingRunner(stdout="0.0\n", write_output=False))
        with pytest.raises(ValidationError):
            asyncio.run(decoder.probe_duration(tmp_path / "in.mp4"))

    def test_probe_failure(self, decoder, tmp_path, monkeypatch):
        monkeypatch.setattr(ffmpeg_decoder, "run_tool", RecordingRunner(returncode=1, stderr="moov atom not found"))
        with pytest.raises(ExternalToolFailure) as excinfo:
            asyncio.run(decoder.probe_duration(tmp_path / "in.mp4"))
        assert excinfo.value.stage == "probe"
