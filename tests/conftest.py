"""
Shared fixtures and in-process fakes for the external tools.
"""

import asyncio
from pathlib import Path

import pytest

from pipeline.config import PipelineConfig
from pipeline.errors import ExtractionError, TranscriptionError
from pipeline.main import VideoPipeline
from storage.blobs import LocalBlobStore
from storage.records import InMemoryRecordStore
from video.ffmpeg_decoder import ExtractedSegment


class FakeExtractor:
    """Writes placeholder segment files instead of running ffmpeg."""

    def __init__(self, duration: float, fail_on=()):
        self.duration = duration
        self.fail_on = set(fail_on)
        self.extracted = []

    async def probe_duration(self, source: Path) -> float:
        return self.duration

    async def extract_segment(self, source, segment, output_dir):
        await asyncio.sleep(0)
        if segment.index in self.fail_on:
            raise ExtractionError("video cut failed", segment_index=segment.index, diagnostics="Invalid data")
        video = Path(output_dir) / f"segment-{segment.index:04d}.mp4"
        audio = Path(output_dir) / f"segment-{segment.index:04d}.wav"
        video.write_bytes(b"video")
        audio.write_bytes(b"audio")
        self.extracted.append(segment.index)
        return ExtractedSegment(segment=segment, video_path=video, audio_path=audio)


class FakeTranscriber:
    """Returns canned SRT text per segment index, optionally failing some."""

    def __init__(self, tracks=None, fail_on=(), delays=None):
        self.tracks = tracks or {}
        self.fail_on = set(fail_on)
        self.delays = delays or {}
        self.calls = []

    async def transcribe(self, audio_path, output_dir, segment_index=None):
        self.calls.append(segment_index)
        await asyncio.sleep(self.delays.get(segment_index, 0))
        if segment_index in self.fail_on:
            raise TranscriptionError("whisper crashed", segment_index=segment_index)
        text = self.tracks.get(segment_index, "")
        (Path(output_dir) / f"{Path(audio_path).stem}.srt").write_text(text, encoding="utf-8")
        return text


class FakeBurner:
    """Copies the source and remembers the subtitle text it was given."""

    def __init__(self):
        self.subtitles = []

    async def burn_in(self, video_path, srt_path, output_dir):
        self.subtitles.append(Path(srt_path).read_text(encoding="utf-8"))
        output = Path(output_dir) / "final.mp4"
        output.write_bytes(Path(video_path).read_bytes() + b"+subs")
        return output


@pytest.fixture
def config(tmp_path):
    return PipelineConfig(
        work_dir=str(tmp_path / "work"),
        storage_dir=str(tmp_path / "blobs"),
        segment_seconds=60.0,
        extract_concurrency=2,
        transcribe_concurrency=2,
        public_base_url="http://testserver/media",
        signing_secret="test-secret",
    )


@pytest.fixture
def records():
    return InMemoryRecordStore()


@pytest.fixture
def blobs(config):
    return LocalBlobStore(Path(config.storage_dir), config.public_base_url, config.signing_secret)


@pytest.fixture
def make_pipeline(config, records, blobs):
    def _make(duration=150.0, tracks=None, fail_on=(), delays=None, blob_store=None, extract_fail_on=()):
        return VideoPipeline(
            config=config,
            records=records,
            blobs=blob_store or blobs,
            extractor=FakeExtractor(duration, extract_fail_on),
            transcriber=FakeTranscriber(tracks, fail_on, delays),
            burner=FakeBurner(),
        )
    return _make