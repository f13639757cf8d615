"""
FFmpeg-based segment extraction for uploaded videos.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from pipeline.errors import ExternalToolFailure, ExtractionError, ValidationError
from pipeline.planner import Segment
from pipeline.tools import run_tool

logger = logging.getLogger(__name__)


@dataclass
class ExtractedSegment:
    """A planned segment plus the files cut for it."""
    segment: Segment
    video_path: Path
    audio_path: Path


def _has_output(path: Path) -> bool:
    return os.path.exists(path) and os.path.getsize(path) > 0


class FFmpegDecoder:
    """Cuts segments out of a source video and derives their audio."""

    def __init__(self, ffmpeg_path: str = "ffmpeg", ffprobe_path: str = "ffprobe",
                 audio_sample_rate: int = 16000, timeout: float = 900.0):
        self.ffmpeg_path = ffmpeg_path
        self.ffprobe_path = ffprobe_path
        self.audio_sample_rate = audio_sample_rate
        self.timeout = timeout

    async def probe_duration(self, source: Path) -> float:
        """Return the container duration of ``source`` in seconds."""
        cmd = [
            self.ffprobe_path,
            '-v', 'error',
            '-show_entries', 'format=duration',
            '-of', 'csv=p=0',
            str(source),
        ]
        result = await run_tool(cmd, stage="probe", timeout=self.timeout)
        if not result.ok:
            raise ExternalToolFailure("ffprobe failed", diagnostics=result.stderr, stage="probe")

        try:
            duration = float(result.stdout.strip())
        except ValueError:
            raise ExternalToolFailure(f"Unreadable duration {result.stdout.strip()!r}", stage="probe")

        if duration <= 0:
            raise ValidationError(f"Media has no duration: {source}")
        logger.info(f"Probed {source}: {duration:.3f}s")
        return duration

    async def extract_segment(self, source: Path, segment: Segment, output_dir: Path) -> ExtractedSegment:
        """
        Cut one segment and derive its normalized audio.

        Args:
            source: Path of the original upload
            segment: Time window to cut
            output_dir: Run directory receiving the segment files

        Returns:
            ExtractedSegment with the segment video (.mp4) and mono PCM audio (.wav)
        """
        output_dir = Path(output_dir)
        video_file = output_dir / f"segment-{segment.index:04d}.mp4"
        audio_file = output_dir / f"segment-{segment.index:04d}.wav"

        await self._cut_video(Path(source), segment, video_file)
        await self._extract_audio(video_file, audio_file, segment.index)

        logger.debug(f"Extracted segment {segment.index} [{segment.start:g}s, {segment.end:g}s)")
        return ExtractedSegment(segment=segment, video_path=video_file, audio_path=audio_file)

    async def _cut_video(self, source: Path, segment: Segment, output_file: Path) -> None:
        # Re-encode instead of stream copy so the cut does not snap to keyframes
        cmd = [
            self.ffmpeg_path, '-y',
            '-i', str(source),
            '-ss', f"{segment.start:.3f}",
            '-t', f"{segment.duration:.3f}",
            '-c:v', 'libx264', '-preset', 'fast', '-crf', '23',
            '-c:a', 'aac', '-b:a', '128k',
            str(output_file),
        ]
        result = await run_tool(cmd, stage="extract", timeout=self.timeout, segment_index=segment.index)
        if not result.ok:
            raise ExtractionError("video cut failed", segment_index=segment.index, diagnostics=result.stderr)
        if not _has_output(output_file):
            raise ExtractionError(f"no video written to {output_file}", segment_index=segment.index)

    async def _extract_audio(self, input_file: Path, output_file: Path, segment_idx: int) -> None:
        cmd = [
            self.ffmpeg_path, '-y',
            '-i', str(input_file),
            '-vn',  # No video
            '-ar', str(self.audio_sample_rate),
            '-ac', '1',  # Mono audio
            '-c:a', 'pcm_s16le',
            str(output_file),
        ]
        result = await run_tool(cmd, stage="extract", timeout=self.timeout, segment_index=segment_idx)
        if not result.ok:
            raise ExtractionError("audio extraction failed", segment_index=segment_idx, diagnostics=result.stderr)
        if not _has_output(output_file):
            raise ExtractionError(f"no audio written to {output_file}", segment_index=segment_idx)
