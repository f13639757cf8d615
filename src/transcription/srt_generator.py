"""
SRT subtitle file generation from transcription segments.
"""

import logging
from datetime import timedelta
from pathlib import Path
from typing import List

from subtitles.srt import SubtitleCue, render_srt
from .whisper_client import TranscriptionSegment

logger = logging.getLogger(__name__)


class SRTGenerator:
    """Generator for SRT subtitle files."""

    def generate_srt(self,
                     transcription_segments: List[TranscriptionSegment],
                     segment_idx: int) -> str:
        """
        Generate SRT subtitle content from transcription segments.

        Uses segment-relative timing - each segment starts from 00:00:00. The
        merger shifts cues onto the video timeline afterwards.

        Args:
            transcription_segments: List of transcription segments with timing
            segment_idx: Current segment index for logging

        Returns:
            SRT formatted subtitle string ("" when nothing was said)
        """
        cues = []
        for segment in transcription_segments:
            text = segment.text.strip()
            if not text:
                continue
            start = timedelta(seconds=max(segment.start, 0.0))
            end = max(timedelta(seconds=max(segment.end, 0.0)), start)
            cues.append(SubtitleCue(index=len(cues) + 1, start=start, end=end, lines=[text]))

        logger.debug(f"Generated SRT for segment {segment_idx} with {len(cues)} subtitles")
        return render_srt(cues)

    def save_srt_file(self, srt_content: str, output_path: Path) -> Path:
        """
        Save SRT content to file.

        Args:
            srt_content: SRT formatted content
            output_path: Path to save the SRT file

        Returns:
            The written path
        """
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(srt_content, encoding="utf-8")
        logger.debug(f"Saved SRT file to {output_path}")
        return output_path
