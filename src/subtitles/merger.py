"""
Merge per-segment subtitle tracks into one track on the video's timeline.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Tuple

from pipeline.errors import InvariantError
from pipeline.planner import Segment
from .srt import SubtitleCue, parse_srt, render_srt
from .timestamps import offset

logger = logging.getLogger(__name__)


@dataclass
class MergedSubtitleTrack:
    """Cues spanning the whole video, indexed 1..N."""
    cues: List[SubtitleCue] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.cues)

    def to_srt(self) -> str:
        return render_srt(self.cues)


def merge_segments(ordered_segments: Iterable[Tuple[Segment, str]]) -> MergedSubtitleTrack:
    """
    Re-time each segment's raw SRT by its start offset and concatenate.

    Args:
        ordered_segments: (segment, raw SRT text) pairs in ascending segment index

    Returns:
        The merged track with cues renumbered from 1

    Raises:
        FormatError: if any segment's text holds a malformed cue block
        InvariantError: if segments are not in ascending index order
    """
    track = MergedSubtitleTrack()
    last_index = 0

    for segment, raw_text in ordered_segments:
        if segment.index <= last_index:
            raise InvariantError(
                f"Segment {segment.index} out of order after segment {last_index}"
            )
        last_index = segment.index

        cues = parse_srt(raw_text)
        if not cues:
            logger.debug(f"Segment {segment.index} produced no cues, skipping")
            continue

        for cue in cues:
            track.cues.append(SubtitleCue(
                index=len(track.cues) + 1,
                start=offset(cue.start, segment.start),
                end=offset(cue.end, segment.start),
                lines=list(cue.lines),
            ))
        logger.debug(f"Merged {len(cues)} cues from segment {segment.index} at +{segment.start:g}s")

    return track
