"""
SubRip (SRT) cue parsing and rendering.
"""

import re
from dataclasses import dataclass, field
from datetime import timedelta
from typing import List

from pipeline.errors import FormatError
from .timestamps import format_timing, parse_timing

_BLOCK_SEPARATOR = re.compile(r"\n(?:[ \t]*\n)+")


@dataclass
class SubtitleCue:
    """One timed subtitle entry."""
    index: int
    start: timedelta
    end: timedelta
    lines: List[str] = field(default_factory=list)

    @property
    def text(self) -> str:
        return "\n".join(self.lines)


def _parse_block(block: str) -> SubtitleCue:
    lines = [line.rstrip() for line in block.split("\n")]
    if len(lines) < 2:
        raise FormatError(f"Incomplete cue block: {block!r}")

    index_line = lines[0].strip()
    if not index_line.isdigit():
        raise FormatError(f"Invalid cue index {index_line!r}")

    start, end = parse_timing(lines[1])
    if end < start:
        raise FormatError(f"Cue {index_line} ends before it starts: {lines[1]!r}")

    text_lines = [line for line in lines[2:] if line.strip()]
    if not text_lines:
        raise FormatError(f"Cue {index_line} has no text")

    return SubtitleCue(index=int(index_line), start=start, end=end, lines=text_lines)


def parse_srt(text: str) -> List[SubtitleCue]:
    """Parse SRT text into cues.

    Empty or whitespace-only input yields no cues. Any malformed block raises
    ``FormatError``.
    """
    normalized = text.replace("\r\n", "\n").replace("\r", "\n").lstrip("\ufeff").strip()
    if not normalized:
        return []
    return [_parse_block(block.strip("\n")) for block in _BLOCK_SEPARATOR.split(normalized)]


def render_srt(cues: List[SubtitleCue]) -> str:
    """Render cues in standard SRT form (number, timing, text, blank line)."""
    srt_lines = []
    for cue in cues:
        srt_lines.append(str(cue.index))
        srt_lines.append(format_timing(cue.start, cue.end))
        srt_lines.extend(cue.lines)
        srt_lines.append("")
    return "\n".join(srt_lines)
