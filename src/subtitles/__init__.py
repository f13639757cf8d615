"""
SRT timing codec, cue parsing, track merging and ffmpeg subtitle integration.
"""

from .merger import MergedSubtitleTrack, merge_segments
from .srt import SubtitleCue, parse_srt, render_srt
from .subtitle_integrator import SubtitleIntegrator
from .timestamps import format_timestamp, format_timing, offset, parse_timestamp, parse_timing

__all__ = [
    "MergedSubtitleTrack",
    "merge_segments",
    "SubtitleCue",
    "parse_srt",
    "render_srt",
    "SubtitleIntegrator",
    "format_timestamp",
    "format_timing",
    "offset",
    "parse_timestamp",
    "parse_timing",
]
