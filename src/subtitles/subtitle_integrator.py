"""
Subtitle integration for hard and soft coding subtitles into video using FFmpeg.
"""

import logging
import os
from pathlib import Path

from pipeline.errors import BurnInError
from pipeline.tools import run_tool

logger = logging.getLogger(__name__)

# Map simple color names → ASS BGR hex (without alpha) e.g. &H00BBGGRR&
COLOR_MAP = {
    "white": "FFFFFF",
    "black": "000000",
    "red": "0000FF",
    "green": "00FF00",
    "blue": "FF0000",
    "yellow": "00FFFF",
    "cyan": "FFFF00",
    "magenta": "FF00FF",
}

# Alignment – bottom(2), center(5), top(8)
ALIGNMENT_MAP = {
    "bottom": 2,
    "center": 5,
    "top": 8,
}


def escape_filter_path(path: str) -> str:
    """Escape a file path for use inside an ffmpeg filtergraph argument."""
    return (
        path.replace("\\", "\\\\")
            .replace(":", "\\:")
            .replace("'", "\\'")
            .replace(",", "\\,")
            .replace("[", "\\[")
            .replace("]", "\\]")
    )


class SubtitleIntegrator:
    """Integrator for adding a subtitle file to a whole video using FFmpeg."""

    def __init__(self,
                 ffmpeg_path: str = "ffmpeg",
                 hard_code: bool = True,
                 subtitle_font: str = "Arial",
                 subtitle_font_size: int = 16,
                 subtitle_color: str = "white",
                 subtitle_background: str = "black",
                 subtitle_position: str = "bottom",
                 timeout: float = 900.0):
        """
        Initialize subtitle integrator.

        Args:
            ffmpeg_path: ffmpeg executable
            hard_code: Burn subtitles into the frames (True) or mux a soft track (False)
            subtitle_font: Font family for subtitles
            subtitle_font_size: Font size for subtitles
            subtitle_color: Text color for subtitles
            subtitle_background: Background color for subtitles
            subtitle_position: Position of subtitles (bottom, top, center)
            timeout: Wall-clock limit for one ffmpeg run in seconds
        """
        self.ffmpeg_path = ffmpeg_path
        self.hard_code = hard_code
        self.subtitle_font = subtitle_font
        self.subtitle_font_size = subtitle_font_size
        self.subtitle_color = subtitle_color
        self.subtitle_background = subtitle_background
        self.subtitle_position = subtitle_position
        self.timeout = timeout

    def force_style(self) -> str:
        """Build the ASS style override string from configuration."""
        style_parts = []
        if self.subtitle_font:
            style_parts.append(f"FontName={self.subtitle_font}")
        style_parts.append(f"Fontsize={self.subtitle_font_size}")

        if self.subtitle_color:
            hex_color = COLOR_MAP.get(self.subtitle_color.lower())
            if hex_color:
                style_parts.append(f"PrimaryColour=&H00{hex_color}&")
        if self.subtitle_background and self.subtitle_background.lower() != "none":
            bg_hex = COLOR_MAP.get(self.subtitle_background.lower())
            if bg_hex:
                # ASS BackColour controls box background when enabled
                style_parts.append(f"BackColour=&H00{bg_hex}&")

        align_val = ALIGNMENT_MAP.get(self.subtitle_position.lower(), 2)
        style_parts.append(f"Alignment={align_val}")
        return ",".join(style_parts)

    def build_command(self, video_path: Path, srt_path: Path, output_file: Path) -> list:
        if self.hard_code:
            # Burn subtitles (overlay) – requires re-encode
            vf_arg = f"subtitles={escape_filter_path(str(srt_path))}:force_style='{self.force_style()}'"
            return [
                self.ffmpeg_path, "-y",
                "-i", str(video_path),
                "-vf", vf_arg,
                "-c:v", "libx264", "-preset", "fast", "-crf", "23",
                "-c:a", "copy",
                str(output_file),
            ]
        # Embed SRT as a subtitle track in MKV container without re-encoding
        return [
            self.ffmpeg_path, "-y",
            "-i", str(video_path),
            "-i", str(srt_path),
            "-map", "0", "-map", "1",
            "-c:v", "copy",
            "-c:a", "copy",
            "-c:s", "srt",
            "-disposition:s:0", "default",
            "-f", "matroska",
            str(output_file),
        ]

    def output_path(self, video_path: Path, output_dir: Path) -> Path:
        suffix = ".mp4" if self.hard_code else ".mkv"
        return Path(output_dir) / f"{Path(video_path).stem}-subtitled{suffix}"

    async def burn_in(self, video_path: Path, srt_path: Path, output_dir: Path) -> Path:
        """
        Render ``srt_path`` into ``video_path``.

        Returns:
            Path of the subtitled video in ``output_dir``

        Raises:
            BurnInError: ffmpeg failed or wrote nothing
            ExternalToolTimeout: ffmpeg ran past the timeout
        """
        output_file = self.output_path(video_path, output_dir)
        cmd = self.build_command(Path(video_path), Path(srt_path), output_file)

        mode = "hard" if self.hard_code else "soft"
        logger.info(f"Integrating subtitles ({mode}) into {video_path}")
        result = await run_tool(cmd, stage="burn_in", timeout=self.timeout)
        if not result.ok:
            raise BurnInError("ffmpeg subtitle integration failed", diagnostics=result.stderr)
        if not os.path.exists(output_file) or os.path.getsize(output_file) == 0:
            raise BurnInError(f"no output written to {output_file}")
        return output_file
