"""
Video probing and segment extraction using ffmpeg/ffprobe.
"""

from .ffmpeg_decoder import ExtractedSegment, FFmpegDecoder

__all__ = ["ExtractedSegment", "FFmpegDecoder"]
