"""
Transcription module producing per-segment SRT tracks with faster-whisper or the whisper CLI.
"""

__version__ = "1.0.0"

from .whisper_client import WhisperClient, WhisperCliClient, TranscriptionSegment
from .srt_generator import SRTGenerator

__all__ = [
    "WhisperClient",
    "WhisperCliClient",
    "TranscriptionSegment",
    "SRTGenerator",
]
