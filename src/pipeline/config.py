"""
Configuration management for the video subtitling pipeline.
"""

import os
import tempfile
from dataclasses import dataclass, fields
from typing import Optional

from .errors import ValidationError


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class PipelineConfig:
    """Configuration for the video subtitling pipeline."""

    # Working storage (one run directory per job is created under work_dir)
    work_dir: str = os.path.join(tempfile.gettempdir(), "subtitle-pipeline")
    storage_dir: str = os.path.join(tempfile.gettempdir(), "subtitle-pipeline-blobs")
    records_dir: Optional[str] = None  # JSON record store when set, in-memory otherwise

    # Segmenting and concurrency
    segment_seconds: float = 60.0
    extract_concurrency: int = 4
    transcribe_concurrency: int = 3
    tool_timeout_seconds: float = 900.0

    # External tools
    ffmpeg_path: str = "ffmpeg"
    ffprobe_path: str = "ffprobe"
    audio_sample_rate: int = 16000  # Hz, required for whisper

    # Transcription settings
    transcriber_backend: str = "faster-whisper"  # faster-whisper, whisper-cli
    whisper_model: str = "base"  # tiny, base, small, medium, large
    whisper_language: Optional[str] = None  # Auto-detect if None
    whisper_device: str = "cpu"  # cpu, cuda
    compute_type: str = "int8"  # float16, float32, int8, etc. (depends on whisper model support)
    whisper_model_dir: Optional[str] = None
    whisper_cli_path: str = "whisper"
    language_confidence_threshold: float = 0.5

    # Subtitle settings
    subtitle_font: str = "Arial"
    subtitle_font_size: int = 16
    subtitle_color: str = "white"
    subtitle_background: str = "black"
    subtitle_position: str = "bottom"  # bottom, top, center
    hard_code_subtitles: bool = True  # True for burn-in, False for a soft track

    # Publishing
    public_base_url: str = "http://localhost:8000/media"
    signing_secret: str = "change-me"
    signed_url_ttl_seconds: int = 3600
    max_upload_bytes: int = 1024 * 1024 * 1024  # 1GB

    # Status events
    events_url: Optional[str] = None
    enable_events_url: bool = False

    def validate(self) -> "PipelineConfig":
        """Reject values the pipeline cannot run with."""
        if self.segment_seconds <= 0:
            raise ValidationError("segment_seconds must be positive")
        if self.extract_concurrency < 1 or self.transcribe_concurrency < 1:
            raise ValidationError("concurrency limits must be at least 1")
        if self.tool_timeout_seconds <= 0:
            raise ValidationError("tool_timeout_seconds must be positive")
        if self.transcriber_backend not in ("faster-whisper", "whisper-cli"):
            raise ValidationError(f"Unknown transcriber backend {self.transcriber_backend!r}")
        return self

    @classmethod
    def field_names(cls) -> set:
        return {f.name for f in fields(cls)}

    @classmethod
    def from_env(cls) -> "PipelineConfig":
        """Create configuration from environment variables."""
        return cls(
            work_dir=os.getenv("WORK_DIR", cls.work_dir),
            storage_dir=os.getenv("STORAGE_DIR", cls.storage_dir),
            records_dir=os.getenv("RECORDS_DIR", cls.records_dir),
            segment_seconds=float(os.getenv("SEGMENT_SECONDS", cls.segment_seconds)),
            extract_concurrency=int(os.getenv("EXTRACT_CONCURRENCY", cls.extract_concurrency)),
            transcribe_concurrency=int(os.getenv("TRANSCRIBE_CONCURRENCY", cls.transcribe_concurrency)),
            tool_timeout_seconds=float(os.getenv("TOOL_TIMEOUT_SECONDS", cls.tool_timeout_seconds)),
            ffmpeg_path=os.getenv("FFMPEG_PATH", cls.ffmpeg_path),
            ffprobe_path=os.getenv("FFPROBE_PATH", cls.ffprobe_path),
            audio_sample_rate=int(os.getenv("AUDIO_SAMPLE_RATE", cls.audio_sample_rate)),
            transcriber_backend=os.getenv("TRANSCRIBER_BACKEND", cls.transcriber_backend),
            whisper_model=os.getenv("WHISPER_MODEL", cls.whisper_model),
            whisper_language=os.getenv("WHISPER_LANGUAGE", cls.whisper_language),
            whisper_device=os.getenv("WHISPER_DEVICE", cls.whisper_device),
            compute_type=os.getenv("COMPUTE_TYPE", cls.compute_type),
            whisper_model_dir=os.getenv("MODEL_DIR", cls.whisper_model_dir),
            whisper_cli_path=os.getenv("WHISPER_CLI_PATH", cls.whisper_cli_path),
            language_confidence_threshold=float(
                os.getenv("LANGUAGE_CONFIDENCE_THRESHOLD", cls.language_confidence_threshold)
            ),
            subtitle_font=os.getenv("SUBTITLE_FONT", cls.subtitle_font),
            subtitle_font_size=int(os.getenv("SUBTITLE_FONT_SIZE", cls.subtitle_font_size)),
            subtitle_color=os.getenv("SUBTITLE_COLOR", cls.subtitle_color),
            subtitle_background=os.getenv("SUBTITLE_BACKGROUND", cls.subtitle_background),
            subtitle_position=os.getenv("SUBTITLE_POSITION", cls.subtitle_position),
            hard_code_subtitles=_env_bool("HARD_CODE_SUBTITLES", cls.hard_code_subtitles),
            public_base_url=os.getenv("PUBLIC_BASE_URL", cls.public_base_url),
            signing_secret=os.getenv("SIGNING_SECRET", cls.signing_secret),
            signed_url_ttl_seconds=int(os.getenv("SIGNED_URL_TTL_SECONDS", cls.signed_url_ttl_seconds)),
            max_upload_bytes=int(os.getenv("MAX_UPLOAD_BYTES", cls.max_upload_bytes)),
            events_url=os.getenv("EVENTS_URL", cls.events_url),
            enable_events_url=_env_bool("ENABLE_EVENTS_URL", cls.enable_events_url),
        )
