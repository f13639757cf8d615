"""
Tests for PipelineConfig.
"""

import pytest

from pipeline.config import PipelineConfig
from pipeline.errors import ValidationError


class TestConfig:

    def test_defaults(self):
        config = PipelineConfig()
        assert config.segment_seconds == 60.0
        assert config.extract_concurrency == 4
        assert config.transcribe_concurrency == 3
        assert config.audio_sample_rate == 16000
        assert config.validate() is config

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("SEGMENT_SECONDS", "30")
        monkeypatch.setenv("TRANSCRIBE_CONCURRENCY", "1")
        monkeypatch.setenv("WHISPER_LANGUAGE", "de")
        monkeypatch.setenv("HARD_CODE_SUBTITLES", "false")
        monkeypatch.setenv("TRANSCRIBER_BACKEND", "whisper-cli")

        config = PipelineConfig.from_env()

        assert config.segment_seconds == 30.0
        assert config.transcribe_concurrency == 1
        assert config.whisper_language == "de"
        assert config.hard_code_subtitles is False
        assert config.transcriber_backend == "whisper-cli"
        assert config.extract_concurrency == 4

    @pytest.mark.parametrize("overrides", [
        {"segment_seconds": 0},
        {"extract_concurrency": 0},
        {"transcribe_concurrency": -1},
        {"tool_timeout_seconds": 0},
        {"transcriber_backend": "vosk"},
    ])
    def test_validate_rejects(self, overrides):
        with pytest.raises(ValidationError):
            PipelineConfig(**overrides).validate()

    def test_field_names(self):
        assert {"work_dir", "events_url", "subtitle_font"} <= PipelineConfig.field_names()
