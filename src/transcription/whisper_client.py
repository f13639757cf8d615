"""
Speech-to-text backends producing one SRT track per audio segment.

``WhisperClient`` runs faster-whisper in-process; ``WhisperCliClient`` shells
out to the ``whisper`` command-line tool. Both satisfy ``SpeechToText``.
"""

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

from pipeline.errors import ExternalToolTimeout, TranscriptionError
from pipeline.tools import run_tool

try:
    from faster_whisper import WhisperModel
except ImportError:
    WhisperModel = None

logger = logging.getLogger(__name__)


@dataclass
class TranscriptionSegment:
    """Represents a transcribed segment with timing information."""
    start: float  # Start time in seconds (segment-relative)
    end: float    # End time in seconds (segment-relative)
    text: str     # Transcribed text


def _read_srt_output(srt_file: Path, segment_idx: Optional[int]) -> str:
    if not srt_file.exists():
        raise TranscriptionError(f"no subtitle file written at {srt_file}", segment_index=segment_idx)
    return srt_file.read_text(encoding="utf-8")


class WhisperClient:
    """Client for faster-whisper transcription."""

    def __init__(self, model_size: str = "base", device: str = "cpu", compute_type: str = "int8",
                 language: Optional[str] = None, language_confidence_threshold: float = 0.5,
                 download_root: Optional[str] = None, num_workers: int = 1,
                 timeout: float = 900.0, model: Any = None):
        """
        Initialize the whisper client.

        Args:
            model_size: Whisper model size (tiny, base, small, medium, large)
            device: Device to run on (cpu, cuda)
            compute_type: CTranslate2 compute type
            language: Language code for transcription (None for auto-detect)
            language_confidence_threshold: Minimum confidence for language detection (0.5 = 50%)
            download_root: Directory for model files (library default if None)
            num_workers: Parallel transcriptions the model accepts
            timeout: Wall-clock limit per transcription in seconds
            model: Preloaded model object; skips loading when given
        """
        self.model_size = model_size
        self.compute_type = compute_type
        self.device = device
        self.model = model
        self.language = language
        self.language_confidence_threshold = language_confidence_threshold
        self.download_root = download_root
        self.num_workers = max(1, num_workers)
        self.timeout = timeout
        self._lock = asyncio.Lock()

        # srt_generator imports TranscriptionSegment from this module
        from .srt_generator import SRTGenerator
        self.srt_generator = SRTGenerator()

    async def initialize(self):
        """Initialize the whisper model asynchronously."""
        async with self._lock:
            if self.model is None:
                if WhisperModel is None:
                    raise ImportError("faster-whisper not installed. Install with: pip install faster-whisper")
                logger.info(f"Loading whisper model: {self.model_size} on {self.device}")

                # Run model loading in thread pool to avoid blocking
                loop = asyncio.get_running_loop()
                self.model = await loop.run_in_executor(
                    None,
                    lambda: WhisperModel(
                        self.model_size,
                        device=self.device,
                        compute_type=self.compute_type,
                        download_root=self.download_root,
                        num_workers=self.num_workers,
                    ),
                )
                logger.info("Whisper model loaded successfully")

    def _run_model(self, audio_file_path: str) -> List[TranscriptionSegment]:
        segments, info = self.model.transcribe(
            audio_file_path,
            language=self.language,
            vad_filter=False,
            language_detection_threshold=self.language_confidence_threshold,
        )

        language_confidence = getattr(info, 'language_probability', 1.0)
        logger.debug(f"Language detection confidence: {language_confidence:.3f}")

        # segments is a lazy generator; decoding happens while iterating
        transcription_segments = []
        for segment in segments:
            if language_confidence < self.language_confidence_threshold:
                text = ""  # Empty text for low confidence
            else:
                text = segment.text.strip()
            transcription_segments.append(TranscriptionSegment(start=segment.start, end=segment.end, text=text))
        return transcription_segments

    async def transcribe_audio(self, audio_file_path: str, segment_idx: Optional[int] = None) -> List[TranscriptionSegment]:
        """
        Transcribe audio file to text with timing information.

        Args:
            audio_file_path: Path to the audio file
            segment_idx: Segment index for logging and errors

        Returns:
            List of transcription segments with segment-relative timing

        Raises:
            TranscriptionError: the model failed
            ExternalToolTimeout: transcription ran past the timeout
        """
        if self.model is None:
            await self.initialize()

        logger.debug(f"Transcribing audio for segment {segment_idx}")
        loop = asyncio.get_running_loop()
        try:
            transcription_segments = await asyncio.wait_for(
                loop.run_in_executor(None, self._run_model, audio_file_path),
                self.timeout,
            )
        except asyncio.TimeoutError:
            raise ExternalToolTimeout("transcribe", self.timeout, segment_idx)
        except Exception as e:
            logger.error(f"Error transcribing segment {segment_idx}: {e}")
            raise TranscriptionError(str(e), segment_index=segment_idx) from e

        logger.debug(f"Transcribed {len(transcription_segments)} segments for segment {segment_idx}")
        return transcription_segments

    async def transcribe(self, audio_path: Path, output_dir: Path, segment_index: Optional[int] = None) -> str:
        """Transcribe ``audio_path`` into ``output_dir/<stem>.srt`` and return its text."""
        audio_path = Path(audio_path)
        segments = await self.transcribe_audio(str(audio_path), segment_index)
        srt_content = self.srt_generator.generate_srt(segments, segment_index)
        srt_file = self.srt_generator.save_srt_file(srt_content, Path(output_dir) / f"{audio_path.stem}.srt")
        return _read_srt_output(srt_file, segment_index)

    def get_model_info(self) -> Dict[str, Any]:
        """Get information about the loaded model."""
        return {
            "backend": "faster-whisper",
            "model": self.model_size,
            "device": self.device,
            "loaded": self.model is not None,
            "language": self.language,
            "language_confidence_threshold": self.language_confidence_threshold,
        }


class WhisperCliClient:
    """Runs the ``whisper`` command-line tool with SRT output."""

    def __init__(self, executable: str = "whisper", model_size: str = "base",
                 language: Optional[str] = None, device: str = "cpu", timeout: float = 900.0):
        self.executable = executable
        self.model_size = model_size
        self.language = language
        self.device = device
        self.timeout = timeout

    async def transcribe(self, audio_path: Path, output_dir: Path, segment_index: Optional[int] = None) -> str:
        audio_path = Path(audio_path)
        output_dir = Path(output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)

        cmd = [
            self.executable, str(audio_path),
            '--model', self.model_size,
            '--device', self.device,
            '--output_format', 'srt',
            '--output_dir', str(output_dir),
            '--verbose', 'False',
        ]
        if self.device == "cpu":
            cmd += ['--fp16', 'False']
        if self.language:
            cmd += ['--language', self.language]

        result = await run_tool(cmd, stage="transcribe", timeout=self.timeout, segment_index=segment_index)
        if not result.ok:
            raise TranscriptionError(f"{self.executable} exited with {result.returncode}",
                                     segment_index=segment_index, diagnostics=result.stderr)
        return _read_srt_output(output_dir / f"{audio_path.stem}.srt", segment_index)

    def get_model_info(self) -> Dict[str, Any]:
        return {"backend": "whisper-cli", "model": self.model_size, "device": self.device}
