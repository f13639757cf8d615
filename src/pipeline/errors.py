"""
Error taxonomy for the subtitling pipeline.

Every error raised inside a pipeline run derives from ``PipelineError`` so the
orchestrator can mark the job failed without guessing at exception types.
"""

from typing import Optional


class PipelineError(Exception):
    """Base class for all pipeline errors."""


class ValidationError(PipelineError):
    """Bad input detected before any external tool was invoked."""


class FormatError(PipelineError):
    """Malformed subtitle text."""


class InvariantError(PipelineError):
    """An internal invariant was violated (should be unreachable)."""


class ExternalToolFailure(PipelineError):
    """An external tool exited non-zero, was missing, or produced no output."""

    stage = "tool"

    def __init__(self, message: str, segment_index: Optional[int] = None,
                 diagnostics: str = "", stage: Optional[str] = None):
        if stage is not None:
            self.stage = stage
        self.segment_index = segment_index
        self.diagnostics = diagnostics
        self.message = message
        where = f" (segment {segment_index})" if segment_index is not None else ""
        text = f"[{self.stage}]{where} {message}"
        if diagnostics:
            text = f"{text}: {diagnostics.strip()[-500:]}"
        super().__init__(text)


class ExtractionError(ExternalToolFailure):
    stage = "extract"


class TranscriptionError(ExternalToolFailure):
    stage = "transcribe"


class BurnInError(ExternalToolFailure):
    stage = "burn_in"


class ExternalToolTimeout(PipelineError):
    """An external tool ran past its wall-clock limit."""

    def __init__(self, stage: str, timeout: float, segment_index: Optional[int] = None):
        self.stage = stage
        self.timeout = timeout
        self.segment_index = segment_index
        where = f" (segment {segment_index})" if segment_index is not None else ""
        super().__init__(f"[{stage}]{where} timed out after {timeout:g}s")


class BatchTaskError(PipelineError):
    """Raised by the bounded executor when a task in the batch fails."""

    def __init__(self, index: int, error: BaseException):
        self.index = index
        self.error = error
        super().__init__(f"task {index} failed: {error}")
