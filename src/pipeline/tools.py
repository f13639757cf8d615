"""
Narrow invocation interface for the external media tools.

Every tool is reached through ``run_tool`` (argv in, ``ToolResult`` out, wall
clock bounded). The protocols below are what the orchestrator depends on, so
ffmpeg, faster-whisper or the whisper CLI can be swapped without touching it.
"""

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Optional, Protocol, Sequence

from .errors import ExternalToolFailure, ExternalToolTimeout

if TYPE_CHECKING:
    from video.ffmpeg_decoder import ExtractedSegment
    from .planner import Segment

logger = logging.getLogger(__name__)


@dataclass
class ToolResult:
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


async def run_tool(cmd: Sequence[str], stage: str, timeout: float,
                   segment_index: Optional[int] = None) -> ToolResult:
    """
    Run an external command without blocking the event loop.

    Raises:
        ExternalToolTimeout: the process ran past ``timeout`` seconds (it is killed)
        ExternalToolFailure: the binary could not be started
    """
    logger.debug(f"[{stage}] running: {' '.join(cmd)}")
    try:
        process = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as e:
        raise ExternalToolFailure(f"could not start {cmd[0]}: {e}",
                                  segment_index=segment_index, stage=stage) from e

    try:
        stdout, stderr = await asyncio.wait_for(process.communicate(), timeout)
    except asyncio.TimeoutError:
        if process.returncode is None:
            process.kill()
        await process.wait()
        raise ExternalToolTimeout(stage, timeout, segment_index)
    except asyncio.CancelledError:
        if process.returncode is None:
            process.kill()
        await asyncio.shield(process.wait())
        raise

    return ToolResult(
        returncode=process.returncode,
        stdout=stdout.decode(errors="replace"),
        stderr=stderr.decode(errors="replace"),
    )


class SegmentExtractor(Protocol):
    async def probe_duration(self, source: Path) -> float: ...

    async def extract_segment(self, source: Path, segment: "Segment",
                              output_dir: Path) -> "ExtractedSegment": ...


class SpeechToText(Protocol):
    async def transcribe(self, audio_path: Path, output_dir: Path,
                         segment_index: Optional[int] = None) -> str: ...


class SubtitleBurner(Protocol):
    async def burn_in(self, video_path: Path, srt_path: Path, output_dir: Path) -> Path: ...
