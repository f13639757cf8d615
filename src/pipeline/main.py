"""
Job orchestration for the chunked subtitling pipeline.

A job is accepted synchronously (record created as ``processing``), then run
as a detached asyncio task: probe → plan → extract (bounded) → transcribe
(bounded) → merge → burn in → publish → terminal status. Whatever happens,
the run directory and every intermediate file in it are removed afterwards.
"""

import asyncio
import logging
import shutil
import uuid
from functools import partial
from pathlib import Path
from typing import Dict, List, Optional

from storage.blobs import BlobStore, LocalBlobStore
from storage.models import Job, JobStatus
from storage.records import InMemoryRecordStore, JsonFileRecordStore, RecordStore
from subtitles.merger import merge_segments
from subtitles.subtitle_integrator import SubtitleIntegrator
from transcription.whisper_client import WhisperCliClient, WhisperClient
from video.ffmpeg_decoder import FFmpegDecoder

from .config import PipelineConfig
from .errors import ValidationError
from .events import EventNotifier
from .executor import run_bounded
from .planner import plan_segments
from .tools import SegmentExtractor, SpeechToText, SubtitleBurner

logger = logging.getLogger(__name__)


class VideoPipeline:
    """Owns job acceptance, the detached run tasks, and the run body."""

    def __init__(self,
                 config: PipelineConfig,
                 records: RecordStore,
                 blobs: BlobStore,
                 extractor: SegmentExtractor,
                 transcriber: SpeechToText,
                 burner: SubtitleBurner,
                 notifier: Optional[EventNotifier] = None):
        self.config = config.validate()
        self.records = records
        self.blobs = blobs
        self.extractor = extractor
        self.transcriber = transcriber
        self.burner = burner
        self.notifier = notifier or EventNotifier()
        self.work_dir = Path(config.work_dir)
        self.work_dir.mkdir(parents=True, exist_ok=True)

        # Task registry so we can keep track of running pipelines
        self._tasks: Dict[str, asyncio.Task] = {}

    # ------------------------------------------------------------------
    # Acceptance and scheduling
    # ------------------------------------------------------------------
    def accept(self, user_id: str, title: str, description: str = "",
               source_name: str = "", duration: Optional[float] = None) -> tuple:
        """
        Create the job record and its private run directory.

        Returns:
            (job, run_dir). The caller stores the upload inside ``run_dir``
            and then calls ``spawn``.
        """
        if not user_id:
            raise ValidationError("user_id is required")
        title = (title or "").strip() or "Untitled Video"

        job_id = uuid.uuid4().hex
        run_dir = self.work_dir / f"{job_id}-{uuid.uuid4().hex[:8]}"
        run_dir.mkdir(parents=True)

        job = Job(
            id=job_id,
            user_id=user_id,
            title=title,
            description=description or "",
            source=source_name,
            duration=duration,
            status=JobStatus.PROCESSING,
        )
        try:
            self.records.create(job)
        except Exception:
            shutil.rmtree(run_dir, ignore_errors=True)
            raise
        logger.info(f"Accepted job {job_id} ({title!r}) for user {user_id}")
        return job, run_dir

    def spawn(self, job_id: str, source_path: Path, run_dir: Path,
              thumbnail_path: Optional[Path] = None) -> asyncio.Task:
        """Start the run in the background. The caller must not await it."""
        if job_id in self._tasks:
            raise ValidationError(f"Job {job_id} already has a running pipeline")

        task = asyncio.create_task(self.run(job_id, Path(source_path), Path(run_dir), thumbnail_path))
        self._tasks[job_id] = task

        # Automatically remove task from registry when done
        def _cleanup(t: asyncio.Task):
            self._tasks.pop(job_id, None)

        task.add_done_callback(_cleanup)
        logger.info(f"Started pipeline task for job {job_id}")
        return task

    def is_running(self, job_id: str) -> bool:
        return job_id in self._tasks

    async def shutdown(self) -> None:
        """Wait for in-flight runs to reach a terminal status."""
        tasks = list(self._tasks.values())
        if tasks:
            logger.info(f"Waiting for {len(tasks)} pipeline task(s) to finish")
            await asyncio.gather(*tasks, return_exceptions=True)

    # ------------------------------------------------------------------
    # Run body
    # ------------------------------------------------------------------
    async def run(self, job_id: str, source_path: Path, run_dir: Path,
                  thumbnail_path: Optional[Path] = None) -> JobStatus:
        """Process one job to a terminal status. Only cancellation propagates, after the job is marked failed."""
        artifacts: List[Path] = [source_path]
        if thumbnail_path is not None:
            artifacts.append(Path(thumbnail_path))
        published: List[str] = []

        try:
            await self._update(job_id, status=JobStatus.PROCESSING)
            await self.notifier.send("job.processing", job_id, status=JobStatus.PROCESSING.value)

            media_reference, thumbnail_reference, subtitle_text = await self._process(
                job_id, source_path, run_dir, thumbnail_path, artifacts, published,
            )

            await self._update(
                job_id,
                status=JobStatus.PROCESSED,
                media_reference=media_reference,
                thumbnail_reference=thumbnail_reference,
                subtitle_text=subtitle_text,
                error=None,
            )
            logger.info(f"Job {job_id} processed: {media_reference}")
            await self.notifier.send("job.processed", job_id, status=JobStatus.PROCESSED.value,
                                     media_reference=media_reference)
            return JobStatus.PROCESSED

        except asyncio.CancelledError:
            logger.warning(f"Job {job_id} cancelled")
            await self._fail(job_id, published, "Processing was cancelled")
            raise

        except Exception as exc:
            logger.exception(f"Job {job_id} failed: {exc}")
            await self._fail(job_id, published, str(exc) or type(exc).__name__)
            return JobStatus.FAILED

        finally:
            self._cleanup(artifacts, run_dir)

    async def _process(self, job_id: str, source_path: Path, run_dir: Path,
                       thumbnail_path: Optional[Path], artifacts: List[Path],
                       published: List[str]) -> tuple:
        cfg = self.config
        self._validate_source(source_path)

        # 1. Plan segments from the probed duration
        duration = await self.extractor.probe_duration(source_path)
        segments = plan_segments(duration, cfg.segment_seconds)
        logger.info(f"Job {job_id}: {duration:.3f}s planned into {len(segments)} segment(s) of {cfg.segment_seconds:g}s")

        # 2. Cut segments and derive their audio
        extracted = await run_bounded(
            [partial(self.extractor.extract_segment, source_path, segment, run_dir) for segment in segments],
            cfg.extract_concurrency,
            name=f"extract:{job_id}",
        )
        for item in extracted:
            artifacts.extend([item.video_path, item.audio_path])
        logger.info(f"Job {job_id}: extracted {len(extracted)} segment(s)")

        # 3. Transcribe every segment's audio
        transcripts_dir = run_dir / "transcripts"
        transcripts_dir.mkdir(exist_ok=True)
        raw_tracks = await run_bounded(
            [
                partial(self.transcriber.transcribe, item.audio_path, transcripts_dir, item.segment.index)
                for item in extracted
            ],
            cfg.transcribe_concurrency,
            name=f"transcribe:{job_id}",
        )
        logger.info(f"Job {job_id}: transcribed {len(raw_tracks)} segment(s)")

        # 4. Merge onto the video timeline
        track = merge_segments(zip(segments, raw_tracks))
        subtitle_text = track.to_srt()
        merged_srt = run_dir / "combined.srt"
        merged_srt.write_text(subtitle_text, encoding="utf-8")
        artifacts.append(merged_srt)
        logger.info(f"Job {job_id}: merged {len(track)} cue(s)")

        # 5. Burn the merged track into the original, unsegmented video
        if len(track):
            final_path = await self.burner.burn_in(source_path, merged_srt, run_dir)
            artifacts.append(final_path)
        else:
            logger.info(f"Job {job_id}: no speech found, publishing the source unchanged")
            final_path = source_path

        # 6. Publish
        loop = asyncio.get_running_loop()
        media_reference = await loop.run_in_executor(None, self.blobs.put, final_path, "videos")
        published.append(media_reference)

        thumbnail_reference = None
        if thumbnail_path is not None:
            thumbnail_reference = await loop.run_in_executor(None, self.blobs.put, Path(thumbnail_path), "thumbnails")
            published.append(thumbnail_reference)

        return media_reference, thumbnail_reference, subtitle_text

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    @staticmethod
    def _validate_source(source_path: Path) -> None:
        if not source_path.is_file():
            raise ValidationError(f"Source media missing: {source_path}")
        if source_path.stat().st_size == 0:
            raise ValidationError(f"Source media is empty: {source_path}")

    async def _update(self, job_id: str, **fields) -> Job:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, partial(self.records.update, job_id, **fields))

    async def _fail(self, job_id: str, published: List[str], error: str) -> None:
        await self._discard_published(published)
        try:
            await self._update(job_id, status=JobStatus.FAILED, error=error)
        except Exception:
            logger.exception(f"Could not record failure for job {job_id}")
        await self.notifier.send("job.failed", job_id, status=JobStatus.FAILED.value, error=error)

    async def _discard_published(self, references: List[str]) -> None:
        loop = asyncio.get_running_loop()
        for reference in references:
            try:
                await loop.run_in_executor(None, self.blobs.delete, reference)
            except Exception as e:
                logger.warning(f"Failed to delete blob {reference}: {e}")

    @staticmethod
    def _cleanup(artifacts: List[Path], run_dir: Path) -> None:
        """Best-effort removal of every file the run created. Never raises."""
        for path in artifacts:
            try:
                path.unlink()
            except FileNotFoundError:
                pass
            except OSError as e:
                logger.warning(f"Failed to cleanup file {path}: {e}")
        try:
            shutil.rmtree(run_dir)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Failed to cleanup run directory {run_dir}: {e}")


def build_records(config: PipelineConfig) -> RecordStore:
    if config.records_dir:
        return JsonFileRecordStore(Path(config.records_dir))
    return InMemoryRecordStore()


def build_transcriber(config: PipelineConfig) -> SpeechToText:
    if config.transcriber_backend == "whisper-cli":
        return WhisperCliClient(
            executable=config.whisper_cli_path,
            model_size=config.whisper_model,
            language=config.whisper_language,
            device=config.whisper_device,
            timeout=config.tool_timeout_seconds,
        )
    return WhisperClient(
        model_size=config.whisper_model,
        device=config.whisper_device,
        compute_type=config.compute_type,
        language=config.whisper_language,
        language_confidence_threshold=config.language_confidence_threshold,
        download_root=config.whisper_model_dir,
        num_workers=config.transcribe_concurrency,
        timeout=config.tool_timeout_seconds,
    )


def build_pipeline(config: PipelineConfig) -> VideoPipeline:
    """Wire the default ffmpeg/whisper/local-storage collaborators from ``config``."""
    config.validate()
    return VideoPipeline(
        config=config,
        records=build_records(config),
        blobs=LocalBlobStore(Path(config.storage_dir), config.public_base_url, config.signing_secret),
        extractor=FFmpegDecoder(
            ffmpeg_path=config.ffmpeg_path,
            ffprobe_path=config.ffprobe_path,
            audio_sample_rate=config.audio_sample_rate,
            timeout=config.tool_timeout_seconds,
        ),
        transcriber=build_transcriber(config),
        burner=SubtitleIntegrator(
            ffmpeg_path=config.ffmpeg_path,
            hard_code=config.hard_code_subtitles,
            subtitle_font=config.subtitle_font,
            subtitle_font_size=config.subtitle_font_size,
            subtitle_color=config.subtitle_color,
            subtitle_background=config.subtitle_background,
            subtitle_position=config.subtitle_position,
            timeout=config.tool_timeout_seconds,
        ),
        notifier=EventNotifier(config.events_url, config.enable_events_url),
    )
