"""FastAPI server accepting video uploads and reporting subtitling jobs.

Run with:
uvicorn server.app:app --host 0.0.0.0 --port 8000

POST /api/videos/upload
Content-Type: multipart/form-data
    video:       the video file (required)
    thumbnail:   an image file (optional)
    title:       display title (default "Untitled Video")
    description: free text (optional)
    duration:    declared duration in seconds (optional, informational)

The server stores the upload, creates a job in the ``processing`` state,
spins up a background task running the pipeline and responds immediately
with a 202 status. Progress is observed by polling GET /api/videos/{id}.
"""

from __future__ import annotations

import logging
import os
import shutil
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, File, Form, Header, HTTPException, Query, UploadFile
from fastapi.responses import FileResponse
from pydantic import BaseModel

from pipeline.config import PipelineConfig
from pipeline.errors import ValidationError
from pipeline.main import VideoPipeline, build_pipeline
from storage.models import Job, JobStatus

logger = logging.getLogger(__name__)

ALLOWED_VIDEO_TYPES = {
    "video/mp4": ".mp4",
    "video/quicktime": ".mov",
    "video/x-msvideo": ".avi",
    "video/x-matroska": ".mkv",
    "video/webm": ".webm",
}
ALLOWED_IMAGE_TYPES = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/webp": ".webp",
}
UPLOAD_CHUNK_BYTES = 1024 * 1024


# ---------------------------------------------------------------------------
## Pydantic models
# ---------------------------------------------------------------------------
class VideoSummary(BaseModel):
    id: str
    title: str
    status: JobStatus


class UploadResponse(BaseModel):
    message: str = "Upload received! Video is being processed in the background."
    video: VideoSummary


class VideoStatusResponse(BaseModel):
    id: str
    title: str
    description: str
    status: JobStatus
    media_reference: Optional[str] = None
    thumbnail_reference: Optional[str] = None
    subtitle_text: Optional[str] = None
    error: Optional[str] = None

    @classmethod
    def from_job(cls, job: Job) -> "VideoStatusResponse":
        return cls(
            id=job.id,
            title=job.title,
            description=job.description,
            status=job.status,
            media_reference=job.media_reference,
            thumbnail_reference=job.thumbnail_reference,
            subtitle_text=job.subtitle_text,
            error=job.error,
        )


class StreamResponse(BaseModel):
    stream_url: str


class UploadTooLarge(Exception):
    pass


async def _save_upload(upload: UploadFile, target: Path, max_bytes: int) -> Path:
    """Stream an upload to ``target`` in chunks, enforcing ``max_bytes``."""
    written = 0
    with target.open("wb") as f:
        while True:
            chunk = await upload.read(UPLOAD_CHUNK_BYTES)
            if not chunk:
                break
            written += len(chunk)
            if written > max_bytes:
                raise UploadTooLarge(f"{upload.filename} exceeds {max_bytes} bytes")
            f.write(chunk)
    if written == 0:
        raise ValidationError(f"{upload.filename or 'upload'} is empty")
    return target


def _extension(upload: UploadFile, allowed: dict) -> str:
    suffix = Path(upload.filename or "").suffix.lower()
    return suffix or allowed[upload.content_type]


def create_app(pipeline: Optional[VideoPipeline] = None,
               config: Optional[PipelineConfig] = None) -> FastAPI:
    """Build the API around ``pipeline`` (or one wired from ``config``/the environment)."""
    if pipeline is None:
        pipeline = build_pipeline(config or PipelineConfig.from_env())

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        await pipeline.shutdown()

    app = FastAPI(title="Video Subtitling Pipeline API", lifespan=lifespan)
    app.state.pipeline = pipeline

    def _owned_job(job_id: str, user_id: str) -> Job:
        job = pipeline.records.get(job_id)
        if job is None or job.user_id != user_id:
            raise HTTPException(status_code=404, detail="Video not found")
        return job

    # -----------------------------------------------------------------------
    # Routes
    # -----------------------------------------------------------------------
    @app.post("/api/videos/upload", response_model=UploadResponse, status_code=202)
    async def upload_video(
        video: UploadFile = File(...),
        thumbnail: Optional[UploadFile] = File(None),
        title: str = Form("Untitled Video"),
        description: str = Form(""),
        duration: Optional[float] = Form(None),
        user_id: str = Header("anonymous", alias="X-User-Id"),
    ):
        if video.content_type not in ALLOWED_VIDEO_TYPES:
            raise HTTPException(status_code=400, detail="Invalid video file type")
        if thumbnail is not None and thumbnail.content_type not in ALLOWED_IMAGE_TYPES:
            raise HTTPException(status_code=400, detail="Invalid thumbnail image type")

        try:
            job, run_dir = pipeline.accept(
                user_id=user_id,
                title=title,
                description=description,
                source_name=video.filename or "",
                duration=duration,
            )
        except ValidationError as e:
            raise HTTPException(status_code=400, detail=str(e))

        max_bytes = pipeline.config.max_upload_bytes
        try:
            source_path = await _save_upload(
                video, run_dir / f"source{_extension(video, ALLOWED_VIDEO_TYPES)}", max_bytes,
            )
            thumbnail_path = None
            if thumbnail is not None:
                thumbnail_path = await _save_upload(
                    thumbnail, run_dir / f"thumbnail{_extension(thumbnail, ALLOWED_IMAGE_TYPES)}", max_bytes,
                )
        except (UploadTooLarge, ValidationError, OSError) as e:
            logger.warning(f"Upload for job {job.id} rejected: {e}")
            pipeline.records.delete(job.id)
            shutil.rmtree(run_dir, ignore_errors=True)
            if isinstance(e, UploadTooLarge):
                raise HTTPException(status_code=413, detail="File too large")
            if isinstance(e, ValidationError):
                raise HTTPException(status_code=400, detail=str(e))
            raise HTTPException(status_code=500, detail="Video upload failed")

        pipeline.spawn(job.id, source_path, run_dir, thumbnail_path)
        return UploadResponse(video=VideoSummary(id=job.id, title=job.title, status=job.status))

    @app.get("/api/videos/{job_id}", response_model=VideoStatusResponse)
    async def get_video(job_id: str, user_id: str = Header("anonymous", alias="X-User-Id")):
        return VideoStatusResponse.from_job(_owned_job(job_id, user_id))

    @app.get("/api/videos/{job_id}/stream", response_model=StreamResponse)
    async def stream_video(job_id: str, user_id: str = Header("anonymous", alias="X-User-Id")):
        job = _owned_job(job_id, user_id)
        if job.status is not JobStatus.PROCESSED or not job.media_reference:
            raise HTTPException(status_code=409, detail=f"Video is {job.status.value}")
        url = pipeline.blobs.signed_url(job.media_reference, pipeline.config.signed_url_ttl_seconds)
        return StreamResponse(stream_url=url)

    @app.delete("/api/videos/{job_id}")
    async def delete_video(job_id: str, user_id: str = Header("anonymous", alias="X-User-Id")):
        job = _owned_job(job_id, user_id)
        if job.status is JobStatus.PROCESSING or pipeline.is_running(job_id):
            raise HTTPException(status_code=409, detail="Video is still processing")
        for reference in (job.media_reference, job.thumbnail_reference):
            if reference:
                pipeline.blobs.delete(reference)
        pipeline.records.delete(job_id)
        return {"message": "Video deleted successfully"}

    @app.get("/media/{reference:path}")
    async def serve_media(reference: str, expires: int = Query(...), signature: str = Query(...)):
        blobs = pipeline.blobs
        if not hasattr(blobs, "verify") or not blobs.verify(reference, expires, signature):
            raise HTTPException(status_code=403, detail="Invalid or expired signature")
        try:
            path = blobs.path_for(reference)
        except ValueError:
            raise HTTPException(status_code=404, detail="Not found")
        if not path.is_file():
            raise HTTPException(status_code=404, detail="Not found")
        return FileResponse(path)

    return app


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    port = int(os.getenv("PORT", "8000"))
    logger.info("Starting subtitling API on port %d", port)
    uvicorn.run(create_app(), host="0.0.0.0", port=port)
else:
    app = create_app()
