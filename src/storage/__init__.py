"""
Job record and media blob storage.
"""

from .blobs import BlobStore, LocalBlobStore
from .models import Job, JobStatus
from .records import InMemoryRecordStore, JsonFileRecordStore, RecordStore

__all__ = [
    "BlobStore",
    "LocalBlobStore",
    "Job",
    "JobStatus",
    "InMemoryRecordStore",
    "JsonFileRecordStore",
    "RecordStore",
]
