"""
Blob storage for published media.

``LocalBlobStore`` keeps objects under a root directory and hands out
HMAC-signed, expiring URLs that the server's ``/media`` route verifies.
"""

import hashlib
import hmac
import logging
import shutil
import time
import uuid
from pathlib import Path, PurePosixPath
from typing import Optional, Protocol
from urllib.parse import quote, urlencode

logger = logging.getLogger(__name__)


class BlobStore(Protocol):
    def put(self, local_path: Path, folder: str) -> str: ...

    def delete(self, reference: str) -> None: ...

    def signed_url(self, reference: str, ttl: int = 3600) -> str: ...


class LocalBlobStore:
    """Filesystem-backed blob store with ``<folder>/<epoch-ms>-<random>-<name>`` keys."""

    def __init__(self, root: Path, base_url: str, secret: str):
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)
        self.base_url = base_url.rstrip("/")
        self._secret = secret.encode("utf-8")

    def path_for(self, reference: str) -> Path:
        """Resolve a reference to its file, refusing anything outside the root."""
        parts = PurePosixPath(reference).parts
        if not parts or any(part in ("..", "/", "") for part in parts):
            raise ValueError(f"Invalid blob reference {reference!r}")
        return self.root.joinpath(*parts)

    def put(self, local_path: Path, folder: str) -> str:
        local_path = Path(local_path)
        reference = f"{folder.strip('/')}/{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}-{local_path.name}"
        target = self.path_for(reference)
        target.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(local_path, target)
        logger.info(f"Stored blob {reference} ({target.stat().st_size} bytes)")
        return reference

    def delete(self, reference: str) -> None:
        try:
            self.path_for(reference).unlink()
            logger.info(f"Deleted blob {reference}")
        except FileNotFoundError:
            logger.debug(f"Blob {reference} already absent")

    def _signature(self, reference: str, expires: int) -> str:
        message = f"{reference}:{expires}".encode("utf-8")
        return hmac.new(self._secret, message, hashlib.sha256).hexdigest()

    def signed_url(self, reference: str, ttl: int = 3600) -> str:
        expires = int(time.time()) + int(ttl)
        query = urlencode({"expires": expires, "signature": self._signature(reference, expires)})
        return f"{self.base_url}/{quote(reference)}?{query}"

    def verify(self, reference: str, expires: int, signature: str,
               now: Optional[float] = None) -> bool:
        if (now if now is not None else time.time()) > expires:
            return False
        return hmac.compare_digest(self._signature(reference, expires), signature)
