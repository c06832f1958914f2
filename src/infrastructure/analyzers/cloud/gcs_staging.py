"""Temporary staging of videos in Google Cloud Storage.

The annotation service reads its input from a ``gs://`` URI, so each cloud
analysis uploads the file under a time-namespaced key and deletes it once
the annotation finishes.
"""

import asyncio
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

import structlog
from google.cloud import storage

from src.domain.exceptions import CleanupError
from src.infrastructure.config import settings

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class StagedObject:
    """A staged upload."""

    bucket: str
    name: str

    @property
    def uri(self) -> str:
        return f"gs://{self.bucket}/{self.name}"


def staging_key(prefix: str, source_path: str, epoch_ms: Optional[int] = None) -> str:
    """Object name for a staged file, e.g. ``temp-analysis/1700000000000-clip.mp4``."""
    if epoch_ms is None:
        epoch_ms = time.time_ns() // 1_000_000
    return f"{prefix.strip('/')}/{epoch_ms}-{Path(source_path).name}"


class GcsStagingStore:
    """Uploads and deletes staged videos."""

    def __init__(
        self,
        bucket: Optional[str] = None,
        prefix: Optional[str] = None,
        content_type: Optional[str] = None,
        client: Optional[Any] = None,
    ):
        self.bucket = bucket or settings.gcp.staging_bucket
        self.prefix = prefix or settings.gcp.staging_prefix
        self.content_type = content_type or settings.gcp.staging_content_type
        self._client = client

    def open(self) -> None:
        if self._client is None:
            self._client = storage.Client(project=settings.gcp.project_id)

    def close(self) -> None:
        if self._client is not None and hasattr(self._client, "close"):
            self._client.close()
        self._client = None

    @property
    def client(self) -> Any:
        if self._client is None:
            raise RuntimeError("GCS staging store used before open()")
        return self._client

    async def stage(self, source_path: str) -> StagedObject:
        """Upload ``source_path`` and return where it landed."""
        staged = StagedObject(
            bucket=self.bucket, name=staging_key(self.prefix, source_path)
        )
        blob = self.client.bucket(staged.bucket).blob(staged.name)
        await asyncio.to_thread(
            blob.upload_from_filename, source_path, content_type=self.content_type
        )
        logger.info("Video staged", uri=staged.uri)
        return staged

    async def delete(self, staged: StagedObject) -> bool:
        """Delete a staged object. Failures are logged, never raised.

        Returns:
            True if the object was deleted
        """
        try:
            blob = self.client.bucket(staged.bucket).blob(staged.name)
            await asyncio.to_thread(blob.delete)
        except Exception as e:
            error = CleanupError(f"Could not delete staged object: {e}", cause=e)
            logger.warning("Staged object cleanup failed", uri=staged.uri, error=str(error))
            return False
        logger.debug("Staged object deleted", uri=staged.uri)
        return True
