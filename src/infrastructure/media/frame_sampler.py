"""Sparse frame sampling for local analysis.

Frames are extracted at a fixed low rate so per-video analysis cost stays
bounded regardless of the video's length. Each extraction gets its own
scratch directory, created before ffmpeg writes anything and removed by
``FrameSet.cleanup`` on every exit path.
"""

import shutil
import tempfile
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import AsyncIterator, Iterator, List, Optional

import structlog

from src.domain.exceptions import CleanupError
from src.infrastructure.config import settings
from src.infrastructure.media.ffmpeg_integration import FFmpegProcessor

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class FrameSample:
    """One extracted frame: zero-based index and JPEG path."""

    index: int
    path: str


@dataclass
class FrameSet:
    """Ordered frames living in a scratch directory."""

    directory: Path
    frames: List[FrameSample] = field(default_factory=list)
    _cleaned: bool = field(default=False, init=False, repr=False)

    def __len__(self) -> int:
        return len(self.frames)

    def __iter__(self) -> Iterator[FrameSample]:
        return iter(self.frames)

    @property
    def cleaned(self) -> bool:
        return self._cleaned

    def cleanup(self) -> None:
        """Delete the scratch directory.

        Idempotent and safe after a partial extraction. Failures are logged
        and never raised.
        """
        if self._cleaned:
            return
        self._cleaned = True
        try:
            shutil.rmtree(self.directory)
        except FileNotFoundError:
            pass
        except OSError as e:
            error = CleanupError(f"Could not remove frame directory: {e}", cause=e)
            logger.warning(
                "Frame directory cleanup failed",
                directory=str(self.directory),
                error=str(error),
            )


class FrameSampler:
    """Extracts frames from a video at a fixed sampling rate."""

    def __init__(
        self,
        ffmpeg_processor: Optional[FFmpegProcessor] = None,
        scratch_dir: Optional[str] = None,
        sampling_rate_hz: Optional[float] = None,
        jpeg_quality: Optional[int] = None,
    ):
        self.ffmpeg_processor = ffmpeg_processor or FFmpegProcessor()
        self.scratch_dir = Path(scratch_dir or settings.media.scratch_dir)
        self.sampling_rate_hz = (
            sampling_rate_hz or settings.analysis.frame_sampling_rate_hz
        )
        self.jpeg_quality = jpeg_quality or settings.analysis.frame_jpeg_quality

    async def extract_frames(
        self, source_path: str, sampling_rate_hz: Optional[float] = None
    ) -> FrameSet:
        """Extract frames into a fresh scratch directory.

        The caller owns the returned ``FrameSet`` and must call ``cleanup``.
        If extraction fails, the directory is removed before re-raising.

        Args:
            source_path: Video to sample
            sampling_rate_hz: Override of the configured rate

        Returns:
            The ordered frames
        """
        rate = sampling_rate_hz or self.sampling_rate_hz
        self.scratch_dir.mkdir(parents=True, exist_ok=True)
        frame_set = FrameSet(
            directory=Path(tempfile.mkdtemp(prefix="frames-", dir=self.scratch_dir))
        )

        try:
            paths = await self.ffmpeg_processor.extract_frames(
                source_path,
                str(frame_set.directory),
                sampling_rate_hz=rate,
                jpeg_quality=self.jpeg_quality,
            )
        except BaseException:
            frame_set.cleanup()
            raise

        frame_set.frames = [FrameSample(index=i, path=p) for i, p in enumerate(paths)]
        logger.debug(
            "Frames extracted",
            source=source_path,
            frame_count=len(frame_set),
            sampling_rate_hz=rate,
        )
        return frame_set

    @asynccontextmanager
    async def sample(
        self, source_path: str, sampling_rate_hz: Optional[float] = None
    ) -> AsyncIterator[FrameSet]:
        """Scoped extraction; frames are deleted when the block exits."""
        frame_set = await self.extract_frames(source_path, sampling_rate_hz)
        try:
            yield frame_set
        finally:
            frame_set.cleanup()
