from pathlib import Path
from typing import Optional

from src.domain.exceptions import ThumbnailError
from src.infrastructure.config import settings
from src.infrastructure.media.ffmpeg_integration import FFmpegError, FFmpegProcessor


class ThumbnailGenerator:
    def __init__(
        self,
        ffmpeg_processor: Optional[FFmpegProcessor] = None,
        output_dir: Optional[str] = None,
    ):
        self.ffmpeg_processor = ffmpeg_processor or FFmpegProcessor()
        self.output_dir = output_dir or settings.media.thumbnail_dir

    async def generate_thumbnail(self, video_path: str, job_id: str) -> str:
        output_path = str(Path(self.output_dir) / f"{job_id}.jpg")
        try:
            return await self.ffmpeg_processor.create_thumbnail(
                video_path,
                output_path,
                timestamp=settings.media.thumbnail_timestamp,
                width=settings.media.thumbnail_width,
                height=settings.media.thumbnail_height,
            )
        except (FFmpegError, OSError) as e:
            raise ThumbnailError(
                f"Thumbnail generation failed: {e}", job_id=job_id, cause=e
            ) from e
