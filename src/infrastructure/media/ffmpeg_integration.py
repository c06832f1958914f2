"""FFmpeg integration utilities for uploaded video files.

Probing, the decode pass used to validate an upload while reporting
progress, thumbnail creation and sparse frame extraction. All commands run
as asyncio subprocesses so the event loop keeps serving other jobs.
"""

import asyncio
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List, Optional

from src.infrastructure.config import settings

logger = logging.getLogger(__name__)

FractionCallback = Callable[[float], Awaitable[None]]


@dataclass
class VideoInfo:
    """Video stream information."""

    width: int
    height: int
    fps: float
    duration: Optional[float]
    codec: str

    @property
    def resolution(self) -> str:
        return f"{self.width}x{self.height}"


@dataclass
class AudioInfo:
    """Audio stream information."""

    sample_rate: int
    channels: int
    codec: str


@dataclass
class MediaInfo:
    """Complete media information."""

    format_name: str
    duration: Optional[float]
    size: Optional[int]
    video_streams: List[VideoInfo]
    audio_streams: List[AudioInfo]

    @property
    def has_video(self) -> bool:
        return bool(self.video_streams)


class FFmpegError(Exception):
    """FFmpeg operation error."""

    pass


class FFmpegProbe:
    """FFmpeg probe utility for analyzing media files."""

    @staticmethod
    async def probe_file(file_path: str, ffprobe_binary: Optional[str] = None) -> MediaInfo:
        """Probe a media file and return detailed information."""
        cmd = [
            ffprobe_binary or settings.media.ffprobe_binary,
            "-v",
            "quiet",
            "-print_format",
            "json",
            "-show_format",
            "-show_streams",
            file_path,
        ]

        try:
            process = await asyncio.create_subprocess_exec(
                *cmd, stdout=asyncio.subprocess.PIPE, stderr=asyncio.subprocess.PIPE
            )
            stdout, stderr = await process.communicate()
        except OSError as e:
            logger.error(f"Error probing file {file_path}: {e}")
            raise FFmpegError(f"Failed to probe file: {e}") from e

        if process.returncode != 0:
            raise FFmpegError(f"FFprobe failed: {stderr.decode(errors='replace')}")

        try:
            data = json.loads(stdout.decode())
        except ValueError as e:
            raise FFmpegError(f"FFprobe returned invalid JSON: {e}") from e

        return FFmpegProbe._parse_probe_data(data)

    @staticmethod
    def _parse_probe_data(data: Dict[str, Any]) -> MediaInfo:
        """Parse FFprobe JSON output into MediaInfo."""
        format_info = data.get("format", {})
        streams = data.get("streams", [])

        video_streams = []
        audio_streams = []

        for stream in streams:
            if stream.get("codec_type") == "video":
                video_streams.append(
                    VideoInfo(
                        width=stream.get("width", 0),
                        height=stream.get("height", 0),
                        fps=FFmpegProbe._parse_fps(stream.get("r_frame_rate", "0/1")),
                        duration=float(stream["duration"])
                        if stream.get("duration")
                        else None,
                        codec=stream.get("codec_name", "unknown"),
                    )
                )

            elif stream.get("codec_type") == "audio":
                audio_streams.append(
                    AudioInfo(
                        sample_rate=int(stream.get("sample_rate", 0)),
                        channels=int(stream.get("channels", 0)),
                        codec=stream.get("codec_name", "unknown"),
                    )
                )

        return MediaInfo(
            format_name=format_info.get("format_name", "unknown"),
            duration=float(format_info["duration"])
            if format_info.get("duration")
            else None,
            size=int(format_info["size"]) if format_info.get("size") else None,
            video_streams=video_streams,
            audio_streams=audio_streams,
        )

    @staticmethod
    def _parse_fps(fps_string: str) -> float:
        """Parse FPS from FFmpeg format (e.g., '30/1')."""
        try:
            if "/" in fps_string:
                num, den = fps_string.split("/")
                return float(num) / float(den)
            return float(fps_string)
        except (ValueError, ZeroDivisionError):
            return 0.0


def parse_progress_seconds(line: str) -> Optional[float]:
    """Extract the processed media time from a ``-progress`` output line.

    ffmpeg reports ``out_time_us`` and, for historical reasons, an
    ``out_time_ms`` key that is also in microseconds.
    """
    key, _, value = line.strip().partition("=")
    if key not in ("out_time_us", "out_time_ms"):
        return None
    try:
        return int(value) / 1_000_000
    except ValueError:
        return None


async def _kill(process: asyncio.subprocess.Process) -> None:
    """Kill a child that is still running and reap it."""
    if process.returncode is None:
        try:
            process.kill()
        except ProcessLookupError:
            pass
    await process.wait()


def _frame_number(path: Path) -> int:
    return int(path.stem.rsplit("_", 1)[-1])


class FFmpegProcessor:
    """FFmpeg processor for video operations."""

    def __init__(
        self,
        ffmpeg_binary: Optional[str] = None,
        ffprobe_binary: Optional[str] = None,
    ):
        self.ffmpeg_binary = ffmpeg_binary or settings.media.ffmpeg_binary
        self.ffprobe_binary = ffprobe_binary or settings.media.ffprobe_binary

    async def run_ffmpeg_async(self, args: List[str]) -> None:
        """Run an ffmpeg command asynchronously.

        Args:
            args: Arguments after the ffmpeg binary
        """
        process = await asyncio.create_subprocess_exec(
            self.ffmpeg_binary,
            *args,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        try:
            _, stderr = await process.communicate()
        except BaseException:
            await _kill(process)
            raise
        if process.returncode != 0:
            raise FFmpegError(
                f"FFmpeg command failed: {stderr.decode(errors='replace').strip()}"
            )

    async def probe_transcode(
        self, input_path: str, on_progress: Optional[FractionCallback] = None
    ) -> MediaInfo:
        """Probe the file and run a full decode pass, reporting progress.

        The decode output is discarded; a clean pass proves the upload is
        readable end to end before analysis starts.

        Args:
            input_path: Source video
            on_progress: Coroutine called with the processed fraction (0..1)

        Returns:
            Probe information for the file

        Raises:
            FFmpegError: If probing or decoding fails
        """
        media_info = await FFmpegProbe.probe_file(input_path, self.ffprobe_binary)
        if not media_info.has_video:
            raise FFmpegError(f"No video stream found in {input_path}")

        duration = media_info.duration or next(
            (v.duration for v in media_info.video_streams if v.duration), None
        )

        process = await asyncio.create_subprocess_exec(
            self.ffmpeg_binary,
            "-v",
            "error",
            "-nostats",
            "-i",
            input_path,
            "-f",
            "null",
            "-progress",
            "pipe:1",
            "-",
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )

        async def _read_progress() -> None:
            assert process.stdout is not None
            async for raw in process.stdout:
                line = raw.decode(errors="replace")
                if line.startswith("progress=end"):
                    if on_progress:
                        await on_progress(1.0)
                    continue
                seconds = parse_progress_seconds(line)
                if seconds is None or not duration or not on_progress:
                    continue
                await on_progress(max(0.0, min(seconds / duration, 1.0)))

        assert process.stderr is not None
        try:
            _, stderr = await asyncio.gather(_read_progress(), process.stderr.read())
            await process.wait()
        except BaseException:
            await _kill(process)
            raise

        if process.returncode != 0:
            raise FFmpegError(
                f"Decode pass failed: {stderr.decode(errors='replace').strip()}"
            )

        logger.info(f"Decode pass completed for {input_path}")
        return media_info

    async def create_thumbnail(
        self,
        input_source: str,
        output_path: str,
        timestamp: float = 1.0,
        width: int = 320,
        height: int = 240,
    ) -> str:
        """Create thumbnail from video at specified timestamp."""
        Path(output_path).parent.mkdir(parents=True, exist_ok=True)
        await self.run_ffmpeg_async(
            [
                "-y",
                "-ss",
                str(timestamp),
                "-i",
                input_source,
                "-vframes",
                "1",
                "-vf",
                f"scale={width}:{height}",
                "-q:v",
                "2",
                output_path,
            ]
        )
        logger.info(f"Created thumbnail: {output_path}")
        return output_path

    async def extract_frames(
        self,
        input_source: str,
        output_dir: str,
        sampling_rate_hz: float,
        jpeg_quality: int = 2,
    ) -> List[str]:
        """Write frames sampled at ``sampling_rate_hz`` into ``output_dir``.

        Returns:
            Frame paths in presentation order
        """
        pattern = str(Path(output_dir) / "frame_%04d.jpg")
        await self.run_ffmpeg_async(
            [
                "-y",
                "-i",
                input_source,
                "-vf",
                f"fps={sampling_rate_hz}",
                "-q:v",
                str(jpeg_quality),
                pattern,
            ]
        )
        frames = [
            str(p)
            for p in sorted(Path(output_dir).glob("frame_*.jpg"), key=_frame_number)
        ]
        logger.info(f"Extracted {len(frames)} frames from {input_source}")
        return frames
