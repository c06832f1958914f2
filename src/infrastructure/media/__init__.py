"""Media processing infrastructure components.

FFmpeg-based probing, decode validation, thumbnails and frame sampling.
"""

from .ffmpeg_integration import (
    FFmpegError,
    FFmpegProcessor,
    FFmpegProbe,
    MediaInfo,
    VideoInfo,
    AudioInfo,
)
from .frame_sampler import FrameSample, FrameSampler, FrameSet
from .thumbnail_generator import ThumbnailGenerator

__all__ = [
    "FFmpegError",
    "FFmpegProcessor",
    "FFmpegProbe",
    "MediaInfo",
    "VideoInfo",
    "AudioInfo",
    "FrameSample",
    "FrameSampler",
    "FrameSet",
    "ThumbnailGenerator",
]
