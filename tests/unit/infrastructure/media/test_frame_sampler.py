"""Tests for frame sampling and scratch cleanup."""

import pytest

from src.infrastructure.media.ffmpeg_integration import FFmpegError
from src.infrastructure.media.frame_sampler import FrameSampler, FrameSet


class StubFFmpeg:
    """Writes ``count`` frame files, or fails after writing one."""

    def __init__(self, count: int = 3, error: Exception | None = None):
        self.count = count
        self.error = error
        self.calls = []

    async def extract_frames(self, input_source, output_dir, sampling_rate_hz, jpeg_quality=2):
        self.calls.append((input_source, sampling_rate_hz, jpeg_quality))
        paths = []
        for i in range(self.count):
            path = f"{output_dir}/frame_{i + 1:04d}.jpg"
            with open(path, "wb") as f:
                f.write(b"jpeg")
            paths.append(path)
            if self.error is not None:
                raise self.error
        return paths


def make_sampler(tmp_path, ffmpeg):
    return FrameSampler(
        ffmpeg_processor=ffmpeg,
        scratch_dir=str(tmp_path / "scratch"),
        sampling_rate_hz=0.5,
        jpeg_quality=3,
    )


class TestFrameSampler:
    """Test frame extraction."""

    async def test_extracts_indexed_frames(self, tmp_path):
        ffmpeg = StubFFmpeg(count=3)
        frame_set = await make_sampler(tmp_path, ffmpeg).extract_frames("/videos/a.mp4")

        assert len(frame_set) == 3
        assert [f.index for f in frame_set] == [0, 1, 2]
        assert frame_set.directory.parent == tmp_path / "scratch"
        assert ffmpeg.calls == [("/videos/a.mp4", 0.5, 3)]

        frame_set.cleanup()
        assert not frame_set.directory.exists()

    async def test_rate_override(self, tmp_path):
        ffmpeg = StubFFmpeg(count=1)
        frame_set = await make_sampler(tmp_path, ffmpeg).extract_frames("/videos/a.mp4", 2.0)

        assert ffmpeg.calls[0][1] == 2.0
        frame_set.cleanup()

    async def test_failed_extraction_removes_partial_output(self, tmp_path):
        ffmpeg = StubFFmpeg(count=3, error=FFmpegError("disk full"))

        with pytest.raises(FFmpegError):
            await make_sampler(tmp_path, ffmpeg).extract_frames("/videos/a.mp4")

        assert list((tmp_path / "scratch").iterdir()) == []

    async def test_sample_cleans_up_on_exit(self, tmp_path):
        async with make_sampler(tmp_path, StubFFmpeg(count=2)).sample("/videos/a.mp4") as frames:
            directory = frames.directory
            assert directory.exists()

        assert frames.cleaned
        assert not directory.exists()

    async def test_sample_cleans_up_on_error(self, tmp_path):
        with pytest.raises(RuntimeError):
            async with make_sampler(tmp_path, StubFFmpeg(count=2)).sample("/videos/a.mp4") as frames:
                raise RuntimeError("detector crashed")

        assert not frames.directory.exists()


class TestFrameSetCleanup:
    def test_cleanup_is_idempotent(self, tmp_path):
        directory = tmp_path / "frames"
        directory.mkdir()
        frame_set = FrameSet(directory=directory)

        frame_set.cleanup()
        frame_set.cleanup()

        assert frame_set.cleaned
        assert not directory.exists()

    def test_cleanup_of_missing_directory(self, tmp_path):
        frame_set = FrameSet(directory=tmp_path / "never-created")

        frame_set.cleanup()

        assert frame_set.cleaned
