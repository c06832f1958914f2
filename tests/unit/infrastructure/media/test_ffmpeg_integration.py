"""Tests for FFmpeg integration helpers."""

import asyncio
from unittest.mock import AsyncMock, Mock, patch

import pytest

from src.infrastructure.media.ffmpeg_integration import (
    FFmpegError,
    FFmpegProbe,
    FFmpegProcessor,
    MediaInfo,
    parse_progress_seconds,
)


class FakeProcess:
    def __init__(self, stdout: bytes, stderr: bytes = b"", returncode: int = 0):
        self.stdout = asyncio.StreamReader()
        self.stdout.feed_data(stdout)
        self.stdout.feed_eof()
        self.stderr = asyncio.StreamReader()
        self.stderr.feed_data(stderr)
        self.stderr.feed_eof()
        self.returncode = returncode

    async def wait(self):
        return self.returncode


class HangingProcess:
    """A child that writes some output and then never exits on its own."""

    def __init__(self, stdout: bytes = b""):
        self.stdout = asyncio.StreamReader()
        self.stdout.feed_data(stdout)
        self.stderr = asyncio.StreamReader()
        self.returncode = None
        self.killed = False
        self._exited = asyncio.Event()
        self.running = asyncio.Event()

    def kill(self):
        self.killed = True
        self.returncode = -9
        self.stdout.feed_eof()
        self.stderr.feed_eof()
        self._exited.set()

    async def wait(self):
        await self._exited.wait()
        return self.returncode

    async def communicate(self):
        self.running.set()
        await self._exited.wait()
        return b"", b""


class TestParseProgressSeconds:
    @pytest.mark.parametrize(
        "line,expected",
        [
            ("out_time_us=2500000\n", 2.5),
            ("out_time_ms=1000000", 1.0),
            ("out_time_us=N/A", None),
            ("frame=42", None),
            ("", None),
        ],
    )
    def test_parses_time_keys(self, line, expected):
        assert parse_progress_seconds(line) == expected


class TestProbeParsing:
    """Test ffprobe output parsing."""

    def test_parse_probe_data(self):
        data = {
            "format": {"format_name": "mov,mp4", "duration": "12.5", "size": "2048"},
            "streams": [
                {
                    "codec_type": "video",
                    "codec_name": "h264",
                    "width": 1280,
                    "height": 720,
                    "r_frame_rate": "30000/1001",
                    "duration": "12.5",
                },
                {
                    "codec_type": "audio",
                    "codec_name": "aac",
                    "sample_rate": "48000",
                    "channels": 2,
                },
            ],
        }

        info = FFmpegProbe._parse_probe_data(data)

        assert info.format_name == "mov,mp4"
        assert info.duration == 12.5
        assert info.size == 2048
        assert info.has_video
        assert info.video_streams[0].resolution == "1280x720"
        assert info.video_streams[0].fps == pytest.approx(29.97, abs=0.01)
        assert info.audio_streams[0].sample_rate == 48000

    def test_parse_probe_data_without_streams(self):
        info = FFmpegProbe._parse_probe_data({})

        assert info.format_name == "unknown"
        assert info.duration is None
        assert not info.has_video

    @pytest.mark.parametrize(
        "value,expected", [("25/1", 25.0), ("24", 24.0), ("0/0", 0.0), ("abc", 0.0)]
    )
    def test_parse_fps(self, value, expected):
        assert FFmpegProbe._parse_fps(value) == expected


class TestProbeTranscode:
    """Test the decode pass."""

    async def test_reports_fractions_from_progress_output(self, media_info):
        output = (
            b"out_time_us=6000000\nprogress=continue\n"
            b"out_time_us=13000000\nprogress=continue\n"
            b"progress=end\n"
        )
        fractions = []

        async def on_progress(fraction):
            fractions.append(fraction)

        with patch.object(FFmpegProbe, "probe_file", AsyncMock(return_value=media_info)), patch(
            "asyncio.create_subprocess_exec", AsyncMock(return_value=FakeProcess(output))
        ):
            result = await FFmpegProcessor("ffmpeg", "ffprobe").probe_transcode(
                "/videos/a.mp4", on_progress
            )

        assert result is media_info
        assert fractions == [0.5, 1.0, 1.0]

    async def test_decode_failure_raises(self, media_info):
        process = FakeProcess(b"", stderr=b"moov atom not found", returncode=1)

        with patch.object(FFmpegProbe, "probe_file", AsyncMock(return_value=media_info)), patch(
            "asyncio.create_subprocess_exec", AsyncMock(return_value=process)
        ):
            with pytest.raises(FFmpegError, match="moov atom not found"):
                await FFmpegProcessor("ffmpeg", "ffprobe").probe_transcode("/videos/a.mp4")

    async def test_file_without_video_is_rejected(self):
        audio_only = MediaInfo(
            format_name="mp3", duration=3.0, size=10, video_streams=[], audio_streams=[]
        )

        with patch.object(FFmpegProbe, "probe_file", AsyncMock(return_value=audio_only)):
            with pytest.raises(FFmpegError, match="No video stream"):
                await FFmpegProcessor("ffmpeg", "ffprobe").probe_transcode("/videos/a.mp3")

    async def test_cancel_kills_decoder(self, media_info):
        process = HangingProcess(b"out_time_us=3000000\nprogress=continue\n")
        first_report = asyncio.Event()

        async def on_progress(fraction):
            first_report.set()

        with patch.object(FFmpegProbe, "probe_file", AsyncMock(return_value=media_info)), patch(
            "asyncio.create_subprocess_exec", AsyncMock(return_value=process)
        ):
            task = asyncio.create_task(
                FFmpegProcessor("ffmpeg", "ffprobe").probe_transcode("/videos/a.mp4", on_progress)
            )
            await asyncio.wait_for(first_report.wait(), timeout=1)
            task.cancel()

            with pytest.raises(asyncio.CancelledError):
                await task

        assert process.killed
        assert process.returncode == -9


class TestRunFFmpeg:
    """Test one-shot ffmpeg commands."""

    async def test_cancel_kills_child(self, tmp_path):
        process = HangingProcess()

        with patch("asyncio.create_subprocess_exec", AsyncMock(return_value=process)):
            task = asyncio.create_task(
                FFmpegProcessor("ffmpeg", "ffprobe").create_thumbnail(
                    "/videos/a.mp4", str(tmp_path / "thumbs" / "a.jpg")
                )
            )
            await asyncio.wait_for(process.running.wait(), timeout=1)
            task.cancel()

            with pytest.raises(asyncio.CancelledError):
                await task

        assert process.killed

    async def test_finished_child_is_not_killed(self):
        process = FakeProcess(b"", stderr=b"Invalid data found", returncode=1)

        async def communicate():
            return b"", b"Invalid data found"

        process.communicate = communicate
        process.kill = Mock(side_effect=AssertionError("killed a finished process"))

        with patch("asyncio.create_subprocess_exec", AsyncMock(return_value=process)):
            with pytest.raises(FFmpegError, match="Invalid data found"):
                await FFmpegProcessor("ffmpeg", "ffprobe").run_ffmpeg_async(["-i", "x"])

        process.kill.assert_not_called()


class TestExtractFrames:
    async def test_frames_ordered_numerically_past_four_digits(self, tmp_path):
        processor = FFmpegProcessor("ffmpeg", "ffprobe")

        async def write_frames(args):
            for number in (10000, 9999, 1001, 2):
                (tmp_path / f"frame_{number:04d}.jpg").write_bytes(b"jpg")

        with patch.object(processor, "run_ffmpeg_async", side_effect=write_frames):
            frames = await processor.extract_frames("/videos/a.mp4", str(tmp_path), 0.5)

        assert [p.rsplit("/", 1)[-1] for p in frames] == [
            "frame_0002.jpg",
            "frame_1001.jpg",
            "frame_9999.jpg",
            "frame_10000.jpg",
        ]
