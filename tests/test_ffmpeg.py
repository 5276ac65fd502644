"""
Tests for ffmpeg/ffprobe helpers, the transcoder and the prober.

Fake binaries are small Python scripts written into ``tmp_path`` so the
suite does not need ffmpeg installed.

Run with: pytest tests/test_ffmpeg.py -v
"""

import asyncio
import json
import stat
import sys
import textwrap

import pytest

from conftest import FakeProber

from app.core.prober import FFprobeProber, ProbeError, parse_duration, probe_or_none
from app.core.transcoder import (
    FFmpegTranscoder,
    TranscodeError,
    TranscoderUnavailableError,
    optimized_path,
)
from app.core.utils import ffmpeg
from app.core.utils.ffmpeg import (
    ToolExecutionError,
    ToolUnavailableError,
    filter_benign_warnings,
    parse_progress_line,
    run_ffmpeg_with_progress,
    run_ffprobe,
)


def fake_binary(tmp_path, name, body):
    """Write an executable Python script standing in for a media tool."""
    path = tmp_path / name
    path.write_text(f"#!{sys.executable}\n" + textwrap.dedent(body))
    path.chmod(path.stat().st_mode | stat.S_IXUSR)
    return str(path)


FAKE_FFMPEG = """
    import sys
    out = sys.argv[-1]
    for ms in (0, 2500000, 5000000, 5000000, 10000000):
        print(f"out_time_ms={ms}")
        print("progress=continue")
        sys.stdout.flush()
    print("progress=end")
    open(out, "wb").write(b"optimized")
"""

FAILING_FFMPEG = """
    import sys
    out = sys.argv[-1]
    print("out_time_ms=2500000")
    open(out, "wb").write(b"partial")
    sys.stderr.write("Invalid data found when processing input\\n")
    sys.exit(1)
"""


def ffprobe_printing(tmp_path, payload):
    return fake_binary(tmp_path, "ffprobe", f"print({json.dumps(json.dumps(payload))})\n")


class TestParseProgressLine:
    """Tests for parse_progress_line."""

    def test_out_time_ms(self):
        assert parse_progress_line("out_time_ms=5000000", 10.0) == 50.0

    def test_capped_at_100(self):
        assert parse_progress_line("out_time_ms=20000000", 10.0) == 100.0

    @pytest.mark.parametrize("line", [
        "frame=120",
        "progress=continue",
        "out_time_ms=N/A",
        "out_time_ms=-1",
        "",
    ])
    def test_ignored_lines(self, line):
        assert parse_progress_line(line, 10.0) is None

    @pytest.mark.parametrize("duration", [None, 0, -3.0])
    def test_unknown_duration(self, duration):
        assert parse_progress_line("out_time_ms=5000000", duration) is None


class TestFilterBenignWarnings:
    """Tests for filter_benign_warnings."""

    def test_filters_known_noise(self):
        stderr = "[h264 @ 0x1] h264 does not support hardware acceleration\nreal error"
        filtered, warnings = filter_benign_warnings(stderr)
        assert filtered == "real error"
        assert len(warnings) == 1


class TestRunFFmpeg:
    """Tests for run_ffmpeg_with_progress."""

    def test_reports_increasing_progress(self, tmp_path):
        binary = fake_binary(tmp_path, "ffmpeg", FAKE_FFMPEG)
        out = tmp_path / "out.mp4"
        seen = []

        async def on_progress(percent):
            seen.append(percent)

        asyncio.run(run_ffmpeg_with_progress(
            [binary, str(out)], duration=10.0, timeout=30, progress_callback=on_progress
        ))
        assert seen == [0.0, 25.0, 50.0, 100.0]
        assert out.read_bytes() == b"optimized"

    def test_missing_binary(self, tmp_path):
        with pytest.raises(ToolUnavailableError):
            asyncio.run(run_ffmpeg_with_progress(
                [str(tmp_path / "no-such-ffmpeg")], duration=None, timeout=5
            ))

    def test_non_zero_exit(self, tmp_path):
        binary = fake_binary(tmp_path, "ffmpeg", FAILING_FFMPEG)
        with pytest.raises(ToolExecutionError) as excinfo:
            asyncio.run(run_ffmpeg_with_progress(
                [binary, str(tmp_path / "out.mp4")], duration=10.0, timeout=30
            ))
        assert excinfo.value.returncode == 1
        assert "Invalid data" in excinfo.value.stderr

    def test_timeout(self, tmp_path):
        binary = fake_binary(tmp_path, "ffmpeg", "import time\ntime.sleep(30)\n")
        with pytest.raises(ToolExecutionError, match="timed out"):
            asyncio.run(run_ffmpeg_with_progress([binary], duration=None, timeout=0.5))

    def test_process_without_pipes_is_killed(self, monkeypatch):
        class PipelessProcess:
            stdout = None
            stderr = None
            returncode = None
            killed = False

            def kill(self):
                self.killed = True
                self.returncode = -9

            async def wait(self):
                return self.returncode

        process = PipelessProcess()

        async def spawn(cmd, **kwargs):
            return process

        monkeypatch.setattr(ffmpeg, "_spawn", spawn)
        with pytest.raises(ToolExecutionError, match="without output pipes"):
            asyncio.run(run_ffmpeg_with_progress(["ffmpeg"], duration=None, timeout=5))
        assert process.killed


class TestRunFFprobe:
    """Tests for run_ffprobe."""

    def test_returns_stdout(self, tmp_path):
        binary = ffprobe_printing(tmp_path, {"format": {"duration": "12.5"}})
        output = asyncio.run(run_ffprobe([binary], timeout=10))
        assert json.loads(output) == {"format": {"duration": "12.5"}}

    def test_failure(self, tmp_path):
        binary = fake_binary(tmp_path, "ffprobe", "import sys\nsys.stderr.write('moov atom not found')\nsys.exit(1)\n")
        with pytest.raises(ToolExecutionError, match="moov atom"):
            asyncio.run(run_ffprobe([binary], timeout=10))


class TestProber:
    """Tests for duration probing."""

    @pytest.mark.parametrize("raw,expected", [
        ("12.5", 12.5),
        (3, 3.0),
    ])
    def test_parse_duration(self, raw, expected):
        assert parse_duration(raw) == expected

    @pytest.mark.parametrize("raw", [None, "N/A", "0", "-4", "nan", "inf"])
    def test_parse_duration_rejects(self, raw):
        with pytest.raises(ProbeError):
            parse_duration(raw)

    def test_probe(self, tmp_path, source_file):
        prober = FFprobeProber(binary=ffprobe_printing(tmp_path, {"format": {"duration": "42.04"}}))
        assert asyncio.run(prober.probe(source_file)) == 42.04

    def test_probe_without_duration(self, tmp_path, source_file):
        prober = FFprobeProber(binary=ffprobe_printing(tmp_path, {"format": {}}))
        with pytest.raises(ProbeError):
            asyncio.run(prober.probe(source_file))

    def test_probe_missing_binary(self, tmp_path, source_file):
        prober = FFprobeProber(binary=str(tmp_path / "no-such-ffprobe"))
        with pytest.raises(ProbeError):
            asyncio.run(prober.probe(source_file))
        assert asyncio.run(probe_or_none(prober, source_file)) is None


class TestFFmpegTranscoder:
    """Tests for FFmpegTranscoder."""

    def test_output_path(self, source_file):
        assert optimized_path(source_file).name == "optimized-a.mp4"
        assert optimized_path(source_file.with_name("b.mov")).name == "optimized-b.mp4"

    def test_command_uses_streaming_profile(self, source_file):
        transcoder = FFmpegTranscoder(binary="ffmpeg", prober=FakeProber())
        cmd = transcoder.build_command(source_file, optimized_path(source_file))

        assert cmd[0] == "ffmpeg"
        assert cmd[-1].endswith("optimized-a.mp4")
        joined = " ".join(cmd)
        assert "-movflags +faststart" in joined
        assert "-c:v libx264" in joined
        assert "-crf 23" in joined
        assert "-preset medium" in joined
        assert "-c:a aac" in joined
        assert "-progress pipe:1" in joined

    def test_transcode(self, tmp_path, source_file):
        transcoder = FFmpegTranscoder(
            binary=fake_binary(tmp_path, "ffmpeg", FAKE_FFMPEG),
            prober=FakeProber(10.0),
        )
        seen = []

        async def on_progress(percent):
            seen.append(percent)

        output = asyncio.run(transcoder.transcode(source_file, on_progress=on_progress))
        assert output == optimized_path(source_file)
        assert output.read_bytes() == b"optimized"
        assert seen[-1] == 100.0
        assert seen[:-1] == sorted(seen[:-1])

    def test_transcode_without_duration_still_finishes(self, tmp_path, source_file):
        transcoder = FFmpegTranscoder(
            binary=fake_binary(tmp_path, "ffmpeg", FAKE_FFMPEG),
            prober=FakeProber(None),
        )
        seen = []

        async def on_progress(percent):
            seen.append(percent)

        asyncio.run(transcoder.transcode(source_file, on_progress=on_progress))
        assert seen == [100.0]

    def test_missing_ffmpeg(self, tmp_path, source_file):
        transcoder = FFmpegTranscoder(binary=str(tmp_path / "no-such-ffmpeg"), prober=FakeProber())
        with pytest.raises(TranscoderUnavailableError):
            asyncio.run(transcoder.transcode(source_file))

    def test_failure_removes_partial_output(self, tmp_path, source_file):
        transcoder = FFmpegTranscoder(
            binary=fake_binary(tmp_path, "ffmpeg", FAILING_FFMPEG),
            prober=FakeProber(10.0),
        )
        with pytest.raises(TranscodeError) as excinfo:
            asyncio.run(transcoder.transcode(source_file))
        assert not isinstance(excinfo.value, TranscoderUnavailableError)
        assert not optimized_path(source_file).exists()
