import asyncio
import json
import sys
import time
from pathlib import Path

import pytest

from models.gif_models import (
    ConversionParameters,
    FailureReason,
    GifJob,
    JobOutcomeKind,
    ProcessResult,
)
from utils.transcoder import (
    classify_failure,
    get_transcoder_version,
    outcome_from_result,
    run_gif_job,
    run_process,
    transcoder_available,
)


@pytest.fixture
def gif_job(fake_ffmpeg, job_dir) -> GifJob:
    input_path = job_dir / "input-1.mp4"
    input_path.write_bytes(b"not really a video")
    return GifJob(
        token="1",
        input_path=input_path,
        output_path=job_dir / "gif-1.gif",
        parameters=ConversionParameters(fps=12, scale=320),
        timeout_seconds=10,
        ffmpeg_bin=fake_ffmpeg,
    )


class TestClassifyFailure:
    @pytest.mark.parametrize(
        "text, expected",
        [
            ("x: Invalid data found when processing input", FailureReason.INVALID_INPUT),
            ("x: No such file or directory", FailureReason.NOT_FOUND),
            ("x: Permission denied", FailureReason.PERMISSION_DENIED),
            ("Conversion failed!", FailureReason.GENERIC),
            ("", FailureReason.GENERIC),
        ],
    )
    def test_single_marker(self, text, expected):
        assert classify_failure(text) == expected

    def test_invalid_input_wins_over_later_markers(self):
        text = (
            "Permission denied\n"
            "No such file or directory\n"
            "Invalid data found when processing input\n"
        )
        assert classify_failure(text) == FailureReason.INVALID_INPUT

    def test_not_found_wins_over_permission(self):
        text = "Permission denied while opening; No such file or directory"
        assert classify_failure(text) == FailureReason.NOT_FOUND

    def test_matching_is_case_sensitive(self):
        assert classify_failure("invalid data found") == FailureReason.GENERIC


class TestRunProcess:
    def test_captures_output_and_exit_code(self):
        code = "import sys; print('out'); sys.stderr.write('err'); sys.exit(3)"
        result = asyncio.run(run_process([sys.executable, "-c", code], timeout=10))

        assert result.returncode == 3
        assert result.stdout.strip() == "out"
        assert result.stderr == "err"
        assert not result.timed_out
        assert not result.succeeded

    def test_deadline_kills_the_process(self):
        started = time.monotonic()
        result = asyncio.run(
            run_process([sys.executable, "-c", "import time; time.sleep(30)"], timeout=0.5)
        )

        assert result.timed_out
        assert result.returncode is not None
        assert time.monotonic() - started < 10

    def test_launch_error_is_captured(self, tmp_path):
        result = asyncio.run(run_process([str(tmp_path / "missing-ffmpeg")], timeout=5))

        assert result.returncode is None
        assert result.launch_error
        assert "No such file" in result.diagnostics

    def test_cancellation_kills_the_process(self):
        async def _scenario():
            task = asyncio.create_task(
                run_process([sys.executable, "-c", "import time; time.sleep(30)"], timeout=60)
            )
            await asyncio.sleep(0.5)
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

        started = time.monotonic()
        asyncio.run(_scenario())
        assert time.monotonic() - started < 10


class TestOutcomeFromResult:
    def test_timeout_is_not_a_process_failure(self, tmp_path):
        result = ProcessResult(returncode=-9, stderr="Invalid data found", timed_out=True)

        outcome = outcome_from_result(result, tmp_path / "out.gif")

        assert outcome.kind == JobOutcomeKind.TIMEOUT
        assert outcome.reason is None

    def test_nonzero_exit(self, tmp_path):
        result = ProcessResult(returncode=1, stderr="x: Permission denied")

        outcome = outcome_from_result(result, tmp_path / "out.gif")

        assert outcome.kind == JobOutcomeKind.PROCESS_FAILURE
        assert outcome.reason == FailureReason.PERMISSION_DENIED
        assert outcome.diagnostics == "x: Permission denied"

    def test_success_requires_output(self, tmp_path):
        output = tmp_path / "out.gif"
        result = ProcessResult(returncode=0)

        assert outcome_from_result(result, output).kind == JobOutcomeKind.OUTPUT_MISSING

        output.write_bytes(b"")
        assert outcome_from_result(result, output).kind == JobOutcomeKind.OUTPUT_EMPTY

        output.write_bytes(b"GIF89a")
        outcome = outcome_from_result(result, output)
        assert outcome.kind == JobOutcomeKind.SUCCESS
        assert outcome.size_bytes == 6
        assert outcome.output_path == output


class TestRunGifJob:
    def test_success(self, gif_job, ffmpeg_mode):
        ffmpeg_mode("ok")

        outcome = asyncio.run(run_gif_job(gif_job))

        assert outcome.ok
        assert outcome.size_bytes > 0
        assert gif_job.output_path.exists()

    def test_passes_built_arguments(self, gif_job, ffmpeg_mode, recorded_args):
        ffmpeg_mode("ok")

        asyncio.run(run_gif_job(gif_job))

        args = json.loads(recorded_args.read_text())
        assert args[:2] == ["-i", str(gif_job.input_path)]
        assert args[-1] == str(gif_job.output_path)
        assert args[args.index("-filter_complex") + 1].startswith("fps=12,scale=320:-1")

    @pytest.mark.parametrize(
        "mode, kind",
        [
            ("missing", JobOutcomeKind.OUTPUT_MISSING),
            ("empty", JobOutcomeKind.OUTPUT_EMPTY),
            ("invalid", JobOutcomeKind.PROCESS_FAILURE),
        ],
    )
    def test_failures(self, gif_job, ffmpeg_mode, mode, kind):
        ffmpeg_mode(mode)

        outcome = asyncio.run(run_gif_job(gif_job))

        assert outcome.kind == kind

    def test_invalid_input_reason(self, gif_job, ffmpeg_mode):
        ffmpeg_mode("invalid")

        outcome = asyncio.run(run_gif_job(gif_job))

        assert outcome.reason == FailureReason.INVALID_INPUT
        assert "Invalid data found" in outcome.diagnostics

    def test_timeout(self, fake_ffmpeg, job_dir, ffmpeg_mode):
        ffmpeg_mode("sleep")
        job = GifJob(
            token="2",
            input_path=job_dir / "input-2.mp4",
            output_path=job_dir / "gif-2.gif",
            parameters=ConversionParameters(),
            timeout_seconds=0.5,
            ffmpeg_bin=fake_ffmpeg,
        )

        outcome = asyncio.run(run_gif_job(job))

        assert outcome.kind == JobOutcomeKind.TIMEOUT

    def test_missing_binary(self, gif_job, tmp_path):
        job = GifJob(
            token=gif_job.token,
            input_path=gif_job.input_path,
            output_path=gif_job.output_path,
            parameters=gif_job.parameters,
            timeout_seconds=5,
            ffmpeg_bin=str(tmp_path / "no-ffmpeg-here"),
        )

        outcome = asyncio.run(run_gif_job(job))

        assert outcome.kind == JobOutcomeKind.PROCESS_FAILURE
        assert outcome.reason == FailureReason.NOT_FOUND


class TestTranscoderVersion:
    def test_reads_version(self, fake_ffmpeg):
        assert asyncio.run(get_transcoder_version(fake_ffmpeg, timeout=10)) == "6.1-fake"

    def test_broken_binary(self, tmp_path):
        with pytest.raises(RuntimeError):
            asyncio.run(get_transcoder_version(str(tmp_path / "nope"), timeout=5))

    def test_availability(self, fake_ffmpeg, tmp_path):
        assert transcoder_available(fake_ffmpeg)
        assert not transcoder_available(str(tmp_path / "nope"))
        assert not transcoder_available(str(Path(fake_ffmpeg).parent / "missing"))
