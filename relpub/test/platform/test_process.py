"""Tests for relpub.platform.process module."""

from __future__ import annotations

import sys
from pathlib import Path

from relpub.core.result import Err, Ok
from relpub.platform.process import ProcessError, run, run_streamed

PY = sys.executable


class TestProcessError:
    def test_str_short_command(self) -> None:
        error = ProcessError(command=("git", "clone"), returncode=128, stdout="", stderr="")
        assert str(error) == "git clone failed (exit 128)"

    def test_str_long_command_truncated(self) -> None:
        error = ProcessError(
            command=("cargo", "build", "--release", "--locked"),
            returncode=101,
            stdout="",
            stderr="",
        )
        assert str(error) == "cargo build --release ... failed (exit 101)"

    def test_timed_out(self) -> None:
        error = ProcessError(("gh",), -1, "", "Command timed out after 5s")
        assert error.timed_out
        assert not ProcessError(("gh",), -1, "", "No such file").timed_out


class TestRun:
    def test_success_returns_stdout(self, tmp_path: Path) -> None:
        result = run([PY, "-c", "print('hello')"], cwd=tmp_path)

        assert isinstance(result, Ok)
        assert "hello" in result.value

    def test_failure_captures_stderr(self, tmp_path: Path) -> None:
        result = run(
            [PY, "-c", "import sys; sys.stderr.write('bad tag'); sys.exit(3)"],
            cwd=tmp_path,
        )

        assert isinstance(result, Err)
        assert result.error.returncode == 3
        assert "bad tag" in result.error.stderr

    def test_command_not_found(self, tmp_path: Path) -> None:
        result = run(["nonexistent_command_12345"], cwd=tmp_path)

        assert isinstance(result, Err)
        assert result.error.returncode == -1
        assert result.error.stderr

    def test_uses_env(self, tmp_path: Path) -> None:
        result = run(
            [PY, "-c", "import os; print(os.environ['RELPUB_TEST'])"],
            cwd=tmp_path,
            env={"RELPUB_TEST": "value", "SYSTEMROOT": "C:\\Windows"},
        )

        assert isinstance(result, Ok)
        assert result.value.strip() == "value"

    def test_timeout(self, tmp_path: Path) -> None:
        result = run([PY, "-c", "import time; time.sleep(5)"], cwd=tmp_path, timeout=0.2)

        assert isinstance(result, Err)
        assert result.error.timed_out


class TestRunStreamed:
    def test_success(self, tmp_path: Path) -> None:
        assert run_streamed([PY, "-c", "pass"], cwd=tmp_path) == Ok(None)

    def test_failure_reports_returncode(self, tmp_path: Path) -> None:
        result = run_streamed([PY, "-c", "import sys; sys.exit(101)"], cwd=tmp_path)

        assert isinstance(result, Err)
        assert result.error.returncode == 101

    def test_timeout(self, tmp_path: Path) -> None:
        result = run_streamed([PY, "-c", "import time; time.sleep(5)"], cwd=tmp_path, timeout=0.2)

        assert isinstance(result, Err)
        assert result.error.timed_out
