"""Unit tests for utility functions (flutter_scaffold.utils).

Tests cover:
- run_command (success, failure, missing binary, working directory)
- is_valid_package_name
- ensure_dir / write_text
- format_duration
- Rich output helpers
"""

from __future__ import annotations

import sys
from pathlib import Path
from unittest.mock import patch

import pytest

from flutter_scaffold.utils import (
    COMMAND_NOT_FOUND,
    ensure_dir,
    format_duration,
    is_valid_package_name,
    print_error,
    print_stage_header,
    print_success,
    print_summary_table,
    print_warning,
    run_command,
    write_text,
)


# ---------------------------------------------------------------------------
# run_command
# ---------------------------------------------------------------------------


class TestRunCommand:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_successful_command(self):
        returncode, stdout, stderr = await run_command(
            [sys.executable, "-c", "print('hello')"]
        )
        assert returncode == 0
        assert stdout == "hello"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_failed_command(self):
        returncode, stdout, stderr = await run_command(
            [sys.executable, "-c", "import sys; sys.stderr.write('boom'); sys.exit(3)"]
        )
        assert returncode == 3
        assert stderr == "boom"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_command_with_cwd(self, tmp_path: Path):
        returncode, stdout, _ = await run_command(
            [sys.executable, "-c", "import os; print(os.getcwd())"], cwd=tmp_path
        )
        assert returncode == 0
        assert Path(stdout).resolve() == tmp_path.resolve()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_missing_binary(self):
        returncode, stdout, stderr = await run_command(["definitely-not-a-flutter-binary"])
        assert returncode == COMMAND_NOT_FOUND
        assert stdout == ""
        assert "definitely-not-a-flutter-binary" in stderr

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_mocked_process_output(self, mock_subprocess):
        proc = mock_subprocess(stdout="  Resolving dependencies...\n", returncode=0)
        with patch("asyncio.create_subprocess_exec", return_value=proc) as create:
            returncode, stdout, _ = await run_command(["flutter", "pub", "get"], cwd="/tmp/app")

        assert returncode == 0
        assert stdout == "Resolving dependencies..."
        assert create.call_args.kwargs["cwd"] == "/tmp/app"


# ---------------------------------------------------------------------------
# Name and filesystem helpers
# ---------------------------------------------------------------------------


class TestPackageName:
    @pytest.mark.unit
    @pytest.mark.parametrize("name", ["demo_app", "app2", "a"])
    def test_valid(self, name):
        assert is_valid_package_name(name)

    @pytest.mark.unit
    @pytest.mark.parametrize("name", ["DemoApp", "demo-app", "2app", "", "_app"])
    def test_invalid(self, name):
        assert not is_valid_package_name(name)


class TestFilesystem:
    @pytest.mark.unit
    def test_ensure_dir_creates_parents(self, tmp_path: Path):
        target = tmp_path / "a" / "b"
        result = ensure_dir(target)
        assert target.is_dir()
        assert result == target.resolve()

    @pytest.mark.unit
    def test_ensure_dir_existing(self, tmp_path: Path):
        assert ensure_dir(tmp_path) == tmp_path.resolve()

    @pytest.mark.unit
    def test_write_text_overwrites(self, tmp_path: Path):
        target = tmp_path / "lib" / "main.dart"
        write_text(target, "first")
        write_text(target, "second")
        assert target.read_text(encoding="utf-8") == "second"


# ---------------------------------------------------------------------------
# format_duration
# ---------------------------------------------------------------------------


class TestFormatDuration:
    @pytest.mark.unit
    @pytest.mark.parametrize(
        "seconds, expected",
        [(3.7, "3.7s"), (0, "0.0s"), (65.2, "1m 5s"), (-1, "0.0s")],
    )
    def test_format(self, seconds, expected):
        assert format_duration(seconds) == expected


# ---------------------------------------------------------------------------
# Rich output helpers
# ---------------------------------------------------------------------------


class TestOutputHelpers:
    @pytest.mark.unit
    def test_helpers_print(self, capsys):
        print_stage_header("Bootstrap")
        print_success("created")
        print_warning("careful")
        print_error("failed")
        print_summary_table({"Project": "demo_app"}, title="Scaffold Summary")

        out = capsys.readouterr().out
        for text in ["Bootstrap", "created", "careful", "failed", "demo_app", "Scaffold Summary"]:
            assert text in out
