"""Shared pytest fixtures for the flutter-scaffold test suite.

Provides reusable fixtures for:
- A realistic ``flutter create`` pubspec
- Mock subprocess helpers
- A fake command runner standing in for the flutter and git executables
"""

from __future__ import annotations

import textwrap
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest


# ---------------------------------------------------------------------------
# Sample manifests
# ---------------------------------------------------------------------------

SAMPLE_PUBSPEC = textwrap.dedent("""\
    name: demo_app
    description: "A new Flutter project."
    # The following line prevents the package from being accidentally published to
    # pub.dev using `flutter pub publish`. This is preferred for private packages.
    publish_to: 'none' # Remove this line if you wish to publish to pub.dev

    version: 1.0.0+1

    environment:
      sdk: ^3.5.0

    # Dependencies specify other packages that your package needs in order to work.
    dependencies:
      flutter:
        sdk: flutter

      # The following adds the Cupertino Icons font to your application.
      cupertino_icons: ^1.0.8

    dev_dependencies:
      flutter_test:
        sdk: flutter

      flutter_lints: ^4.0.0

    # The following section is specific to Flutter packages.
    flutter:

      # The following line ensures that the Material Icons font is
      # included with your application.
      uses-material-design: true
""")


@pytest.fixture
def sample_pubspec() -> str:
    """A pubspec as written by ``flutter create``, comments included."""
    return SAMPLE_PUBSPEC


# ---------------------------------------------------------------------------
# Mock subprocess
# ---------------------------------------------------------------------------

@pytest.fixture
def mock_subprocess():
    """Mock asyncio subprocess for testing command execution.

    Returns a factory that creates mock subprocess instances with configurable
    stdout, stderr, and return codes.

    Usage:
        def test_command(mock_subprocess):
            proc = mock_subprocess(stdout="output", returncode=0)
            with patch("asyncio.create_subprocess_exec", return_value=proc):
                ...
    """
    def factory(
        stdout: str = "",
        stderr: str = "",
        returncode: int = 0,
    ) -> AsyncMock:
        mock_proc = AsyncMock()
        mock_proc.communicate = AsyncMock(
            return_value=(stdout.encode("utf-8"), stderr.encode("utf-8"))
        )
        mock_proc.returncode = returncode
        mock_proc.pid = 99999
        mock_proc.kill = MagicMock()
        mock_proc.wait = AsyncMock(return_value=returncode)
        return mock_proc

    return factory


# ---------------------------------------------------------------------------
# Fake command runner
# ---------------------------------------------------------------------------

class FakeRunner:
    """Records commands and imitates ``flutter create`` on disk.

    ``results`` maps a command prefix (``("flutter", "pub", "get")``) to the
    ``(returncode, stdout, stderr)`` it should return; anything else succeeds.
    When ``flutter create`` succeeds the project directory is created with
    ``manifest`` as its ``pubspec.yaml`` (``None`` skips the directory).
    """

    def __init__(self, manifest: str | None = SAMPLE_PUBSPEC) -> None:
        self.manifest = manifest
        self.calls: list[tuple[list[str], Path | None]] = []
        self.results: dict[tuple[str, ...], tuple[int, str, str]] = {}

    async def __call__(
        self, cmd: list[str], cwd: Any = None, **_: Any
    ) -> tuple[int, str, str]:
        cwd_path = Path(cwd) if cwd is not None else None
        self.calls.append((list(cmd), cwd_path))

        result = (0, "", "")
        for prefix, outcome in self.results.items():
            if tuple(cmd[: len(prefix)]) == prefix:
                result = outcome
                break

        if cmd[1:2] == ["create"] and result[0] == 0 and self.manifest is not None:
            project_dir = (cwd_path or Path.cwd()) / cmd[-1]
            project_dir.mkdir(parents=True, exist_ok=True)
            (project_dir / "pubspec.yaml").write_text(self.manifest, encoding="utf-8")
        return result

    @property
    def commands(self) -> list[list[str]]:
        return [cmd for cmd, _ in self.calls]


@pytest.fixture
def fake_runner() -> FakeRunner:
    """A ``FakeRunner`` seeded with the sample pubspec."""
    return FakeRunner()
