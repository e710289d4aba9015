"""flutter-scaffold pipeline orchestrator.

Runs one generation from start to finish:

BOOTSTRAP  -- ``flutter create`` the project and check the directory exists.
STRUCTURE  -- folder layout, Dart stubs, fixed configuration files.
MANIFEST   -- merge the dependency set into ``pubspec.yaml``.
INSTALL    -- ``flutter pub get`` (failure is only a warning).
GIT        -- ``git init`` / ``add`` / ``commit`` (best effort).

Only the bootstrap stage can abort the run.  Nothing is rolled back on
abort; the partially created directory stays on disk for inspection.

Usage::

    flutter-scaffold --name demo_app --template bloc --with-tests
    python -m flutter_scaffold -n demo_app -t mvvm --no-firebase
"""

from __future__ import annotations

import argparse
import asyncio
import sys
import time
import traceback
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Awaitable, Callable

from pydantic import ValidationError
from rich.markup import escape
from rich.panel import Panel

from flutter_scaffold.config import ScaffoldConfig
from flutter_scaffold.scaffolder import ManifestError, ProjectConfig, ProjectGenerator
from flutter_scaffold.scaffolder.registry import available_templates, is_known_template
from flutter_scaffold.utils import (
    console,
    ensure_dir,
    format_duration,
    is_valid_package_name,
    print_error,
    print_stage_header,
    print_success,
    print_summary_table,
    print_warning,
    run_command,
)

CommandRunner = Callable[..., Awaitable[tuple[int, str, str]]]


# ---------------------------------------------------------------------------
# State
# ---------------------------------------------------------------------------


class PipelineStage(str, Enum):
    """Milestones of a run, in the order they are reached."""

    START = "start"
    BOOTSTRAPPED = "bootstrapped"
    STRUCTURE_CREATED = "structure_created"
    MANIFEST_MERGED = "manifest_merged"
    FINISHED = "finished"


class PipelineError(Exception):
    """Raised when a stage fails irrecoverably.

    ``stderr`` carries the collaborator's diagnostic output, shown verbatim
    to the user.
    """

    def __init__(self, stage: PipelineStage, message: str, stderr: str = "") -> None:
        self.stage = stage
        self.stderr = stderr
        super().__init__(f"[{stage.value}] {message}")


@dataclass
class PipelineResult:
    """Outcome of ``ScaffoldPipeline.run``."""

    project_name: str
    stage: PipelineStage = PipelineStage.START
    success: bool = False
    warnings: list[str] = field(default_factory=list)
    project_path: Path | None = None
    error: str | None = None
    duration: float = 0.0

    @property
    def exit_code(self) -> int:
        return 0 if self.success else 1


# ---------------------------------------------------------------------------
# Pipeline Orchestrator
# ---------------------------------------------------------------------------


class ScaffoldPipeline:
    """Drives a single scaffolding run.

    Attributes:
        config: Settings for this run; owned by the pipeline until it ends.
        runner: Coroutine used for every external command (``run_command``
            unless given).  It receives the argv list plus a ``cwd`` keyword
            and returns ``(returncode, stdout, stderr)``.
        result: Accumulated outcome, returned by :meth:`run`.
    """

    def __init__(self, config: ScaffoldConfig, runner: CommandRunner | None = None) -> None:
        self.config = config
        self.runner = runner or run_command
        self.result = PipelineResult(project_name=config.project_name)
        self.generator = ProjectGenerator(
            ProjectConfig(
                name=config.project_name,
                template=config.template_id,
                exclude_firebase=config.exclude_firebase,
                include_tests=config.include_tests,
                include_analytics=config.include_analytics,
                manifest_name=config.manifest_name,
                metadata_key=config.metadata_key,
            )
        )

    # ------------------------------------------------------------------
    # Run
    # ------------------------------------------------------------------

    async def run(self) -> PipelineResult:
        """Execute every stage and return the final result."""
        started = time.monotonic()
        self._print_banner()
        self._preflight()

        try:
            project_root = await self.bootstrap()
            await self.create_structure(project_root)
            await self.merge_manifest(project_root)
            await self.install_dependencies(project_root)
            await self.init_git(project_root)
            self._advance(PipelineStage.FINISHED)
            self.result.success = True

        except PipelineError as exc:
            self.result.error = str(exc)
            print_error(f"Scaffolding aborted: {escape(str(exc))}")
            if exc.stderr:
                console.print(escape(exc.stderr))

        except Exception as exc:
            self.result.error = traceback.format_exc()
            print_error(f"Scaffolding failed unexpectedly: {escape(str(exc))}")
            console.print(f"[dim]{escape(self.result.error)}[/dim]")

        self.result.duration = time.monotonic() - started
        self._print_final_summary()
        return self.result

    def _advance(self, stage: PipelineStage) -> None:
        self.result.stage = stage

    def _warn(self, message: str, detail: str = "") -> None:
        self.result.warnings.append(message)
        print_warning(escape(message))
        if detail:
            console.print(escape(detail))

    # ------------------------------------------------------------------
    # Pre-flight checks
    # ------------------------------------------------------------------

    def _preflight(self) -> None:
        """Warn about input that will be silently adjusted or rejected later."""
        if not is_known_template(self.config.template):
            self._warn(
                f"Unknown template '{self.config.template}' -- using "
                f"'{self.config.template_id.value}'. "
                f"Available: {', '.join(available_templates())}."
            )
        if not is_valid_package_name(self.config.project_name):
            self._warn(
                f"'{self.config.project_name}' is not a valid Dart package name "
                "(lowercase letters, digits and underscores); flutter create may reject it."
            )

    # ------------------------------------------------------------------
    # Stage 1: BOOTSTRAP
    # ------------------------------------------------------------------

    async def bootstrap(self) -> Path:
        """Create the project with ``flutter create`` and locate its root.

        Raises:
            PipelineError: If the tool exits non-zero or the expected project
                directory does not exist afterwards.
        """
        print_stage_header("Bootstrap")
        cfg = self.config
        output_dir = ensure_dir(cfg.output_dir)
        cmd = [
            cfg.commands.flutter,
            "create",
            "--org", cfg.organization,
            "--description", cfg.description,
            cfg.project_name,
        ]
        console.print(f"  Creating Flutter project [bold]{escape(cfg.project_name)}[/bold]...")
        returncode, stdout, stderr = await self.runner(cmd, cwd=output_dir)
        if returncode != 0:
            raise PipelineError(
                PipelineStage.START,
                f"flutter create exited with status {returncode}",
                stderr=stderr or stdout,
            )
        self._advance(PipelineStage.BOOTSTRAPPED)

        project_root = cfg.project_path.resolve()
        if not project_root.is_dir():
            raise PipelineError(
                PipelineStage.BOOTSTRAPPED,
                f"Project directory was not created: {project_root}",
            )
        self.result.project_path = project_root
        print_success(f"  Project created at {escape(str(project_root))}")
        return project_root

    # ------------------------------------------------------------------
    # Stage 2: STRUCTURE
    # ------------------------------------------------------------------

    async def create_structure(self, project_root: Path) -> None:
        """Lay down directories, stubs, and configuration files."""
        print_stage_header(f"Structure ({self.generator.spec.template_id.value})")
        structure = await self.generator.create_structure(project_root)
        console.print(f"  {len(structure.directories)} directories created")
        console.print(f"  {len(structure.files)} files written")
        self._advance(PipelineStage.STRUCTURE_CREATED)

    # ------------------------------------------------------------------
    # Stage 3: MANIFEST
    # ------------------------------------------------------------------

    async def merge_manifest(self, project_root: Path) -> None:
        """Merge the dependency set into ``pubspec.yaml``.

        An unreadable manifest is reported as a warning: the project tree is
        already usable and dependencies can be added by hand.
        """
        print_stage_header("Manifest")
        deps = self.generator.dependency_set()
        try:
            manifest_path = await self.generator.update_manifest(project_root)
        except ManifestError as exc:
            self._warn(f"Could not update {self.config.manifest_name}: {exc}")
        else:
            console.print(
                f"  {len(deps.dependencies)} dependencies, "
                f"{len(deps.dev_dependencies)} dev_dependencies -> {manifest_path.name}"
            )
        self._advance(PipelineStage.MANIFEST_MERGED)

    # ------------------------------------------------------------------
    # Stage 4: INSTALL
    # ------------------------------------------------------------------

    async def install_dependencies(self, project_root: Path) -> None:
        """Run ``flutter pub get``; a failure is only a warning."""
        print_stage_header("Install")
        console.print("  Installing dependencies...")
        returncode, stdout, stderr = await self.runner(
            [self.config.commands.flutter, "pub", "get"], cwd=project_root
        )
        if returncode != 0:
            self._warn(
                f"flutter pub get exited with status {returncode}.", stderr or stdout
            )
        else:
            print_success("  Dependencies installed")

    # ------------------------------------------------------------------
    # Stage 5: GIT
    # ------------------------------------------------------------------

    async def init_git(self, project_root: Path) -> None:
        """Initialise a repository and commit the generated tree, best effort."""
        print_stage_header("Git")
        git = self.config.commands.git
        commands = [
            [git, "init"],
            [git, "add", "."],
            [git, "commit", "-m", self.config.commands.commit_message],
        ]
        try:
            for cmd in commands:
                returncode, stdout, stderr = await self.runner(cmd, cwd=project_root)
                if returncode != 0:
                    self._warn(
                        f"Could not initialise the git repository: "
                        f"'{' '.join(cmd[1:])}' exited with status {returncode}.",
                        stderr or stdout,
                    )
                    return
        except Exception as exc:
            self._warn(f"Could not initialise the git repository: {exc}")
            return
        print_success("  Git repository initialised")

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    def _print_banner(self) -> None:
        cfg = self.config
        console.print(
            Panel(
                f"[bold bright_cyan]flutter-scaffold[/bold bright_cyan]\n"
                f"Project      : {escape(cfg.project_name)}\n"
                f"Template     : {escape(cfg.template)}\n"
                f"Organization : {escape(cfg.organization)}\n"
                f"Output       : {cfg.output_dir.resolve()}",
                title="[bold]Scaffold Start[/bold]",
                border_style="bright_cyan",
            )
        )

    def _print_final_summary(self) -> None:
        result = self.result
        print_summary_table(
            {
                "Project": result.project_name,
                "Template": self.generator.spec.template_id.value,
                "Stage reached": result.stage.value,
                "Warnings": str(len(result.warnings)),
                "Duration": format_duration(result.duration),
            },
            title="Scaffold Summary",
        )
        if not result.success:
            print_error("Scaffolding failed.")
            return

        if result.warnings:
            print_warning(f"Project {escape(result.project_name)} created with warnings.")
        else:
            print_success(f"Project {escape(result.project_name)} created successfully!")
        console.print("\nNext steps:")
        console.print(f"  1. cd {escape(result.project_name)}")
        console.print("  2. flutter run")
        console.print("  3. Edit lib/main.dart to customise your app")


# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------


class UsageError(Exception):
    """Raised instead of argparse's own exit on bad command-line input."""


class _ArgumentParser(argparse.ArgumentParser):
    def error(self, message: str) -> None:  # type: ignore[override]
        raise UsageError(message)


def build_parser() -> argparse.ArgumentParser:
    """Command-line parser; ``--help`` is handled by :func:`main`."""
    parser = _ArgumentParser(
        prog="flutter-scaffold",
        description="Create a Flutter project with an architecture template",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        add_help=False,
        epilog=(
            "Examples:\n"
            "  flutter-scaffold --name my_app\n"
            "  flutter-scaffold -n my_app -t bloc --with-tests\n"
            "  flutter-scaffold -n my_app -t mvvm --no-firebase --organization com.acme\n"
        ),
    )
    parser.add_argument("--name", "-n", help="Project name (required)")
    parser.add_argument(
        "--template", "-t",
        default="default",
        help=f"Architecture template: {', '.join(available_templates())} (default: default)",
    )
    parser.add_argument(
        "--no-firebase", action="store_true", help="Leave Firebase out of the dependencies"
    )
    parser.add_argument(
        "--with-tests", action="store_true", help="Add unit test dev_dependencies"
    )
    parser.add_argument(
        "--with-analytics", action="store_true", help="Add analytics dependencies"
    )
    parser.add_argument("--description", default=None, help="Project description")
    parser.add_argument(
        "--organization", default=None, help="Organization id (default: com.example)"
    )
    parser.add_argument(
        "--output", "-o", default=None, help="Parent directory for the project (default: .)"
    )
    parser.add_argument("--help", "-h", action="store_true", help="Show this help")
    return parser


def _print_usage(parser: argparse.ArgumentParser) -> None:
    console.print(parser.format_help(), markup=False, highlight=False)


def main(argv: list[str] | None = None) -> int:
    """CLI entry point.  Returns the process exit code."""
    parser = build_parser()
    try:
        args = parser.parse_args(argv)
    except UsageError as exc:
        print_error(f"Error: {escape(str(exc))}")
        _print_usage(parser)
        return 1

    if args.help:
        _print_usage(parser)
        return 0

    if not args.name or not args.name.strip():
        print_error("Error: a project name is required (--name).")
        _print_usage(parser)
        return 1

    try:
        config = ScaffoldConfig.from_env(
            project_name=args.name,
            template=args.template,
            exclude_firebase=args.no_firebase,
            include_tests=args.with_tests,
            include_analytics=args.with_analytics,
            description=args.description,
            organization=args.organization,
            output_dir=Path(args.output) if args.output else None,
        )
    except ValidationError as exc:
        print_error(f"Error: {escape(str(exc))}")
        _print_usage(parser)
        return 1

    result = asyncio.run(ScaffoldPipeline(config).run())
    return result.exit_code


def cli() -> None:
    """Console-script wrapper around :func:`main`."""
    sys.exit(main())


if __name__ == "__main__":
    cli()
