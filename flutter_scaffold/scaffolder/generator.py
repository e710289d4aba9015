"""Project population for a freshly bootstrapped Flutter app.

Takes a ``ProjectConfig`` and fills an existing ``flutter create`` output
directory with the template's folder layout, Dart source stubs, fixed
configuration files, and a merged ``pubspec.yaml``.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from pathlib import Path

from pydantic import BaseModel, Field, field_validator

from flutter_scaffold.utils import write_text

from .dependencies import DependencySet, build_dependency_set
from .manifest import METADATA_KEY, merge_manifest_file
from .registry import (
    BASE_DIRECTORIES,
    StubFile,
    TemplateId,
    TemplateSpec,
    common_stubs,
    config_file_stubs,
    merge_directories,
    resolve,
)

PLACEHOLDER_NAME = ".gitkeep"


# ---------------------------------------------------------------------------
# Configuration model
# ---------------------------------------------------------------------------


class ProjectConfig(BaseModel):
    """Pydantic model describing the project to populate."""

    name: str = Field(..., description="Project name, as passed to flutter create")
    template: TemplateId = Field(default=TemplateId.DEFAULT)
    exclude_firebase: bool = Field(default=False, description="Leave out Firebase SDKs")
    include_tests: bool = Field(default=False, description="Add test dev_dependencies")
    include_analytics: bool = Field(default=False, description="Add firebase_analytics")
    manifest_name: str = Field(default="pubspec.yaml")
    metadata_key: str = Field(default=METADATA_KEY)

    @field_validator("template", mode="before")
    @classmethod
    def _parse_template(cls, value: object) -> TemplateId:
        return TemplateId.parse(value if isinstance(value, (str, TemplateId)) else None)


@dataclass
class StructureResult:
    """What ``create_structure`` put on disk, relative to the project root."""

    directories: list[str] = field(default_factory=list)
    files: list[str] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Main generator
# ---------------------------------------------------------------------------


class ProjectGenerator:
    """Populates a bootstrapped Flutter project.

    Given a ``ProjectConfig``, writes into an existing project root:
    - base and template directories, each holding a ``.gitkeep``
    - shared constants, environment config, connectivity helper and README
    - the template's ``lib/main.dart`` and supporting stubs
    - ``.gitignore``, VS Code settings, and ``analysis_options.yaml``
    - the merged dependency set in ``pubspec.yaml``
    """

    def __init__(self, config: ProjectConfig) -> None:
        self.config = config
        self.spec: TemplateSpec = resolve(config.template)

    # -- Public API --------------------------------------------------------

    async def create_structure(self, project_root: str | Path) -> StructureResult:
        """Create directories and write every stub and configuration file."""
        root = Path(project_root)
        result = StructureResult()
        result.directories = await self._create_directory_structure(root)
        result.files = await self._write_stubs(root, self.stub_files())
        return result

    async def update_manifest(self, project_root: str | Path) -> Path:
        """Merge this project's dependency set into its manifest."""
        manifest_path = Path(project_root) / self.config.manifest_name
        return await asyncio.to_thread(
            merge_manifest_file,
            manifest_path,
            self.dependency_set(),
            self.spec.template_id,
            self.config.metadata_key,
        )

    def directories(self) -> list[str]:
        """Base plus template directories, duplicates collapsed."""
        return merge_directories(BASE_DIRECTORIES, self.spec.directories)

    def stub_files(self) -> list[StubFile]:
        """Every file this template writes, in write order."""
        name = self.config.name
        return [
            *(generate(name) for generate in common_stubs(self.spec.template_id).values()),
            *self.spec.render_stubs(name),
            *(generate(name) for generate in config_file_stubs().values()),
        ]

    def dependency_set(self) -> DependencySet:
        return build_dependency_set(
            self.spec.template_id,
            exclude_firebase=self.config.exclude_firebase,
            include_tests=self.config.include_tests,
            include_analytics=self.config.include_analytics,
        )

    # -- Directory structure -----------------------------------------------

    async def _create_directory_structure(self, root: Path) -> list[str]:
        """Create the template directory tree with placeholder files."""
        dirs = self.directories()

        def _mkdir(d: str) -> None:
            p = root / d
            p.mkdir(parents=True, exist_ok=True)
            (p / PLACEHOLDER_NAME).write_text("", encoding="utf-8")

        for d in dirs:
            await asyncio.to_thread(_mkdir, d)
        return dirs

    # -- Files -------------------------------------------------------------

    async def _write_stubs(self, root: Path, stubs: list[StubFile]) -> list[str]:
        """Write stubs in order; a later stub for the same path wins."""
        for stub in stubs:
            await asyncio.to_thread(write_text, root / stub.path, stub.content)
        return [stub.path for stub in stubs]
