"""flutter-scaffold configuration.

Centralised, typed configuration for a single generation run. All settings
use Pydantic v2 models so they are validated at construction time and can be
serialised to/from JSON or environment variables without boiler-plate.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator

from flutter_scaffold.scaffolder.registry import TemplateId

DEFAULT_DESCRIPTION = "A new Flutter project"
DEFAULT_ORGANIZATION = "com.example"


class CommandConfig(BaseModel):
    """Executables and arguments for the external collaborators."""

    flutter: str = Field(default="flutter", description="Flutter SDK executable")
    git: str = Field(default="git", description="Git executable")
    commit_message: str = Field(default="Initial commit")


class ScaffoldConfig(BaseModel):
    """Global configuration for one scaffolding run.

    Instances are created once by the CLI entry point (or by tests) and then
    passed to ``ScaffoldPipeline``, which owns them for the rest of the run.
    """

    project_name: str = Field(..., description="Project and directory name")
    template: str = Field(
        default=TemplateId.DEFAULT.value,
        description="Requested architecture template, as typed by the user",
    )
    exclude_firebase: bool = Field(default=False)
    include_tests: bool = Field(default=False)
    include_analytics: bool = Field(default=False)
    description: str = Field(default=DEFAULT_DESCRIPTION)
    organization: str = Field(default=DEFAULT_ORGANIZATION)
    output_dir: Path = Field(default=Path("."))
    manifest_name: str = Field(default="pubspec.yaml")
    metadata_key: str = Field(default="flutter_cli")
    commands: CommandConfig = Field(default_factory=CommandConfig)

    @field_validator("project_name")
    @classmethod
    def _name_not_blank(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("project name must not be empty")
        return value.strip()

    # ------------------------------------------------------------------
    # Derived values (read-only properties)
    # ------------------------------------------------------------------

    @property
    def template_id(self) -> TemplateId:
        """The registry variant the requested template resolves to."""
        return TemplateId.parse(self.template)

    @property
    def project_path(self) -> Path:
        """Directory the bootstrap tool is expected to create."""
        return self.output_dir / self.project_name

    # ------------------------------------------------------------------
    # Construction helpers
    # ------------------------------------------------------------------

    @classmethod
    def from_env(cls, project_name: str, **overrides: Any) -> "ScaffoldConfig":
        """Build a ``ScaffoldConfig`` with defaults taken from the environment.

        Recognised variables (all optional):
            FLUTTER_SCAFFOLD_ORG, FLUTTER_SCAFFOLD_DESCRIPTION,
            FLUTTER_SCAFFOLD_OUTPUT_DIR, FLUTTER_SCAFFOLD_FLUTTER_BIN,
            FLUTTER_SCAFFOLD_GIT_BIN.

        Keyword *overrides* win over the environment; ``None`` values are
        ignored so unset CLI options fall through to the environment.
        """
        command_kwargs: dict[str, Any] = {}
        if os.environ.get("FLUTTER_SCAFFOLD_FLUTTER_BIN"):
            command_kwargs["flutter"] = os.environ["FLUTTER_SCAFFOLD_FLUTTER_BIN"]
        if os.environ.get("FLUTTER_SCAFFOLD_GIT_BIN"):
            command_kwargs["git"] = os.environ["FLUTTER_SCAFFOLD_GIT_BIN"]

        kwargs: dict[str, Any] = {
            "project_name": project_name,
            "organization": os.environ.get("FLUTTER_SCAFFOLD_ORG", DEFAULT_ORGANIZATION),
            "description": os.environ.get(
                "FLUTTER_SCAFFOLD_DESCRIPTION", DEFAULT_DESCRIPTION
            ),
            "output_dir": Path(os.environ.get("FLUTTER_SCAFFOLD_OUTPUT_DIR", ".")),
            "commands": CommandConfig(**command_kwargs),
        }
        kwargs.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**kwargs)
