"""Unit tests for the project generator (flutter_scaffold.scaffolder.generator).

Tests cover:
- ProjectConfig template parsing
- Directory layout with placeholders
- Stub and configuration file writing (overwrite semantics)
- Manifest update through the generator
"""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from flutter_scaffold.scaffolder.generator import (
    PLACEHOLDER_NAME,
    ProjectConfig,
    ProjectGenerator,
)
from flutter_scaffold.scaffolder.registry import (
    BASE_DIRECTORIES,
    CONFIG_FILES,
    TemplateId,
    common_stubs,
)

pytestmark = pytest.mark.unit


# ---------------------------------------------------------------------------
# ProjectConfig
# ---------------------------------------------------------------------------


class TestProjectConfig:
    def test_template_parsed_case_insensitively(self):
        assert ProjectConfig(name="demo_app", template="MVVM").template is TemplateId.MVVM

    def test_unknown_template_falls_back(self):
        assert ProjectConfig(name="demo_app", template="redux").template is TemplateId.DEFAULT

    def test_defaults(self):
        config = ProjectConfig(name="demo_app")
        assert config.template is TemplateId.DEFAULT
        assert config.manifest_name == "pubspec.yaml"
        assert config.metadata_key == "flutter_cli"


# ---------------------------------------------------------------------------
# Structure
# ---------------------------------------------------------------------------


class TestCreateStructure:
    @pytest.mark.asyncio
    async def test_directories_have_placeholders(self, tmp_path: Path):
        generator = ProjectGenerator(ProjectConfig(name="demo_app", template="bloc"))
        result = await generator.create_structure(tmp_path)

        for directory in [*BASE_DIRECTORIES, "lib/bloc", "lib/repositories"]:
            assert (tmp_path / directory).is_dir()
            assert (tmp_path / directory / PLACEHOLDER_NAME).read_text() == ""
        assert result.directories == generator.directories()

    @pytest.mark.asyncio
    async def test_files_written(self, tmp_path: Path):
        generator = ProjectGenerator(ProjectConfig(name="demo_app", template="mvvm"))
        result = await generator.create_structure(tmp_path)

        for relative in [
            "lib/main.dart",
            "lib/services/auth_service.dart",
            "lib/viewmodels/home_viewmodel.dart",
            "lib/constants/app_constants.dart",
            "lib/utility/connectivity_utils.dart",
            "README.md",
            ".gitignore",
            ".vscode/settings.json",
            ".vscode/launch.json",
            "analysis_options.yaml",
        ]:
            assert (tmp_path / relative).is_file(), relative
            assert relative in result.files

    @pytest.mark.asyncio
    async def test_existing_files_overwritten(self, tmp_path: Path):
        (tmp_path / "lib").mkdir()
        (tmp_path / "lib" / "main.dart").write_text("// flutter create counter app\n")

        generator = ProjectGenerator(ProjectConfig(name="demo_app", template="bloc"))
        await generator.create_structure(tmp_path)

        main = (tmp_path / "lib" / "main.dart").read_text(encoding="utf-8")
        assert "CounterBloc" in main
        assert "flutter create counter app" not in main

    @pytest.mark.asyncio
    async def test_rerun_is_harmless(self, tmp_path: Path):
        generator = ProjectGenerator(ProjectConfig(name="demo_app"))
        await generator.create_structure(tmp_path)
        first = (tmp_path / "lib" / "main.dart").read_text(encoding="utf-8")

        await generator.create_structure(tmp_path)
        assert (tmp_path / "lib" / "main.dart").read_text(encoding="utf-8") == first

    def test_default_template_has_no_bloc_files(self):
        generator = ProjectGenerator(ProjectConfig(name="demo_app"))
        paths = [stub.path for stub in generator.stub_files()]

        assert "lib/main.dart" in paths
        assert not any(p.startswith("lib/bloc/") for p in paths)
        assert "lib/api" in generator.directories()

    def test_stub_write_order(self):
        generator = ProjectGenerator(ProjectConfig(name="demo_app", template="bloc"))
        common = len(common_stubs(TemplateId.BLOC))
        template = generator.spec.render_stubs("demo_app")

        stubs = generator.stub_files()

        assert stubs[common:common + len(template)] == template
        assert [s.path for s in stubs[-len(CONFIG_FILES):]] == list(CONFIG_FILES.values())


# ---------------------------------------------------------------------------
# Manifest
# ---------------------------------------------------------------------------


class TestUpdateManifest:
    @pytest.mark.asyncio
    async def test_merges_dependency_set(self, tmp_path: Path, sample_pubspec: str):
        (tmp_path / "pubspec.yaml").write_text(sample_pubspec, encoding="utf-8")
        generator = ProjectGenerator(
            ProjectConfig(name="demo_app", template="bloc", include_tests=True)
        )

        path = await generator.update_manifest(tmp_path)

        data = yaml.safe_load(path.read_text(encoding="utf-8"))
        assert data["dependencies"]["flutter_bloc"] == "^8.1.4"
        assert data["dev_dependencies"]["mockito"] == "^5.4.4"
        assert data["flutter_cli"] == {"template": "bloc"}

    @pytest.mark.asyncio
    async def test_structure_then_manifest(self, tmp_path: Path, sample_pubspec: str):
        (tmp_path / "pubspec.yaml").write_text(sample_pubspec, encoding="utf-8")
        generator = ProjectGenerator(ProjectConfig(name="demo_app", exclude_firebase=True))

        await generator.create_structure(tmp_path)
        await generator.update_manifest(tmp_path)

        data = yaml.safe_load((tmp_path / "pubspec.yaml").read_text(encoding="utf-8"))
        assert "firebase_core" not in data["dependencies"]
        assert (tmp_path / "lib" / "private" / PLACEHOLDER_NAME).exists()
