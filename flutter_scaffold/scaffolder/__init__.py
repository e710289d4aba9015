"""flutter-scaffold scaffolder -- populates bootstrapped Flutter projects.

This package resolves an architecture template, renders its Dart stubs,
computes the dependency set for the chosen flags, and merges it into the
project's ``pubspec.yaml`` without disturbing the rest of the file.

Quick usage::

    from flutter_scaffold.scaffolder import ProjectConfig, ProjectGenerator

    config = ProjectConfig(name="demo_app", template="bloc", include_tests=True)
    generator = ProjectGenerator(config)
    await generator.create_structure("/path/to/demo_app")
    await generator.update_manifest("/path/to/demo_app")
"""

from flutter_scaffold.scaffolder.dependencies import DependencySet, build_dependency_set
from flutter_scaffold.scaffolder.generator import ProjectConfig, ProjectGenerator
from flutter_scaffold.scaffolder.manifest import (
    ManifestConflictError,
    ManifestEditor,
    ManifestError,
    merge_manifest,
)
from flutter_scaffold.scaffolder.registry import TemplateId, TemplateSpec, resolve
from flutter_scaffold.scaffolder.templates import TemplateRenderer

__all__ = [
    "DependencySet",
    "ManifestConflictError",
    "ManifestEditor",
    "ManifestError",
    "ProjectConfig",
    "ProjectGenerator",
    "TemplateId",
    "TemplateRenderer",
    "TemplateSpec",
    "build_dependency_set",
    "merge_manifest",
    "resolve",
]
