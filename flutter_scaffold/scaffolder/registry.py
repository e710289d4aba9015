"""Architecture template registry.

Maps a ``TemplateId`` to the bundle of extra directories and stub
generators that make up that architecture.  Lookups are pure: nothing here
touches the filesystem until a stub generator is actually called, and every
generator is deterministic for a given project name.

New templates are added with :func:`register_template`; the generator and
pipeline only ever go through :func:`resolve`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from functools import lru_cache
from types import MappingProxyType
from typing import Callable, Mapping

from pydantic import BaseModel, ConfigDict

from .templates import TemplateRenderer


class TemplateId(str, Enum):
    """Known architecture templates."""

    DEFAULT = "default"
    MVVM = "mvvm"
    BLOC = "bloc"

    @classmethod
    def parse(cls, value: "str | TemplateId | None") -> "TemplateId":
        """Resolve user input to a template, falling back to ``DEFAULT``.

        Comparison is case-insensitive and ignores surrounding whitespace.
        Unknown values never raise.
        """
        if isinstance(value, TemplateId):
            return value
        normalized = (value or "").strip().lower()
        for member in cls:
            if member.value == normalized:
                return member
        return cls.DEFAULT


class StubFile(BaseModel):
    """A rendered source file: relative path plus literal content."""

    model_config = ConfigDict(frozen=True)

    path: str
    content: str


StubGenerator = Callable[[str], StubFile]


@dataclass(frozen=True)
class TemplateSpec:
    """Capability bundle for one architecture template."""

    template_id: TemplateId
    directories: tuple[str, ...]
    stubs: Mapping[str, StubGenerator] = field(default_factory=dict)

    def render_stubs(self, project_name: str) -> list[StubFile]:
        """Run every stub generator for *project_name*."""
        return [generate(project_name) for generate in self.stubs.values()]


# ---------------------------------------------------------------------------
# Stub generators
# ---------------------------------------------------------------------------


@lru_cache(maxsize=1)
def _renderer() -> TemplateRenderer:
    return TemplateRenderer()


def stub_context(project_name: str, template_id: TemplateId) -> dict[str, str]:
    """Template variables shared by every stub."""
    words = [w for w in project_name.replace("-", "_").split("_") if w]
    app_title = " ".join(w[:1].upper() + w[1:] for w in words) or project_name
    return {
        "project_name": project_name,
        "app_title": app_title,
        "template": template_id.value,
    }


def _stub(
    template_path: str, output_path: str, template_id: TemplateId = TemplateId.DEFAULT
) -> StubGenerator:
    """Build a generator rendering *template_path* into a ``StubFile``."""

    def generate(project_name: str) -> StubFile:
        content = _renderer().render(
            template_path, stub_context(project_name, template_id)
        )
        return StubFile(path=output_path, content=content)

    generate.__name__ = f"generate_{output_path.rsplit('/', 1)[-1].split('.')[0]}"
    return generate


BASE_DIRECTORIES: tuple[str, ...] = (
    "assets/fonts",
    "assets/images",
    "assets/translations",
    "lib/constants",
    "lib/utility",
    "lib/widgets/common",
)

# Written for every template.  The README needs the template name, so it is
# built per template by ``common_stubs``.
_COMMON_STUB_PATHS: dict[str, tuple[str, str]] = {
    "app_constants": ("common/app_constants.dart.j2", "lib/constants/app_constants.dart"),
    "route_constants": ("common/route_constants.dart.j2", "lib/constants/route_constants.dart"),
    "error_constants": ("common/error_constants.dart.j2", "lib/constants/error_constants.dart"),
    "environment_config": ("common/config.dart.j2", "lib/constants/config.dart"),
    "connectivity_utils": (
        "common/connectivity_utils.dart.j2",
        "lib/utility/connectivity_utils.dart",
    ),
    "readme": ("common/README.md.j2", "README.md"),
}

# Fixed configuration files, identical for every template.
CONFIG_FILES: dict[str, str] = {
    "config/gitignore.j2": ".gitignore",
    "config/vscode_settings.json.j2": ".vscode/settings.json",
    "config/vscode_launch.json.j2": ".vscode/launch.json",
    "config/analysis_options.yaml.j2": "analysis_options.yaml",
}


def common_stubs(template_id: TemplateId) -> dict[str, StubGenerator]:
    """Template-agnostic stubs (constants, environment config, README)."""
    return {
        name: _stub(src, dest, template_id)
        for name, (src, dest) in _COMMON_STUB_PATHS.items()
    }


def config_file_stubs() -> dict[str, StubGenerator]:
    """Generators for the fixed configuration files."""
    return {dest: _stub(src, dest) for src, dest in CONFIG_FILES.items()}


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

_TEMPLATES: dict[TemplateId, TemplateSpec] = {}


def register_template(spec: TemplateSpec) -> None:
    """Add or replace a template in the registry."""
    _TEMPLATES[spec.template_id] = spec


def _spec(
    template_id: TemplateId, directories: tuple[str, ...], stubs: dict[str, tuple[str, str]]
) -> TemplateSpec:
    return TemplateSpec(
        template_id=template_id,
        directories=directories,
        stubs=MappingProxyType(
            {name: _stub(src, dest, template_id) for name, (src, dest) in stubs.items()}
        ),
    )


register_template(
    _spec(
        TemplateId.DEFAULT,
        ("lib/api", "lib/models", "lib/screens", "lib/services", "lib/private"),
        {"main": ("default/main.dart.j2", "lib/main.dart")},
    )
)

register_template(
    _spec(
        TemplateId.MVVM,
        ("lib/models", "lib/views", "lib/viewmodels", "lib/services", "lib/repositories"),
        {
            "auth_service": ("mvvm/auth_service.dart.j2", "lib/services/auth_service.dart"),
            "home_viewmodel": (
                "mvvm/home_viewmodel.dart.j2",
                "lib/viewmodels/home_viewmodel.dart",
            ),
            "main": ("mvvm/main.dart.j2", "lib/main.dart"),
        },
    )
)

register_template(
    _spec(
        TemplateId.BLOC,
        ("lib/bloc", "lib/models", "lib/repositories", "lib/screens", "lib/services"),
        {
            "counter_event": ("bloc/counter_event.dart.j2", "lib/bloc/counter_event.dart"),
            "counter_state": ("bloc/counter_state.dart.j2", "lib/bloc/counter_state.dart"),
            "counter_bloc": ("bloc/counter_bloc.dart.j2", "lib/bloc/counter_bloc.dart"),
            "main": ("bloc/main.dart.j2", "lib/main.dart"),
        },
    )
)


def resolve(template: "str | TemplateId | None") -> TemplateSpec:
    """Look up a template, falling back to the default variant.

    Unknown identifiers resolve to ``TemplateId.DEFAULT`` without error.
    """
    template_id = TemplateId.parse(template)
    return _TEMPLATES.get(template_id, _TEMPLATES[TemplateId.DEFAULT])


def is_known_template(template: "str | None") -> bool:
    """Return ``True`` if *template* names a registered template exactly."""
    normalized = (template or "").strip().lower()
    return any(t.value == normalized for t in _TEMPLATES)


def available_templates() -> list[str]:
    """Identifiers of every registered template, in registration order."""
    return [t.value for t in _TEMPLATES]


def merge_directories(*groups: tuple[str, ...] | list[str]) -> list[str]:
    """Concatenate directory groups, dropping duplicates but keeping order."""
    seen: dict[str, None] = {}
    for group in groups:
        for directory in group:
            seen.setdefault(directory.strip("/"), None)
    return list(seen)
