"""Dependency set computation for generated pubspecs.

``build_dependency_set`` is a pure function: it combines fixed dependency
groups according to the template and feature flags and returns fresh
mappings on every call.
"""

from __future__ import annotations

import copy
from typing import Any, Union

from pydantic import BaseModel, Field

from .registry import TemplateId

# A version constraint (``"^1.2.0"``) or an SDK/path/git source mapping
# (``{"sdk": "flutter"}``).
DependencyValue = Union[str, dict[str, Any]]


# ---------------------------------------------------------------------------
# Dependency groups
# ---------------------------------------------------------------------------

BASE_DEPENDENCIES: dict[str, DependencyValue] = {
    "cupertino_icons": "^1.0.8",
    "hexcolor": "^3.0.1",
    "animated_splash_screen": "^1.3.0",
    "flutter_easyloading": "^3.0.5",
    "http": "^1.2.1",
    "shared_preferences": "^2.2.3",
    "flutter_speed_dial": "^7.0.0",
    "internet_connection_checker": "^1.0.0+1",
    "url_launcher": "^6.2.6",
    "openid_client": "^0.4.8",
    "intl": "^0.19.0",
    "device_info_plus": "^10.1.2",
    "flutter_launcher_icons": "^0.14.1",
    "path_provider": "^2.1.4",
    "flutter_localization": "^0.2.2",
    "open_filex": "^4.6.0",
    "flutter_local_notifications": "^18.0.1",
    "permission_handler": "^11.3.1",
}

FIREBASE_DEPENDENCIES: dict[str, DependencyValue] = {
    "firebase_messaging": "^15.1.0",
    "firebase_core": "^3.1.0",
    "cloud_firestore": "^4.15.5",
}

TEMPLATE_DEPENDENCIES: dict[TemplateId, dict[str, DependencyValue]] = {
    TemplateId.DEFAULT: {},
    TemplateId.MVVM: {
        "provider": "^6.1.1",
    },
    TemplateId.BLOC: {
        "flutter_bloc": "^8.1.4",
        "equatable": "^2.0.5",
    },
}

ANALYTICS_DEPENDENCIES: dict[str, DependencyValue] = {
    "firebase_analytics": "^10.8.5",
}

TEST_DEV_DEPENDENCIES: dict[str, DependencyValue] = {
    "flutter_test": {"sdk": "flutter"},
    "mockito": "^5.4.4",
    "build_runner": "^2.4.8",
}


# ---------------------------------------------------------------------------
# DependencySet
# ---------------------------------------------------------------------------


class DependencySet(BaseModel):
    """Runtime and development dependencies to merge into a pubspec."""

    dependencies: dict[str, DependencyValue] = Field(default_factory=dict)
    dev_dependencies: dict[str, DependencyValue] = Field(default_factory=dict)


def _union(target: dict[str, DependencyValue], group: dict[str, DependencyValue]) -> None:
    """Merge *group* into *target*; later groups overwrite matching keys."""
    for name, value in group.items():
        target[name] = copy.deepcopy(value)


def build_dependency_set(
    template: "str | TemplateId | None",
    exclude_firebase: bool = False,
    include_tests: bool = False,
    include_analytics: bool = False,
) -> DependencySet:
    """Compute the dependency set for a template and feature flags.

    Groups are applied in a fixed order -- base, firebase, template,
    analytics -- so that a later group wins if two ever share a key.
    Unknown templates contribute no template group.

    Args:
        template: Template identifier; parsed case-insensitively.
        exclude_firebase: Leave out the Firebase SDK group.
        include_tests: Populate ``dev_dependencies`` with the test tooling
            group.  When ``False`` the dev map is empty.
        include_analytics: Add the analytics group.
    """
    template_id = TemplateId.parse(template)

    dependencies: dict[str, DependencyValue] = {}
    _union(dependencies, BASE_DEPENDENCIES)
    if not exclude_firebase:
        _union(dependencies, FIREBASE_DEPENDENCIES)
    _union(dependencies, TEMPLATE_DEPENDENCIES.get(template_id, {}))
    if include_analytics:
        _union(dependencies, ANALYTICS_DEPENDENCIES)

    dev_dependencies: dict[str, DependencyValue] = {}
    if include_tests:
        _union(dev_dependencies, TEST_DEV_DEPENDENCIES)

    return DependencySet(dependencies=dependencies, dev_dependencies=dev_dependencies)
