"""
Feature Toggle Service - Canonical Entry Point

Every feature check and every configuration change goes through the
FeatureToggleService bound to the current app. Analysis and exports go
through the FeatureAnalysisReporter built on top of it.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional, Sequence

from flask import current_app

from .analysis import FeatureAnalysisReporter
from .errors import (
    CatalogError,
    DependencyCycleError,
    FeatureToggleError,
    InvalidPatchError,
    ScopeError,
    SnapshotError,
    UnknownFeatureError,
)
from .events import ConfigChange
from .registry import FeatureRegistry
from .resolver import DependencyResolver
from .results import GLOBAL_SCOPE, BulkUpdateResult, ToggleResult, Violation
from .store import ConfigurationStore
from .toggle_service import FeatureToggleService, normalize_facility_id

EXTENSION_KEY = "feature_toggles"
REPORTER_KEY = "feature_analysis"

__all__ = [
    "GLOBAL_SCOPE",
    "BulkUpdateResult",
    "CatalogError",
    "ConfigChange",
    "ConfigurationStore",
    "DependencyCycleError",
    "DependencyResolver",
    "FeatureAnalysisReporter",
    "FeatureRegistry",
    "FeatureToggleError",
    "FeatureToggleService",
    "InvalidPatchError",
    "ScopeError",
    "SnapshotError",
    "ToggleResult",
    "UnknownFeatureError",
    "Violation",
    "build_toggle_service",
    "get_feature_reporter",
    "get_toggle_service",
    "normalize_facility_id",
]


def build_toggle_service(sections: Optional[Sequence[Mapping[str, Any]]] = None) -> FeatureToggleService:
    """Load the registry, seed the global layer and wire a toggle service."""
    if sections is None:
        from ...features.catalog import FEATURE_CATALOG_SECTIONS

        sections = FEATURE_CATALOG_SECTIONS
    registry = FeatureRegistry.from_catalog(sections)
    store = ConfigurationStore(registry)
    store.seed_global(registry)
    return FeatureToggleService(registry, store, DependencyResolver(registry))


def get_toggle_service() -> FeatureToggleService:
    return current_app.extensions[EXTENSION_KEY]


def get_feature_reporter() -> FeatureAnalysisReporter:
    return current_app.extensions[REPORTER_KEY]
