"""Feature toggle error taxonomy.

Synopsis:
Exceptions raised by the feature toggle engine. Expected, recoverable
outcomes (dependency violations, blocked disables) are *not* exceptions;
they travel back as structured results. Everything here either rejects a
call before any mutation or signals a corrupt catalog/snapshot.

Glossary:
- Catalog error: The static feature catalog is internally inconsistent.
- Scope error: A write targets a feature that cannot be toggled in that scope.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional


class FeatureToggleError(Exception):
    """Base class for feature toggle failures."""

    error_code = "feature_toggle_error"

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.error_code, "message": str(self)}


class UnknownFeatureError(FeatureToggleError):
    """One or more feature ids are not in the registry."""

    error_code = "unknown_feature"

    def __init__(self, feature_ids: Iterable[str]):
        self.feature_ids: List[str] = sorted(set(feature_ids))
        super().__init__(f"Unknown feature(s): {', '.join(self.feature_ids)}")

    def to_dict(self) -> Dict[str, Any]:
        payload = super().to_dict()
        payload["feature_ids"] = list(self.feature_ids)
        return payload


class ScopeError(FeatureToggleError):
    """A feature was written in a scope where it cannot be toggled."""

    error_code = "feature_scope_mismatch"

    def __init__(self, feature_ids: Iterable[str], scope: str):
        self.feature_ids: List[str] = sorted(set(feature_ids))
        self.scope = scope
        super().__init__(
            f"Feature(s) not toggleable at {scope} level: {', '.join(self.feature_ids)}"
        )

    def to_dict(self) -> Dict[str, Any]:
        payload = super().to_dict()
        payload.update({"feature_ids": list(self.feature_ids), "scope": self.scope})
        return payload


class InvalidPatchError(FeatureToggleError):
    """A patch or request payload is malformed (non-boolean values, bad shape)."""

    error_code = "invalid_patch"

    def __init__(self, message: str, *, field: Optional[str] = None):
        self.field = field
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        payload = super().to_dict()
        if self.field:
            payload["field"] = self.field
        return payload


class CatalogError(FeatureToggleError):
    """The static feature catalog failed load-time validation."""

    error_code = "invalid_catalog"


class DependencyCycleError(CatalogError):
    """The dependency graph contains a cycle."""

    error_code = "dependency_cycle"

    def __init__(self, cycle: Iterable[str]):
        self.cycle: List[str] = list(cycle)
        super().__init__(f"Feature dependency cycle detected: {' -> '.join(self.cycle)}")

    def to_dict(self) -> Dict[str, Any]:
        payload = super().to_dict()
        payload["cycle"] = list(self.cycle)
        return payload


class SnapshotError(FeatureToggleError):
    """A persisted configuration snapshot could not be read."""

    error_code = "invalid_snapshot"
