from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

GLOBAL_SCOPE = "global"


@dataclass(frozen=True)
class Violation:
    """An enabled feature whose dependency is not enabled in the same view.

    ``facility_id`` names the tenant view a global write would break; it is
    None for violations found in the view being written.
    """

    feature: str
    missing_dependency: str
    facility_id: Optional[str] = None

    def to_dict(self) -> Dict[str, str]:
        payload = {"feature": self.feature, "missing_dependency": self.missing_dependency}
        if self.facility_id is not None:
            payload["facility_id"] = self.facility_id
        return payload


@dataclass(frozen=True)
class ToggleResult:
    """Outcome of one configuration mutation.

    ``success`` is False when the call was rejected (``violations``) or
    refused (``blocked_by``); in both cases nothing was written.
    """

    success: bool
    facility_id: Optional[str] = None
    applied: Tuple[str, ...] = ()
    violations: Tuple[Violation, ...] = ()
    blocked_by: Tuple[str, ...] = ()
    forced: bool = False
    message: str = ""

    @property
    def scope(self) -> str:
        return self.facility_id if self.facility_id is not None else GLOBAL_SCOPE

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "success": self.success,
            "scope": self.scope,
            "facility_id": self.facility_id,
            "applied": list(self.applied),
            "violations": [v.to_dict() for v in self.violations],
            "blocked_by": list(self.blocked_by),
            "forced": self.forced,
        }
        if self.message:
            payload["message"] = self.message
        return payload


@dataclass(frozen=True)
class BulkItemResult:
    feature_id: str
    action: str
    result: Optional[ToggleResult] = None
    error: Optional[Dict[str, Any]] = None

    @property
    def success(self) -> bool:
        return self.error is None and self.result is not None and self.result.success

    def to_dict(self) -> Dict[str, Any]:
        return {
            "feature_id": self.feature_id,
            "action": self.action,
            "success": self.success,
            "result": self.result.to_dict() if self.result else None,
            "error": self.error,
        }


@dataclass(frozen=True)
class BulkUpdateResult:
    facility_id: Optional[str]
    items: List[BulkItemResult] = field(default_factory=list)

    @property
    def errors(self) -> List[Dict[str, Any]]:
        failures = []
        for item in self.items:
            if item.error is not None:
                failures.append({"feature_id": item.feature_id, **item.error})
            elif item.result is not None and not item.result.success:
                failures.append({"feature_id": item.feature_id, **item.result.to_dict()})
        return failures

    @property
    def success(self) -> bool:
        return all(item.success for item in self.items)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "facility_id": self.facility_id,
            "results": [item.to_dict() for item in self.items],
            "errors": self.errors,
        }
