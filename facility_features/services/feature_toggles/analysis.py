"""Read-only aggregation over feature configuration for dashboards and exports."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

from ...models.feature import FeatureCategory
from .errors import SnapshotError
from .results import GLOBAL_SCOPE, ToggleResult
from .toggle_service import FeatureToggleService, normalize_facility_id


class FeatureAnalysisReporter:
    """Summaries, category breakdowns and snapshot export.

    The reporter never writes to the store. Imports are routed back through
    the toggle service so the single-writer rule holds.
    """

    def __init__(self, service: FeatureToggleService):
        self.service = service
        self.registry = service.registry
        self.store = service.store
        self.resolver = service.resolver

    def summary(self, facility_id: Optional[str] = None) -> Dict[str, Any]:
        config = self.service.config_for(facility_id)
        return self._summary(config)

    def _summary(self, config: Mapping[str, bool]) -> Dict[str, Any]:
        total = len(self.registry)
        enabled = sum(1 for d in self.registry if config.get(d.id))
        return {
            "total": total,
            "enabled": enabled,
            "disabled": total - enabled,
            "percentage": round(enabled / total * 100, 1) if total else 0.0,
        }

    def by_category(self, facility_id: Optional[str] = None) -> Dict[str, Dict[str, Any]]:
        return self._by_category(self.service.config_for(facility_id))

    def _by_category(self, config: Mapping[str, bool]) -> Dict[str, Dict[str, Any]]:
        breakdown: Dict[str, Dict[str, Any]] = {}
        for category in FeatureCategory:
            features = self.registry.by_category(category)
            enabled = [d for d in features if config.get(d.id)]
            breakdown[category.value] = {
                "name": category.info.name,
                "total": len(features),
                "enabled": len(enabled),
                "disabled": len(features) - len(enabled),
                "features": [
                    {"id": d.id, "name": d.name, "enabled": bool(config.get(d.id))} for d in features
                ],
            }
        return breakdown

    def dependency_issues(self, facility_id: Optional[str] = None) -> List[Dict[str, str]]:
        config = self.service.config_for(facility_id)
        return [v.to_dict() for v in self.resolver.validate(config)]

    def analysis(self, facility_id: Optional[str] = None) -> Dict[str, Any]:
        # One read so every section describes the same state.
        config = self.service.config_for(facility_id)
        return {
            "summary": self._summary(config),
            "by_category": self._by_category(config),
            "dependency_issues": [v.to_dict() for v in self.resolver.validate(config)],
            "enabled": [d.id for d in self.registry if config.get(d.id)],
            "disabled": [d.id for d in self.registry if not config.get(d.id)],
        }

    def known_facilities(self) -> List[str]:
        return self.store.facility_ids()

    # --- Snapshots ---

    def export_snapshot(self) -> Dict[str, Any]:
        return self.store.export_state()

    def import_snapshot(self, data: Mapping[str, Any]) -> None:
        """Trusted bulk restore; skips dependency validation (unsafe for untrusted input)."""
        self.service.import_snapshot(data)

    def export_scope(self, facility_id: Optional[str] = None) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "scope": facility_id if facility_id is not None else GLOBAL_SCOPE,
            "facility_id": facility_id,
            "exported_at": datetime.now(timezone.utc).isoformat(),
            "config": self.service.config_for(facility_id),
        }
        if facility_id is not None:
            payload["overrides"] = self.store.read_overrides(facility_id)
        return payload

    def import_scope(self, facility_id: Optional[str], data: Mapping[str, Any]) -> ToggleResult:
        """Re-apply an exported scope through the validated write path.

        A facility import replaces the target's overrides, so the target ends
        up as sparse as the source. Payloads carrying only ``config`` keep the
        values that differ from the current global configuration.
        """
        facility_id = normalize_facility_id(facility_id)
        if not isinstance(data, Mapping):
            raise SnapshotError("Export payload must be an object")

        if facility_id is None:
            source = self._payload_mapping(data, "config")
            patch = {
                fid: value
                for fid, value in source.items()
                if fid in self.registry and self.registry.get(fid).scope.allows(False)
            }
            return self.service.set_config(patch, None)

        global_config = self.service.config_for(None)
        if "overrides" in data:
            overrides = {
                fid: value
                for fid, value in self._payload_mapping(data, "overrides").items()
                if self._facility_level(fid)
            }
        else:
            overrides = {
                fid: value
                for fid, value in self._payload_mapping(data, "config").items()
                if self._facility_level(fid) and value != global_config.get(fid)
            }
        return self.service.replace_facility_overrides(facility_id, overrides)

    def _facility_level(self, feature_id: Any) -> bool:
        return feature_id in self.registry and self.registry.get(feature_id).scope.facility_level

    @staticmethod
    def _payload_mapping(data: Mapping[str, Any], key: str) -> Mapping[str, Any]:
        source = data.get(key)
        if not isinstance(source, Mapping):
            raise SnapshotError(f"Export payload is missing a '{key}' object")
        return source
