"""Two-level configuration store: one global mapping plus sparse facility overrides.

Synopsis:
A dumb, thread-safe container. It never validates dependencies; the toggle
service decides what may be written and calls the store to commit.

Glossary:
- Override: A value a facility set explicitly; absence means "inherit global".
- Inherited view: The stored facility-level mapping (overrides + global values)
  refreshed by ``reapply_inheritance`` whenever the global layer changes.
"""

from __future__ import annotations

import contextlib
import logging
import threading
from typing import Dict, Iterator, List, Mapping, Optional

from .registry import FeatureRegistry

logger = logging.getLogger(__name__)


class _FacilityState:
    __slots__ = ("overrides", "inherited")

    def __init__(self) -> None:
        self.overrides: Dict[str, bool] = {}
        self.inherited: Dict[str, bool] = {}


class ConfigurationStore:
    """Holds the global configuration and every facility's overrides.

    Every public method takes the same reentrant lock, so readers always copy
    a consistent state. ``batch()`` holds it across a multi-step commit.
    """

    def __init__(self, registry: FeatureRegistry):
        self.registry = registry
        self._lock = threading.RLock()
        self._global: Dict[str, bool] = {}
        self._facilities: Dict[str, _FacilityState] = {}

    @contextlib.contextmanager
    def batch(self) -> Iterator["ConfigurationStore"]:
        with self._lock:
            yield self

    # --- Seed global ---
    # Purpose: Initialize the total global mapping from catalog defaults.
    # Inputs: Optional registry (defaults to the store's registry).
    # Outputs: None; global mapping replaced.
    def seed_global(self, registry: Optional[FeatureRegistry] = None) -> None:
        registry = registry or self.registry
        with self._lock:
            self._global = {d.id: d.default_enabled for d in registry}
        logger.debug("Seeded global feature configuration (%s features)", len(self._global))

    def read_global(self) -> Dict[str, bool]:
        with self._lock:
            return dict(self._global)

    def read_overrides(self, facility_id: str) -> Dict[str, bool]:
        with self._lock:
            state = self._facilities.get(facility_id)
            return dict(state.overrides) if state else {}

    def read_facility(self, facility_id: str) -> Dict[str, bool]:
        """Stored facility-level view: overrides merged with inherited global values."""
        with self._lock:
            state = self._facilities.get(facility_id)
            if state is None:
                return {
                    d.id: self._global.get(d.id, False)
                    for d in self.registry
                    if d.scope.facility_level
                }
            return dict(state.inherited)

    def read_effective(self, facility_id: str) -> Dict[str, bool]:
        with self._lock:
            facility_view = self.read_facility(facility_id)
            effective: Dict[str, bool] = {}
            for definition in self.registry:
                if definition.scope.facility_level:
                    effective[definition.id] = bool(facility_view.get(definition.id, False))
                else:
                    effective[definition.id] = bool(self._global.get(definition.id, False))
            return effective

    def project_effective(
        self, global_config: Mapping[str, bool], overrides: Mapping[str, bool]
    ) -> Dict[str, bool]:
        """Effective view a facility with ``overrides`` would have under ``global_config``."""
        return {
            d.id: bool(overrides[d.id])
            if d.scope.facility_level and d.id in overrides
            else bool(global_config.get(d.id, False))
            for d in self.registry
        }

    def write_global(self, patch: Mapping[str, bool]) -> None:
        with self._lock:
            self._global.update({fid: bool(value) for fid, value in patch.items()})

    def write_facility(self, facility_id: str, patch: Mapping[str, bool]) -> None:
        with self._lock:
            state = self._facilities.get(facility_id)
            if state is None:
                state = self._facilities[facility_id] = _FacilityState()
            state.overrides.update({fid: bool(value) for fid, value in patch.items()})
            self._refresh(facility_id)

    def replace_overrides(self, facility_id: str, overrides: Mapping[str, bool]) -> None:
        with self._lock:
            state = self._facilities.get(facility_id)
            if state is None:
                state = self._facilities[facility_id] = _FacilityState()
            state.overrides = {fid: bool(value) for fid, value in overrides.items()}
            self._refresh(facility_id)

    def reapply_inheritance(self, facility_id: str) -> None:
        with self._lock:
            if facility_id in self._facilities:
                self._refresh(facility_id)

    def clear_facility(self, facility_id: str) -> bool:
        with self._lock:
            return self._facilities.pop(facility_id, None) is not None

    def facility_ids(self) -> List[str]:
        with self._lock:
            return list(self._facilities.keys())

    def export_state(self) -> Dict[str, object]:
        with self._lock:
            return {
                "global": dict(self._global),
                "facilities": {
                    facility_id: dict(state.overrides)
                    for facility_id, state in self._facilities.items()
                },
            }

    def load_state(
        self,
        global_config: Optional[Mapping[str, bool]],
        facilities: Optional[Mapping[str, Mapping[str, bool]]],
    ) -> None:
        """Replace stored state wholesale. No validation is performed."""
        with self._lock:
            if global_config is not None:
                self._global = {fid: bool(value) for fid, value in global_config.items()}
            if facilities is not None:
                self._facilities = {}
                for facility_id, overrides in facilities.items():
                    state = self._facilities[str(facility_id)] = _FacilityState()
                    state.overrides = {fid: bool(value) for fid, value in overrides.items()}
            for facility_id in self._facilities:
                self._refresh(facility_id)

    def _refresh(self, facility_id: str) -> None:
        state = self._facilities[facility_id]
        state.inherited = {
            d.id: state.overrides[d.id] if d.id in state.overrides else self._global.get(d.id, False)
            for d in self.registry
            if d.scope.facility_level
        }
