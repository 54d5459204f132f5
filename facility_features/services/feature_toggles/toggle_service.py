"""Feature toggle service: the only mutator of feature configuration.

Synopsis:
Answers "is feature X on for facility Y" and performs enable/disable/bulk
writes that respect the dependency graph. Every write is validate-then-commit
under a single mutation lock; rejected writes change nothing and return the
violations as data.

Glossary:
- Effective configuration: Global values merged with a facility's overrides.
- Forced write: Skips dependency checks; may leave a scope inconsistent.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from .errors import InvalidPatchError, ScopeError, SnapshotError, UnknownFeatureError
from .events import ChangeListener, ConfigChange, diff_configs, log_config_change
from .registry import FeatureRegistry
from .resolver import DependencyResolver
from .results import GLOBAL_SCOPE, BulkItemResult, BulkUpdateResult, ToggleResult, Violation
from .store import ConfigurationStore
from ...models.feature import FeatureCategory

logger = logging.getLogger(__name__)

PatchBuilder = Callable[[Dict[str, bool]], Dict[str, bool]]


def normalize_facility_id(value: Any) -> Optional[str]:
    """Map request-level scope values onto a facility id (None means global)."""
    if value is None:
        return None
    text = str(value).strip()
    if not text or text.lower() == GLOBAL_SCOPE:
        return None
    return text


class FeatureToggleService:
    """Invariant-enforcing boundary over the registry, resolver and store."""

    def __init__(
        self,
        registry: FeatureRegistry,
        store: Optional[ConfigurationStore] = None,
        resolver: Optional[DependencyResolver] = None,
    ):
        self.registry = registry
        self.resolver = resolver or DependencyResolver(registry)
        if store is None:
            store = ConfigurationStore(registry)
            store.seed_global(registry)
        self.store = store
        self._mutation_lock = threading.Lock()
        self._listeners: List[ChangeListener] = [log_config_change]

    # --- Listener registration ---
    # Purpose: Let audit/persistence collaborators observe committed changes.
    # Inputs: Callable taking a ConfigChange.
    # Outputs: None.
    def add_listener(self, listener: ChangeListener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def remove_listener(self, listener: ChangeListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self, change: Optional[ConfigChange]) -> None:
        if change is None:
            return
        for listener in list(self._listeners):
            try:
                listener(change)
            except Exception:
                logger.warning(
                    "Feature change listener %r failed for %s on %s",
                    listener,
                    change.action,
                    change.scope,
                    exc_info=True,
                )

    # --- Reads ---

    def config_for(self, facility_id: Optional[str] = None) -> Dict[str, bool]:
        facility_id = normalize_facility_id(facility_id)
        if facility_id is None:
            return self.store.read_global()
        return self.store.read_effective(facility_id)

    def is_enabled(self, feature_id: str, facility_id: Optional[str] = None) -> bool:
        if feature_id not in self.registry:
            logger.warning("Unknown feature requested: %s", feature_id)
            return False
        return bool(self.config_for(facility_id).get(feature_id, False))

    def check_feature(self, feature_id: str, facility_id: Optional[str] = None) -> Dict[str, Any]:
        self._require_known([feature_id])
        definition = self.registry.get(feature_id)
        facility_id = normalize_facility_id(facility_id)
        config = self.config_for(facility_id)
        return {
            "feature_id": feature_id,
            "facility_id": facility_id,
            "enabled": bool(config.get(feature_id, False)),
            "definition": definition.to_dict(),
            "dependents": self.resolver.find_dependents(feature_id, config),
            "missing_dependencies": self.resolver.missing_dependencies(feature_id, config),
        }

    def get_toggle_view(self, facility_id: Optional[str] = None) -> Dict[str, Dict[str, Any]]:
        """Presentation view of every feature for one scope."""
        facility_id = normalize_facility_id(facility_id)
        config = self.config_for(facility_id)
        facility_scoped = facility_id is not None
        view: Dict[str, Dict[str, Any]] = {}
        for definition in self.registry:
            view[definition.id] = {
                "enabled": bool(config.get(definition.id, False)),
                "definition": definition.to_dict(),
                "can_toggle": definition.scope.allows(facility_scoped),
                "dependents": self.resolver.find_dependents(definition.id, config),
                "missing_dependencies": self.resolver.missing_dependencies(definition.id, config),
            }
        return view

    # --- Bulk config writes ---

    def set_global_config(self, patch: Mapping[str, Any], *, force: bool = False) -> ToggleResult:
        normalized = self._normalize_patch(patch, facility_id=None)
        return self._apply(None, lambda _current: normalized, force=force, action="set_config")

    def set_facility_config(
        self, facility_id: str, patch: Mapping[str, Any], *, force: bool = False
    ) -> ToggleResult:
        facility_id = self._require_facility(facility_id)
        normalized = self._normalize_patch(patch, facility_id=facility_id)
        return self._apply(facility_id, lambda _current: normalized, force=force, action="set_config")

    def set_config(
        self, patch: Mapping[str, Any], facility_id: Optional[str] = None, *, force: bool = False
    ) -> ToggleResult:
        facility_id = normalize_facility_id(facility_id)
        if facility_id is None:
            return self.set_global_config(patch, force=force)
        return self.set_facility_config(facility_id, patch, force=force)

    def replace_facility_overrides(
        self, facility_id: str, overrides: Mapping[str, Any], *, force: bool = False
    ) -> ToggleResult:
        """Make ``overrides`` the facility's complete override set.

        Overrides missing from the mapping are dropped so those features
        inherit again. Validation covers every added, changed or dropped key.
        """
        facility_id = self._require_facility(facility_id)
        normalized = self._normalize_patch(overrides, facility_id=facility_id)

        with self._mutation_lock:
            current = self.config_for(facility_id)
            touched = set(normalized) | set(self.store.read_overrides(facility_id))
            if not force:
                projected = self.store.project_effective(self.store.read_global(), normalized)
                violations = [
                    v
                    for v in self.resolver.validate(projected)
                    if v.feature in touched or v.missing_dependency in touched
                ]
                if violations:
                    self._log_rejection("replace", facility_id, violations)
                    return ToggleResult(success=False, facility_id=facility_id, violations=tuple(violations))
            self.store.replace_overrides(facility_id, normalized)
            after = self.config_for(facility_id)
        self._notify(
            ConfigChange(
                action="replace",
                facility_id=facility_id,
                changes=diff_configs(current, after),
                forced=force,
            )
        )
        return ToggleResult(success=True, facility_id=facility_id, applied=tuple(normalized), forced=force)

    # --- Single-feature transitions ---

    def enable_feature(
        self,
        feature_id: str,
        facility_id: Optional[str] = None,
        *,
        auto_enable_dependencies: bool = True,
        force: bool = False,
    ) -> ToggleResult:
        facility_id = normalize_facility_id(facility_id)
        self._require_known([feature_id])
        self._require_scope([feature_id], facility_id)

        if not auto_enable_dependencies:
            return self._apply(facility_id, lambda _current: {feature_id: True}, force=force, action="enable")

        closure = self.resolver.resolve_closure(feature_id)
        facility_scoped = facility_id is not None

        def build(current: Dict[str, bool]) -> Dict[str, bool]:
            # Dependencies that are already on stay inherited rather than pinned as overrides;
            # ones outside this scope are left to validation.
            patch = {
                fid: True
                for fid in closure
                if fid != feature_id
                and not current.get(fid)
                and self.registry.get(fid).scope.allows(facility_scoped)
            }
            patch[feature_id] = True
            return patch

        return self._apply(facility_id, build, force=force, action="enable")

    def disable_feature(
        self,
        feature_id: str,
        facility_id: Optional[str] = None,
        *,
        force: bool = False,
    ) -> ToggleResult:
        facility_id = normalize_facility_id(facility_id)
        self._require_known([feature_id])
        self._require_scope([feature_id], facility_id)

        with self._mutation_lock:
            current = self.config_for(facility_id)
            dependents = self.resolver.find_dependents(feature_id, current)
            if dependents and not force:
                names = ", ".join(self.registry.get(d).name for d in dependents)
                logger.info(
                    "Refused to disable %s on %s; required by %s",
                    feature_id,
                    facility_id or GLOBAL_SCOPE,
                    ", ".join(dependents),
                )
                return ToggleResult(
                    success=False,
                    facility_id=facility_id,
                    blocked_by=tuple(dependents),
                    message=f"Cannot disable '{self.registry.get(feature_id).name}' - required by: {names}",
                )
            result, change = self._apply_locked(
                facility_id, current, {feature_id: False}, force=force, action="disable"
            )
        self._notify(change)
        return result

    # --- Category / bulk helpers ---

    def set_category(
        self,
        category: str,
        enabled: Any,
        facility_id: Optional[str] = None,
        *,
        force: bool = False,
    ) -> ToggleResult:
        facility_id = normalize_facility_id(facility_id)
        try:
            category_key = FeatureCategory(category)
        except ValueError as exc:
            raise InvalidPatchError(f"Unknown category: {category}", field="category") from exc
        if not isinstance(enabled, bool):
            raise InvalidPatchError("'enabled' must be a boolean", field="enabled")

        facility_scoped = facility_id is not None
        patch = {
            definition.id: enabled
            for definition in self.registry.by_category(category_key)
            if definition.scope.allows(facility_scoped)
        }
        if not patch:
            return ToggleResult(success=True, facility_id=facility_id)
        return self.set_config(patch, facility_id, force=force)

    def bulk_update(
        self,
        updates: Iterable[Mapping[str, Any]],
        facility_id: Optional[str] = None,
        *,
        auto_enable_dependencies: bool = True,
        force: bool = False,
    ) -> BulkUpdateResult:
        """Apply each update as its own atomic call; one failure never aborts the rest."""
        facility_id = normalize_facility_id(facility_id)
        if isinstance(updates, (str, bytes)) or not isinstance(updates, Iterable):
            raise InvalidPatchError("Updates must be a list", field="updates")

        items: List[BulkItemResult] = []
        for update in updates:
            if not isinstance(update, Mapping):
                items.append(
                    BulkItemResult(
                        feature_id="",
                        action="invalid",
                        error=InvalidPatchError("Each update must be an object").to_dict(),
                    )
                )
                continue
            feature_id = str(update.get("feature_id") or "")
            enabled = update.get("enabled")
            action = "enable" if enabled is True else "disable" if enabled is False else "invalid"
            try:
                if action == "invalid":
                    raise InvalidPatchError("'enabled' must be a boolean", field="enabled")
                if action == "enable":
                    result = self.enable_feature(
                        feature_id,
                        facility_id,
                        auto_enable_dependencies=auto_enable_dependencies,
                        force=force,
                    )
                else:
                    result = self.disable_feature(feature_id, facility_id, force=force)
                items.append(BulkItemResult(feature_id=feature_id, action=action, result=result))
            except (InvalidPatchError, ScopeError, UnknownFeatureError) as exc:
                items.append(BulkItemResult(feature_id=feature_id, action=action, error=exc.to_dict()))
        return BulkUpdateResult(facility_id=facility_id, items=items)

    # --- Resets and snapshot import ---

    def reset_facility(self, facility_id: str) -> ToggleResult:
        """Drop every explicit override so the facility inherits global values again."""
        facility_id = self._require_facility(facility_id)
        with self._mutation_lock:
            before = self.store.read_effective(facility_id)
            overrides = self.store.read_overrides(facility_id)
            self.store.clear_facility(facility_id)
            after = self.store.read_effective(facility_id)
        change = ConfigChange(action="reset", facility_id=facility_id, changes=diff_configs(before, after))
        self._notify(change)
        return ToggleResult(success=True, facility_id=facility_id, applied=tuple(overrides))

    def reset_global(self) -> ToggleResult:
        with self._mutation_lock:
            before = self.store.read_global()
            with self.store.batch():
                self.store.seed_global(self.registry)
                for known in self.store.facility_ids():
                    self.store.reapply_inheritance(known)
            after = self.store.read_global()
        changes = diff_configs(before, after)
        self._notify(ConfigChange(action="reset", facility_id=None, changes=changes))
        return ToggleResult(success=True, facility_id=None, applied=tuple(changes))

    def import_snapshot(self, data: Mapping[str, Any]) -> None:
        """Bulk-load a full snapshot from a trusted source.

        Dependency rules are NOT checked. Never feed this untrusted input.
        """
        if not isinstance(data, Mapping):
            raise SnapshotError("Snapshot must be an object with 'global' and 'facilities'")
        global_config = data.get("global")
        facilities = data.get("facilities")
        if global_config is not None and not isinstance(global_config, Mapping):
            raise SnapshotError("Snapshot 'global' must be an object")
        if facilities is not None and (
            not isinstance(facilities, Mapping)
            or not all(isinstance(v, Mapping) for v in facilities.values())
        ):
            raise SnapshotError("Snapshot 'facilities' must map facility ids to objects")

        merged_global = None
        if global_config is not None:
            merged_global = {d.id: d.default_enabled for d in self.registry}
            merged_global.update(self._known_only(global_config, "global"))
        cleaned_facilities = None
        if facilities is not None:
            cleaned_facilities = {
                str(fid): self._known_only(overrides, str(fid)) for fid, overrides in facilities.items()
            }

        with self._mutation_lock:
            before = self.store.read_global()
            self.store.load_state(merged_global, cleaned_facilities)
            after = self.store.read_global()
        logger.warning(
            "Imported feature snapshot without validation (%s facilities)",
            len(cleaned_facilities or {}),
        )
        self._notify(ConfigChange(action="import", facility_id=None, changes=diff_configs(before, after), forced=True))

    def _known_only(self, mapping: Mapping[str, Any], scope: str) -> Dict[str, bool]:
        unknown = self.registry.unknown_ids(mapping.keys())
        if unknown:
            logger.warning("Dropping unknown feature ids from %s snapshot: %s", scope, ", ".join(unknown))
        return {fid: bool(value) for fid, value in mapping.items() if fid in self.registry}

    # --- Internal write path ---

    def _apply(
        self,
        facility_id: Optional[str],
        build_patch: PatchBuilder,
        *,
        force: bool,
        action: str,
    ) -> ToggleResult:
        with self._mutation_lock:
            current = self.config_for(facility_id)
            patch = build_patch(current)
            result, change = self._apply_locked(facility_id, current, patch, force=force, action=action)
        self._notify(change)
        return result

    def _apply_locked(
        self,
        facility_id: Optional[str],
        current: Dict[str, bool],
        patch: Dict[str, bool],
        *,
        force: bool,
        action: str,
    ) -> Tuple[ToggleResult, Optional[ConfigChange]]:
        if not force:
            violations = self._patch_violations(current, patch)
            if facility_id is None:
                violations.extend(self._tenant_violations(current, patch))
            if violations:
                self._log_rejection(action, facility_id, violations)
                return (
                    ToggleResult(success=False, facility_id=facility_id, violations=tuple(violations)),
                    None,
                )

        with self.store.batch():
            if facility_id is None:
                self.store.write_global(patch)
                for known in self.store.facility_ids():
                    self.store.reapply_inheritance(known)
            else:
                self.store.write_facility(facility_id, patch)
            after = self.config_for(facility_id)

        change = ConfigChange(
            action=action,
            facility_id=facility_id,
            changes=diff_configs(current, after),
            forced=force,
        )
        return ToggleResult(success=True, facility_id=facility_id, applied=tuple(patch), forced=force), change

    def _patch_violations(self, current: Dict[str, bool], patch: Dict[str, bool]) -> List[Violation]:
        """Violations the patch would introduce or leave standing on a key it touches."""
        merged = {**current, **patch}
        return [
            v for v in self.resolver.validate(merged) if v.feature in patch or v.missing_dependency in patch
        ]

    def _tenant_violations(
        self, current_global: Dict[str, bool], patch: Dict[str, bool]
    ) -> List[Violation]:
        """Violations a global patch would newly cause in a known facility's effective view."""
        merged_global = {**current_global, **patch}
        found: List[Violation] = []
        for known in self.store.facility_ids():
            overrides = self.store.read_overrides(known)
            before = set(self.resolver.validate(self.store.project_effective(current_global, overrides)))
            for v in self.resolver.validate(self.store.project_effective(merged_global, overrides)):
                if v not in before:
                    found.append(Violation(v.feature, v.missing_dependency, known))
        return found

    def _log_rejection(
        self, action: str, facility_id: Optional[str], violations: Iterable[Violation]
    ) -> None:
        logger.info(
            "Rejected feature %s on %s: %s",
            action,
            facility_id or GLOBAL_SCOPE,
            ", ".join(
                f"{v.feature} requires {v.missing_dependency}"
                + (f" (facility {v.facility_id})" if v.facility_id else "")
                for v in violations
            ),
        )

    # --- Boundary checks ---

    def _require_facility(self, facility_id: Any) -> str:
        normalized = normalize_facility_id(facility_id)
        if normalized is None:
            raise InvalidPatchError("A facility id is required", field="facility_id")
        return normalized

    def _require_known(self, feature_ids: Iterable[Any]) -> None:
        feature_ids = list(feature_ids)
        if not all(isinstance(fid, str) for fid in feature_ids):
            raise InvalidPatchError("Feature ids must be strings", field="feature_id")
        unknown = self.registry.unknown_ids(feature_ids)
        if unknown:
            raise UnknownFeatureError(unknown)

    def _require_scope(self, feature_ids: Iterable[str], facility_id: Optional[str]) -> None:
        facility_scoped = facility_id is not None
        mismatched = [
            fid for fid in feature_ids if not self.registry.get(fid).scope.allows(facility_scoped)
        ]
        if mismatched:
            raise ScopeError(mismatched, "facility" if facility_scoped else GLOBAL_SCOPE)

    def _normalize_patch(self, patch: Any, *, facility_id: Optional[str]) -> Dict[str, bool]:
        if not isinstance(patch, Mapping):
            raise InvalidPatchError("Configuration patch must be an object", field="config")
        self._require_known(patch.keys())
        non_boolean = [fid for fid, value in patch.items() if not isinstance(value, bool)]
        if non_boolean:
            raise InvalidPatchError(
                f"Feature values must be booleans: {', '.join(sorted(non_boolean))}", field="config"
            )
        self._require_scope(patch.keys(), facility_id)
        return dict(patch)
