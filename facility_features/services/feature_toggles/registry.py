"""Immutable registry of feature definitions, loaded once at startup."""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Union

from ...models.feature import FeatureCategory, FeatureDefinition, FeatureScope
from .errors import CatalogError, DependencyCycleError

logger = logging.getLogger(__name__)


class FeatureRegistry:
    """Read-only catalog of feature definitions.

    Lookups never raise: absence is reported as ``None`` or an empty
    sequence and callers decide whether that is an error.
    """

    def __init__(self, definitions: Iterable[FeatureDefinition]):
        ordered: Dict[str, FeatureDefinition] = {}
        for definition in definitions:
            if definition.id in ordered:
                raise CatalogError(f"Duplicate feature id in catalog: {definition.id}")
            ordered[definition.id] = definition
        self._definitions: Mapping[str, FeatureDefinition] = MappingProxyType(ordered)
        self._validate()
        self._by_category: Mapping[FeatureCategory, tuple] = MappingProxyType(
            {
                category: tuple(d for d in ordered.values() if d.category is category)
                for category in FeatureCategory
            }
        )

    # --- Catalog loading ---
    # Purpose: Build a registry from catalog section dicts.
    # Inputs: Sections shaped like FEATURE_CATALOG_SECTIONS.
    # Outputs: Validated FeatureRegistry (raises CatalogError on bad data).
    @classmethod
    def from_catalog(cls, sections: Sequence[Mapping[str, Any]]) -> "FeatureRegistry":
        definitions: List[FeatureDefinition] = []
        for section in sections:
            for entry in section.get("features", []):
                definitions.append(cls._definition_from_entry(entry))
        registry = cls(definitions)
        logger.info("Feature registry loaded with %s features", len(registry))
        return registry

    @staticmethod
    def _definition_from_entry(entry: Mapping[str, Any]) -> FeatureDefinition:
        key = entry.get("key")
        if not key:
            raise CatalogError(f"Catalog entry is missing a key: {entry!r}")
        try:
            category = FeatureCategory(entry.get("category"))
        except ValueError as exc:
            raise CatalogError(f"Feature {key} has unknown category {entry.get('category')!r}") from exc

        return FeatureDefinition(
            id=key,
            name=entry.get("label") or key,
            description=entry.get("description", ""),
            category=category,
            dependencies=tuple(dict.fromkeys(entry.get("dependencies") or ())),
            default_enabled=bool(entry.get("default_enabled", False)),
            scope=FeatureScope(
                system_level=bool(entry.get("system_level", True)),
                facility_level=bool(entry.get("facility_level", True)),
            ),
            icon=entry.get("icon", ""),
            version=entry.get("version", "1.0.0"),
            enterprise=bool(entry.get("enterprise", False)),
            components=tuple(entry.get("components") or ()),
            api_routes=tuple(entry.get("api_routes") or ()),
        )

    def _validate(self) -> None:
        for definition in self._definitions.values():
            if not definition.scope.is_valid:
                raise CatalogError(
                    f"Feature {definition.id} is neither system-level nor facility-level"
                )
            if definition.id in definition.dependencies:
                raise DependencyCycleError([definition.id, definition.id])
            unknown = [dep for dep in definition.dependencies if dep not in self._definitions]
            if unknown:
                raise CatalogError(
                    f"Feature {definition.id} depends on unknown feature(s): {', '.join(unknown)}"
                )
        self._check_acyclic()

    def _check_acyclic(self) -> None:
        done: set = set()
        path: List[str] = []
        on_path: set = set()

        def visit(feature_id: str) -> None:
            path.append(feature_id)
            on_path.add(feature_id)
            for dep in self._definitions[feature_id].dependencies:
                if dep in on_path:
                    raise DependencyCycleError(path[path.index(dep):] + [dep])
                if dep not in done:
                    visit(dep)
            on_path.discard(feature_id)
            path.pop()
            done.add(feature_id)

        for feature_id in self._definitions:
            if feature_id not in done:
                visit(feature_id)

    def get(self, feature_id: str) -> Optional[FeatureDefinition]:
        return self._definitions.get(feature_id)

    def all(self) -> List[FeatureDefinition]:
        return list(self._definitions.values())

    def ids(self) -> List[str]:
        return list(self._definitions.keys())

    def by_category(self, category: Union[FeatureCategory, str]) -> List[FeatureDefinition]:
        try:
            key = FeatureCategory(category)
        except ValueError:
            return []
        return list(self._by_category.get(key, ()))

    def unknown_ids(self, feature_ids: Iterable[str]) -> List[str]:
        return [fid for fid in feature_ids if fid not in self._definitions]

    def __contains__(self, feature_id: object) -> bool:
        return feature_id in self._definitions

    def __len__(self) -> int:
        return len(self._definitions)

    def __iter__(self):
        return iter(self._definitions.values())
