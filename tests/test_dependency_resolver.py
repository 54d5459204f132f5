import pytest

from facility_features.features import FEATURE_CATALOG_SECTIONS
from facility_features.services.feature_toggles import (
    DependencyResolver,
    FeatureRegistry,
    UnknownFeatureError,
    Violation,
)


@pytest.fixture
def resolver():
    return DependencyResolver(FeatureRegistry.from_catalog(FEATURE_CATALOG_SECTIONS))


def _reachable(registry, feature_id):
    seen = set()
    pending = list(registry.get(feature_id).dependencies)
    while pending:
        current = pending.pop()
        if current not in seen:
            seen.add(current)
            pending.extend(registry.get(current).dependencies)
    return seen


def test_closure_is_dependency_first():
    resolver = DependencyResolver(FeatureRegistry.from_catalog(FEATURE_CATALOG_SECTIONS))

    assert resolver.resolve_closure("insuranceIntegration") == [
        "productManagement",
        "financialTracking",
        "activityLogging",
        "securityCompliance",
        "insuranceIntegration",
    ]


def test_closure_of_root_feature_is_itself(resolver):
    assert resolver.resolve_closure("productManagement") == ["productManagement"]


def test_every_closure_is_complete_and_ordered(resolver):
    registry = resolver.registry
    for definition in registry:
        closure = resolver.resolve_closure(definition.id)

        assert closure[-1] == definition.id
        assert len(closure) == len(set(closure))
        assert set(closure[:-1]) == _reachable(registry, definition.id)
        for index, feature_id in enumerate(closure):
            later = set(closure[index + 1:])
            assert not (_reachable(registry, feature_id) & later)


def test_closure_of_unknown_feature_raises(resolver):
    with pytest.raises(UnknownFeatureError) as excinfo:
        resolver.resolve_closure("teleportation")
    assert excinfo.value.feature_ids == ["teleportation"]


def test_find_dependents_only_counts_enabled_features(resolver):
    config = {"productManagement": True, "batchManagement": True, "qualityControl": False}

    assert resolver.find_dependents("batchManagement", config) == []
    config["distributionManagement"] = True
    assert resolver.find_dependents("batchManagement", config) == ["distributionManagement"]


def test_missing_dependencies_lists_disabled_requirements(resolver):
    config = {"productManagement": True, "sectionManagement": False}

    assert resolver.missing_dependencies("storageDesigner", config) == ["sectionManagement"]
    assert resolver.missing_dependencies("teleportation", config) == []


def test_validate_reports_each_broken_edge(resolver):
    config = {
        "productManagement": False,
        "analytics": True,
        "insuranceIntegration": True,
        "financialTracking": True,
    }

    violations = resolver.validate(config)

    assert Violation("analytics", "productManagement") in violations
    assert Violation("financialTracking", "productManagement") in violations
    assert Violation("insuranceIntegration", "securityCompliance") in violations
    assert Violation("insuranceIntegration", "financialTracking") not in violations


def test_validate_ignores_disabled_features(resolver):
    assert resolver.validate({"analytics": False, "productManagement": False}) == []
