import pytest

from facility_features.services.feature_toggles import (
    InvalidPatchError,
    ScopeError,
    SnapshotError,
    UnknownFeatureError,
    Violation,
    normalize_facility_id,
)


def _touching(violations, feature_ids):
    return [v for v in violations if v.feature in feature_ids or v.missing_dependency in feature_ids]


# --- Dependency scenarios ---


def test_enable_with_auto_dependencies_enables_closure(toy_service):
    result = toy_service.enable_feature("B", auto_enable_dependencies=True)

    assert result.success
    assert result.applied == ("A", "B")
    config = toy_service.config_for(None)
    assert config["A"] is True
    assert config["B"] is True
    assert _touching(toy_service.resolver.validate(config), {"A", "B"}) == []


def test_disable_with_enabled_dependents_is_blocked(toy_service):
    toy_service.enable_feature("B")
    before = toy_service.store.export_state()

    result = toy_service.disable_feature("A")

    assert not result.success
    assert result.blocked_by == ("B",)
    assert "required by: B" in result.message
    assert toy_service.store.export_state() == before


def test_forced_disable_leaves_dependent_in_violation(toy_service):
    toy_service.enable_feature("B")

    result = toy_service.disable_feature("A", force=True)

    assert result.success
    assert result.forced
    config = toy_service.config_for(None)
    assert config["A"] is False
    assert config["B"] is True
    assert toy_service.resolver.validate(config) == [Violation("B", "A")]


def test_global_change_reaches_facilities_without_override(toy_service):
    toy_service.set_facility_config("site-1", {"E": True})

    toy_service.set_global_config({"C": True})

    assert toy_service.config_for("site-1")["C"] is True
    assert toy_service.config_for("site-never-seen")["C"] is True


def test_explicit_facility_override_wins_over_global(toy_service):
    toy_service.set_facility_config("site-1", {"C": False})

    toy_service.set_global_config({"C": True})

    assert toy_service.config_for("site-1")["C"] is False
    assert toy_service.config_for(None)["C"] is True


def test_facility_write_missing_dependency_is_rejected(toy_service):
    result = toy_service.set_facility_config("site-1", {"D": True})

    assert not result.success
    assert result.violations == (Violation("D", "E"),)
    assert toy_service.store.read_overrides("site-1") == {}
    assert toy_service.config_for("site-1")["D"] is False


def test_enable_without_auto_dependencies_is_rejected(toy_service):
    result = toy_service.enable_feature("B", auto_enable_dependencies=False)

    assert not result.success
    assert result.violations == (Violation("B", "A"),)
    assert toy_service.config_for(None)["B"] is False


def test_forced_enable_skips_validation(toy_service):
    result = toy_service.enable_feature("D", auto_enable_dependencies=False, force=True)

    assert result.success
    assert toy_service.is_enabled("D")
    assert toy_service.resolver.validate(toy_service.config_for(None)) == [Violation("D", "E")]


def test_patch_is_judged_only_on_keys_it_touches(toy_service):
    toy_service.enable_feature("D", auto_enable_dependencies=False, force=True)

    result = toy_service.set_global_config({"C": True})

    assert result.success


# --- Facility scope ---


def test_facility_enable_only_pins_missing_dependencies(toy_service):
    toy_service.set_global_config({"A": True})

    result = toy_service.enable_feature("B", "site-1")

    assert result.success
    assert result.applied == ("B",)
    assert toy_service.store.read_overrides("site-1") == {"B": True}


def test_facility_enable_relies_on_global_system_dependency(toy_service):
    result = toy_service.enable_feature("F", "site-1")

    assert result.success
    assert toy_service.store.read_overrides("site-1") == {"F": True}


def test_system_dependency_switched_off_blocks_facility_enable(toy_service):
    toy_service.set_global_config({"S": False})

    result = toy_service.enable_feature("F", "site-1")

    assert not result.success
    assert result.violations == (Violation("F", "S"),)


def test_facility_disable_is_blocked_by_facility_dependents(toy_service):
    toy_service.enable_feature("B", "site-1")

    result = toy_service.disable_feature("A", "site-1")

    assert not result.success
    assert result.blocked_by == ("B",)
    assert toy_service.config_for(None)["A"] is False


def test_system_only_feature_cannot_be_written_per_facility(toy_service):
    with pytest.raises(ScopeError) as excinfo:
        toy_service.set_facility_config("site-1", {"S": False})

    assert excinfo.value.feature_ids == ["S"]
    assert toy_service.store.facility_ids() == []


def test_facility_write_requires_a_facility_id(toy_service):
    with pytest.raises(InvalidPatchError):
        toy_service.set_facility_config("global", {"A": True})


def test_global_write_that_breaks_a_facility_view_is_rejected(toy_service):
    toy_service.set_global_config({"A": True})
    toy_service.set_facility_config("T", {"A": False})
    before = toy_service.store.export_state()

    result = toy_service.set_global_config({"B": True})

    assert not result.success
    assert result.violations == (Violation("B", "A", "T"),)
    assert result.to_dict()["violations"] == [
        {"feature": "B", "missing_dependency": "A", "facility_id": "T"}
    ]
    assert toy_service.store.export_state() == before
    assert toy_service.config_for("T")["B"] is False
    assert toy_service.config_for(None)["B"] is False


def test_forced_global_write_may_break_a_facility_view(toy_service):
    toy_service.set_global_config({"A": True})
    toy_service.set_facility_config("T", {"A": False})

    result = toy_service.set_global_config({"B": True}, force=True)

    assert result.success
    assert toy_service.resolver.validate(toy_service.config_for("T")) == [Violation("B", "A")]


def test_global_disable_is_rejected_when_a_facility_pins_a_dependent_on(toy_service):
    toy_service.set_global_config({"A": True})
    toy_service.set_facility_config("T", {"B": True})

    result = toy_service.disable_feature("A")

    assert not result.success
    assert result.violations == (Violation("B", "A", "T"),)
    assert toy_service.is_enabled("A") is True


def test_existing_facility_violation_does_not_block_unrelated_global_write(toy_service):
    toy_service.set_facility_config("T", {"D": True}, force=True)

    result = toy_service.set_global_config({"C": True})

    assert result.success


@pytest.mark.parametrize("scope", ["global", "GLOBAL", "", " "])
def test_global_keyword_writes_target_global_scope(toy_service, scope):
    result = toy_service.enable_feature("A", scope)

    assert result.success
    assert result.facility_id is None
    assert toy_service.config_for(None)["A"] is True
    assert toy_service.is_enabled("A", scope) is True
    assert toy_service.store.facility_ids() == []

    toy_service.disable_feature("A", scope)
    toy_service.set_category("inventory", False, scope)
    toy_service.bulk_update([{"feature_id": "C", "enabled": True}], scope)

    assert toy_service.config_for(None)["A"] is False
    assert toy_service.config_for(None)["C"] is True
    assert toy_service.check_feature("C", scope)["facility_id"] is None
    assert toy_service.store.facility_ids() == []


def test_replace_facility_overrides_drops_missing_keys(toy_service):
    toy_service.set_facility_config("site-1", {"A": True, "C": True})

    result = toy_service.replace_facility_overrides("site-1", {"C": False})

    assert result.success
    assert toy_service.store.read_overrides("site-1") == {"C": False}
    assert toy_service.config_for("site-1")["A"] is False


def test_replace_facility_overrides_validates_dropped_dependencies(toy_service):
    toy_service.enable_feature("B", "site-1")

    result = toy_service.replace_facility_overrides("site-1", {"B": True})

    assert not result.success
    assert result.violations == (Violation("B", "A"),)
    assert toy_service.store.read_overrides("site-1") == {"A": True, "B": True}


# --- Boundary validation ---


def test_unknown_feature_in_patch_rejects_whole_write(toy_service):
    before = toy_service.store.export_state()

    with pytest.raises(UnknownFeatureError) as excinfo:
        toy_service.set_global_config({"A": True, "teleportation": True})

    assert excinfo.value.feature_ids == ["teleportation"]
    assert toy_service.store.export_state() == before


def test_non_boolean_values_are_rejected(toy_service):
    with pytest.raises(InvalidPatchError, match="booleans"):
        toy_service.set_global_config({"A": "yes"})


def test_patch_must_be_a_mapping(toy_service):
    with pytest.raises(InvalidPatchError):
        toy_service.set_global_config(["A"])


def test_unknown_feature_reads_as_disabled(toy_service, caplog):
    assert toy_service.is_enabled("teleportation") is False
    assert "Unknown feature requested" in caplog.text


def test_enable_unknown_feature_raises(toy_service):
    with pytest.raises(UnknownFeatureError):
        toy_service.enable_feature("teleportation")


def test_check_feature_unknown_raises(toy_service):
    with pytest.raises(UnknownFeatureError):
        toy_service.check_feature("teleportation")


def test_applying_the_same_patch_twice_is_idempotent(toy_service):
    toy_service.set_facility_config("site-1", {"A": True, "C": True})
    once = toy_service.config_for("site-1")

    toy_service.set_facility_config("site-1", {"A": True, "C": True})

    assert toy_service.config_for("site-1") == once


@pytest.mark.parametrize(
    "value, expected",
    [(None, None), ("", None), ("global", None), ("GLOBAL", None), (" site-1 ", "site-1"), (7, "7")],
)
def test_normalize_facility_id(value, expected):
    assert normalize_facility_id(value) == expected


# --- Views ---


def test_toggle_view_marks_system_features_untoggleable_per_facility(toy_service):
    toy_service.enable_feature("F", "site-1")

    view = toy_service.get_toggle_view("site-1")

    assert view["S"]["can_toggle"] is False
    assert view["S"]["dependents"] == ["F"]
    assert view["F"]["enabled"] is True
    assert view["D"]["missing_dependencies"] == ["E"]
    assert toy_service.get_toggle_view(None)["S"]["can_toggle"] is True


def test_check_feature_reports_dependencies(toy_service):
    toy_service.enable_feature("B")

    check = toy_service.check_feature("A")

    assert check["enabled"] is True
    assert check["dependents"] == ["B"]
    assert check["missing_dependencies"] == []
    assert check["definition"]["id"] == "A"


# --- Category, bulk and reset ---


def test_category_toggle_applies_atomically(toy_service):
    result = toy_service.set_category("core", True)

    assert result.success
    assert toy_service.is_enabled("A")
    assert toy_service.is_enabled("B")


def test_category_toggle_rejects_when_dependency_outside_category(toy_service):
    result = toy_service.set_category("inventory", True)

    assert not result.success
    assert Violation("D", "E") in result.violations
    assert toy_service.is_enabled("C") is False


def test_category_toggle_skips_features_not_toggleable_in_scope(toy_service):
    result = toy_service.set_category("security", True, "site-1")

    assert result.success
    assert toy_service.store.read_overrides("site-1") == {"F": True}


def test_category_toggle_validates_input(toy_service):
    with pytest.raises(InvalidPatchError):
        toy_service.set_category("weather", True)
    with pytest.raises(InvalidPatchError):
        toy_service.set_category("core", "on")


def test_bulk_update_reports_each_item(toy_service):
    outcome = toy_service.bulk_update(
        [
            {"feature_id": "B", "enabled": True},
            {"feature_id": "teleportation", "enabled": True},
            {"feature_id": "A", "enabled": False},
            {"feature_id": "C", "enabled": "yes"},
            "not-an-object",
        ]
    )

    assert not outcome.success
    assert [item.success for item in outcome.items] == [True, False, False, False, False]
    assert outcome.items[1].error["error"] == "unknown_feature"
    assert outcome.items[2].result.blocked_by == ("B",)
    assert outcome.items[3].error["error"] == "invalid_patch"
    assert len(outcome.errors) == 4
    assert toy_service.is_enabled("B")


def test_bulk_update_requires_a_list(toy_service):
    with pytest.raises(InvalidPatchError):
        toy_service.bulk_update("B")


def test_reset_facility_restores_inheritance(toy_service):
    toy_service.set_facility_config("site-1", {"A": True, "C": True})

    result = toy_service.reset_facility("site-1")

    assert result.success
    assert set(result.applied) == {"A", "C"}
    assert toy_service.store.read_overrides("site-1") == {}
    assert toy_service.config_for("site-1") == toy_service.config_for(None)


def test_reset_global_restores_defaults_everywhere(toy_service):
    toy_service.enable_feature("B")
    toy_service.set_facility_config("site-1", {"C": True})

    toy_service.reset_global()

    assert toy_service.config_for(None)["A"] is False
    assert toy_service.config_for(None)["B"] is False
    assert toy_service.config_for("site-1")["A"] is False
    assert toy_service.config_for("site-1")["C"] is True


# --- Snapshot import ---


def test_import_snapshot_drops_unknown_ids(toy_service):
    toy_service.import_snapshot(
        {
            "global": {"A": True, "teleportation": True},
            "facilities": {"site-1": {"C": True, "ghost": False}},
        }
    )

    exported = toy_service.store.export_state()
    assert "teleportation" not in exported["global"]
    assert exported["global"]["A"] is True
    assert exported["global"]["S"] is True
    assert exported["facilities"] == {"site-1": {"C": True}}


def test_import_snapshot_rejects_bad_shapes(toy_service):
    with pytest.raises(SnapshotError):
        toy_service.import_snapshot(["A"])
    with pytest.raises(SnapshotError):
        toy_service.import_snapshot({"global": ["A"]})
    with pytest.raises(SnapshotError):
        toy_service.import_snapshot({"facilities": {"site-1": True}})


# --- Change listeners ---


def test_listeners_receive_committed_changes(toy_service):
    received = []
    toy_service.add_listener(received.append)

    toy_service.enable_feature("B")
    toy_service.disable_feature("A")

    assert len(received) == 1
    change = received[0]
    assert change.action == "enable"
    assert change.scope == "global"
    assert change.changes == {"A": (False, True), "B": (False, True)}
    assert change.to_dict()["changes"]["B"] == {"before": False, "after": True}


def test_failing_listener_does_not_undo_the_write(toy_service, caplog):
    def broken(_change):
        raise RuntimeError("audit sink offline")

    toy_service.add_listener(broken)

    result = toy_service.set_global_config({"C": True})

    assert result.success
    assert toy_service.is_enabled("C")
    assert "listener" in caplog.text


def test_removed_listener_is_not_called(toy_service):
    received = []
    toy_service.add_listener(received.append)
    toy_service.remove_listener(received.append)

    toy_service.set_global_config({"C": True})

    assert received == []
