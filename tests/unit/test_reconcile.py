"""Tests for field-level reconciliation of client saves."""

from __future__ import annotations

from copy import deepcopy

from plansync.conflict import FORCE_OVERWRITE, FieldOutcome, is_stale, reconcile

T0 = 1_700_000_000_000


def _outcomes(result) -> dict[str, FieldOutcome]:
    return {r.field: r.outcome for r in result.resolutions}


# ── Freshness ────────────────────────────────────────────────────────


class TestFreshness:
    def test_boundary_is_inclusive(self) -> None:
        assert not is_stale(T0, T0)
        assert is_stale(T0 + 1, T0)

    def test_force_overwrite_is_never_stale(self) -> None:
        assert not is_stale(T0, FORCE_OVERWRITE)

    def test_field_modified_exactly_at_load_is_accepted(self) -> None:
        doc = {"milestones": [1, 2, 3]}
        ts = {"milestones": T0}

        result = reconcile(doc, ts, {"milestones": [9, 9]}, T0, T0 + 50)

        assert result.accepted == ["milestones"]
        assert result.rejected == []
        assert result.document["milestones"] == [9, 9]
        assert result.field_timestamps["milestones"] == T0 + 50

    def test_missing_timestamp_counts_as_never_modified(self) -> None:
        result = reconcile({"buffer": {"qa": 5}}, {}, {"buffer": {"qa": 10}}, T0, T0 + 1)

        assert result.accepted == ["buffer"]
        assert result.document["buffer"] == {"qa": 10}


# ── No-op saves ──────────────────────────────────────────────────────


class TestNoOpSaves:
    def test_equal_value_does_not_bump_timestamp(self) -> None:
        doc = {"capacity": {"backend": 40, "qa": 20}}
        ts = {"capacity": T0}

        result = reconcile(doc, ts, {"capacity": {"qa": 20, "backend": 40}}, T0 + 10, T0 + 99)

        assert result.field_timestamps["capacity"] == T0
        assert result.accepted == ["capacity"]
        assert not result.has_changes
        assert result.changed_fields == []

    def test_no_false_conflict_after_no_op_save(self) -> None:
        doc = {"capacity": {"backend": 40}}
        loaded_at = T0 + 10
        first = reconcile(doc, {"capacity": T0}, {"capacity": {"backend": 40}}, loaded_at, T0 + 20)

        second = reconcile(
            first.document,
            first.field_timestamps,
            {"capacity": {"backend": 45}},
            loaded_at,
            T0 + 30,
        )

        assert second.rejected == []
        assert _outcomes(second)["capacity"] is FieldOutcome.ACCEPTED
        assert second.document["capacity"] == {"backend": 45}

    def test_empty_update_is_a_no_op(self) -> None:
        doc = {"capacity": {"backend": 40}}
        result = reconcile(doc, {"capacity": T0}, {}, T0, T0 + 1)

        assert result.document == doc
        assert result.accepted == [] and result.rejected == []

    def test_none_values_are_not_part_of_the_update(self) -> None:
        doc = {"milestones": [1]}
        result = reconcile(doc, {"milestones": T0 + 5}, {"milestones": None}, T0, T0 + 10)

        assert result.accepted == [] and result.rejected == []
        assert result.resolutions == []
        assert result.document == doc


# ── Force overwrite ──────────────────────────────────────────────────


def test_force_overwrite_accepts_every_field() -> None:
    doc = {"capacity": {"backend": 10}, "milestones": [{"id": 1, "name": "M1"}]}
    ts = {"capacity": T0 + 500, "milestones": T0 + 500}
    client = {"capacity": {"backend": 99}, "milestones": [{"id": 2, "name": "Overwrite"}]}

    result = reconcile(doc, ts, client, FORCE_OVERWRITE, T0 + 1000)

    assert result.rejected == []
    assert sorted(result.accepted) == ["capacity", "milestones"]
    assert result.document == client
    assert result.field_timestamps == {"capacity": T0 + 1000, "milestones": T0 + 1000}


# ── Conflicts ────────────────────────────────────────────────────────


class TestConflicts:
    def test_object_merge_honors_deletions_and_changes(self) -> None:
        doc = {"capacity": {"a": 1, "b": 2, "c": 3}}
        ts = {"capacity": T0 + 100}

        result = reconcile(doc, ts, {"capacity": {"a": 1, "b": 99}}, T0, T0 + 200)

        assert result.document["capacity"] == {"a": 1, "b": 99}
        assert result.accepted == ["capacity"]
        assert result.rejected == []
        resolution = result.resolutions[0]
        assert resolution.outcome is FieldOutcome.MERGED
        assert resolution.merged_keys == ["b"]
        assert resolution.deleted_keys == ["c"]
        assert resolution.added_keys == []
        assert result.field_timestamps["capacity"] == T0 + 200

    def test_array_conflict_rejects_and_keeps_server_value(self) -> None:
        doc = {"milestones": [1, 2, 3]}
        ts = {"milestones": T0 + 100}

        result = reconcile(doc, ts, {"milestones": [9, 9]}, T0, T0 + 200)

        assert result.document["milestones"] == [1, 2, 3]
        assert result.rejected == ["milestones"]
        assert result.field_timestamps["milestones"] == T0 + 100

    def test_primitive_conflict_rejects(self) -> None:
        result = reconcile({"buffer": 5}, {"buffer": T0 + 1}, {"buffer": 7}, T0, T0 + 2)

        assert result.rejected == ["buffer"]
        assert result.document["buffer"] == 5

    def test_type_flip_falls_through_to_reject(self) -> None:
        doc = {"trackBlockOrder": ["a", "b"]}
        ts = {"trackBlockOrder": T0 + 1}

        result = reconcile(doc, ts, {"trackBlockOrder": {"core-bonus": ["a"]}}, T0, T0 + 2)

        assert result.rejected == ["trackBlockOrder"]
        assert result.document["trackBlockOrder"] == ["a", "b"]

    def test_stale_merge_without_effect_is_not_a_rejection(self) -> None:
        doc = {"sizeMap": {"S": 1, "M": 2}}
        ts = {"sizeMap": T0 + 100}

        result = reconcile(doc, ts, {"sizeMap": {"S": 1, "M": 2}}, T0, T0 + 200)

        assert result.rejected == []
        assert result.accepted == []
        assert _outcomes(result)["sizeMap"] is FieldOutcome.UNCHANGED
        assert result.field_timestamps["sizeMap"] == T0 + 100

    def test_two_field_independence(self) -> None:
        doc = {"capacity": {"backend": 10}, "milestones": [{"id": 1, "name": "M1 Updated"}]}
        ts = {"capacity": T0 + 100, "milestones": T0 + 100}
        client = {"capacity": {"backend": 20}, "milestones": [{"id": 2, "name": "M2"}]}

        result = reconcile(doc, ts, client, T0, T0 + 200)

        assert result.accepted == ["capacity"]
        assert result.rejected == ["milestones"]
        assert result.document["capacity"]["backend"] == 20
        assert result.document["milestones"][0]["name"] == "M1 Updated"


# ── Multi-client scenarios ───────────────────────────────────────────


class TestScenarios:
    def test_object_field_second_writer_merges(self) -> None:
        doc, ts = {"capacity": {"backend": 40}}, {}

        a = reconcile(doc, ts, {"capacity": {"backend": 50}}, T0, T0 + 10)
        assert a.accepted == ["capacity"]
        assert a.field_timestamps["capacity"] == T0 + 10

        b = reconcile(a.document, a.field_timestamps, {"capacity": {"backend": 45}}, T0, T0 + 20)

        assert b.accepted == ["capacity"]
        assert b.rejected == []
        assert b.document["capacity"] == {"backend": 45}
        assert b.field_timestamps["capacity"] == T0 + 20

    def test_array_field_second_writer_loses(self) -> None:
        doc, ts = {"milestones": []}, {}

        a = reconcile(doc, ts, {"milestones": [{"label": "M1 by A", "week": 2}]}, T0, T0 + 10)
        b = reconcile(
            a.document,
            a.field_timestamps,
            {"milestones": [{"label": "M1 Stale by B", "week": 3}]},
            T0,
            T0 + 20,
        )

        assert b.rejected == ["milestones"]
        assert b.document["milestones"][0]["label"] == "M1 by A"


# ── Purity ───────────────────────────────────────────────────────────


def test_inputs_are_never_mutated() -> None:
    doc = {"capacity": {"backend": 40}, "tracks": {"gateway": [1]}}
    ts = {"capacity": T0 + 100}
    client = {"capacity": {"frontend": 5}, "tracks": {"gateway": [1, 2]}}
    doc_before, ts_before, client_before = deepcopy(doc), deepcopy(ts), deepcopy(client)

    result = reconcile(doc, ts, client, T0, T0 + 200)
    result.document["tracks"]["gateway"].append(99)

    assert doc == doc_before
    assert ts == ts_before
    assert client == client_before


def test_untouched_fields_are_carried_through() -> None:
    doc = {"capacity": {"backend": 40}, "tracks": {"core-bonus": [1]}, "custom": "x"}

    result = reconcile(doc, {}, {"capacity": {"backend": 50}}, T0, T0 + 1)

    assert result.document["tracks"] == {"core-bonus": [1]}
    assert result.document["custom"] == "x"
