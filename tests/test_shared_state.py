"""
Tests for the shared region document and the ledger's sync with it.
"""
from __future__ import annotations

import json
from datetime import date

import pytest

from screenledger.services.shared_state import SharedRegion

DAY = date(2026, 3, 4)
APP = "com.example.social"


@pytest.fixture()
def region(tmp_path):
    return SharedRegion(tmp_path / "shared" / "state.json")


@pytest.fixture()
def shared_ledger(ledger, region):
    ledger.shared = region
    return ledger


class TestDocument:
    def test_missing_file_reads_empty(self, region):
        assert region.read() == {}

    def test_corrupt_file_reads_empty(self, region):
        region.path.parent.mkdir(parents=True)
        region.path.write_text("{not json", encoding="utf-8")
        assert region.read() == {}

    def test_non_object_reads_empty(self, region):
        region.path.parent.mkdir(parents=True)
        region.path.write_text("[1, 2]", encoding="utf-8")
        assert region.read() == {}

    def test_write_leaves_no_temp_file(self, region):
        region.write({"a": 1})
        assert json.loads(region.path.read_text(encoding="utf-8")) == {"a": 1}
        assert [p.name for p in region.path.parent.iterdir()] == ["state.json"]

    def test_publish_keeps_foreign_sections(self, region):
        region.write({"app_usage": {"2026-03-04": {APP: 5}}, "goals": {"old": {}}})
        region.publish(goals={APP: {"effective_limit": 60}})
        data = region.read()
        assert data["app_usage"] == {"2026-03-04": {APP: 5}}
        assert data["goals"] == {APP: {"effective_limit": 60}}

    def test_publish_rejects_foreign_section(self, region):
        with pytest.raises(ValueError):
            region.publish(app_usage={})


class TestReaders:
    def test_app_usage_drops_zero_and_garbage(self, region):
        region.write({"app_usage": {"2026-03-04": {APP: 12, "b": 0, "c": "x", "d": True}}})
        assert region.app_usage(DAY) == {APP: 12}

    def test_app_usage_other_day_empty(self, region):
        region.write({"app_usage": {"2026-03-03": {APP: 12}}})
        assert region.app_usage(DAY) == {}

    def test_zero_screen_time_is_no_data(self, region):
        region.write({"daily_screen_time": {"2026-03-04": 0}})
        assert region.screen_time(DAY) is None

    def test_screen_time(self, region):
        region.write({"daily_screen_time": {"2026-03-04": 95}})
        assert region.screen_time(DAY) == 95

    def test_puzzles(self, region):
        assert region.puzzles_solved(DAY) is None
        region.write({"daily_puzzles": {"2026-03-04": 3}})
        assert region.puzzles_solved(DAY) == 3

    def test_non_finite_numbers_are_no_data(self, region):
        region.path.parent.mkdir(parents=True)
        region.path.write_text(
            '{"app_usage": {"2026-03-04": {"a": Infinity, "b": NaN, "c": 4}},'
            ' "daily_screen_time": {"2026-03-04": -Infinity},'
            ' "daily_puzzles": {"2026-03-04": Infinity}}',
            encoding="utf-8",
        )
        assert region.app_usage(DAY) == {"c": 4}
        assert region.screen_time(DAY) is None
        assert region.puzzles_solved(DAY) is None


class TestLedgerSync:
    def test_goal_change_published(self, shared_ledger, region):
        shared_ledger.add_goal(APP, "Social", 60)
        goals = region.read()["goals"]
        assert goals[APP]["effective_limit"] == 60
        assert goals[APP]["is_blocked"] is False

    def test_activity_published(self, shared_ledger, region):
        shared_ledger.mark_day_activity(True)
        assert region.read()["daily_blocked_status"] == {"2026-03-04": True}

    def test_sync_applies_usage_and_breach(self, shared_ledger, region):
        shared_ledger.add_goal(APP, "Social", 60)
        data = region.read()
        data["app_usage"] = {"2026-03-04": {APP: 75}}
        data["daily_screen_time"] = {"2026-03-04": 140}
        data["daily_puzzles"] = {"2026-03-04": 2}
        region.write(data)

        result = shared_ledger.sync_shared_usage()
        assert result.apps_updated == [APP]
        assert result.breaches == 1
        assert result.screen_time_minutes == 140
        assert result.puzzles_solved == 2
        assert shared_ledger.get_ledger_summary().credits_remaining == 0

    def test_sync_twice_charges_once(self, shared_ledger, region):
        shared_ledger.add_goal(APP, "Social", 60)
        data = region.read()
        data["app_usage"] = {"2026-03-04": {APP: 75}}
        region.write(data)
        shared_ledger.sync_shared_usage()
        assert shared_ledger.sync_shared_usage().breaches == 0

    def test_sync_ignores_unknown_apps(self, shared_ledger, region):
        region.write({"app_usage": {"2026-03-04": {"com.example.other": 30}}})
        result = shared_ledger.sync_shared_usage()
        assert result.apps_updated == []
        assert result.screen_time_minutes is None

    def test_sync_survives_non_finite_values(self, shared_ledger, region):
        shared_ledger.add_goal(APP, "Social", 60)
        region.path.write_text(
            '{"app_usage": {"2026-03-04": {"%s": Infinity}},'
            ' "daily_puzzles": {"2026-03-04": Infinity}}' % APP,
            encoding="utf-8",
        )
        result = shared_ledger.sync_shared_usage()
        assert result.apps_updated == []
        assert result.breaches == 0
        assert result.puzzles_solved is None
        assert shared_ledger.get_ledger_summary().credits_remaining == 7
