"""
Integration tests for API endpoints using a SQLite DB and a fixed clock.
"""
from datetime import date

import pytest

from screenledger.models.weekly_period import PENALTY_MODEL_PROGRESSIVE, WeeklyPeriod

APP = "com.example.social"


@pytest.fixture()
def goal(client):
    r = client.post("/goals", json={
        "app_identifier": APP,
        "display_name": "Social",
        "base_daily_limit_minutes": 60,
    })
    assert r.status_code == 201
    return r.json()


class TestHealth:
    def test_health(self, client):
        r = client.get("/health")
        assert r.status_code == 200
        assert r.json()["status"] == "ok"
        assert r.json()["db"] == "ok"


class TestGoals:
    def test_create_goal(self, goal):
        assert goal["id"] > 0
        assert goal["app_identifier"] == APP
        assert goal["is_active"] is True
        assert goal["limit"]["minutes"] == 60
        assert goal["limit"]["basis"] == "base"
        assert goal["overrides"]["extensions"] == []

    def test_list_goals(self, client, goal):
        r = client.get("/goals")
        assert r.status_code == 200
        body = r.json()
        assert body["total"] == 1
        assert body["items"][0]["app_identifier"] == APP

    def test_create_rejects_negative_limit(self, client):
        r = client.post("/goals", json={
            "app_identifier": APP, "display_name": "Social", "base_daily_limit_minutes": -5,
        })
        assert r.status_code == 422

    def test_delete_goal(self, client, goal):
        r = client.delete(f"/goals/{APP}")
        assert r.status_code == 200
        assert r.json()["is_active"] is False
        assert client.get("/goals").json()["total"] == 0
        assert client.get(f"/goals/{APP}/effective-limit").status_code == 404

    def test_change_limit_without_usage_applies_now(self, client, goal):
        r = client.put(f"/goals/{APP}/limit", json={"minutes": 45})
        assert r.status_code == 200
        body = r.json()
        assert body["applied_now"] is True
        assert body["base_daily_limit_minutes"] == 45
        assert body["pending_limit_minutes"] is None

    def test_change_limit_after_usage_is_pending(self, client, goal):
        client.post("/ledger/usage", json={"app_identifier": APP, "minutes": 10})
        body = client.put(f"/goals/{APP}/limit", json={"minutes": 45}).json()
        assert body["applied_now"] is False
        assert body["base_daily_limit_minutes"] == 60
        assert body["pending_limit_minutes"] == 45

    def test_extend_today(self, client, goal):
        r = client.post(f"/goals/{APP}/extend-today", json={"minutes": 20})
        assert r.status_code == 200
        assert r.json()["limit"]["minutes"] == 80


class TestEffectiveLimit:
    def test_base(self, client, goal):
        r = client.get(f"/goals/{APP}/effective-limit")
        assert r.status_code == 200
        body = r.json()
        assert body["minutes"] == 60
        assert body["is_blocked"] is False

    def test_zero_limit_is_blocked(self, client):
        client.post("/goals", json={
            "app_identifier": "com.example.game", "display_name": "Game",
            "base_daily_limit_minutes": 0,
        })
        body = client.get("/goals/com.example.game/effective-limit").json()
        assert body["minutes"] == 0
        assert body["is_blocked"] is True

    def test_puzzle_extension_added(self, client, goal):
        r = client.post(f"/goals/{APP}/extensions", json={})
        assert r.status_code == 201
        assert len(r.json()["overrides"]["extensions"]) == 1
        assert client.get(f"/goals/{APP}/effective-limit").json()["minutes"] == 75

    def test_restriction_plus_extension(self, client, goal):
        r = client.put(f"/goals/{APP}/restriction", json={"period": "daily", "minutes": 20})
        assert r.status_code == 200
        client.post(f"/goals/{APP}/extensions", json={"minutes": 10})
        body = client.get(f"/goals/{APP}/effective-limit").json()
        assert body["basis"] == "restriction"
        assert body["minutes"] == 30

    def test_clear_restriction(self, client, goal):
        client.put(f"/goals/{APP}/restriction", json={"period": "weekly", "minutes": 20})
        r = client.delete(f"/goals/{APP}/restriction")
        assert r.json()["overrides"]["restriction"] is None
        assert r.json()["limit"]["minutes"] == 60

    def test_extra_time_session(self, client, goal):
        r = client.put(f"/goals/{APP}/session", json={"mode": "extra_time", "minutes": 5})
        assert r.status_code == 200
        body = r.json()["limit"]
        assert body["basis"] == "extra_time"
        assert body["minutes"] == 65

    def test_one_session_then_end(self, client, goal):
        client.post(f"/goals/{APP}/extensions", json={"minutes": 10})
        body = client.put(f"/goals/{APP}/session", json={"mode": "one_session"}).json()
        assert body["limit"]["basis"] == "one_session"
        assert body["limit"]["minutes"] == 60
        ended = client.post(f"/goals/{APP}/session/end").json()
        assert ended["overrides"]["session"] is None
        assert ended["limit"]["minutes"] == 70

    def test_block_window_flags_blocked(self, client, goal):
        # The fixed clock reads 10:00.
        r = client.put(f"/goals/{APP}/block-window", json={"start": "09:00", "end": "11:00"})
        assert r.status_code == 200
        body = client.get(f"/goals/{APP}/effective-limit").json()
        assert body["in_block_window"] is True
        assert body["is_blocked"] is True
        assert body["minutes"] == 60

    def test_block_window_cleared(self, client, goal):
        client.put(f"/goals/{APP}/block-window", json={"start": "09:00", "end": "11:00"})
        client.delete(f"/goals/{APP}/block-window")
        assert client.get(f"/goals/{APP}/effective-limit").json()["is_blocked"] is False


class TestLedger:
    def test_initial_summary(self, client):
        r = client.get("/ledger")
        assert r.status_code == 200
        body = r.json()
        assert body["credits_remaining"] == 7
        assert body["fee_state"] == "ok"
        assert body["start_date"] == "2026-03-02"
        assert body["end_date"] == "2026-03-08"
        assert body["penalty_model_version"] == 2
        assert body["stale"] is False

    def test_usage_under_limit(self, client, goal):
        r = client.post("/ledger/usage", json={"app_identifier": APP, "minutes": 30})
        assert r.status_code == 200
        body = r.json()
        assert body["did_exceed_limit"] is False
        assert body["transaction"] is None
        assert body["ledger"]["credits_remaining"] == 7

    def test_breach_then_fee(self, client, goal):
        r = client.post("/ledger/usage", json={"app_identifier": APP, "minutes": 75})
        body = r.json()
        assert body["did_exceed_limit"] is True
        assert body["transaction"]["amount"] == -7
        assert body["transaction"]["kind"] == "breach_charged"
        assert body["ledger"]["fee_state"] == "fee_pending"

        fee = client.post("/ledger/fee").json()
        assert fee["paid"] is True
        assert fee["transaction"]["amount"] == 7
        assert fee["ledger"]["credits_remaining"] == 7
        assert fee["ledger"]["accountability_fee_paid_date"] == "2026-03-04"

    def test_fee_when_not_due(self, client):
        body = client.post("/ledger/fee").json()
        assert body["paid"] is False
        assert body["transaction"] is None

    def test_explicit_exceeded_flag_wins(self, client, goal):
        body = client.post("/ledger/usage", json={
            "app_identifier": APP, "minutes": 5, "exceeded_limit": True,
        }).json()
        assert body["transaction"]["amount"] == -7

    def test_usage_unknown_app(self, client):
        r = client.post("/ledger/usage", json={"app_identifier": "nope", "minutes": 5})
        assert r.status_code == 404

    def test_transactions_newest_first(self, client, goal):
        client.post("/ledger/usage", json={"app_identifier": APP, "minutes": 75})
        client.post("/ledger/fee")
        body = client.get("/ledger/transactions").json()
        assert body["total"] == 2
        assert [t["kind"] for t in body["items"]] == ["fee_paid", "breach_charged"]

    def test_transactions_pagination(self, client, goal):
        client.post("/ledger/usage", json={"app_identifier": APP, "minutes": 75})
        client.post("/ledger/fee")
        body = client.get("/ledger/transactions?limit=1&offset=1").json()
        assert body["total"] == 2
        assert len(body["items"]) == 1
        assert body["items"][0]["kind"] == "breach_charged"

    def test_transactions_limit_bounds(self, client):
        assert client.get("/ledger/transactions?limit=0").status_code == 422
        assert client.get("/ledger/transactions?limit=201").status_code == 422

    def test_periods(self, client):
        body = client.get("/ledger/periods").json()
        assert body["total"] == 1
        assert body["items"][0]["is_current"] is True
        assert body["items"][0]["legacy_credits_lost"] is None

    def test_legacy_period_interpreted(self, client, db):
        db.add(WeeklyPeriod(
            start_date=date(2026, 2, 23),
            end_date=date(2026, 3, 1),
            credits_remaining=4,
            failure_count=2,
            is_current=False,
            penalty_model_version=PENALTY_MODEL_PROGRESSIVE,
        ))
        db.commit()

        items = client.get("/ledger/periods").json()["items"]
        assert [p["start_date"] for p in items] == ["2026-03-02", "2026-02-23"]
        assert items[0]["legacy_credits_lost"] is None
        assert items[1]["legacy_credits_lost"] == 3

    def test_same_app_after_fee_is_not_charged_again(self, client, goal):
        client.post("/ledger/usage", json={"app_identifier": APP, "minutes": 75})
        client.post("/ledger/fee")
        body = client.post("/ledger/usage", json={"app_identifier": APP, "minutes": 95}).json()
        assert body["actual_usage_minutes"] == 95
        assert body["did_exceed_limit"] is True
        assert body["transaction"] is None
        assert body["ledger"]["credits_remaining"] == 7
        assert client.get("/ledger/transactions").json()["total"] == 2


class TestStreakAndStats:
    def test_streak_starts_empty(self, client):
        body = client.get("/streak").json()
        assert body["current_streak"] == 0
        assert body["history"] == {}

    def test_mark_activity(self, client):
        r = client.post("/streak/activity", json={"has_blocked_apps": True})
        assert r.status_code == 200
        assert r.json()["history"] == {"2026-03-04": True}

    def test_daily_stats_zero_is_unreported(self, client):
        body = client.post("/stats/daily", json={"screen_time_minutes": 0, "puzzles_solved": 2}).json()
        assert body["day"] == "2026-03-04"
        assert body["screen_time_minutes"] is None
        assert body["puzzles_solved"] == 2

    def test_daily_stats_rejects_negative(self, client):
        assert client.post("/stats/daily", json={"puzzles_solved": -1}).status_code == 422

    def test_sync_without_shared_region(self, client):
        body = client.post("/sync/shared").json()
        assert body["apps_updated"] == []
        assert body["breaches"] == 0


class TestAchievements:
    def test_first_goal_unlocks_once(self, client, goal):
        first = client.get("/achievements").json()
        assert "first_day" in first["newly_unlocked"]
        second = client.get("/achievements").json()
        assert "first_day" in second["unlocked"]
        assert second["newly_unlocked"] == []


class TestPet:
    def test_no_pet(self, client):
        r = client.get("/pet")
        assert r.status_code == 404
        assert r.json()["code"] == "PET_NOT_FOUND"

    def test_choose_and_rename(self, client):
        r = client.put("/pet", json={"pet_type": "cat", "name": "Miso"})
        assert r.status_code == 200
        assert r.json()["pet_type"] == "cat"
        client.put("/pet", json={"pet_type": "cat", "name": "Tofu"})
        assert client.get("/pet").json()["name"] == "Tofu"

    def test_unknown_pet_type(self, client):
        assert client.put("/pet", json={"pet_type": "dragon", "name": "X"}).status_code == 422

    def test_health_follows_usage(self, client, goal):
        client.put("/pet", json={"pet_type": "dog", "name": "Rex"})
        client.post("/ledger/usage", json={"app_identifier": APP, "minutes": 90})
        body = client.get("/pet/health").json()
        assert body["total_used_minutes"] == 90
        assert body["total_limit_minutes"] == 60
        assert body["mood"] == "sick"
        assert body["pet"]["health_state"] == "sick"

    def test_health_without_goals(self, client):
        body = client.get("/pet/health").json()
        assert body["score"] == 100
        assert body["pet"] is None
