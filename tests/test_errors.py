"""
Tests for error handling: structured error responses, HTTP status codes,
and the custom exception classes.
"""
from screenledger.core.errors import (
    ExtensionLimitReachedError,
    GoalAlreadyExistsError,
    GoalNotFoundError,
    PetNotFoundError,
    StaleStateError,
)

APP = "com.example.social"


def _create(client, app=APP, minutes=60):
    return client.post("/goals", json={
        "app_identifier": app, "display_name": "Social", "base_daily_limit_minutes": minutes,
    })


# ---------------------------------------------------------------------------
# Unit tests on exception classes
# ---------------------------------------------------------------------------

class TestExceptionClasses:
    def test_goal_not_found(self):
        err = GoalNotFoundError("com.example.x")
        assert err.http_status == 404
        assert err.code == "GOAL_NOT_FOUND"
        assert "com.example.x" in err.message
        d = err.to_dict()
        assert d["details"]["app_identifier"] == "com.example.x"

    def test_goal_already_exists(self):
        err = GoalAlreadyExistsError(APP)
        assert err.http_status == 409
        assert err.code == "GOAL_ALREADY_EXISTS"

    def test_extension_limit_reached(self):
        err = ExtensionLimitReachedError(APP, 10)
        assert err.http_status == 409
        assert err.code == "EXTENSION_LIMIT_REACHED"
        assert err.details["max_per_day"] == 10

    def test_stale_state(self):
        err = StaleStateError("report_usage", 3)
        assert err.http_status == 503
        assert err.code == "STALE_STATE"
        assert err.details == {"operation": "report_usage", "attempts": 3}

    def test_stale_state_queued(self):
        err = StaleStateError("report_usage", 3, queued=True)
        assert err.queued is True
        assert err.details["queued"] is True
        assert "retried" in err.message

    def test_to_dict_without_details(self):
        d = PetNotFoundError().to_dict()
        assert d["code"] == "PET_NOT_FOUND"
        assert "message" in d
        assert "details" not in d


# ---------------------------------------------------------------------------
# HTTP error envelope
# ---------------------------------------------------------------------------

class TestUnknownGoal:
    def test_effective_limit_404(self, client):
        r = client.get("/goals/com.example.unknown/effective-limit")
        assert r.status_code == 404
        body = r.json()
        assert body["code"] == "GOAL_NOT_FOUND"
        assert body["details"]["app_identifier"] == "com.example.unknown"

    def test_override_routes_404(self, client):
        for method, path, payload in [
            ("put", "/goals/x/limit", {"minutes": 10}),
            ("put", "/goals/x/restriction", {"period": "daily", "minutes": 10}),
            ("put", "/goals/x/block-window", {"start": "21:00", "end": "09:00"}),
            ("post", "/goals/x/extensions", {}),
            ("put", "/goals/x/session", {"mode": "one_session"}),
        ]:
            r = getattr(client, method)(path, json=payload)
            assert r.status_code == 404, path
            assert r.json()["code"] == "GOAL_NOT_FOUND"

    def test_delete_404(self, client):
        assert client.delete("/goals/x").status_code == 404


class TestConflicts:
    def test_duplicate_goal_409(self, client):
        _create(client)
        r = _create(client)
        assert r.status_code == 409
        assert r.json()["code"] == "GOAL_ALREADY_EXISTS"

    def test_extension_cap_409(self, client, ledger):
        _create(client)
        cap = ledger.settings.MAX_EXTENSIONS_PER_DAY
        for _ in range(cap):
            assert client.post(f"/goals/{APP}/extensions", json={}).status_code == 201
        r = client.post(f"/goals/{APP}/extensions", json={})
        assert r.status_code == 409
        body = r.json()
        assert body["code"] == "EXTENSION_LIMIT_REACHED"
        assert body["details"]["max_per_day"] == cap

    def test_failed_extension_not_persisted(self, client, ledger):
        _create(client)
        cap = ledger.settings.MAX_EXTENSIONS_PER_DAY
        for _ in range(cap + 1):
            client.post(f"/goals/{APP}/extensions", json={"minutes": 1})
        assert client.get(f"/goals/{APP}/effective-limit").json()["minutes"] == 60 + cap


class TestValidation:
    def test_validation_envelope(self, client):
        r = client.post("/goals", json={"display_name": "Social"})
        assert r.status_code == 422
        body = r.json()
        assert body["code"] == "VALIDATION_ERROR"
        fields = {e["field"] for e in body["details"]["errors"]}
        assert "app_identifier" in fields
        assert "base_daily_limit_minutes" in fields

    def test_bad_restriction_period(self, client):
        _create(client)
        r = client.put(f"/goals/{APP}/restriction", json={"period": "monthly", "minutes": 10})
        assert r.status_code == 422
        assert r.json()["code"] == "VALIDATION_ERROR"

    def test_bad_block_window_time(self, client):
        _create(client)
        r = client.put(f"/goals/{APP}/block-window", json={"start": "25:00", "end": "09:00"})
        assert r.status_code == 422

    def test_negative_usage(self, client):
        r = client.post("/ledger/usage", json={"app_identifier": APP, "minutes": -1})
        assert r.status_code == 422

    def test_extend_today_requires_positive(self, client):
        _create(client)
        assert client.post(f"/goals/{APP}/extend-today", json={"minutes": 0}).status_code == 422


class TestStorageUnavailable:
    def test_write_returns_503(self, client, ledger, broken_sessions):
        ledger._session_factory = broken_sessions
        r = client.post("/ledger/fee")
        assert r.status_code == 503
        assert r.json()["code"] == "STALE_STATE"
        assert r.json()["details"]["queued"] is True

    def test_summary_stale_from_cache(self, client, ledger, broken_sessions):
        assert client.get("/ledger").json()["stale"] is False
        ledger._session_factory = broken_sessions
        r = client.get("/ledger")
        assert r.status_code == 200
        assert r.json()["stale"] is True
