from __future__ import annotations


def _checkin(client, user_id: str = "U1", **body):
    body.setdefault("username", "alice")
    return client.post(f"/api/presence/users/{user_id}/checkin", json=body)


def test_checkin_and_checkout(client):
    created = _checkin(client, notes="hello")
    assert created.status_code == 201
    body = created.json()
    assert body["status"] == "active"
    assert body["notes"] == {"checkin": "hello", "checkout": None}

    state = client.get("/api/presence/users/U1/state")
    assert state.status_code == 200
    assert state.json()["status"]["status"] == "checked-in"
    assert state.json()["status"]["current_session_id"] == body["session_id"]

    done = client.post("/api/presence/users/U1/checkout", json={"notes": "bye"})
    assert done.status_code == 200
    assert done.json()["status"] == "completed"
    assert done.json()["total_work_time"] == 0

    session = client.get(f"/api/presence/sessions/{body['session_id']}")
    assert session.status_code == 200
    assert session.json()["notes"]["checkout"] == "bye"


def test_double_checkin_conflicts(client):
    assert _checkin(client).status_code == 201
    again = _checkin(client)
    assert again.status_code == 409
    assert again.json()["error"] == "AlreadyActiveError"
    assert "/checkout" in again.json()["detail"]


def test_break_flow(client):
    _checkin(client)
    started = client.post("/api/presence/users/U1/breaks/start", json={"type": "short", "notes": "coffee"})
    assert started.status_code == 201
    assert started.json()["expected_duration"] == 15

    second = client.post("/api/presence/users/U1/breaks/start", json={"type": "lunch"})
    assert second.status_code == 409
    assert second.json()["error"] == "AlreadyOnBreakError"

    ended = client.post("/api/presence/users/U1/breaks/end", json={})
    assert ended.status_code == 200
    result = ended.json()
    assert result["break_record"]["status"] == "completed"
    assert result["variance"]["expected_minutes"] == 15

    again = client.post("/api/presence/users/U1/breaks/end", json={})
    assert again.status_code == 409
    assert again.json()["error"] == "NotOnBreakError"

    session_id = started.json()["session_id"]
    breaks = client.get(f"/api/presence/sessions/{session_id}/breaks")
    assert [b["break_id"] for b in breaks.json()] == [started.json()["break_id"]]


def test_unknown_break_type_is_rejected(client):
    _checkin(client)
    response = client.post("/api/presence/users/U1/breaks/start", json={"type": "nap"})
    assert response.status_code == 422


def test_status_update(client):
    created = _checkin(client)
    posted = client.post("/api/presence/users/U1/status", json={"text": "  shipping release  "})
    assert posted.status_code == 201
    assert posted.json()["status"] == "shipping release"

    updates = client.get(f"/api/presence/sessions/{created.json()['session_id']}/status-updates")
    assert [u["status"] for u in updates.json()] == ["shipping release"]

    empty = client.post("/api/presence/users/U1/status", json={"text": ""})
    assert empty.status_code == 422


def test_actions_without_checkin(client):
    assert client.post("/api/presence/users/U9/checkout", json={}).status_code == 409
    assert client.post("/api/presence/users/U9/status", json={"text": "hi"}).status_code == 409
    assert client.post("/api/presence/users/U9/breaks/end", json={}).status_code == 409


def test_missing_resources(client):
    assert client.get("/api/presence/users/ghost/state").status_code == 404
    assert client.get("/api/presence/sessions/nope").status_code == 404
    assert client.get("/api/presence/users/ghost/preferences").status_code == 404


def test_timezone_endpoint(client):
    bad = client.put("/api/presence/users/U1/timezone", json={"timezone": "Mars/Olympus"})
    assert bad.status_code == 422
    assert bad.json()["error"] == "InvalidTimezoneError"

    good = client.put("/api/presence/users/U1/timezone", json={"timezone": "Asia/Kolkata"})
    assert good.status_code == 200
    assert good.json()["timezone"] == "Asia/Kolkata"

    created = _checkin(client)
    assert created.json()["timezone"] == "Asia/Kolkata"


def test_preferences_patch(client):
    response = client.patch(
        "/api/presence/users/U1/preferences",
        json={"default_break_durations": {"lunch": 30}, "notifications": {"break_reminders": False}},
    )
    assert response.status_code == 200
    body = response.json()
    assert body["default_break_durations"]["lunch"] == 30
    assert body["notifications"]["break_reminders"] is False


def test_active_users_and_report(client):
    _checkin(client, "U1")
    _checkin(client, "U2", username="bob")
    client.post("/api/presence/users/U2/breaks/start", json={"type": "meeting"})

    active = client.get("/api/presence/active")
    assert [u["user_id"] for u in active.json()] == ["U1", "U2"]

    report = client.get("/api/presence/report")
    assert report.status_code == 200
    assert [row["user_id"] for row in report.json()["working"]] == ["U1"]
    assert [row["user_id"] for row in report.json()["on_break"]] == ["U2"]


def test_health_and_metrics(client):
    assert client.get("/healthz").json()["status"] == "ok"
    metrics = client.get("/metrics")
    assert metrics.status_code == 200
    assert "presence_reminder_ticks_total" in metrics.text
