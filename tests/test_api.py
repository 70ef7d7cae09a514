import pytest

from meetwhen.core.errors import CalendarUnavailableError
from meetwhen.core.rate_limit import booking_rate_limiter
from meetwhen.services import notifications

MONDAY = "2030-01-07"


async def _setup(client, username="ada", timezone="UTC", **event_fields):
    resp = await client.post(
        "/api/v1/hosts",
        json={"name": "Ada", "email": f"{username}@example.com", "username": username, "timezone": timezone},
    )
    assert resp.status_code == 201
    host_id = resp.json()["id"]
    headers = {"X-Host-Id": host_id}

    resp = await client.put(
        "/api/v1/availability",
        json={"rules": [{"day_of_week": 1, "start_time": "09:00", "end_time": "17:00"}]},
        headers=headers,
    )
    assert resp.status_code == 200

    resp = await client.post(
        "/api/v1/event-types",
        json={"title": "Intro call", "slug": "intro", "duration": 30, **event_fields},
        headers=headers,
    )
    assert resp.status_code == 201
    return headers, resp.json()


def _booking(event_type_id, start, email="grace@example.com"):
    return {
        "event_type_id": event_type_id,
        "start": start,
        "guest": {"name": "Grace", "email": email, "timezone": "Europe/London"},
    }


async def test_health(client):
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "healthy"


async def test_host_profile(client):
    headers, _ = await _setup(client)

    resp = await client.get("/api/v1/hosts/me", headers=headers)
    assert resp.json()["username"] == "ada"
    assert resp.json()["google_calendar_connected"] is False

    resp = await client.patch("/api/v1/hosts/me", json={"timezone": "Asia/Tokyo"}, headers=headers)
    assert resp.json()["timezone"] == "Asia/Tokyo"


async def test_duplicate_username(client):
    await _setup(client)
    resp = await client.post(
        "/api/v1/hosts", json={"name": "Other", "email": "o@example.com", "username": "ada"}
    )
    assert resp.status_code == 409
    assert resp.json()["error"] == "conflict"


async def test_unknown_host_header(client):
    resp = await client.get(
        "/api/v1/hosts/me", headers={"X-Host-Id": "00000000-0000-0000-0000-000000000000"}
    )
    assert resp.status_code == 404


async def test_book_then_slot_disappears(client):
    _, event_type = await _setup(client)

    resp = await client.get(
        "/api/v1/slots", params={"username": "ada", "event_slug": "intro", "date": MONDAY}
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["timezone"] == "UTC"
    assert body["degraded"] is False
    assert "10:00" in body["slots"]

    resp = await client.post("/api/v1/bookings", json=_booking(event_type["id"], "2030-01-07T10:00:00Z"))
    assert resp.status_code == 201
    booking = resp.json()
    assert booking["status"] == "CONFIRMED"
    assert booking["end_time"].startswith("2030-01-07T10:30")

    resp = await client.get(f"/api/v1/event-types/{event_type['id']}/slots", params={"date": MONDAY})
    assert "10:00" not in resp.json()["slots"]

    resp = await client.post("/api/v1/bookings", json=_booking(event_type["id"], "2030-01-07T10:00:00Z"))
    assert resp.status_code == 409
    assert resp.json()["error"] == "conflict"


async def test_month_endpoint(client):
    headers, event_type = await _setup(client)
    resp = await client.put(
        "/api/v1/date-overrides/2030-01-14", json={"is_available": False, "reason": "Holiday"}, headers=headers
    )
    assert resp.status_code == 200

    resp = await client.get(
        "/api/v1/slots/month", params={"username": "ada", "event_slug": "intro", "month": "2030-01"}
    )
    assert resp.json()["dates"] == ["2030-01-07", "2030-01-21", "2030-01-28"]

    resp = await client.get(f"/api/v1/event-types/{event_type['id']}/slots/month", params={"month": "2030-1x"})
    assert resp.status_code == 400


async def test_date_override_crud(client):
    headers, _ = await _setup(client)

    resp = await client.put(
        "/api/v1/date-overrides/2030-01-12",
        json={"is_available": True, "start_time": "10:00", "end_time": "12:00"},
        headers=headers,
    )
    assert resp.status_code == 200
    resp = await client.get(
        "/api/v1/date-overrides", params={"from": "2030-01-01", "to": "2030-01-31"}, headers=headers
    )
    assert [o["date"] for o in resp.json()] == ["2030-01-12"]

    resp = await client.get("/api/v1/slots", params={"username": "ada", "event_slug": "intro", "date": "2030-01-12"})
    assert resp.json()["slots"][0] == "10:00"

    assert (await client.delete("/api/v1/date-overrides/2030-01-12", headers=headers)).status_code == 204
    assert (await client.delete("/api/v1/date-overrides/2030-01-12", headers=headers)).status_code == 404


async def test_invalid_settings_are_rejected(client):
    headers, event_type = await _setup(client)

    resp = await client.put(
        "/api/v1/availability",
        json={"rules": [{"day_of_week": 1, "start_time": "17:00", "end_time": "09:00"}]},
        headers=headers,
    )
    assert resp.status_code == 422
    resp = await client.put(
        "/api/v1/availability",
        json={"rules": [{"day_of_week": 7, "start_time": "09:00", "end_time": "17:00"}]},
        headers=headers,
    )
    assert resp.status_code == 422
    resp = await client.put(
        "/api/v1/date-overrides/2030-01-14", json={"is_available": True}, headers=headers
    )
    assert resp.status_code == 422
    resp = await client.patch(f"/api/v1/event-types/{event_type['id']}", json={"duration": 0}, headers=headers)
    assert resp.status_code == 422
    resp = await client.patch(
        f"/api/v1/event-types/{event_type['id']}", json={"available_start_time": "10:00"}, headers=headers
    )
    assert resp.status_code == 400
    resp = await client.patch("/api/v1/hosts/me", json={"timezone": "Mars/Olympus"}, headers=headers)
    assert resp.status_code == 422


async def test_event_type_crud(client):
    headers, event_type = await _setup(client)

    resp = await client.post("/api/v1/event-types", json={"title": "Dup", "slug": "intro"}, headers=headers)
    assert resp.status_code == 409

    resp = await client.patch(
        f"/api/v1/event-types/{event_type['id']}",
        json={"buffer_after": 15, "available_start_time": "10:00", "available_end_time": "12:00"},
        headers=headers,
    )
    assert resp.status_code == 200
    assert resp.json()["buffer_after"] == 15

    resp = await client.get("/api/v1/slots", params={"username": "ada", "event_slug": "intro", "date": MONDAY})
    assert resp.json()["slots"] == ["10:00", "10:15", "10:30", "10:45", "11:00", "11:15", "11:30"]

    resp = await client.delete(f"/api/v1/event-types/{event_type['id']}", headers=headers)
    assert resp.json()["is_active"] is False
    resp = await client.get("/api/v1/slots", params={"username": "ada", "event_slug": "intro", "date": MONDAY})
    assert resp.status_code == 404

    resp = await client.get("/api/v1/event-types", headers=headers)
    assert len(resp.json()) == 1


async def test_strict_calendar_failure_is_503(client, fake_calendar):
    await _setup(client)
    fake_calendar.error = CalendarUnavailableError("calendar down")

    resp = await client.get("/api/v1/slots", params={"username": "ada", "event_slug": "intro", "date": MONDAY})
    assert resp.status_code == 503
    assert resp.json()["error"] == "calendar_unavailable"


@pytest.mark.parametrize("failure_policy", ["degrade"])
async def test_degraded_calendar_failure_is_flagged(client, fake_calendar):
    _, event_type = await _setup(client)
    fake_calendar.error = CalendarUnavailableError("calendar down")

    resp = await client.get("/api/v1/slots", params={"username": "ada", "event_slug": "intro", "date": MONDAY})
    assert resp.status_code == 200
    assert resp.json()["degraded"] is True
    assert resp.json()["slots"]

    # Committing still needs the calendar
    resp = await client.post("/api/v1/bookings", json=_booking(event_type["id"], "2030-01-07T10:00:00Z"))
    assert resp.status_code == 503


async def test_booking_validation(client):
    _, event_type = await _setup(client)

    resp = await client.post("/api/v1/bookings", json=_booking(event_type["id"], "2030-01-07T10:00:00"))
    assert resp.status_code == 400
    resp = await client.post("/api/v1/bookings", json=_booking(event_type["id"], "2030-01-07T10:00:00Z", email="nope"))
    assert resp.status_code == 422
    resp = await client.post("/api/v1/bookings", json=_booking(event_type["id"], "2030-01-07T18:00:00Z"))
    assert resp.status_code == 409


async def test_booking_rate_limit(client, monkeypatch):
    _, event_type = await _setup(client)
    monkeypatch.setattr(booking_rate_limiter, "limit", 1)

    first = await client.post("/api/v1/bookings", json=_booking(event_type["id"], "2030-01-07T10:00:00Z"))
    assert first.status_code == 201
    second = await client.post("/api/v1/bookings", json=_booking(event_type["id"], "2030-01-07T11:00:00Z"))
    assert second.status_code == 429
    assert int(second.headers["Retry-After"]) >= 1


async def test_booking_access_and_lifecycle(client):
    headers, event_type = await _setup(client)
    resp = await client.post("/api/v1/bookings", json=_booking(event_type["id"], "2030-01-07T10:00:00Z"))
    booking_id = resp.json()["id"]
    token = resp.json()["token"]
    assert token

    assert (await client.get(f"/api/v1/bookings/{booking_id}")).status_code == 404
    assert (await client.get(f"/api/v1/bookings/{booking_id}", params={"token": "0" * 64})).status_code == 404
    # The guest email alone no longer opens a booking
    assert (await client.get(f"/api/v1/bookings/{booking_id}", params={"email": "grace@example.com"})).status_code == 404
    assert (await client.get(f"/api/v1/bookings/{booking_id}", params={"token": token})).status_code == 200
    assert (await client.get(f"/api/v1/bookings/{booking_id}", headers=headers)).status_code == 200

    resp = await client.get(
        f"/api/v1/bookings/{booking_id}/reschedule", params={"date": MONDAY}, headers=headers
    )
    assert "10:00" in resp.json()["slots"]

    resp = await client.patch(
        f"/api/v1/bookings/{booking_id}",
        json={"start": "2030-01-07T14:00:00+00:00"},
        params={"token": token},
    )
    assert resp.status_code == 200
    assert resp.json()["start_time"].startswith("2030-01-07T14:00")

    resp = await client.get("/api/v1/bookings", headers=headers)
    assert [b["id"] for b in resp.json()] == [booking_id]

    resp = await client.delete(f"/api/v1/bookings/{booking_id}", params={"reason": "Sick"}, headers=headers)
    assert resp.json()["status"] == "CANCELLED"
    assert resp.json()["cancellation_reason"] == "Sick"

    resp = await client.get("/api/v1/bookings", headers=headers)
    assert resp.json() == []
    resp = await client.post("/api/v1/bookings", json=_booking(event_type["id"], "2030-01-07T14:00:00Z"))
    assert resp.status_code == 201


async def test_guest_token_only_opens_its_own_booking(client):
    _, event_type = await _setup(client)
    first = (await client.post("/api/v1/bookings", json=_booking(event_type["id"], "2030-01-07T10:00:00Z"))).json()
    second = (
        await client.post(
            "/api/v1/bookings", json=_booking(event_type["id"], "2030-01-07T11:00:00Z", email="alan@example.com")
        )
    ).json()

    resp = await client.get(f"/api/v1/bookings/{second['id']}", params={"token": first["token"]})
    assert resp.status_code == 404
    resp = await client.delete(f"/api/v1/bookings/{second['id']}", params={"token": first["token"]})
    assert resp.status_code == 404

    resp = await client.get(f"/api/v1/bookings/{second['id']}", params={"token": second["token"]})
    assert resp.json()["status"] == "CONFIRMED"


async def test_host_status_changes(client):
    headers, event_type = await _setup(client)
    other_headers, _ = await _setup(client, username="bob")
    ids = []
    for start in ("2030-01-07T10:00:00Z", "2030-01-07T11:00:00Z", "2030-01-07T12:00:00Z"):
        resp = await client.post("/api/v1/bookings", json=_booking(event_type["id"], start))
        ids.append(resp.json()["id"])
    guest_token = resp.json()["token"]

    resp = await client.post(f"/api/v1/bookings/{ids[0]}/complete", headers=other_headers)
    assert resp.status_code == 404
    resp = await client.post(f"/api/v1/bookings/{ids[0]}/complete")
    assert resp.status_code == 422

    resp = await client.post(f"/api/v1/bookings/{ids[0]}/complete", headers=headers)
    assert resp.json()["status"] == "COMPLETED"
    resp = await client.post(f"/api/v1/bookings/{ids[1]}/no-show", headers=headers)
    assert resp.json()["status"] == "NO_SHOW"
    resp = await client.post(f"/api/v1/bookings/{ids[2]}/request-reschedule", headers=headers)
    assert resp.json()["status"] == "PENDING_RESCHEDULE"

    # None of these free the slot
    resp = await client.get("/api/v1/slots", params={"username": "ada", "event_slug": "intro", "date": MONDAY})
    for taken in ("10:00", "11:00", "12:00"):
        assert taken not in resp.json()["slots"]

    resp = await client.patch(
        f"/api/v1/bookings/{ids[2]}", json={"start": "2030-01-07T15:00:00Z"}, params={"token": guest_token}
    )
    assert resp.status_code == 200
    assert resp.json()["status"] == "CONFIRMED"

    resp = await client.patch(
        f"/api/v1/bookings/{ids[0]}", json={"start": "2030-01-07T16:00:00Z"}, headers=headers
    )
    assert resp.status_code == 400
    resp = await client.get(f"/api/v1/bookings/{ids[0]}/reschedule", params={"date": MONDAY}, headers=headers)
    assert resp.status_code == 400

    await client.delete(f"/api/v1/bookings/{ids[1]}", headers=headers)
    resp = await client.post(f"/api/v1/bookings/{ids[1]}/complete", headers=headers)
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Cannot change a cancelled booking"


async def test_webhooks_crud_and_dispatch(client, monkeypatch):
    headers, event_type = await _setup(client)
    delivered = []

    async def fake_deliver(target, event, payload, **kwargs):
        delivered.append((target.url, event, payload["booking_id"]))
        return True

    monkeypatch.setattr(notifications, "deliver_webhook", fake_deliver)

    resp = await client.post(
        "/api/v1/webhooks",
        json={"url": "https://hooks.example.com/meetwhen", "events": ["booking.created"]},
        headers=headers,
    )
    assert resp.status_code == 201
    webhook = resp.json()
    assert len(webhook["secret"]) == 64

    resp = await client.post(
        "/api/v1/webhooks", json={"url": "https://hooks.example.com", "events": ["booking.exploded"]}, headers=headers
    )
    assert resp.status_code == 422

    resp = await client.get("/api/v1/webhooks", headers=headers)
    assert "secret" not in resp.json()[0]

    resp = await client.post("/api/v1/bookings", json=_booking(event_type["id"], "2030-01-07T10:00:00Z"))
    booking_id = resp.json()["id"]
    await client.delete(f"/api/v1/bookings/{booking_id}", headers=headers)

    assert delivered == [("https://hooks.example.com/meetwhen", "booking.created", booking_id)]

    assert (await client.delete(f"/api/v1/webhooks/{webhook['id']}", headers=headers)).status_code == 204
    assert (await client.get("/api/v1/webhooks", headers=headers)).json() == []
