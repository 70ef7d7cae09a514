import hashlib
import hmac
import json

import httpx

from meetwhen.integrations.webhooks import (
    BOOKING_CREATED,
    WebhookTarget,
    deliver_webhook,
    encode_body,
    sign_payload,
)

TARGET = WebhookTarget(url="https://hooks.example.com/in", secret="s3cret")


def test_signature_covers_timestamp_and_body():
    body = encode_body(BOOKING_CREATED, {"booking_id": "b1"})
    expected = hmac.new(b"s3cret", b"1700000000." + body, hashlib.sha256).hexdigest()

    assert sign_payload("s3cret", "1700000000", body) == expected
    assert sign_payload("s3cret", "1700000001", body) != expected
    assert json.loads(body) == {"event": "booking.created", "data": {"booking_id": "b1"}}


async def test_delivery_sends_signed_request():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(204)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        ok = await deliver_webhook(TARGET, BOOKING_CREATED, {"booking_id": "b1"}, client=client)

    assert ok
    request = seen[0]
    assert request.headers["X-Webhook-Event"] == BOOKING_CREATED
    timestamp = request.headers["X-Webhook-Timestamp"]
    assert request.headers["X-Webhook-Signature"] == sign_payload("s3cret", timestamp, request.content)


async def test_server_errors_are_retried():
    statuses = iter([500, 502, 200])
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(next(statuses))

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        ok = await deliver_webhook(
            TARGET, BOOKING_CREATED, {}, client=client, max_attempts=3, backoff_seconds=0
        )

    assert ok
    assert len(calls) == 3


async def test_client_errors_are_not_retried():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(410)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        ok = await deliver_webhook(TARGET, BOOKING_CREATED, {}, client=client, backoff_seconds=0)

    assert not ok
    assert len(calls) == 1


async def test_network_errors_give_up_without_raising():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        ok = await deliver_webhook(
            TARGET, BOOKING_CREATED, {}, client=client, max_attempts=2, backoff_seconds=0
        )

    assert not ok
