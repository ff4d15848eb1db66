"""
Tests for Brevo email delivery and the email endpoints.

The HTTP call to Brevo is replaced by recording `_send`.
"""

import base64

import pytest

from finalwishes.utils.email_brevo import BrevoEmailService, email_service


@pytest.fixture
def sent(monkeypatch):
    """Record outgoing messages instead of calling Brevo."""
    outbox = []

    async def fake_send(data, description):
        outbox.append(data)
        return True

    monkeypatch.setattr(email_service, "_send", fake_send)
    monkeypatch.setattr(email_service, "song_order_recipients", ["songs@example.com"])
    monkeypatch.setattr(email_service, "support_recipients", ["support@example.com"])
    return outbox


async def test_send_without_api_key_fails_quietly():
    service = BrevoEmailService()
    service.api_key = None
    assert await service._send({"to": [{"email": "a@b.com"}]}, "test") is False


async def test_song_order_requires_recipients():
    service = BrevoEmailService()
    service.song_order_recipients = []
    assert await service.send_song_order_email("ord_1", "standard", {}) is False


async def test_song_order_escapes_user_input(sent):
    await email_service.send_song_order_email(
        "ord_1", "premium", {"personName": "<script>alert(1)</script>", "genre": "Jazz"}, "buyer@example.com",
    )

    html = sent[0]["htmlContent"]
    assert sent[0]["to"] == [{"email": "songs@example.com"}]
    assert "&lt;script&gt;" in html
    assert "<script>" not in html
    assert "PREMIUM" in html


async def test_contact_forwards_and_confirms(sent):
    ok = await email_service.send_contact_email("Jane", "jane@example.com", "Hello there", kind="suggestion")

    assert ok is True
    assert [message["to"][0]["email"] for message in sent] == ["support@example.com", "jane@example.com"]
    assert sent[0]["replyTo"] == {"email": "jane@example.com", "name": "Jane"}
    assert sent[0]["subject"] == "Suggestion Submitted from Jane"


async def test_plan_email_endpoint_with_supplied_pdf(authed_client, sent):
    pdf = base64.b64encode(b"%PDF-1.4 test").decode()
    response = await authed_client.post("/api/v1/email/plan", json={
        "to": "family@example.com",
        "pdfBase64": pdf,
        "preparedBy": "Jane",
    })

    assert response.status_code == 200
    assert sent[0]["attachment"] == [{"name": "My-Final-Wishes-Plan.pdf", "content": pdf}]


async def test_plan_email_renders_pdf_when_missing(authed_client, sent):
    await authed_client.get("/api/v1/plans/active", params={"createIfMissing": "true"})

    response = await authed_client.post("/api/v1/email/plan", json={"to": "family@example.com"})

    assert response.status_code == 200
    content = base64.b64decode(sent[0]["attachment"][0]["content"])
    assert content.startswith(b"%PDF")


async def test_email_failure_is_502(client, monkeypatch):
    async def failing_send(data, description):
        return False

    monkeypatch.setattr(email_service, "_send", failing_send)
    monkeypatch.setattr(email_service, "support_recipients", ["support@example.com"])

    response = await client.post("/api/v1/email/contact", json={
        "name": "Jane", "email": "jane@example.com", "message": "Hi",
    })
    assert response.status_code == 502


async def test_song_order_endpoint(client, sent):
    response = await client.post("/api/v1/email/song-order", json={
        "orderId": "ord_9",
        "packageType": "standard",
        "requestData": {"personName": "Grandpa Joe"},
    })
    assert response.status_code == 200
    assert "Grandpa Joe" in sent[0]["htmlContent"]
