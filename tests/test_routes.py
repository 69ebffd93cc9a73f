from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient

from core.credentials import CredentialResolver
from main import app
from routes import paypal_webhooks, whatsapp_webhooks


@pytest.fixture
def client():
    with TestClient(app) as test_client:
        yield test_client


def whatsapp_payload(text="PAGO 500 Renta", field="messages"):
    return {
        "entry": [{
            "changes": [{
                "field": field,
                "value": {
                    "contacts": [{"wa_id": "5213311296199", "profile": {"name": "Ana"}}],
                    "messages": [{"from": "5213311296199", "id": "wamid.1", "type": "text", "text": {"body": text}}],
                },
            }],
        }],
    }


def test_root(client):
    response = client.get("/")
    assert response.status_code == 200
    assert response.json() == {"message": "MXPaylink Backend is running!"}


def test_security_headers(client):
    response = client.get("/")
    assert response.headers["X-Frame-Options"] == "DENY"
    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert "max-age" in response.headers["Strict-Transport-Security"]
    assert response.headers["Referrer-Policy"] == "no-referrer"


def test_lifespan_builds_resolver(client):
    assert isinstance(app.state.credential_resolver, CredentialResolver)


# --- WhatsApp ---

def test_verify_webhook_ok(client, monkeypatch):
    monkeypatch.setenv("WEBHOOK_VERIFY_TOKEN", "verify-me")
    response = client.get(
        "/webhook/whatsapp",
        params={"hub.mode": "subscribe", "hub.verify_token": "verify-me", "hub.challenge": "1158201444"},
    )
    assert response.status_code == 200
    assert response.text == "1158201444"


@pytest.mark.parametrize("params", [
    {"hub.mode": "subscribe", "hub.verify_token": "wrong", "hub.challenge": "1"},
    {"hub.mode": "unsubscribe", "hub.verify_token": "verify-me", "hub.challenge": "1"},
    {},
])
def test_verify_webhook_rejected(client, monkeypatch, params):
    monkeypatch.setenv("WEBHOOK_VERIFY_TOKEN", "verify-me")
    assert client.get("/webhook/whatsapp", params=params).status_code == 403


def test_verify_webhook_without_configured_token(client, monkeypatch):
    monkeypatch.delenv("WEBHOOK_VERIFY_TOKEN", raising=False)
    response = client.get("/webhook/whatsapp", params={"hub.mode": "subscribe", "hub.verify_token": "", "hub.challenge": "1"})
    assert response.status_code == 403


def test_incoming_message_is_processed(client):
    with patch.object(whatsapp_webhooks, "process_message", new=AsyncMock(return_value="registered")) as process:
        response = client.post("/webhook/whatsapp", json=whatsapp_payload())

    assert response.status_code == 200
    assert response.json() == {"status": "processing", "messages": 1}
    sender, text, resolver = process.call_args.args
    assert sender == "5213311296199"
    assert text == "PAGO 500 Renta"
    assert resolver is app.state.credential_resolver


def test_status_update_is_ignored(client):
    with patch.object(whatsapp_webhooks, "process_message", new=AsyncMock()) as process:
        response = client.post("/webhook/whatsapp", json=whatsapp_payload(field="statuses"))

    assert response.status_code == 200
    assert response.json()["status"] == "ignored"
    process.assert_not_called()


def test_invalid_json_is_rejected(client):
    response = client.post("/webhook/whatsapp", content=b"not json", headers={"Content-Type": "application/json"})
    assert response.status_code == 400


@pytest.mark.parametrize("payload", [{}, {"entry": []}, {"entry": [{"id": "x"}]}])
def test_invalid_structure_is_rejected(client, payload):
    assert client.post("/webhook/whatsapp", json=payload).status_code == 400


# --- PayPal ---

CAPTURE_EVENT = {
    "event_type": "PAYMENT.CAPTURE.COMPLETED",
    "resource": {"id": "CAPTURE-1", "custom_id": "12", "amount": {"value": "500.00", "currency_code": "MXN"}},
}


def test_paypal_capture_processed(client):
    with patch.object(paypal_webhooks, "process_capture_completed", new=AsyncMock(return_value=12)) as process:
        response = client.post("/webhook/paypal", json=CAPTURE_EVENT)

    assert response.status_code == 200
    process.assert_awaited_once_with("CAPTURE-1", CAPTURE_EVENT)


def test_paypal_other_event_not_handled(client):
    with patch.object(paypal_webhooks, "process_capture_completed", new=AsyncMock()) as process:
        response = client.post("/webhook/paypal", json={"event_type": "CHECKOUT.ORDER.APPROVED", "resource": {}})

    assert response.status_code == 200
    assert "not handled" in response.json()["message"]
    process.assert_not_awaited()


@pytest.mark.parametrize("body", [
    {},
    {"resource": {"id": "CAPTURE-1"}},
    {"event_type": "PAYMENT.CAPTURE.COMPLETED", "resource": {}},
])
def test_paypal_bad_requests(client, body):
    assert client.post("/webhook/paypal", json=body).status_code == 400


def test_paypal_invalid_json(client):
    response = client.post("/webhook/paypal", content=b"{", headers={"Content-Type": "application/json"})
    assert response.status_code == 400


def test_paypal_processing_error_returns_500(client):
    with patch.object(paypal_webhooks, "process_capture_completed", new=AsyncMock(side_effect=RuntimeError("db down"))):
        response = client.post("/webhook/paypal", json=CAPTURE_EVENT)
    assert response.status_code == 500


@pytest.mark.parametrize("payload", [
    {"entry": [{"changes": ["messages"]}]},
    {"entry": [{"changes": [{"field": "messages", "value": {"messages": [42]}}]}]},
])
def test_malformed_entries_are_rejected_not_crashing(client, payload):
    with patch.object(whatsapp_webhooks, "process_message", new=AsyncMock()) as process:
        response = client.post("/webhook/whatsapp", json=payload)
    assert response.status_code == 400
    process.assert_not_called()
