import json
from decimal import Decimal
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from core.credentials import resolve_customer_credentials
from db import db
from paypal_client import PayPalClient
from services import payment_links
from services.command_extractor import PaymentRequest
from services.payment_links import create_payment_link_for_customer

REQUEST = PaymentRequest(amount=Decimal("500"), concept="Consultoría", final_customer_name="Juan")
APPROVAL_URL = "https://www.sandbox.paypal.com/checkoutnow?token=ORDER-1"


def make_paypal(calls, token_status=200):
    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        if request.url.path == "/v1/oauth2/token":
            if token_status != 200:
                return httpx.Response(token_status, json={"error": "invalid_client"})
            return httpx.Response(200, json={"access_token": "tok"})
        return httpx.Response(201, json={"id": "ORDER-1", "links": [{"href": APPROVAL_URL, "rel": "approve"}]})

    return PayPalClient(transport=httpx.MockTransport(handler))


def make_customer(paypal_creds):
    return {"id": 12, "phone": "523311296199", "service_status": "activo", "paypal_creds": paypal_creds}


@pytest.mark.asyncio
async def test_link_created_with_wrapped_credentials(cipher, resolver):
    calls = []
    customer = make_customer({"encrypted": cipher.encrypt('{"client_id": "AcC-1", "secret": "EG0-2"}')})

    with patch.object(db, "record_payment_link", new=AsyncMock()) as record:
        url = await create_payment_link_for_customer(customer, REQUEST, resolver, paypal=make_paypal(calls))

    assert url == APPROVAL_URL
    assert len(calls) == 2
    assert json.loads(calls[1].content)["purchase_units"][0]["custom_id"] == "12"
    record.assert_awaited_once_with(12, "paypal", "ORDER-1", Decimal("500"), "Consultoría")


@pytest.mark.asyncio
async def test_link_created_with_legacy_credentials(cipher, resolver):
    calls = []
    customer = make_customer(cipher.encrypt("AcC-1:EG0-2"))

    with patch.object(db, "record_payment_link", new=AsyncMock()):
        url = await create_payment_link_for_customer(customer, REQUEST, resolver, paypal=make_paypal(calls))

    assert url == APPROVAL_URL
    assert calls[0].headers["Authorization"].startswith("Basic ")


@pytest.mark.asyncio
@pytest.mark.parametrize("paypal_creds", [None, 42, "garbage", {"encrypted": "00:00"}])
async def test_paypal_not_called_without_usable_credentials(resolver, paypal_creds):
    calls = []
    url = await create_payment_link_for_customer(make_customer(paypal_creds), REQUEST, resolver, paypal=make_paypal(calls))
    assert url is None
    assert calls == []


@pytest.mark.asyncio
async def test_undecryptable_credentials_do_not_reach_paypal(cipher, other_cipher, resolver):
    calls = []
    customer = make_customer({"encrypted": other_cipher.encrypt('{"client_id": "a", "secret": "b"}')})
    assert await create_payment_link_for_customer(customer, REQUEST, resolver, paypal=make_paypal(calls)) is None
    assert calls == []


@pytest.mark.asyncio
async def test_paypal_rejection_returns_none(cipher, resolver):
    calls = []
    customer = make_customer(cipher.encrypt("AcC-1:EG0-2"))
    url = await create_payment_link_for_customer(customer, REQUEST, resolver, paypal=make_paypal(calls, token_status=401))
    assert url is None


@pytest.mark.asyncio
async def test_db_failure_still_returns_link(cipher, resolver):
    calls = []
    customer = make_customer(cipher.encrypt("AcC-1:EG0-2"))

    with patch.object(db, "record_payment_link", new=AsyncMock(side_effect=RuntimeError("Database pool not initialized"))):
        url = await create_payment_link_for_customer(customer, REQUEST, resolver, paypal=make_paypal(calls))

    assert url == APPROVAL_URL


@pytest.mark.asyncio
async def test_link_resolves_each_provider_column_independently(cipher, resolver):
    calls = []
    customer = make_customer(cipher.encrypt("AcC-1:EG0-2"))
    customer["conekta_creds"] = "garbage"

    with patch.object(payment_links, "resolve_customer_credentials", wraps=resolve_customer_credentials) as resolve_all, \
            patch.object(db, "record_payment_link", new=AsyncMock()):
        url = await create_payment_link_for_customer(customer, REQUEST, resolver, paypal=make_paypal(calls))

    assert url == APPROVAL_URL
    resolve_all.assert_called_once_with(customer, resolver)
