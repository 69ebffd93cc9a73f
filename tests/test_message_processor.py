from unittest.mock import AsyncMock, patch

import pytest

from db import db
from services import handlers, message_processor
from services.message_processor import process_message

ACTIVE = {"id": 12, "phone": "523311296199", "service_status": "activo", "paypal_creds": None}
INACTIVE = {"id": 13, "phone": "523311296199", "service_status": "suspendido", "paypal_creds": None}


@pytest.fixture
def handler_mocks():
    with patch.object(handlers, "handle_registered", new=AsyncMock(return_value=True)) as registered, \
            patch.object(handlers, "handle_inactive", new=AsyncMock()) as inactive, \
            patch.object(handlers, "handle_unregistered", new=AsyncMock()) as unregistered:
        yield registered, inactive, unregistered


@pytest.mark.asyncio
@pytest.mark.parametrize("sender", ["", "abc", "12345", "443311296199"])
async def test_invalid_sender_never_hits_database(resolver, handler_mocks, sender):
    with patch.object(db, "find_customer_by_phone", new=AsyncMock()) as lookup:
        outcome = await process_message(sender, "PAGO 500 Renta", resolver)

    assert outcome == message_processor.INVALID_SENDER
    lookup.assert_not_awaited()
    for handler in handler_mocks:
        handler.assert_not_awaited()


@pytest.mark.asyncio
@pytest.mark.parametrize("sender", ["5213311296199", "13311296199", "3311296199", "+52 33 1129 6199"])
async def test_lookup_uses_canonical_key(resolver, handler_mocks, sender):
    with patch.object(db, "find_customer_by_phone", new=AsyncMock(return_value=ACTIVE)) as lookup:
        outcome = await process_message(sender, "PAGO 500 Renta", resolver)

    assert outcome == message_processor.REGISTERED
    lookup.assert_awaited_once_with("523311296199")
    registered, _, _ = handler_mocks
    registered.assert_awaited_once_with(ACTIVE, "523311296199", "PAGO 500 Renta", resolver)


@pytest.mark.asyncio
async def test_unregistered_sender(resolver, handler_mocks):
    with patch.object(db, "find_customer_by_phone", new=AsyncMock(return_value=None)):
        outcome = await process_message("5213311296199", "hola", resolver)

    assert outcome == message_processor.UNREGISTERED
    _, inactive, unregistered = handler_mocks
    unregistered.assert_awaited_once_with("523311296199")
    inactive.assert_not_awaited()


@pytest.mark.asyncio
async def test_inactive_customer(resolver, handler_mocks):
    with patch.object(db, "find_customer_by_phone", new=AsyncMock(return_value=INACTIVE)):
        outcome = await process_message("5213311296199", "PAGO 500 Renta", resolver)

    assert outcome == message_processor.INACTIVE
    registered, inactive, _ = handler_mocks
    inactive.assert_awaited_once_with(INACTIVE, "523311296199")
    registered.assert_not_awaited()


@pytest.mark.asyncio
async def test_lookup_failure_is_contained(resolver, handler_mocks):
    with patch.object(db, "find_customer_by_phone", new=AsyncMock(side_effect=RuntimeError("Database pool not initialized"))):
        outcome = await process_message("5213311296199", "PAGO 500 Renta", resolver)
    assert outcome == message_processor.FAILED


# --- Handlers ---

@pytest.mark.asyncio
async def test_registered_handler_sends_link(resolver):
    with patch.object(handlers, "create_payment_link_for_customer", new=AsyncMock(return_value="https://paypal.example/approve")), \
            patch.object(handlers, "send_whatsapp_text", new=AsyncMock(return_value=True)) as send:
        ok = await handlers.handle_registered(ACTIVE, "523311296199", "PAGO 500 Renta para Juan", resolver)

    assert ok is True
    to, text = send.await_args.args
    assert to == "523311296199"
    assert "https://paypal.example/approve" in text
    assert "Juan" in text


@pytest.mark.asyncio
async def test_registered_handler_replies_help_on_bad_command(resolver):
    with patch.object(handlers, "create_payment_link_for_customer", new=AsyncMock()) as create, \
            patch.object(handlers, "send_whatsapp_text", new=AsyncMock(return_value=True)) as send:
        ok = await handlers.handle_registered(ACTIVE, "523311296199", "hola", resolver)

    assert ok is False
    create.assert_not_awaited()
    send.assert_awaited_once_with("523311296199", handlers.COMMAND_HELP)


@pytest.mark.asyncio
async def test_registered_handler_reports_link_error(resolver):
    with patch.object(handlers, "create_payment_link_for_customer", new=AsyncMock(return_value=None)), \
            patch.object(handlers, "send_whatsapp_text", new=AsyncMock(return_value=True)) as send:
        ok = await handlers.handle_registered(ACTIVE, "523311296199", "PAGO 500 Renta", resolver)

    assert ok is False
    send.assert_awaited_once_with("523311296199", handlers.LINK_ERROR_MESSAGE)


@pytest.mark.asyncio
async def test_unregistered_and_inactive_messages():
    with patch.object(handlers, "send_whatsapp_text", new=AsyncMock(return_value=True)) as send:
        await handlers.handle_unregistered("523311296199")
        await handlers.handle_inactive(INACTIVE, "523311296199")

    assert [c.args[1] for c in send.await_args_list] == [
        handlers.NOT_REGISTERED_MESSAGE,
        handlers.INACTIVE_SERVICE_MESSAGE,
    ]
