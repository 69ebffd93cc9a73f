"""
Webhook de WhatsApp (360Dialog): GET /webhook/whatsapp (verificación) y
POST /webhook/whatsapp (mensajes entrantes).
"""
import logging
import os

from fastapi import APIRouter, BackgroundTasks, HTTPException, Query, Request
from fastapi.responses import JSONResponse, PlainTextResponse

from services.channels.service import ChannelService
from services.channels.types import ChannelException
from services.message_processor import process_message

logger = logging.getLogger(__name__)
router = APIRouter()

PROVIDER = "360dialog"


@router.get("/webhook/whatsapp")
async def verify_whatsapp_webhook(
    hub_mode: str = Query(None, alias="hub.mode"),
    hub_challenge: str = Query(None, alias="hub.challenge"),
    hub_verify_token: str = Query(None, alias="hub.verify_token"),
):
    """Devuelve hub.challenge si el verify_token coincide con WEBHOOK_VERIFY_TOKEN."""
    expected = os.getenv("WEBHOOK_VERIFY_TOKEN")
    if expected and hub_mode == "subscribe" and hub_verify_token == expected:
        logger.info("✅ WhatsApp webhook verificado")
        return PlainTextResponse(hub_challenge or "")

    logger.warning(f"❌ Verificación de webhook fallida: mode={hub_mode}, token={'presente' if hub_verify_token else 'ausente'}")
    raise HTTPException(status_code=403, detail="Verification failed")


@router.post("/webhook/whatsapp")
async def receive_whatsapp_webhook(request: Request, background_tasks: BackgroundTasks):
    try:
        payload = await request.json()
    except ValueError:
        return JSONResponse(status_code=400, content={"error": "invalid_json"})

    try:
        messages = ChannelService.normalize_webhook(PROVIDER, payload)
    except ChannelException as e:
        logger.warning(f"⚠️ Webhook de WhatsApp con estructura inválida: {e}")
        return JSONResponse(status_code=400, content={"error": str(e)})

    if not messages:
        return {"status": "ignored", "reason": "no_text_messages"}

    resolver = request.app.state.credential_resolver
    for msg in messages:
        background_tasks.add_task(process_message, msg.external_user_id, msg.content, resolver)

    return {"status": "processing", "messages": len(messages)}
