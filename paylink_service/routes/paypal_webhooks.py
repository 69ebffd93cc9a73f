"""
Webhook de PayPal: POST /webhook/paypal.

La verificación de firma del webhook no está implementada; el evento solo
dispara una notificación y el marcado del link como cobrado.
"""
import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from services.paypal_events import CAPTURE_COMPLETED, process_capture_completed

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/webhook/paypal")
async def receive_paypal_webhook(request: Request):
    try:
        body = await request.json()
    except ValueError:
        return JSONResponse(status_code=400, content={"error": "Invalid JSON in PayPal webhook body"})

    if not isinstance(body, dict) or not body:
        logger.warning("⚠️ Webhook de PayPal vacío.")
        return JSONResponse(status_code=400, content={"error": "Webhook body is empty"})

    event_type = body.get("event_type")
    if not event_type:
        return JSONResponse(status_code=400, content={"error": "Missing event_type in webhook"})

    if event_type != CAPTURE_COMPLETED:
        logger.info(f"ℹ️ Evento PayPal no manejado: {event_type}")
        return {"message": "Webhook received, event type not handled"}

    capture_id = (body.get("resource") or {}).get("id")
    if not capture_id:
        logger.error("❌ PAYMENT.CAPTURE.COMPLETED sin resource.id")
        return JSONResponse(status_code=400, content={"error": "Missing capture_id in webhook"})

    try:
        await process_capture_completed(capture_id, body)
    except Exception as e:
        # 500 para que PayPal reintente
        logger.exception(f"❌ Error procesando captura {capture_id}: {e}")
        return JSONResponse(status_code=500, content={"error": "Internal Server Error processing webhook"})

    return {"message": "Webhook received and processed successfully"}
