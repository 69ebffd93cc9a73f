"""
Procesa eventos del webhook de PayPal. Por ahora solo PAYMENT.CAPTURE.COMPLETED:
marca el link como cobrado y avisa al cliente MXPaylink que lo generó
(identificado por el custom_id que se puso al crear la orden).
"""
import logging
from typing import Any, Dict, Optional

from core.credentials import PAYPAL
from db import db
from dialog360_client import send_whatsapp_text

logger = logging.getLogger(__name__)

CAPTURE_COMPLETED = "PAYMENT.CAPTURE.COMPLETED"


def _extract_custom_id(resource: Dict[str, Any]) -> Optional[str]:
    if resource.get("custom_id"):
        return str(resource["custom_id"])
    units = resource.get("purchase_units") or []
    if units and isinstance(units[0], dict) and units[0].get("custom_id"):
        return str(units[0]["custom_id"])
    return None


def _extract_order_id(resource: Dict[str, Any]) -> Optional[str]:
    related = (resource.get("supplementary_data") or {}).get("related_ids") or {}
    if related.get("order_id"):
        return related["order_id"]
    units = resource.get("purchase_units") or []
    if units and isinstance(units[0], dict):
        return units[0].get("reference_id")
    return None


async def process_capture_completed(capture_id: str, event: Dict[str, Any]) -> Optional[int]:
    """Devuelve el id del cliente notificado, o None si no se pudo identificar."""
    resource = event.get("resource") or {}
    order_id = _extract_order_id(resource)
    amount = resource.get("amount") or {}
    logger.info(
        f"💰 Captura {capture_id} completada (orden {order_id}): "
        f"{amount.get('value')} {amount.get('currency_code')}"
    )

    await db.mark_payment_captured(PAYPAL, order_id, capture_id, event)

    custom_id = _extract_custom_id(resource)
    if not custom_id:
        logger.info(f"ℹ️ Captura {capture_id} sin custom_id: no se notifica a ningún cliente.")
        return None

    try:
        customer_id = int(custom_id)
    except ValueError:
        logger.warning(f"⚠️ custom_id '{custom_id}' no corresponde a un cliente MXPaylink.")
        return None

    customer = await db.find_customer_by_id(customer_id)
    if not customer or not customer.get("phone"):
        logger.warning(f"⚠️ No se encontró teléfono del cliente {customer_id} para notificar la captura {capture_id}.")
        return None

    await send_whatsapp_text(
        customer["phone"],
        f"💰 Tu cliente completó el pago de ${amount.get('value', '?')} {amount.get('currency_code', '')}. "
        f"ID de captura: {capture_id}",
    )
    return customer_id
