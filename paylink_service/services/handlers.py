"""
Respuestas por WhatsApp según el tipo de remitente.
"""
import logging
from typing import Any, Mapping

from core.credentials import CredentialResolver
from dialog360_client import send_whatsapp_text
from services.command_extractor import COMMAND_HELP, extract_payment_data
from services.payment_links import create_payment_link_for_customer

logger = logging.getLogger(__name__)

NOT_REGISTERED_MESSAGE = (
    "Hola, este número no está registrado en el sistema MXPaylink. "
    "Por favor, contacta al administrador para darte de alta y poder usar el servicio."
)
INACTIVE_SERVICE_MESSAGE = "Tu servicio MXPaylink no está activo. Por favor, contacta al administrador."
LINK_ERROR_MESSAGE = "Lo sentimos, hubo un error al generar el link de pago. Inténtalo de nuevo."


def format_link_message(request, approval_url: str) -> str:
    target = f" para {request.final_customer_name}" if request.final_customer_name else ""
    return (
        f"✅ Link de pago{target} por ${request.amount} ({request.concept}):\n"
        f"{approval_url}\n"
        "Compártelo con tu cliente para que realice el pago."
    )


async def handle_registered(customer: Mapping[str, Any], sender_key: str, message_text: str, resolver: CredentialResolver) -> bool:
    """Cliente activo: extrae el cobro, genera el link y se lo devuelve."""
    request = await extract_payment_data(message_text)
    if request is None:
        await send_whatsapp_text(sender_key, COMMAND_HELP)
        return False

    approval_url = await create_payment_link_for_customer(customer, request, resolver)
    if not approval_url:
        await send_whatsapp_text(sender_key, LINK_ERROR_MESSAGE)
        return False

    await send_whatsapp_text(sender_key, format_link_message(request, approval_url))
    return True


async def handle_inactive(customer: Mapping[str, Any], sender_key: str):
    logger.warning(f"⛔ Cliente {customer.get('id')} con servicio '{customer.get('service_status')}', no se procesa.")
    await send_whatsapp_text(sender_key, INACTIVE_SERVICE_MESSAGE)


async def handle_unregistered(sender_key: str):
    logger.info(f"🙅 Número no registrado intentó interactuar: ***{sender_key[-4:]}")
    await send_whatsapp_text(sender_key, NOT_REGISTERED_MESSAGE)
