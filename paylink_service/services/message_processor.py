"""
Procesa un mensaje entrante: normaliza el remitente, busca al cliente y
delega en el handler correspondiente.
"""
import logging

from core.credentials import CredentialResolver
from core.phone import normalize_phone
from db import db
from services import handlers

logger = logging.getLogger(__name__)

ACTIVE_STATUS = "activo"

# Resultados posibles de process_message
INVALID_SENDER = "invalid_sender"
REGISTERED = "registered"
INACTIVE = "inactive"
UNREGISTERED = "unregistered"
FAILED = "failed"


async def process_message(sender: str, message_text: str, resolver: CredentialResolver) -> str:
    sender_key = normalize_phone(sender)
    if not sender_key:
        # Sin clave canónica no se consulta la base de datos
        logger.error("❌ Remitente con teléfono inválido, mensaje descartado.")
        return INVALID_SENDER

    try:
        customer = await db.find_customer_by_phone(sender_key)
        if customer is None:
            await handlers.handle_unregistered(sender_key)
            return UNREGISTERED

        if customer.get("service_status") != ACTIVE_STATUS:
            await handlers.handle_inactive(customer, sender_key)
            return INACTIVE

        await handlers.handle_registered(customer, sender_key, message_text, resolver)
        return REGISTERED
    except Exception as e:
        logger.exception(f"❌ Error procesando mensaje de ***{sender_key[-4:]}: {e}")
        return FAILED
