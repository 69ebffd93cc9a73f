"""
Genera el link de pago que paga el cliente final, con las credenciales de
PayPal del cliente MXPaylink que lo solicita.
"""
import logging
from typing import Any, Mapping, Optional

from core.credentials import PAYPAL, PROVIDER_COLUMNS, CredentialResolver, resolve_customer_credentials
from core.errors import PayPalError
from db import db
from paypal_client import PayPalClient
from services.command_extractor import PaymentRequest

logger = logging.getLogger(__name__)


async def create_payment_link_for_customer(
    customer: Mapping[str, Any],
    request: PaymentRequest,
    resolver: CredentialResolver,
    paypal: Optional[PayPalClient] = None,
) -> Optional[str]:
    """
    Devuelve la URL de aprobación de PayPal o None.

    Si las credenciales no se resuelven completas no se llama a PayPal.
    """
    customer_id = customer.get("id")
    raw_creds = customer.get(PROVIDER_COLUMNS[PAYPAL])
    if raw_creds is None:
        logger.error(f"❌ Cliente {customer_id} no tiene credenciales de PayPal configuradas.")
        return None

    creds = resolve_customer_credentials(customer, resolver).get(PAYPAL)
    if creds is None:
        logger.error(f"❌ Cliente {customer_id}: credenciales de PayPal inutilizables, no se crea la orden.")
        return None

    paypal = paypal or PayPalClient()
    try:
        order = await paypal.create_order(
            creds,
            request.amount,
            request.concept,
            custom_id=str(customer_id),
        )
    except PayPalError as e:
        logger.error(f"❌ No se pudo crear la orden PayPal para cliente {customer_id}: {e}")
        return None

    try:
        await db.record_payment_link(customer_id, PAYPAL, order.order_id, request.amount, request.concept)
    except Exception as e:
        logger.warning(f"⚠️ Orden {order.order_id} creada pero no registrada en DB: {e}")

    logger.info(f"🔗 Link de pago generado para cliente {customer_id}: orden {order.order_id}")
    return order.approval_url
