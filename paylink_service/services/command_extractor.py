"""
Interpreta el texto del mensaje de un cliente registrado y extrae los datos
del cobro.

Formato directo (sin IA):
    PAGO <monto> <concepto> [para <nombre cliente final>] [email]
    PAGO 500 Consultoría para Juan Pérez juan.perez@example.com
    PAGO $1250.50 Renta de marzo

Si el formato directo no aplica y hay OPENAI_API_KEY, se intenta la
extracción en lenguaje natural ("Cobra a Juan 500 por consultoría").
"""
import logging
import re
from decimal import Decimal
from typing import Awaitable, Callable, Optional, Sequence

from pydantic import BaseModel, Field, ValidationError

from services import openai_service

logger = logging.getLogger(__name__)

PAYMENT_COMMAND = "PAGO"
NAME_SEPARATOR = "para"

AMOUNT_RE = re.compile(r"^\$?(\d+(?:\.\d{1,2})?)$")
EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

COMMAND_HELP = (
    "Formato no reconocido. Envía: PAGO <monto> <concepto> [para <nombre>] [email]\n"
    "Ejemplo: PAGO 500 Consultoría para Juan Pérez juan@example.com"
)


class PaymentRequest(BaseModel):
    amount: Decimal = Field(gt=0, max_digits=12, decimal_places=2)
    concept: str = Field(min_length=1)
    final_customer_name: Optional[str] = None
    final_customer_email: Optional[str] = None


def parse_payment_command(message_text: str) -> Optional[PaymentRequest]:
    """Formato directo ``PAGO ...``. None si el texto no lo sigue."""
    parts = (message_text or "").split()
    if len(parts) < 3 or parts[0].upper() != PAYMENT_COMMAND:
        return None

    match = AMOUNT_RE.match(parts[1])
    if not match:
        logger.warning(f"⚠️ Monto inválido en comando PAGO: '{parts[1]}'")
        return None

    rest = parts[2:]
    email = None
    if EMAIL_RE.match(rest[-1]):
        email = rest[-1]
        rest = rest[:-1]

    name = None
    lowered = [p.lower() for p in rest]
    if NAME_SEPARATOR in lowered:
        idx = lowered.index(NAME_SEPARATOR)
        name = " ".join(rest[idx + 1:]) or None
        rest = rest[:idx]

    concept = " ".join(rest).strip()
    try:
        return PaymentRequest(
            amount=Decimal(match.group(1)),
            concept=concept,
            final_customer_name=name,
            final_customer_email=email,
        )
    except ValidationError as e:
        logger.warning(f"⚠️ Comando PAGO incompleto: {e.errors()[0].get('msg')}")
        return None


async def _extract_direct(message_text: str) -> Optional[PaymentRequest]:
    return parse_payment_command(message_text)


async def _extract_with_openai(message_text: str) -> Optional[PaymentRequest]:
    if not openai_service.is_configured():
        return None
    details = await openai_service.extract_payment_details(message_text)
    if not details:
        return None
    try:
        return PaymentRequest(
            amount=details["monto"].quantize(Decimal("0.01")),
            concept=details["concepto"],
            final_customer_name=details.get("cliente"),
        )
    except ValidationError:
        return None


Extractor = Callable[[str], Awaitable[Optional[PaymentRequest]]]

EXTRACTORS: Sequence[Extractor] = (_extract_direct, _extract_with_openai)


async def extract_payment_data(message_text: str) -> Optional[PaymentRequest]:
    for extractor in EXTRACTORS:
        request = await extractor(message_text)
        if request is not None:
            logger.info(
                f"🧾 Cobro extraído: monto={request.amount}, concepto='{request.concept}', "
                f"cliente final='{request.final_customer_name or '-'}'"
            )
            return request
    logger.warning(f"⚠️ No se pudieron extraer datos de pago del mensaje: '{message_text[:80]}'")
    return None
