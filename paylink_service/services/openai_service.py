import json
import logging
import os
import re
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from openai import AsyncOpenAI, OpenAIError

logger = logging.getLogger(__name__)

OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o-mini")

_client: Optional[AsyncOpenAI] = None

PROMPT_TEMPLATE = """
Extrae la siguiente información del mensaje de texto proporcionado.
El mensaje sigue el formato: "Cobra a (Nombre Cliente Final) (Cantidad) por (Descripción)".
Devuelve un objeto JSON con las claves: "cliente", "monto", "concepto".
El monto debe ser un número (entero o decimal).
Si alguna parte no se puede identificar claramente, devuélvela como null.

Mensaje: "{message}"
"""


def is_configured() -> bool:
    return bool(os.getenv("OPENAI_API_KEY"))


def _get_client() -> AsyncOpenAI:
    global _client
    if _client is None:
        _client = AsyncOpenAI(api_key=os.getenv("OPENAI_API_KEY"))
    return _client


def parse_amount(amount: Any) -> Optional[Decimal]:
    """Acepta número o texto tipo "$1,500.50" / "1500,50"."""
    if isinstance(amount, bool) or amount is None:
        return None
    if isinstance(amount, (int, float)):
        raw = str(amount)
    elif isinstance(amount, str):
        raw = re.sub(r"[^\d.,]", "", amount)
        if "," in raw and "." in raw:
            raw = raw.replace(",", "")
        else:
            raw = raw.replace(",", ".")
    else:
        return None
    try:
        value = Decimal(raw)
    except InvalidOperation:
        return None
    return value if value.is_finite() and value > 0 else None


async def extract_payment_details(message_text: str) -> Optional[dict]:
    """
    Pide al modelo {cliente, monto, concepto} y los valida.
    Devuelve {"cliente", "monto" (Decimal), "concepto"} o None.
    """
    if not is_configured():
        logger.warning("❌ OPENAI_API_KEY not set. Skipping payment extraction.")
        return None

    try:
        completion = await _get_client().chat.completions.create(
            model=OPENAI_MODEL,
            messages=[{"role": "user", "content": PROMPT_TEMPLATE.format(message=message_text)}],
            response_format={"type": "json_object"},
            temperature=0.2,
            max_tokens=150,
        )
    except OpenAIError as e:
        logger.error(f"❌ Error llamando a OpenAI para extraer el pago: {e}")
        return None

    raw = (completion.choices[0].message.content or "").strip() if completion.choices else ""
    if not raw:
        logger.warning("⚠️ OpenAI no devolvió contenido.")
        return None

    try:
        data = json.loads(raw)
    except ValueError:
        logger.error(f"❌ Respuesta de OpenAI no es JSON: {raw[:100]}")
        return None
    if not isinstance(data, dict):
        return None

    cliente = data.get("cliente")
    concepto = data.get("concepto")
    details = {
        "cliente": cliente.strip() if isinstance(cliente, str) and cliente.strip() else None,
        "monto": parse_amount(data.get("monto")),
        "concepto": concepto.strip() if isinstance(concepto, str) and concepto.strip() else None,
    }
    if details["monto"] is None or details["concepto"] is None:
        logger.warning(f"⚠️ Datos extraídos por OpenAI insuficientes: {details}")
        return None

    logger.info(f"🤖 Datos de pago extraídos con OpenAI: monto={details['monto']}")
    return details
