"""
Normalización de teléfonos mexicanos a la clave canónica de búsqueda.

Clave canónica: ``52`` + 10 dígitos del número nacional (12 dígitos ASCII).
Es la única representación con la que se consulta la tabla customers.

Formatos aceptados tras limpiar (solo dígitos, ``+`` inicial opcional):
- 10 dígitos: XXXXXXXXXX -> 52XXXXXXXXXX
- 11 dígitos: 1XXXXXXXXXX -> 52XXXXXXXXXX
- 12 dígitos: 52XXXXXXXXXX -> sin cambios
- 13 dígitos: 521XXXXXXXXXX -> 52XXXXXXXXXX (prefijo móvil antiguo)
"""
import logging
import re
from typing import Optional

from core.errors import InvalidPhoneFormat

logger = logging.getLogger(__name__)

COUNTRY_CODE = "52"
MOBILE_PREFIX = "1"
NATIONAL_NUMBER_LENGTH = 10
PHONE_KEY_LENGTH = len(COUNTRY_CODE) + NATIONAL_NUMBER_LENGTH
MIN_DIGITS = 10
MAX_DIGITS = 13

# \d aceptaría dígitos Unicode; la clave debe ser ASCII.
_NOT_ASCII_DIGIT = re.compile(r"[^0-9]")
_ASCII_DIGITS = re.compile(r"[0-9]+")


def _mask(value: str) -> str:
    value = _NOT_ASCII_DIGIT.sub("", value)
    return f"***{value[-4:]}" if len(value) > 4 else "***"


def is_phone_key(value: str) -> bool:
    return (
        isinstance(value, str)
        and len(value) == PHONE_KEY_LENGTH
        and value.startswith(COUNTRY_CODE)
        and _ASCII_DIGITS.fullmatch(value[len(COUNTRY_CODE):]) is not None
    )


def normalize_phone_or_raise(raw: Optional[str]) -> str:
    """Como ``normalize_phone`` pero lanza InvalidPhoneFormat con la regla que falló."""
    if raw is None or raw == "":
        raise InvalidPhoneFormat("vacío")
    raw = str(raw)

    # Solo dígitos ASCII y, como mucho, un "+" inicial
    digits = _NOT_ASCII_DIGIT.sub("", raw)
    cleaned = "+" + digits if raw.lstrip().startswith("+") else digits
    if cleaned.startswith("+"):
        cleaned = cleaned[1:]

    length = len(cleaned)
    if length < MIN_DIGITS or length > MAX_DIGITS:
        raise InvalidPhoneFormat(f"longitud inválida ({length} dígitos)", length)

    if length == 10:
        canonical = COUNTRY_CODE + cleaned
    elif length == 11:
        if not cleaned.startswith(MOBILE_PREFIX):
            raise InvalidPhoneFormat("11 dígitos sin prefijo 1", length)
        canonical = COUNTRY_CODE + cleaned[1:]
    elif length == 12:
        if not cleaned.startswith(COUNTRY_CODE):
            raise InvalidPhoneFormat("12 dígitos sin código de país 52", length)
        canonical = cleaned
    else:
        if not cleaned.startswith(COUNTRY_CODE + MOBILE_PREFIX):
            raise InvalidPhoneFormat("13 dígitos sin prefijo 521", length)
        canonical = COUNTRY_CODE + cleaned[3:]

    if not is_phone_key(canonical):
        raise InvalidPhoneFormat("no se obtuvo 52 + 10 dígitos", length)

    return canonical


def normalize_phone(raw: Optional[str]) -> Optional[str]:
    """
    Devuelve la clave canónica ``52XXXXXXXXXX`` o None si el número no es un
    teléfono mexicano reconocible. Función pura: sin I/O ni estado.
    """
    try:
        canonical = normalize_phone_or_raise(raw)
    except InvalidPhoneFormat as e:
        logger.warning(f"📵 Teléfono no normalizable ({e.reason}): {_mask(str(raw or ''))}")
        return None
    logger.debug(f"📞 Teléfono normalizado: {_mask(str(raw))} -> {_mask(canonical)}")
    return canonical
