"""
Sanitización de logs.
Filtro de logging que ofusca tokens, secrets de proveedores de pago y
envelopes cifrados antes de escribir en el log. Se aplica como filtro global
al root logger.
"""
import logging
import re
from typing import List, Tuple

# Patrones de sanitización: (regex_compilado, texto_reemplazo)
_SANITIZE_PATTERNS: List[Tuple[re.Pattern, str]] = [
    # access_token en query params (ej. ?access_token=A21AAx...)
    (re.compile(r'(access_token=)[^\s&"\']+', re.IGNORECASE), r'\1[REDACTED]'),
    # Authorization: Basic/Bearer y la API key de 360Dialog
    (re.compile(r'(Authorization[:\s]+(?:Basic\s|Bearer\s)?)[^\s,;"\']+', re.IGNORECASE), r'\1[REDACTED]'),
    (re.compile(r'(D360-API-KEY[:\s=]+)[^\s,;"\']+', re.IGNORECASE), r'\1[REDACTED]'),
    # Claves JSON sensibles
    (re.compile(
        r'("(?:secret|client_secret|access_token|password|api_key|encryption_key|encrypted)"'
        r'\s*:\s*")[^"]+(")',
        re.IGNORECASE
    ), r'\1[REDACTED]\2'),
    # Formato key=value para variables de entorno logueadas
    (re.compile(
        r'((?:secret|client_secret|password|api_key|encryption_key|D360_API_KEY|OPENAI_API_KEY)'
        r'\s*=\s*)[^\s,;]+',
        re.IGNORECASE
    ), r'\1[REDACTED]'),
    # Envelopes iv:ciphertext (32 hex de IV)
    (re.compile(r'\b[0-9a-fA-F]{32}:[0-9a-fA-F]{32,}\b'), '[ENVELOPE]'),
]


def sanitize_message(message: str) -> str:
    """Aplica todos los patrones de sanitización a un mensaje."""
    for pattern, replacement in _SANITIZE_PATTERNS:
        message = pattern.sub(replacement, message)
    return message


class SensitiveDataFilter(logging.Filter):
    """
    Filtro de logging que intercepta cada record y sanitiza el mensaje
    formateado antes de que llegue al handler.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            record.msg = sanitize_message(record.msg)

        if record.args:
            if isinstance(record.args, dict):
                record.args = {
                    k: sanitize_message(v) if isinstance(v, str) else v
                    for k, v in record.args.items()
                }
            elif isinstance(record.args, tuple):
                record.args = tuple(
                    sanitize_message(a) if isinstance(a, str) else a
                    for a in record.args
                )

        return True  # Nunca descarta el record; solo lo transforma


def install_log_sanitizer() -> None:
    """
    Instala el filtro de sanitización en el root logger.
    Debe llamarse DESPUÉS de logging.basicConfig() en main.py.
    """
    root_logger = logging.getLogger()
    sanitizer = SensitiveDataFilter()
    root_logger.addFilter(sanitizer)

    for handler in root_logger.handlers:
        handler.addFilter(sanitizer)

    logging.getLogger(__name__).info("🛡️ Log sanitizer instalado correctamente.")
