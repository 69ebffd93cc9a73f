from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class CanonicalMessage(BaseModel):
    """
    Estructura estandarizada de un mensaje entrante (Input Agnostic).
    El remitente viene tal cual lo entrega el transporte; se normaliza
    después, en el MessageProcessor.
    """
    provider: str  # 360dialog
    original_channel: str = "whatsapp"

    external_user_id: str  # "from" del webhook, sin normalizar
    display_name: Optional[str] = None
    provider_message_id: Optional[str] = None

    content: Optional[str] = None
    raw_payload: Dict[str, Any] = Field(default_factory=dict)


class ChannelException(Exception):
    """Payload de webhook con estructura inválida."""
