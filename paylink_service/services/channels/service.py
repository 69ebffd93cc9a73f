from typing import List, Dict, Any
import logging
from .types import CanonicalMessage
from .dialog360 import Dialog360Adapter

logger = logging.getLogger(__name__)

class ChannelService:
    """
    Fachada para normalización de canales.
    Routea el payload al adaptador correcto y retorna mensajes canónicos.
    """

    _adapters = {
        "360dialog": Dialog360Adapter(),
    }

    @classmethod
    def normalize_webhook(cls, provider: str, payload: Dict[str, Any]) -> List[CanonicalMessage]:
        """
        Ingesta y normaliza un webhook raw.

        Args:
            provider: '360dialog'
            payload: Dict con el body del request

        Returns:
            List[CanonicalMessage]: mensajes de texto listos para procesar.

        Raises:
            ChannelException: estructura inválida (el route responde 400).
        """
        adapter = cls._adapters.get(provider)
        if not adapter:
            logger.error(f"❌ ChannelService: Unknown provider '{provider}'")
            return []

        canonical_msgs = adapter.normalize_payload(payload)
        if canonical_msgs:
            logger.info(f"✅ ChannelService: Normalized {len(canonical_msgs)} msgs from {provider}")
        return canonical_msgs
