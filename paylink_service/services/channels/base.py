from abc import ABC, abstractmethod
from typing import Any, Dict, List
from .types import CanonicalMessage
import logging

logger = logging.getLogger(__name__)

class ChannelAdapter(ABC):
    """
    Clase base para adaptadores de canales (360Dialog, ...).
    Convierte payloads raw a CanonicalMessage.
    """

    @abstractmethod
    def normalize_payload(self, payload: Dict[str, Any]) -> List[CanonicalMessage]:
        """
        Recibe el payload raw del webhook y retorna una lista de mensajes canónicos.
        Retorna lista vacía si el evento no es relevante (ej: status update).
        Lanza ChannelException si la estructura es inválida.
        """

    def _log_normalization(self, provider: str, raw_count: int, kept: int):
        logger.info(f"🔄 [ChannelService] {provider}: {raw_count} mensajes recibidos -> {kept} de texto")
