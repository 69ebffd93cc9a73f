"""
Cliente para enviar mensajes de WhatsApp vía 360Dialog.
"""
import logging
import os
from typing import Any, Optional

import httpx

logger = logging.getLogger(__name__)

D360_BASE_URL = os.getenv("D360_BASE_URL", "https://waba-v2.360dialog.io")


class Dialog360Client:
    def __init__(self, api_key: str, base_url: str = D360_BASE_URL):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.headers = {
            "D360-API-KEY": api_key,
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    async def send_text_message(self, to: str, text: str) -> dict[str, Any]:
        """
        Envía un mensaje de texto libre.
        Solo válido dentro de la ventana de 24h abierta por el usuario.
        """
        url = f"{self.base_url}/messages"
        payload = {
            "messaging_product": "whatsapp",
            "recipient_type": "individual",
            "to": to,
            "type": "text",
            "text": {"body": text},
        }

        async with httpx.AsyncClient() as client:
            try:
                response = await client.post(
                    url, json=payload, headers=self.headers, timeout=15.0
                )
                response.raise_for_status()
                data = response.json()
                logger.info(f"✅ 360Dialog message sent to ***{to[-4:]}")
                return data
            except httpx.HTTPStatusError as e:
                logger.error(
                    f"❌ 360Dialog send failed to ***{to[-4:]}: status={e.response.status_code} body={e.response.text[:200]}"
                )
                raise
            except httpx.HTTPError as e:
                logger.error(f"❌ 360Dialog send error to ***{to[-4:]}: {e}")
                raise


def get_whatsapp_client() -> Optional[Dialog360Client]:
    """None si D360_API_KEY no está configurada (modo simulación)."""
    api_key = os.getenv("D360_API_KEY", "").strip()
    if not api_key:
        return None
    return Dialog360Client(api_key)


async def send_whatsapp_text(to: str, text: str) -> bool:
    """
    Envía texto por WhatsApp sin propagar errores de transporte: la respuesta
    al usuario es best-effort y nunca debe tumbar el procesamiento del webhook.
    """
    client = get_whatsapp_client()
    if client is None:
        logger.warning(f"📤 [SIMULACIÓN WHATSAPP] D360_API_KEY no configurada. A ***{to[-4:]}: {text}")
        return False
    try:
        await client.send_text_message(to, text)
        return True
    except httpx.HTTPError:
        return False
