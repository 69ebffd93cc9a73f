"""
Cliente de la API REST de PayPal (OAuth2 client credentials + Orders v2).
Usa las credenciales de PayPal del propio cliente MXPaylink, ya descifradas.
"""
import logging
import os
from decimal import Decimal
from typing import Any, Dict, Optional

import httpx
from pydantic import BaseModel

from core.credentials import CredentialRecord
from core.errors import PayPalError

logger = logging.getLogger(__name__)

PAYPAL_API_BASE = os.getenv("PAYPAL_API_BASE", "https://api-m.sandbox.paypal.com")
PAYPAL_CURRENCY = os.getenv("PAYPAL_CURRENCY", "MXN")
REQUEST_TIMEOUT = float(os.getenv("PAYPAL_API_TIMEOUT", "15.0"))
USER_AGENT = "MXPaylink-App/1.0"

# PayPal limita description de purchase_unit a 127 caracteres
MAX_DESCRIPTION_LENGTH = 127
APPROVAL_RELS = ("approve", "payer-action")


class PayPalOrder(BaseModel):
    order_id: str
    approval_url: str


class PayPalClient:
    def __init__(
        self,
        base_url: str = PAYPAL_API_BASE,
        currency: str = PAYPAL_CURRENCY,
        timeout: float = REQUEST_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.currency = currency
        self.timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=self._transport,
            headers={"User-Agent": USER_AGENT, "Accept": "application/json"},
        )

    async def get_access_token(self, creds: CredentialRecord) -> str:
        """Obtiene un access token con Basic auth (client_id:secret)."""
        async with self._client() as client:
            try:
                response = await client.post(
                    "/v1/oauth2/token",
                    data={"grant_type": "client_credentials"},
                    auth=(creds.client_id, creds.secret),
                )
                response.raise_for_status()
            except httpx.HTTPStatusError as e:
                logger.error(f"❌ PayPal token rechazado: status={e.response.status_code} body={e.response.text[:200]}")
                raise PayPalError("PayPal rechazó las credenciales", e.response.status_code) from e
            except httpx.HTTPError as e:
                logger.error(f"❌ Error de red obteniendo token de PayPal: {e}")
                raise PayPalError(f"Error de red con PayPal: {e}") from e

        access_token = response.json().get("access_token")
        if not access_token:
            raise PayPalError("Respuesta de token sin access_token", response.status_code)
        logger.info("🔑 Access Token de PayPal obtenido.")
        return access_token

    def build_order_payload(self, amount: Decimal, concept: str, custom_id: Optional[str] = None) -> Dict[str, Any]:
        purchase_unit: Dict[str, Any] = {
            "amount": {"currency_code": self.currency, "value": f"{amount:.2f}"},
            "description": concept[:MAX_DESCRIPTION_LENGTH],
        }
        if custom_id:
            purchase_unit["custom_id"] = custom_id
        return {"intent": "CAPTURE", "purchase_units": [purchase_unit]}

    async def create_order(
        self,
        creds: CredentialRecord,
        amount: Decimal,
        concept: str,
        custom_id: Optional[str] = None,
    ) -> PayPalOrder:
        """
        Crea una orden CAPTURE y devuelve su id y el link de aprobación que
        se manda al cliente final.
        """
        access_token = await self.get_access_token(creds)
        payload = self.build_order_payload(amount, concept, custom_id)

        async with self._client() as client:
            try:
                response = await client.post(
                    "/v2/checkout/orders",
                    json=payload,
                    headers={"Authorization": f"Bearer {access_token}"},
                )
                response.raise_for_status()
            except httpx.HTTPStatusError as e:
                logger.error(f"❌ PayPal create order failed: status={e.response.status_code} body={e.response.text[:200]}")
                raise PayPalError("PayPal rechazó la orden", e.response.status_code) from e
            except httpx.HTTPError as e:
                logger.error(f"❌ Error de red creando orden en PayPal: {e}")
                raise PayPalError(f"Error de red con PayPal: {e}") from e

        data = response.json()
        order_id = data.get("id")
        approval_url = next(
            (link.get("href") for link in data.get("links", []) if link.get("rel") in APPROVAL_RELS),
            None,
        )
        if not order_id or not approval_url:
            logger.error(f"❌ Orden PayPal {order_id} sin link de aprobación")
            raise PayPalError("La respuesta de PayPal no trae link de aprobación", response.status_code)

        logger.info(f"✅ Orden PayPal creada: {order_id} ({amount} {self.currency})")
        return PayPalOrder(order_id=order_id, approval_url=approval_url)
