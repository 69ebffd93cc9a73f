import asyncpg
import json
import logging
import os
from decimal import Decimal
from typing import Any, Dict, Optional

from core.credentials import PROVIDER_COLUMNS

logger = logging.getLogger(__name__)

POSTGRES_DSN = os.getenv("POSTGRES_DSN")

CUSTOMER_COLUMNS = (
    "id, phone, email, service_status, paypal_creds, conekta_creds, mercadopago_creds, created_at, updated_at"
)


def _decode_json_column(value: Any) -> Any:
    """
    asyncpg devuelve jsonb como texto si no hay codec registrado. Los valores
    de credenciales pueden ser un objeto ``{"encrypted": ...}``, una cadena JSON
    o (columnas text antiguas) el envelope crudo: solo se decodifica lo que
    parece JSON.
    """
    if not isinstance(value, str):
        return value
    stripped = value.strip()
    if not stripped or stripped[0] not in '{"':
        return value
    try:
        return json.loads(stripped)
    except ValueError:
        return value


def customer_from_row(row: Any) -> Dict[str, Any]:
    customer = dict(row)
    for column in PROVIDER_COLUMNS.values():
        if column in customer:
            customer[column] = _decode_json_column(customer[column])
    return customer


class Database:
    def __init__(self):
        self.pool: Optional[asyncpg.Pool] = None

    async def connect(self):
        """Conecta al pool de PostgreSQL."""
        if self.pool:
            return
        if not POSTGRES_DSN:
            logger.error("❌ POSTGRES_DSN environment variable is not set!")
            return

        # asyncpg no soporta el esquema 'postgresql+asyncpg', solo 'postgresql' o 'postgres'
        dsn = POSTGRES_DSN.replace("postgresql+asyncpg://", "postgresql://")
        try:
            self.pool = await asyncpg.create_pool(dsn)
            logger.info("✅ Pool de PostgreSQL listo")
        except Exception as e:
            logger.error(f"❌ Failed to create database pool: {e}")

    async def disconnect(self):
        if self.pool:
            await self.pool.close()
            self.pool = None

    async def find_customer_by_phone(self, phone_key: str) -> Optional[Dict[str, Any]]:
        """
        Busca un cliente MXPaylink por su clave canónica (52 + 10 dígitos).
        El llamador normaliza antes; aquí no se acepta ninguna otra forma.
        """
        row = await self.fetchrow(
            f"SELECT {CUSTOMER_COLUMNS} FROM customers WHERE phone = $1 LIMIT 1",
            phone_key,
        )
        if not row:
            logger.info(f"👤 Cliente NO encontrado para teléfono ***{phone_key[-4:]}")
            return None
        logger.info(f"👤 Cliente encontrado para teléfono ***{phone_key[-4:]}. ID: {row['id']}")
        return customer_from_row(row)

    async def find_customer_by_id(self, customer_id: int) -> Optional[Dict[str, Any]]:
        row = await self.fetchrow(
            f"SELECT {CUSTOMER_COLUMNS} FROM customers WHERE id = $1 LIMIT 1",
            customer_id,
        )
        return customer_from_row(row) if row else None

    async def record_payment_link(self, customer_id: int, provider: str, order_id: str, amount: Decimal, concept: str):
        """Guarda la orden generada para poder conciliar el webhook de captura."""
        await self.execute(
            """
            INSERT INTO payment_links (customer_id, provider, provider_order_id, amount, concept, status, created_at)
            VALUES ($1, $2, $3, $4, $5, 'created', NOW())
            ON CONFLICT (provider, provider_order_id) DO NOTHING
            """,
            customer_id, provider, order_id, amount, concept,
        )

    async def mark_payment_captured(self, provider: str, order_id: Optional[str], capture_id: str, payload: dict):
        if not order_id:
            return
        await self.execute(
            """
            UPDATE payment_links
            SET status = 'captured', capture_id = $3, capture_payload = $4::jsonb, updated_at = NOW()
            WHERE provider = $1 AND provider_order_id = $2
            """,
            provider, order_id, capture_id, json.dumps(payload),
        )

    # --- WRAPPER METHODS (acceso directo al pool) ---
    async def fetchrow(self, query: str, *args):
        async with get_pool().acquire() as conn:
            return await conn.fetchrow(query, *args)

    async def execute(self, query: str, *args):
        async with get_pool().acquire() as conn:
            return await conn.execute(query, *args)

# Global instance
db = Database()


def get_pool():
    if db.pool is None:
        raise RuntimeError("Database pool not initialized. Call await db.connect() first.")
    return db.pool
