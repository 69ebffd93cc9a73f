"""
Vault: credenciales de proveedores de pago por cliente MXPaylink.

Las columnas ``customers.<proveedor>_creds`` contienen valores escritos por al
menos tres versiones del backend, sin migración masiva de por medio:

- v1: envelope cifrado directo, contenido ``client_id:secret``.
- v2: envelope cifrado directo, contenido JSON.
- v3 (actual): objeto ``{"encrypted": "<envelope>"}``, contenido JSON.

El lector acepta todas; el escritor (``encrypt_credentials``) solo produce v3.
"""
import logging
from typing import Any, Callable, Dict, Mapping, Optional, Sequence, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from core.encryption import SymmetricCipher
from core.errors import (
    CredentialError,
    EncryptionError,
    UnparsableCredentialContent,
    UnrecognizedCredentialShape,
)

logger = logging.getLogger(__name__)

PAYPAL = "paypal"
CONEKTA = "conekta"
MERCADOPAGO = "mercadopago"

PROVIDER_COLUMNS: Dict[str, str] = {
    PAYPAL: "paypal_creds",
    CONEKTA: "conekta_creds",
    MERCADOPAGO: "mercadopago_creds",
}


class CredentialRecord(BaseModel):
    """Par (client_id, secret) listo para el cliente del proveedor."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    client_id: str = Field(min_length=1)
    secret: str = Field(min_length=1, repr=False)


class PlainCredential(BaseModel):
    """Forma legacy: la columna guarda el envelope tal cual."""

    model_config = ConfigDict(frozen=True)

    envelope: str

    @property
    def kind(self) -> str:
        return "legacy"


class WrappedCredential(BaseModel):
    """Forma actual: ``{"encrypted": "<envelope>"}``."""

    model_config = ConfigDict(frozen=True)

    encrypted: str

    @property
    def envelope(self) -> str:
        return self.encrypted

    @property
    def kind(self) -> str:
        return "wrapped"


StoredCredential = Union[PlainCredential, WrappedCredential]


def classify_stored_credential(raw: Any) -> StoredCredential:
    """Decide una sola vez la forma del valor almacenado."""
    if isinstance(raw, Mapping):
        encrypted = raw.get("encrypted")
        if isinstance(encrypted, str) and encrypted:
            return WrappedCredential(encrypted=encrypted)
        raise UnrecognizedCredentialShape("objeto sin campo 'encrypted' no vacío")
    if isinstance(raw, str) and raw:
        return PlainCredential(envelope=raw)
    raise UnrecognizedCredentialShape(f"valor de tipo {type(raw).__name__}")


def parse_structured(plaintext: str) -> Optional[CredentialRecord]:
    """Contenido JSON ``{"client_id": ..., "secret": ...}``."""
    try:
        return CredentialRecord.model_validate_json(plaintext)
    except ValidationError:
        return None


def from_delimited(text: str) -> Optional[CredentialRecord]:
    """
    Contenido legacy ``client_id:secret``.

    Contrato estrecho a propósito: exactamente dos partes no vacías. Cualquier
    otra cosa devuelve None.
    """
    if not isinstance(text, str) or ":" not in text:
        return None
    parts = text.split(":")
    if len(parts) != 2:
        return None
    client_id, secret = parts
    if not client_id or not secret:
        return None
    return CredentialRecord(client_id=client_id, secret=secret)


CredentialParser = Callable[[str], Optional[CredentialRecord]]

# Orden = precedencia. El primero que devuelve un registro gana.
CREDENTIAL_PARSERS: Sequence[Tuple[str, CredentialParser]] = (
    ("json", parse_structured),
    ("legacy_delimited", from_delimited),
)


class CredentialResolver:
    def __init__(self, cipher: SymmetricCipher, parsers: Sequence[Tuple[str, CredentialParser]] = CREDENTIAL_PARSERS):
        self._cipher = cipher
        self._parsers = tuple(parsers)

    def resolve_or_raise(self, stored: Any, provider_label: str, subject_id: Any) -> CredentialRecord:
        """
        Igual que ``resolve`` pero lanza la excepción concreta de cada fallo:
        UnrecognizedCredentialShape, MalformedEnvelope, DecryptionFailed o
        UnparsableCredentialContent.
        """
        shape = classify_stored_credential(stored)
        logger.debug(f"🔎 [{provider_label}] cliente {subject_id}: formato {shape.kind} detectado")

        plaintext = self._cipher.decrypt(shape.envelope)
        logger.debug(f"🔓 [{provider_label}] cliente {subject_id}: descifrado OK ({len(plaintext)} chars)")

        for name, parser in self._parsers:
            record = parser(plaintext)
            if record is not None:
                if name != self._parsers[0][0]:
                    logger.info(f"♻️ [{provider_label}] cliente {subject_id}: credenciales interpretadas con formato '{name}'")
                    if plaintext.lstrip().startswith("{"):
                        # JSON incompleto partido por ':'; el proveedor rechazará el par
                        logger.warning(
                            f"⚠️ [{provider_label}] cliente {subject_id}: contenido con forma JSON "
                            f"interpretado como '{name}', revisar credenciales almacenadas"
                        )
                return record
            logger.debug(f"[{provider_label}] cliente {subject_id}: el formato '{name}' no aplica")

        raise UnparsableCredentialContent(
            f"contenido descifrado no reconocido ({len(plaintext)} chars)"
        )

    def resolve(self, stored: Any, provider_label: str, subject_id: Any) -> Optional[CredentialRecord]:
        """
        Devuelve el par completo (client_id, secret) o None. Nunca devuelve
        datos parciales ni deja escapar excepciones de formato/cifrado.
        """
        try:
            return self.resolve_or_raise(stored, provider_label, subject_id)
        except (CredentialError, EncryptionError) as e:
            logger.error(
                f"❌ Credenciales {provider_label} inutilizables para cliente {subject_id}: {type(e).__name__}: {e}"
            )
            return None


def resolve_customer_credentials(customer: Mapping[str, Any], resolver: CredentialResolver) -> Dict[str, CredentialRecord]:
    """Resuelve cada columna de proveedor de forma independiente."""
    resolved: Dict[str, CredentialRecord] = {}
    customer_id = customer.get("id")
    for provider, column in PROVIDER_COLUMNS.items():
        raw = customer.get(column)
        if raw is None:
            continue
        record = resolver.resolve(raw, provider, customer_id)
        if record is not None:
            resolved[provider] = record
    return resolved


def encrypt_credentials(record: CredentialRecord, cipher: SymmetricCipher) -> Dict[str, str]:
    """Forma que escribe la versión actual: ``{"encrypted": envelope(JSON)}``."""
    return {"encrypted": cipher.encrypt(record.model_dump_json())}


async def save_customer_credentials(customer_id: int, provider: str, record: CredentialRecord, cipher: SymmetricCipher) -> bool:
    """Cifra y guarda las credenciales de un proveedor para un cliente."""
    import json

    from db import get_pool

    column = PROVIDER_COLUMNS.get(provider)
    if not column:
        logger.error(f"❌ Proveedor desconocido '{provider}'")
        return False

    value = encrypt_credentials(record, cipher)
    pool = get_pool()
    try:
        result = await pool.execute(
            f"UPDATE customers SET {column} = $1::jsonb, updated_at = NOW() WHERE id = $2",
            json.dumps(value),
            customer_id,
        )
    except Exception as e:
        logger.error(f"Error saving {provider} credentials for customer {customer_id}: {e}")
        return False
    return result != "UPDATE 0"
