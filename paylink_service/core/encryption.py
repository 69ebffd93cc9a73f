"""
Cifrado simétrico de credenciales de proveedores de pago.

AES-256-CBC con padding PKCS#7. El valor persistido es el "envelope"
``<iv hex (32 chars)>:<ciphertext hex>``: es el formato que escribieron todas
las versiones anteriores del backend, así que el lector tiene que seguir
aceptándolo tal cual.

La clave se inyecta al construir ``SymmetricCipher``; nunca se guarda en un
global del módulo ni se genera al vuelo. Sin ENCRYPTION_KEY válida el proceso
no arranca.
"""
import binascii
import logging
import os
import re
from typing import Mapping, Optional, Tuple

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from core.errors import (
    ConfigurationError,
    DecryptionFailed,
    EncryptionFailed,
    MalformedEnvelope,
)

logger = logging.getLogger(__name__)

ENCRYPTION_KEY_ENV = "ENCRYPTION_KEY"
KEY_SIZE_BYTES = 32
IV_SIZE_BYTES = 16
BLOCK_SIZE_BITS = 128
BLOCK_SIZE_BYTES = BLOCK_SIZE_BITS // 8

_HEX_RE = re.compile(r"[0-9a-fA-F]+")


def load_encryption_key(environ: Optional[Mapping[str, str]] = None) -> bytes:
    """
    Lee ENCRYPTION_KEY del entorno y la devuelve como bytes UTF-8.

    Las versiones históricas usaban la cadena de 32 caracteres directamente
    como clave AES, por eso se mide la longitud en bytes UTF-8 y no se
    decodifica como hex/base64.
    """
    env = os.environ if environ is None else environ
    raw = env.get(ENCRYPTION_KEY_ENV)

    if not raw:
        logger.critical(
            "🚨 ENCRYPTION_KEY no está definida. Las credenciales de pago no se "
            "pueden descifrar; el orchestrator no debe arrancar sin ella."
        )
        raise ConfigurationError(f"{ENCRYPTION_KEY_ENV} no está definida")

    key = raw.encode("utf-8")
    if len(key) != KEY_SIZE_BYTES:
        logger.critical(
            f"🚨 ENCRYPTION_KEY debe tener {KEY_SIZE_BYTES} bytes (longitud actual: {len(key)} bytes)."
        )
        raise ConfigurationError(
            f"{ENCRYPTION_KEY_ENV} debe tener {KEY_SIZE_BYTES} bytes, tiene {len(key)}"
        )

    logger.info(f"🔐 Clave de cifrado cargada ({len(key)} bytes).")
    return key


def parse_envelope(envelope: str) -> Tuple[bytes, bytes]:
    """Valida ``iv:ciphertext`` y devuelve ``(iv, ciphertext)`` en bytes."""
    if not isinstance(envelope, str):
        raise MalformedEnvelope(f"envelope debe ser str, no {type(envelope).__name__}")

    parts = envelope.strip().split(":")
    if len(parts) != 2:
        raise MalformedEnvelope(f"se esperaban 2 segmentos separados por ':', hay {len(parts)}")

    iv_hex, ciphertext_hex = parts
    if not iv_hex or not ciphertext_hex:
        raise MalformedEnvelope("segmento vacío en el envelope")
    if not _HEX_RE.fullmatch(iv_hex) or not _HEX_RE.fullmatch(ciphertext_hex):
        raise MalformedEnvelope("el envelope contiene caracteres no hexadecimales")

    try:
        iv = binascii.unhexlify(iv_hex)
        ciphertext = binascii.unhexlify(ciphertext_hex)
    except binascii.Error as e:
        raise MalformedEnvelope(f"hex inválido: {e}") from e

    if len(iv) != IV_SIZE_BYTES:
        raise MalformedEnvelope(f"IV de {len(iv)} bytes, se esperaban {IV_SIZE_BYTES}")
    if len(ciphertext) % BLOCK_SIZE_BYTES != 0:
        raise MalformedEnvelope(f"ciphertext de {len(ciphertext)} bytes no es múltiplo de {BLOCK_SIZE_BYTES}")

    return iv, ciphertext


class SymmetricCipher:
    """
    AES-256-CBC sobre texto UTF-8.

    La instancia es inmutable y no guarda estado entre llamadas, así que una
    sola instancia se comparte entre todas las peticiones concurrentes.
    """

    def __init__(self, key: bytes):
        if not isinstance(key, (bytes, bytearray)) or len(key) != KEY_SIZE_BYTES:
            raise ConfigurationError(f"la clave de cifrado debe tener exactamente {KEY_SIZE_BYTES} bytes")
        self._key = bytes(key)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "SymmetricCipher":
        return cls(load_encryption_key(environ))

    def __repr__(self) -> str:
        return f"<SymmetricCipher aes-256-cbc key_bytes={len(self._key)}>"

    def _cipher(self, iv: bytes) -> Cipher:
        return Cipher(algorithms.AES(self._key), modes.CBC(iv))

    def encrypt(self, plaintext: str) -> str:
        """Cifra ``plaintext`` con un IV aleatorio nuevo y devuelve el envelope."""
        if not isinstance(plaintext, str):
            raise EncryptionFailed(f"plaintext debe ser str, no {type(plaintext).__name__}")
        try:
            data = plaintext.encode("utf-8")
        except UnicodeEncodeError as e:
            raise EncryptionFailed("plaintext no es UTF-8 válido") from e

        iv = os.urandom(IV_SIZE_BYTES)
        padder = padding.PKCS7(BLOCK_SIZE_BITS).padder()
        padded = padder.update(data) + padder.finalize()

        encryptor = self._cipher(iv).encryptor()
        ciphertext = encryptor.update(padded) + encryptor.finalize()
        return f"{iv.hex()}:{ciphertext.hex()}"

    def decrypt(self, envelope: str) -> str:
        """
        Descifra un envelope.

        Raises:
            MalformedEnvelope: forma ``iv:ciphertext`` inválida.
            DecryptionFailed: padding inválido o resultado que no es UTF-8
                (clave equivocada o ciphertext alterado).
        """
        iv, ciphertext = parse_envelope(envelope)

        decryptor = self._cipher(iv).decryptor()
        padded = decryptor.update(ciphertext) + decryptor.finalize()

        unpadder = padding.PKCS7(BLOCK_SIZE_BITS).unpadder()
        try:
            data = unpadder.update(padded) + unpadder.finalize()
        except ValueError as e:
            raise DecryptionFailed("padding inválido") from e

        try:
            return data.decode("utf-8")
        except UnicodeDecodeError as e:
            raise DecryptionFailed("el texto descifrado no es UTF-8") from e
