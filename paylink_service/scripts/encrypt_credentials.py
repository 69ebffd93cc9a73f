"""
Cifra credenciales de un proveedor de pago con ENCRYPTION_KEY y muestra el
valor a guardar en customers.<proveedor>_creds.

Uso CLI:
    python -m scripts.encrypt_credentials --client-id AcC... --secret EG0...
    python -m scripts.encrypt_credentials --client-id AcC... --customer-id 12 --provider paypal

Si no se pasa --secret se pide por consola (no queda en el historial).
Con --customer-id el valor se guarda directamente en la base de datos.
"""
import argparse
import asyncio
import getpass
import json
import sys
from typing import Optional, Sequence

from dotenv import load_dotenv
from pydantic import ValidationError

from core.credentials import PROVIDER_COLUMNS, CredentialRecord, encrypt_credentials, save_customer_credentials
from core.encryption import SymmetricCipher
from core.errors import ConfigurationError


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Cifra credenciales de proveedor de pago (formato actual).")
    parser.add_argument("--client-id", required=True)
    parser.add_argument("--secret")
    parser.add_argument("--provider", default="paypal", choices=sorted(PROVIDER_COLUMNS))
    parser.add_argument("--customer-id", type=int, help="Guardar directamente en la tabla customers")
    return parser


async def _save(customer_id: int, provider: str, record: CredentialRecord, cipher: SymmetricCipher) -> bool:
    from db import db

    await db.connect()
    try:
        return await save_customer_credentials(customer_id, provider, record, cipher)
    finally:
        await db.disconnect()


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Punto de entrada para ejecución CLI."""
    load_dotenv()
    args = build_parser().parse_args(argv)
    secret = args.secret or getpass.getpass("Secret: ")

    try:
        cipher = SymmetricCipher.from_env()
    except ConfigurationError as e:
        print(f"❌ {e}")
        return 1

    try:
        record = CredentialRecord(client_id=args.client_id, secret=secret)
    except ValidationError:
        print("❌ client_id y secret no pueden estar vacíos.")
        return 1

    wrapped = encrypt_credentials(record, cipher)

    if args.customer_id is not None:
        ok = asyncio.run(_save(args.customer_id, args.provider, record, cipher))
        print("✅ Credenciales guardadas." if ok else "❌ No se pudieron guardar las credenciales.")
        return 0 if ok else 1

    print("--- RESULTADO ---")
    print(f"Valor a guardar en {PROVIDER_COLUMNS[args.provider]} (formato actual):")
    print(json.dumps(wrapped))
    print("--- FIN RESULTADO ---")
    return 0


if __name__ == "__main__":
    sys.exit(main())
