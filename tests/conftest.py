"""
Config global de tests para MXPaylink.

ENCRYPTION_KEY se fija antes de importar main para que el lifespan arranque
con una clave conocida. Ningún test toca PostgreSQL ni APIs externas.
"""
import os

import pytest

TEST_KEY = b"0123456789abcdefFEDCBA9876543210"
OTHER_KEY = b"ZYXWVUTSRQPONMLKJIHGFEDCBA987654"

os.environ["ENCRYPTION_KEY"] = TEST_KEY.decode("utf-8")
os.environ.pop("POSTGRES_DSN", None)
os.environ.pop("D360_API_KEY", None)
os.environ.pop("OPENAI_API_KEY", None)

from core.credentials import CredentialResolver  # noqa: E402
from core.encryption import SymmetricCipher  # noqa: E402


@pytest.fixture
def cipher() -> SymmetricCipher:
    return SymmetricCipher(TEST_KEY)


@pytest.fixture
def other_cipher() -> SymmetricCipher:
    return SymmetricCipher(OTHER_KEY)


@pytest.fixture
def resolver(cipher) -> CredentialResolver:
    return CredentialResolver(cipher)
