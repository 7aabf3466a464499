"""
Root Conftest - Shared Fixtures for All Tests

Provides:
- Import paths for the backend packages
- Test environment (throwaway database, signing key of a fake identity provider)
- Token minting helpers
- Shared mock factories
"""

import os
import sys
import tempfile
import time
from pathlib import Path

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

# Add project paths to sys.path for imports
PROJECT_ROOT = Path(__file__).parent.parent
SRC_PATH = PROJECT_ROOT / "src"
BACKEND_PATH = SRC_PATH / "backend"

sys.path.insert(0, str(PROJECT_ROOT))
sys.path.insert(0, str(SRC_PATH))
sys.path.insert(0, str(BACKEND_PATH))


# ============================================================================
# Test Environment Configuration
# ============================================================================

# Key pair of the fake identity provider
_private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
TEST_PRIVATE_KEY_PEM = _private_key.private_bytes(
    encoding=serialization.Encoding.PEM,
    format=serialization.PrivateFormat.PKCS8,
    encryption_algorithm=serialization.NoEncryption(),
).decode()
TEST_PUBLIC_KEY_PEM = _private_key.public_key().public_bytes(
    encoding=serialization.Encoding.PEM,
    format=serialization.PublicFormat.SubjectPublicKeyInfo,
).decode()

# Settings are read once at import, so the environment is prepared here
_TEST_DATA_DIR = Path(tempfile.mkdtemp(prefix="petube-tests-"))
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TEST_DATA_DIR / 'petube.db'}"
os.environ["JWT_PUBLIC_KEY"] = TEST_PUBLIC_KEY_PEM
os.environ["JWT_ALGORITHMS"] = "RS256"
os.environ.setdefault("LOG_LEVEL", "WARNING")


@pytest.fixture(scope="session")
def project_root():
    """Return project root path"""
    return PROJECT_ROOT


@pytest.fixture(scope="session")
def backend_path():
    """Return backend path (src/backend)"""
    return BACKEND_PATH


# ============================================================================
# Identity Provider Fixtures
# ============================================================================

@pytest.fixture(scope="session")
def public_key_pem() -> str:
    return TEST_PUBLIC_KEY_PEM


@pytest.fixture(scope="session")
def public_key_jwk() -> dict:
    """Public key as JWK document, the format produced by pem-to-jwk"""
    from jose import jwk

    return jwk.construct(TEST_PUBLIC_KEY_PEM, algorithm="RS256").to_dict()


@pytest.fixture
def make_token():
    """Factory for tokens signed by the fake identity provider"""
    from jose import jwt

    def _make_token(subject_id="user-1", expires_in=3600, private_key=None, **claims):
        now = int(time.time())
        payload = {"iat": now, "exp": now + expires_in, **claims}
        if subject_id is not None:
            payload["id"] = subject_id
        return jwt.encode(payload, private_key or TEST_PRIVATE_KEY_PEM, algorithm="RS256")

    return _make_token


@pytest.fixture
def auth_headers(make_token):
    """Factory for Authorization headers"""
    def _auth_headers(subject_id="user-1", **kwargs):
        return {"Authorization": f"Bearer {make_token(subject_id, **kwargs)}"}

    return _auth_headers


@pytest.fixture(scope="session")
def foreign_private_key_pem() -> str:
    """Private key the backend does not trust"""
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    return key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode()


# ============================================================================
# Shared Mock Factories
# ============================================================================

@pytest.fixture
def mock_websocket_factory():
    """Factory for creating mock WebSocket connections"""
    from unittest.mock import AsyncMock, MagicMock

    def _create_websocket(client_ip="127.0.0.1"):
        ws = AsyncMock()
        ws.accept = AsyncMock()
        ws.send_json = AsyncMock()
        ws.close = AsyncMock()
        ws.client = MagicMock()
        ws.client.host = client_ip
        return ws

    return _create_websocket
