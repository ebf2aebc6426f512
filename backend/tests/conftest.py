# backend/tests/conftest.py
from __future__ import annotations

import os
import tempfile
import time
from pathlib import Path
from types import SimpleNamespace
from typing import Any, Callable, Dict

# Settings are cached on first import, so test env must be in place before
# anything from appdoki is imported.
_DB_DIR = tempfile.mkdtemp(prefix="appdoki-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{Path(_DB_DIR) / 'import.db'}"
os.environ["DEBUG"] = "true"
os.environ["GOOGLE_CLIENT_ID"] = "web-client.apps.googleusercontent.com"
os.environ["GOOGLE_CLIENT_SECRET"] = "dummy-secret"
os.environ["GOOGLE_IOS_CLIENT_ID"] = "ios-client.apps.googleusercontent.com"
os.environ.pop("GOOGLE_ANDROID_CLIENT_ID", None)

import httpx  # noqa: E402
import jwt  # noqa: E402
import pytest  # noqa: E402
from cryptography.hazmat.primitives.asymmetric import rsa  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker  # noqa: E402
from sqlalchemy.pool import NullPool  # noqa: E402

from appdoki.api.deps import get_db, get_new_user_notifier, get_provider_client  # noqa: E402
from appdoki.config import Settings, get_settings  # noqa: E402
from appdoki.core.exceptions import ExchangeError  # noqa: E402
from appdoki.db.database import Base, build_engine  # noqa: E402
from appdoki.main import app  # noqa: E402
from appdoki.services.google_oauth import GoogleProviderClient  # noqa: E402
from appdoki.services.notifier import NewUserNotifier  # noqa: E402

WEB_CLIENT_ID = "web-client.apps.googleusercontent.com"
IOS_CLIENT_ID = "ios-client.apps.googleusercontent.com"
GOOGLE_ISS = "https://accounts.google.com"


# ---------- Keys & tokens ----------
class StaticJWKSClient:
    """Stands in for PyJWKClient: always hands out the same public key."""

    def __init__(self, public_key):
        self.public_key = public_key

    def get_signing_key_from_jwt(self, token: str):
        jwt.get_unverified_header(token)  # malformed tokens fail like the real client
        return SimpleNamespace(key=self.public_key)


@pytest.fixture(scope="session")
def signing_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def foreign_key():
    """A key Google never published."""
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture
def make_id_token(signing_key) -> Callable[..., str]:
    def _make(key=None, **overrides: Any) -> str:
        now = int(time.time())
        claims: Dict[str, Any] = {
            "iss": GOOGLE_ISS,
            "aud": WEB_CLIENT_ID,
            "sub": "110169484474386276334",
            "iat": now,
            "exp": now + 3600,
            "email": "a@x.com",
            "name": "A",
            "picture": "",
        }
        claims.update(overrides)
        claims = {k: v for k, v in claims.items() if v is not ...}
        return jwt.encode(
            claims, key or signing_key, algorithm="RS256", headers={"kid": "test"}
        )

    return _make


# ---------- Provider ----------
class FakeGoogleProvider(GoogleProviderClient):
    """Real verification and consent URLs; code exchange answered from a table."""

    def __init__(self, settings: Settings, jwks_client, token_responses: Dict[str, dict]):
        super().__init__(settings, jwks_client=jwks_client)
        self.token_responses = token_responses
        self.exchanged: list[str] = []

    async def exchange_code(self, code: str) -> dict:
        self.exchanged.append(code)
        if code not in self.token_responses:
            raise ExchangeError("invalid_grant")
        return self.token_responses[code]


@pytest.fixture
def settings() -> Settings:
    return get_settings()


@pytest.fixture
def jwks_client(signing_key) -> StaticJWKSClient:
    return StaticJWKSClient(signing_key.public_key())


@pytest.fixture
def provider(settings, jwks_client) -> FakeGoogleProvider:
    return FakeGoogleProvider(settings, jwks_client, token_responses={})


# ---------- Notifications ----------
class RecordingNotifier:
    def __init__(self):
        self.messages: list[tuple[str, dict]] = []

    async def message_all(self, topic: str, payload: dict) -> None:
        self.messages.append((topic, payload))


class FailingNotifier:
    async def message_all(self, topic: str, payload: dict) -> None:
        raise ConnectionError("pub/sub unavailable")


@pytest.fixture
def recorder() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def new_user_notifier(recorder) -> NewUserNotifier:
    return NewUserNotifier(recorder)


# ---------- Database ----------
@pytest.fixture
async def session_factory(tmp_path):
    engine = build_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'appdoki.db'}", poolclass=NullPool
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


# ---------- App ----------
@pytest.fixture
async def client(session_factory, provider, new_user_notifier):
    async def _get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_provider_client] = lambda: provider
    app.dependency_overrides[get_new_user_notifier] = lambda: new_user_notifier
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    await new_user_notifier.drain()
    app.dependency_overrides.clear()
