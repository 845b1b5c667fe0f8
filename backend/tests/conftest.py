import os

os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["REDIS_URL"] = "redis://localhost:6379/15"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["GITHUB_CLIENT_ID"] = "test-client-id"
os.environ["GITHUB_CLIENT_SECRET"] = "test-client-secret"

import pytest
import pytest_asyncio
from unittest.mock import AsyncMock
from eth_account.messages import encode_typed_data
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker
from glytch.core.deps import get_identity_provider, get_nonce_oracle, redis_client
from glytch.database import Base, get_db
from glytch.main import app

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


class FakeRedis:
    """Just enough of redis.asyncio.Redis for the session store and OAuth state."""

    def __init__(self):
        self.data = {}
        self.ttls = {}

    async def get(self, key):
        return self.data.get(key)

    async def set(self, key, value, ex=None):
        self.data[key] = value
        self.ttls[key] = ex
        return True

    async def getdel(self, key):
        self.ttls.pop(key, None)
        return self.data.pop(key, None)

    async def delete(self, *keys):
        removed = 0
        for key in keys:
            if key in self.data:
                del self.data[key]
                removed += 1
            self.ttls.pop(key, None)
        return removed


class Clock:
    def __init__(self, now: int):
        self.now = now

    def __call__(self) -> float:
        return self.now


def sign_challenge(account, typed_data: dict) -> str:
    signed = account.sign_message(encode_typed_data(full_message=typed_data))
    return "0x" + signed.signature.hex().removeprefix("0x")


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def oracle():
    mock_oracle = AsyncMock()
    mock_oracle.get_nonce = AsyncMock(return_value=7)
    mock_oracle.is_verified = AsyncMock(return_value=False)
    return mock_oracle


@pytest.fixture
def provider():
    mock_provider = AsyncMock()
    mock_provider.authorize_url = lambda state: f"https://github.com/login/oauth/authorize?state={state}"
    return mock_provider


@pytest_asyncio.fixture
async def test_db():
    engine = create_async_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    SessionLocal = async_sessionmaker(engine, expire_on_commit=False)
    async def override_get_db():
        async with SessionLocal() as session:
            yield session
    app.dependency_overrides[get_db] = override_get_db
    yield SessionLocal
    app.dependency_overrides.clear()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def client(test_db, fake_redis, oracle, provider):
    app.dependency_overrides[redis_client] = lambda: fake_redis
    app.dependency_overrides[get_nonce_oracle] = lambda: oracle
    app.dependency_overrides[get_identity_provider] = lambda: provider
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c


async def github_login(client, provider, identity, access_token="gho_test_token"):
    """Walk the OAuth redirect dance against the app with a stubbed provider."""
    from urllib.parse import parse_qs, urlparse

    provider.exchange_code = AsyncMock(return_value=(identity, access_token))
    r = await client.get("/api/auth/github/login")
    state = parse_qs(urlparse(r.headers["location"]).query)["state"][0]
    return await client.get("/api/auth/github/callback", params={"code": "oauth-code", "state": state})
