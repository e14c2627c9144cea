import os

# Must be set before medrep_portal reads its settings.
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("SEED_DEMO_DATA", "false")
os.environ.setdefault("ENVIRONMENT", "test")

from datetime import date, timedelta
from typing import Optional

import httpx
import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from medrep_portal import models  # noqa: F401  (registers tables on Base.metadata)
from medrep_portal.auth import hash_password
from medrep_portal.database import Base, get_db
from medrep_portal.main import app
from medrep_portal.models.user import User

PASSWORD = "secret123"


def days_ago(n: int) -> str:
    return (date.today() - timedelta(days=n)).isoformat()


@pytest.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'portal.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(session_factory):
    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(session_factory):
    async def _make(
        username: str,
        role: str = "medrep",
        region: Optional[str] = "Kigali",
        is_active: bool = True,
        password: str = PASSWORD,
    ) -> User:
        async with session_factory() as session:
            user = User(
                username=username,
                email=f"{username}@example.com",
                name=username.replace(".", " ").title(),
                role=role,
                region=region,
                is_active=is_active,
                password_hash=await hash_password(password),
            )
            session.add(user)
            await session.commit()
            await session.refresh(user)
            return user

    return _make


@pytest.fixture
def login(client):
    async def _login(username: str, password: str = PASSWORD) -> dict:
        response = await client.post("/api/auth/login", json={"username": username, "password": password})
        assert response.status_code == 200, response.text
        return {"Authorization": f"Bearer {response.json()['data']['token']}"}

    return _login


@pytest.fixture
def submit(client):
    async def _submit(headers: dict, **fields):
        return await client.post("/api/reports/daily", json=fields, headers=headers)

    return _submit
