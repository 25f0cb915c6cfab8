import os

os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("DB_URL", "sqlite+aiosqlite:///:memory:")

import pytest_asyncio
from typing import AsyncGenerator, Awaitable, Callable
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from boutique.main import app
from boutique.db.base import get_async_db_session, Base
from boutique.models import *
from boutique.utils.auth import get_password_hash

SQLALCHEMY_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture
async def db_engine():
    engine = create_async_engine(
        SQLALCHEMY_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    TestingSessionLocal = async_sessionmaker(
        db_engine, class_=AsyncSession, expire_on_commit=False
    )
    async with TestingSessionLocal() as session:
        yield session


@pytest_asyncio.fixture
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    async def override_get_db():
        yield db_session
    app.dependency_overrides[get_async_db_session] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test/api") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
def user_payload_factory() -> Callable[..., dict]:
    def _make(email: str, nom: str = "Test User", password: str = "secret123", **extra) -> dict:
        return {"email": email, "password": password, "nom": nom, **extra}
    return _make


@pytest_asyncio.fixture
async def create_user_via_api(client: AsyncClient, user_payload_factory) -> Callable[..., Awaitable[dict]]:
    async def _create(email: str, **kwargs) -> dict:
        resp = await client.post("/register", json=user_payload_factory(email, **kwargs))
        assert resp.status_code == 201, resp.text
        return resp.json()["user"]
    return _create


@pytest_asyncio.fixture
async def login_via_api(client: AsyncClient) -> Callable[..., Awaitable[dict]]:
    async def _login(email: str, password: str = "secret123") -> dict:
        resp = await client.post("/login", json={"email": email, "password": password})
        assert resp.status_code == 200, resp.text
        return resp.json()
    return _login


@pytest_asyncio.fixture
async def auth_headers(create_user_via_api, login_via_api) -> dict:
    await create_user_via_api("member@example.com")
    body = await login_via_api("member@example.com")
    return {"Authorization": f"Bearer {body['token']}"}


@pytest_asyncio.fixture
async def admin_headers(db_session: AsyncSession, login_via_api) -> dict:
    admin = User(
        email="admin@example.com",
        nom="Admin",
        roles=["ROLE_ADMIN"],
        password=get_password_hash("admin_password"),
    )
    db_session.add(admin)
    await db_session.commit()
    body = await login_via_api("admin@example.com", "admin_password")
    return {"Authorization": f"Bearer {body['token']}"}


@pytest_asyncio.fixture
def produit_payload() -> dict:
    return {
        "nom": "T-shirt Nike",
        "description": "Un beau t-shirt de sport",
        "prix": 29.99,
        "image": "https://example.com/image.jpg",
        "categorie": "vetements",
        "taille": "M",
        "couleur": "rouge",
        "sexe": "unisexe",
    }


@pytest_asyncio.fixture
async def seed_produits(db_session: AsyncSession) -> Callable[..., Awaitable[list]]:
    async def _seed(*rows: dict) -> list:
        produits = [Produit(**row) for row in rows]
        db_session.add_all(produits)
        await db_session.commit()
        return produits
    return _seed
