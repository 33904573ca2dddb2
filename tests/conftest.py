import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./storefront_test.db")
os.environ.setdefault("SECRET_KEY", "test-secret")

from decimal import Decimal
from types import SimpleNamespace
from uuid import uuid4

import jwt
import pytest
from fakeredis import aioredis as fake_aioredis
from httpx import ASGITransport, AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.core.redis import get_redis
from app.db import Base
from app.db_depends import get_db
from app.main import app
from app.models.category import Category
from app.models.product import Product
from env import ALGORITHM, SECRET_KEY


@pytest.fixture
async def engine(tmp_path):
    eng = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'store.db'}")
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(
        bind=engine,
        expire_on_commit=False,
        class_=AsyncSession,
        autoflush=False,
    )


@pytest.fixture
async def catalog(session_factory):
    """Fruit > Citrus; apple (100.00 x5), lemon (50.00 x10), a retired pear."""
    async with session_factory() as s:
        fruit = Category(name="Fruit")
        s.add(fruit)
        await s.flush()
        citrus = Category(name="Citrus", parent_category_id=fruit.id)
        s.add(citrus)
        await s.flush()

        apple = Product(name="Apple", price=Decimal("100.00"), stock_quantity=5, category_id=fruit.id)
        lemon = Product(name="Lemon", price=Decimal("50.00"), stock_quantity=10, category_id=citrus.id)
        pear = Product(
            name="Pear",
            price=Decimal("20.00"),
            stock_quantity=7,
            is_active=False,
            category_id=fruit.id,
        )
        s.add_all([apple, lemon, pear])
        await s.commit()

    return SimpleNamespace(fruit=fruit, citrus=citrus, apple=apple, lemon=lemon, pear=pear)


@pytest.fixture
def stock_of(session_factory):
    async def _stock(product_id):
        async with session_factory() as s:
            return (
                await s.execute(select(Product.stock_quantity).where(Product.id == product_id))
            ).scalar_one()

    return _stock


@pytest.fixture
def user_id():
    return uuid4()


@pytest.fixture
def admin_id():
    return uuid4()


def make_token(user_id, role="user"):
    return jwt.encode({"id": str(user_id), "sub": "tester", "role_name": role}, SECRET_KEY, algorithm=ALGORITHM)


@pytest.fixture
def token_for():
    return make_token


@pytest.fixture
def user_headers(user_id):
    return {"Authorization": f"Bearer {make_token(user_id)}"}


@pytest.fixture
def admin_headers(admin_id):
    return {"Authorization": f"Bearer {make_token(admin_id, 'admin')}"}


@pytest.fixture
async def redis():
    client = fake_aioredis.FakeRedis(decode_responses=True)
    yield client
    await client.aclose()


@pytest.fixture
async def client(session_factory, redis):
    async def _get_db():
        async with session_factory() as session:
            yield session

    async def _get_redis():
        return redis

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_redis] = _get_redis
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
