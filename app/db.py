from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker

from app.models.base import Base
from app.models import category, product, order, order_item  # noqa: F401  registers mappers
from env import DATABASE_URL, DB_ECHO


engine = create_async_engine(
    DATABASE_URL,
    echo=DB_ECHO,
    future=True,
)

AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    expire_on_commit=False,  # orders are returned to the router after commit
    class_=AsyncSession,
    autoflush=False,
)
