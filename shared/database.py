import ssl as _ssl
from sqlalchemy.ext.asyncio import (
    AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
)

DEV_DATABASE_URL = "sqlite+aiosqlite:///./dev.db"


def normalize_database_url(url: str) -> str:
    """Map a plain Postgres URL onto the asyncpg driver."""
    if not url:
        return DEV_DATABASE_URL
    url = url.replace("postgres://", "postgresql://", 1)
    url = url.replace("postgresql://", "postgresql+asyncpg://", 1)
    # Strip sslmode param (asyncpg uses ssl connect_arg instead)
    return url.split("?sslmode=")[0] if "?sslmode=" in url else url


def build_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    url = normalize_database_url(database_url)

    kwargs: dict = {"echo": echo}
    if url.startswith("postgresql"):
        kwargs.update(pool_size=5, max_overflow=10)
    if "supabase" in url:
        ssl_ctx = _ssl.create_default_context()
        ssl_ctx.check_hostname = False
        ssl_ctx.verify_mode = _ssl.CERT_NONE
        kwargs["connect_args"] = {"ssl": ssl_ctx}

    return create_async_engine(url, **kwargs)


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
