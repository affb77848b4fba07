"""Database engine and session setup."""
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from .config import DATABASE_URL, DB_TIMEOUT_SECONDS

Base = declarative_base()


def make_engine(url: str = DATABASE_URL, timeout: float = DB_TIMEOUT_SECONDS) -> Engine:
    """Create an engine; SQLite gets a busy timeout and in-memory URLs share one connection."""
    if not url.startswith("sqlite"):
        return create_engine(url, pool_pre_ping=True, pool_timeout=timeout)

    connect_args = {"check_same_thread": False, "timeout": timeout}
    if url in ("sqlite://", "sqlite:///:memory:"):
        return create_engine(url, connect_args=connect_args, poolclass=StaticPool)
    return create_engine(url, connect_args=connect_args)


def make_session_factory(engine: Engine) -> sessionmaker:
    Base.metadata.create_all(bind=engine)
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)
