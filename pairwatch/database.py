from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker
from sqlalchemy.pool import StaticPool

from pairwatch.config import settings


def build_engine(url: str) -> Engine:
    """Create an engine, adding the connect args SQLite needs.

    Sessions are handed across threads (FastAPI runs sync endpoints in a
    worker pool), so SQLite must not pin connections to their creating
    thread. In-memory SQLite additionally shares one connection, otherwise
    every new connection would see an empty database.
    """
    if not url.startswith("sqlite"):
        return create_engine(url, pool_pre_ping=True)
    kwargs: dict = {"connect_args": {"check_same_thread": False}}
    if url in ("sqlite://", "sqlite:///:memory:"):
        kwargs["poolclass"] = StaticPool
    return create_engine(url, **kwargs)


engine = build_engine(settings.database_url)
SessionLocal = sessionmaker(bind=engine)


class Base(DeclarativeBase):
    pass
