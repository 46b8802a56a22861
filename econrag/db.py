# FILE: econrag/db.py
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base

from econrag.config import DATABASE_URL

Base = declarative_base()


def make_engine(url: str = DATABASE_URL, echo: bool = False):
    """Create an engine; SQLite URLs get the cross-thread flag the handler pool needs."""
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    if url == "sqlite:///:memory:" or url == "sqlite://":
        # One shared connection so every session sees the same in-memory database
        from sqlalchemy.pool import StaticPool
        return create_engine(url, connect_args=connect_args, poolclass=StaticPool, echo=echo)
    return create_engine(url, connect_args=connect_args, echo=echo)


def make_session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db(engine) -> None:
    """Create all tables. Call once at startup."""
    # Import models so Base.metadata knows about them
    from econrag.persistence import models  # noqa: F401
    Base.metadata.create_all(bind=engine)
