"""Database engine and session factory for the SQL-backed ledger store."""

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from roomledger.models import Base


def create_session_factory(database_url: str, create_tables: bool = True) -> sessionmaker:
    """Create a session factory bound to a new engine.

    SQLite uses StaticPool so in-memory databases survive across sessions.

    Args:
        database_url: SQLAlchemy database URL
        create_tables: Create missing tables on the engine (default True)

    Returns:
        sessionmaker producing Session objects
    """
    if database_url.startswith("sqlite"):
        engine = create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        engine = create_engine(database_url, pool_pre_ping=True)

    if create_tables:
        Base.metadata.create_all(engine)

    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


__all__ = ["create_session_factory"]
