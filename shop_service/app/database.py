from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from .config import settings


def make_engine(database_url: str):
    """Create the SQLAlchemy engine for ``database_url``.

    SQLite needs ``check_same_thread`` off because FastAPI runs sync
    endpoints on worker threads. An in-memory SQLite database must share a
    single connection or every session would see an empty database.
    """
    if database_url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        return create_engine(database_url, **kwargs)
    return create_engine(database_url, pool_pre_ping=True)


# Create the SQLAlchemy engine.
engine = make_engine(settings.database_url)

# Create a configured "Session" class for database interactions.
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Base class for declarative ORM models.
Base = declarative_base()


def get_db():
    """FastAPI dependency to get a DB session for a single request."""
    db = SessionLocal()
    try:
        yield db
    finally:
        # Ensure the session is always closed after the request is finished.
        db.close()
