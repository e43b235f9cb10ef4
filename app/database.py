"""Database connection and session management."""
from functools import lru_cache

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session

from app.config import get_settings


def get_database_url() -> str:
    """Build database URL from environment variables."""
    settings = get_settings()

    # Check for explicit DATABASE_URL first
    if settings.DATABASE_URL:
        return settings.DATABASE_URL

    return (
        f"postgresql://{settings.DB_USER}:{settings.DB_PASSWORD}"
        f"@{settings.DB_HOST}:{settings.DB_PORT}/{settings.DB_NAME}"
    )


@lru_cache
def get_engine():
    """Create SQLAlchemy engine (cached)."""
    return create_engine(
        get_database_url(),
        pool_pre_ping=True,
        pool_size=5,
        max_overflow=10,
    )


def get_session() -> Session:
    """Create a new database session."""
    SessionLocal = sessionmaker(bind=get_engine())
    return SessionLocal()


def get_db():
    """Dependency for FastAPI routes that need a database session."""
    db = get_session()
    try:
        yield db
    finally:
        db.close()
