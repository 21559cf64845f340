"""
Database Configuration and Session Management
"""

from sqlalchemy import create_engine
from sqlalchemy.ext.declarative import declarative_base
from sqlalchemy.orm import sessionmaker
from app.config import settings
import logging

logger = logging.getLogger(__name__)

# Metrics store engine
engine = None
SessionLocal = None

# Monitored database engine (statistics source)
stats_engine = None


def _normalize_url(url: str) -> str:
    """Use the psycopg 3 driver for plain postgresql:// URLs"""
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+psycopg://", 1)
    return url


def init_db():
    """Initialize database connections"""
    global engine, SessionLocal, stats_engine

    if not settings.database_url:
        logger.warning("DATABASE_URL not configured - database features disabled")
        return

    logger.info("Connecting to database...")
    engine = create_engine(
        _normalize_url(settings.database_url),
        pool_pre_ping=True,  # Verify connections before using them
        pool_size=5,
        max_overflow=10
    )

    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    if settings.stats_database_url == settings.database_url:
        stats_engine = engine
    else:
        stats_engine = create_engine(
            _normalize_url(settings.stats_database_url),
            pool_pre_ping=True,
            pool_size=2,
            max_overflow=2
        )
    logger.info("Database connection established")


def get_db():
    """
    Dependency for getting database session
    Usage: db: Session = Depends(get_db)

    Yields None if the database is not configured
    """
    if SessionLocal is None:
        logger.warning("Database not configured")
        yield None
        return

    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


# Base class for all models
Base = declarative_base()
