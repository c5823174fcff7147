"""
Database connection management and ORM session factory.
Supports dialect abstraction for SQLite and PostgreSQL.
"""
from typing import Any
from sqlalchemy import create_engine, event
from sqlalchemy.orm import declarative_base
from sqlalchemy.orm import sessionmaker
from app.core.config import settings
from app.core.logger import logger

engine = create_engine(
    settings.DATABASE_URL,
    # SQLite specific: check_same_thread=False is required for FastAPI's threadpool
    connect_args={"check_same_thread": False} if "sqlite" in settings.DATABASE_URL else {}
)

if "sqlite" in settings.DATABASE_URL:
    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_connection: Any, connection_record: Any) -> None:
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA synchronous=NORMAL")
        cursor.close()

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """Yields a database session and closes it once the request is done."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db():
    """Idempotent initialization of database schema artifacts."""
    # Models must be imported so their tables are registered on Base.metadata
    import app.auth.models  # noqa: F401
    import app.proposta.models  # noqa: F401
    import app.ratelimit.models  # noqa: F401

    logger.info("Creating database tables")
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables ready")
