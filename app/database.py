from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
import logging

from app.config import settings

logger = logging.getLogger(__name__)

# SQLite needs to be shared with the threadpool FastAPI runs sync code in
connect_args = {"check_same_thread": False} if settings.database_url.startswith("sqlite") else {}

engine = create_engine(settings.database_url, connect_args=connect_args, pool_pre_ping=True)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """FastAPI dependency that yields a DB session and closes it afterwards"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def create_tables():
    """Create all tables that don't exist yet"""
    # Models must be imported so they register on Base.metadata
    import app.models  # noqa: F401

    Base.metadata.create_all(bind=engine)
    logger.info("Database tables ensured")
