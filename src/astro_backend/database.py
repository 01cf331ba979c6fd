import logging
from typing import Generator, Optional
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker, Session

from astro_backend.settings import settings

logger = logging.getLogger(__name__)

_database_options = {
    "pool_pre_ping": True,
    "pool_size": 10,
    "max_overflow": 5,
    "pool_timeout": 30,
    "pool_recycle": 300
}

_engine: Optional[Engine] = None
_SessionLocal: Optional[sessionmaker] = None


def get_engine() -> Engine:
    """Create the engine on first use so importing this module never opens a connection."""
    global _engine, _SessionLocal

    if _engine is None:
        url = settings.DATABASE_URL
        options = _database_options if url.startswith("postgresql") else {}
        _engine = create_engine(url, **options)
        _SessionLocal = sessionmaker(autoflush=False, bind=_engine)

    return _engine


def init_db() -> None:
    """Create missing tables. Production schemas are expected to exist already."""
    from astro_backend.model import Base

    Base.metadata.create_all(get_engine())


def get_db() -> Generator[Session, None, None]:

    get_engine()
    db = _SessionLocal()

    try:
        yield db
    except OperationalError:
        logger.error("Database connection failed")
        db.rollback()
        raise
    finally:
        db.close()
