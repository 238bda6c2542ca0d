import os
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import declarative_base, sessionmaker

from roombooker.domain.errors import DependencyError
from roombooker.utils.config import get_settings
from roombooker.utils.logger import get_logger


logger = get_logger(__name__)


SQLALCHEMY_DATABASE_URL = get_settings().database_url
engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False} if SQLALCHEMY_DATABASE_URL.startswith("sqlite") else {},
)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def _ensure_sqlite_directory(url):
    database = make_url(url).database
    if database and database != ":memory:":
        directory = os.path.dirname(database)
        if directory and not os.path.exists(directory):
            os.makedirs(directory)


def init_database(bind=None):
    """Create every table; models are imported here so they register on Base."""
    from roombooker.models import department, history, notification, reservation, room, user  # noqa: F401

    bind = bind or engine
    _ensure_sqlite_directory(str(bind.url))
    Base.metadata.create_all(bind=bind)


def get_db():
    """Provide a database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def transaction(db, action):
    """Commit on success; roll back on any failure.

    Storage failures surface as ``DependencyError`` and business-rule
    failures propagate unchanged, with nothing from the block persisted.
    """
    try:
        yield
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("Could not persist %s: %s", action, exc)
        raise DependencyError(f"Could not persist {action}") from exc
    except Exception:
        db.rollback()
        raise
