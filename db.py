# db.py
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.exc import SQLAlchemyError
from models import Base, KeyValue
import logging
import os

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///trading_journal.db")

logger = logging.getLogger(__name__)


def make_engine(url: str = DATABASE_URL):
    return create_engine(
        url,
        connect_args={"check_same_thread": False} if url.startswith("sqlite") else {}
    )


class KeyValueStore:
    """Whole-document storage keyed by name. Last write wins."""

    def __init__(self, url: str = DATABASE_URL):
        self.url = url
        self.engine = make_engine(url)
        self.SessionLocal = sessionmaker(bind=self.engine, autoflush=False, autocommit=False)

    def init_db(self):
        Base.metadata.create_all(bind=self.engine)

    def get(self, key: str):
        """Return the stored text for ``key``, or None if absent or unreadable."""
        session = self.SessionLocal()
        try:
            row = session.get(KeyValue, key)
            return row.value if row is not None else None
        except SQLAlchemyError as e:
            logger.warning(f"Failed to read {key!r}: {e}")
            return None
        finally:
            session.close()

    def set(self, key: str, value: str) -> dict:
        session = self.SessionLocal()
        try:
            row = session.get(KeyValue, key)
            if row is None:
                session.add(KeyValue(key=key, value=value))
            else:
                row.value = value
            session.commit()
            return {"success": True}
        except SQLAlchemyError as e:
            session.rollback()
            return {"success": False, "error": str(e)}
        finally:
            session.close()

    def dispose(self):
        self.engine.dispose()
