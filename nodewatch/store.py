"""
Durable hash -> header store.

Every header fetched from any node is written here so the dashboard can show
the full header behind a hash. Writes are idempotent upserts keyed by hash;
several nodes may write the same hash concurrently and the last one wins.
"""
import os
import time
from typing import Any, Dict, Optional

import structlog
from sqlalchemy import Column, Float, Integer, JSON, String, create_engine, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import declarative_base, sessionmaker

from .constants import DEFAULT_DATA_DIR, DEFAULT_DB_NAME
from .models import normalize_hash, parse_quantity

logger = structlog.get_logger()

Base = declarative_base()


class StoredHeader(Base):
    __tablename__ = 'headers'

    hash = Column(String(66), primary_key=True)
    number = Column(Integer, index=True)
    parent_hash = Column(String(66))
    raw = Column(JSON, nullable=False)
    node = Column(String, nullable=True)  # Last node that reported it
    stored_at = Column(Float)


def default_db_url() -> str:
    data_dir = os.path.expanduser(DEFAULT_DATA_DIR)
    os.makedirs(data_dir, exist_ok=True)
    return f"sqlite:///{os.path.join(data_dir, DEFAULT_DB_NAME)}"


class HeaderStore:
    """SQLAlchemy-backed header store shared by all nodes."""

    def __init__(self, db_url: Optional[str] = None):
        """Initialize the store.

        Args:
            db_url: SQLAlchemy database URL. If None, uses a SQLite file in ~/.nodewatch/data.
        """
        if db_url is None:
            db_url = default_db_url()

        connect_args = {}
        if db_url.startswith("sqlite"):
            # Nodes write from their own worker threads
            connect_args = {"check_same_thread": False, "timeout": 30}

        self.engine = create_engine(db_url, connect_args=connect_args)
        self.Session = sessionmaker(bind=self.engine)
        Base.metadata.create_all(self.engine)
        logger.info("header_store_initialized", dialect=self.engine.dialect.name)

    def add(self, block_hash: str, header: Dict[str, Any], node: Optional[str] = None) -> None:
        """Store header under block_hash, replacing any previous copy."""
        number = header.get("number")
        parent_hash = header.get("parentHash")
        row = StoredHeader(
            hash=normalize_hash(block_hash),
            number=parse_quantity(number) if number is not None else None,
            parent_hash=normalize_hash(parent_hash) if parent_hash else None,
            raw=header,
            node=node,
            stored_at=time.time(),
        )
        with self.Session() as session:
            try:
                session.merge(row)
                session.commit()
            except IntegrityError:
                # Another writer inserted the same hash between our select and insert
                session.rollback()
                session.merge(row)
                session.commit()

    def get(self, block_hash: str) -> Optional[Dict[str, Any]]:
        """Return the raw header stored under block_hash, if any."""
        with self.Session() as session:
            row = session.get(StoredHeader, normalize_hash(block_hash))
            return dict(row.raw) if row is not None else None

    def count(self) -> int:
        with self.Session() as session:
            return session.scalar(select(func.count()).select_from(StoredHeader))

    def close(self) -> None:
        self.engine.dispose()
