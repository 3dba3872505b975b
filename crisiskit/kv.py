"""
Key-value stores backing the local fallback repo and webhook settings.

Values are opaque strings addressed by string keys. An in-memory store is
used for tests, SQLAlchemy (SQLite by default) or Redis otherwise.
"""

from __future__ import annotations

from typing import Dict, Optional, Protocol

import redis
from redis import exceptions as redis_exceptions
from sqlalchemy import Column, String, Text, create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from crisiskit.errors import BackendUnavailableError


class KeyValueStore(Protocol):
    """Synchronous get/set by string key."""

    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, value: str) -> None:
        ...


class InMemoryKeyValueStore:
    """Dictionary-backed store for development and tests."""

    def __init__(self):
        self.values: Dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self.values.get(key)

    def set(self, key: str, value: str) -> None:
        self.values[key] = value

    def reset(self) -> None:
        self.values.clear()


Base = declarative_base()


class KeyValueRow(Base):
    __tablename__ = "kv_entries"

    key = Column(String, primary_key=True)
    value = Column(Text, nullable=False)


class SqlKeyValueStore:
    """
    SQLAlchemy-backed store. Accepts any SQLAlchemy URL (SQLite file by default).
    """

    def __init__(self, database_url: str):
        if not database_url:
            raise ValueError("DATABASE_URL is required for SqlKeyValueStore")
        self.engine = create_engine(
            database_url,
            future=True,
            pool_pre_ping=True,
            pool_recycle=1800,
        )
        self.Session = sessionmaker(
            bind=self.engine, class_=Session, expire_on_commit=False, future=True
        )
        Base.metadata.create_all(self.engine)

    def get(self, key: str) -> Optional[str]:
        try:
            with self.Session() as session:
                row = session.get(KeyValueRow, key)
                return row.value if row else None
        except SQLAlchemyError as exc:
            raise BackendUnavailableError(f"Failed to read {key!r}") from exc

    def set(self, key: str, value: str) -> None:
        try:
            with self.Session() as session:
                row = session.get(KeyValueRow, key)
                if row:
                    row.value = value
                else:
                    session.add(KeyValueRow(key=key, value=value))
                session.commit()
        except SQLAlchemyError as exc:
            raise BackendUnavailableError(f"Failed to write {key!r}") from exc


class RedisKeyValueStore:
    """Redis-backed store using plain GET/SET under a key prefix."""

    def __init__(self, url: str, prefix: str = "crisiskit:"):
        self.url = url
        self.prefix = prefix
        self.client = redis.Redis.from_url(url)

    def get(self, key: str) -> Optional[str]:
        try:
            value = self.client.get(self.prefix + key)
        except redis_exceptions.RedisError as exc:
            raise BackendUnavailableError(f"Failed to read {key!r}") from exc
        if value is None:
            return None
        return value.decode("utf-8")

    def set(self, key: str, value: str) -> None:
        try:
            self.client.set(self.prefix + key, value.encode("utf-8"))
        except redis_exceptions.RedisError as exc:
            raise BackendUnavailableError(f"Failed to write {key!r}") from exc
