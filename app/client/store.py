# app/client/store.py
"""
Local durable store of the offline client.

Four collections (cart, pendingActions, orders, catalog) of JSON documents
keyed by string, kept in a SQLite file. Every call is one transaction;
transaction() groups several calls, across collections, into one.
"""
from contextlib import contextmanager
from copy import deepcopy
from datetime import datetime, timezone
import threading
from typing import Any, Dict, Iterator, List, Tuple

from sqlalchemy import JSON, Column, DateTime, MetaData, String, create_engine, delete, inspect, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from app.client.errors import StoreUnavailableError
from app.data.database import engine_kwargs
from app.utils.settings import LOCAL_SCHEMA_VERSION, LOCAL_STORE_URL
from app.utils.logging import get_logger

logger = get_logger(__name__)

CART = "cart"
PENDING_ACTIONS = "pendingActions"
ORDERS = "orders"
CATALOG = "catalog"
COLLECTIONS = (CART, PENDING_ACTIONS, ORDERS, CATALOG)

LocalBase = declarative_base()


def _now():
    return datetime.now(timezone.utc)


class LocalRecord(LocalBase):
    __tablename__ = "local_records"

    collection = Column(String(32), primary_key=True)
    key = Column(String(128), primary_key=True)
    data = Column(JSON, nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_now, onupdate=_now)


class LocalMeta(LocalBase):
    __tablename__ = "local_meta"

    key = Column(String(64), primary_key=True)
    value = Column(String, nullable=False)


def _check(collection: str) -> str:
    if collection not in COLLECTIONS:
        raise ValueError(f"Unknown collection {collection!r}")
    return collection


class StoreTransaction:
    """Collection operations bound to one open transaction."""

    def __init__(self, session: Session):
        self.session = session

    def items(self, collection: str) -> List[Tuple[str, Dict[str, Any]]]:
        rows = self.session.execute(
            select(LocalRecord.key, LocalRecord.data)
            .where(LocalRecord.collection == _check(collection))
            .order_by(LocalRecord.key)
        ).all()
        return [(key, deepcopy(data)) for key, data in rows]

    def get_all(self, collection: str) -> List[Dict[str, Any]]:
        return [data for _, data in self.items(collection)]

    def get(self, collection: str, key: str) -> Dict[str, Any] | None:
        row = self.session.get(LocalRecord, (_check(collection), str(key)))
        return deepcopy(row.data) if row else None

    def put(self, collection: str, key: str, value: Dict[str, Any]) -> Dict[str, Any]:
        row = self.session.get(LocalRecord, (_check(collection), str(key)))
        if row:
            row.data = deepcopy(value)
        else:
            self.session.add(LocalRecord(collection=collection, key=str(key), data=deepcopy(value)))
        self.session.flush()
        return value

    def delete(self, collection: str, key: str) -> None:
        self.session.execute(
            delete(LocalRecord).where(
                LocalRecord.collection == _check(collection),
                LocalRecord.key == str(key),
            )
        )

    def clear(self, collection: str) -> None:
        self.session.execute(delete(LocalRecord).where(LocalRecord.collection == _check(collection)))


class LocalStore:
    """
    Versioned client store. A schema version that differs from the one on
    disk is not migrated: the store is rebuilt from empty.
    """

    def __init__(self, url: str | None = None, schema_version: int = LOCAL_SCHEMA_VERSION):
        self.url = url or LOCAL_STORE_URL
        self.schema_version = schema_version
        #one transaction at a time, sqlite has a single writer anyway
        self._lock = threading.RLock()
        try:
            self.engine = create_engine(self.url, **engine_kwargs(self.url))
            self._sessions = sessionmaker(bind=self.engine, expire_on_commit=False)
            self._open()
        except SQLAlchemyError as e:
            raise StoreUnavailableError(f"Cannot open local store {self.url}: {e}") from e

    def _open(self) -> None:
        tables = set(inspect(self.engine).get_table_names())
        stored = None
        if LocalMeta.__tablename__ in tables:
            with self.engine.connect() as conn:
                stored = conn.execute(
                    select(LocalMeta.value).where(LocalMeta.key == "schema_version")
                ).scalar_one_or_none()

        if stored == str(self.schema_version) and set(LocalBase.metadata.tables) <= tables:
            return

        if tables:
            logger.warning(
                f"Local store schema version {stored} does not match {self.schema_version}, "
                f"rebuilding from empty"
            )
            existing = MetaData()
            existing.reflect(bind=self.engine)
            existing.drop_all(bind=self.engine)

        LocalBase.metadata.create_all(bind=self.engine)
        with self._sessions.begin() as session:
            session.merge(LocalMeta(key="schema_version", value=str(self.schema_version)))
        logger.info(f"Local store {self.url} created with schema version {self.schema_version}")

    @contextmanager
    def transaction(self) -> Iterator[StoreTransaction]:
        """Commit on exit, roll back everything on any exception."""
        with self._lock:
            session = self._sessions()
            try:
                with session.begin():
                    yield StoreTransaction(session)
            except SQLAlchemyError as e:
                raise StoreUnavailableError(f"Local store operation failed: {e}") from e
            finally:
                session.close()

    def items(self, collection: str) -> List[Tuple[str, Dict[str, Any]]]:
        with self.transaction() as tx:
            return tx.items(collection)

    def get_all(self, collection: str) -> List[Dict[str, Any]]:
        with self.transaction() as tx:
            return tx.get_all(collection)

    def get(self, collection: str, key: str) -> Dict[str, Any] | None:
        with self.transaction() as tx:
            return tx.get(collection, key)

    def put(self, collection: str, key: str, value: Dict[str, Any]) -> Dict[str, Any]:
        with self.transaction() as tx:
            return tx.put(collection, key, value)

    def delete(self, collection: str, key: str) -> None:
        with self.transaction() as tx:
            tx.delete(collection, key)

    def clear(self, collection: str) -> None:
        with self.transaction() as tx:
            tx.clear(collection)

    def close(self) -> None:
        self.engine.dispose()
