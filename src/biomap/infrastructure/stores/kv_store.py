from __future__ import annotations

import copy
import json
import threading
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from sqlalchemy import delete, select
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError

from biomap.infrastructure.stores.models import Base, KeyValueRecordModel
from biomap.infrastructure.stores.sqlalchemy_db import SessionProvider, get_db_url


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# dialects with INSERT .. ON CONFLICT DO UPDATE
_UPSERT_DIALECTS = {
    "sqlite": sqlite_insert,
    "postgresql": postgresql_insert,
}


class InMemoryKeyValueStore:
    """Process-local store; values are deep-copied in and out like a real document store."""

    def __init__(self) -> None:
        self._data: Dict[str, Dict[str, Any]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            value = self._data.get(key)
            return copy.deepcopy(value) if value is not None else None

    def set(self, key: str, value: Dict[str, Any]) -> None:
        with self._lock:
            self._data[key] = copy.deepcopy(value)

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def get_all(self) -> Dict[str, Dict[str, Any]]:
        with self._lock:
            return copy.deepcopy(self._data)


class SqlAlchemyKeyValueStore:
    """JSON documents in the ``kv_records`` table, scoped by namespace."""

    def __init__(
        self,
        namespace: str,
        db_url: Optional[str] = None,
        *,
        provider: Optional[SessionProvider] = None,
        auto_create_schema: bool = True,
    ):
        self.namespace = namespace
        self.db_url = db_url or (provider.db_url if provider else get_db_url())
        self._provider = provider or SessionProvider(self.db_url)
        if auto_create_schema:
            Base.metadata.create_all(self._provider.engine)

    def _row(self, session, key: str) -> Optional[KeyValueRecordModel]:
        return session.execute(
            select(KeyValueRecordModel).where(
                KeyValueRecordModel.namespace == self.namespace,
                KeyValueRecordModel.key == key,
            )
        ).scalar_one_or_none()

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        if not key:
            return None
        with self._provider.session() as session:
            row = self._row(session, key)
            return row.get_value() if row else None

    def set(self, key: str, value: Dict[str, Any]) -> None:
        now = _utcnow()
        value_json = json.dumps(value, ensure_ascii=False)
        with self._provider.session() as session:
            upsert = _UPSERT_DIALECTS.get(session.get_bind().dialect.name)
            if upsert is not None:
                stmt = upsert(KeyValueRecordModel).values(
                    namespace=self.namespace,
                    key=key,
                    value_json=value_json,
                    created_at=now,
                    updated_at=now,
                )
                stmt = stmt.on_conflict_do_update(
                    index_elements=["namespace", "key"],
                    set_={
                        "value_json": stmt.excluded.value_json,
                        "updated_at": stmt.excluded.updated_at,
                    },
                )
                session.execute(stmt)
                session.commit()
                return

            row = self._row(session, key)
            if row is None:
                session.add(
                    KeyValueRecordModel(
                        namespace=self.namespace,
                        key=key,
                        value_json=value_json,
                        created_at=now,
                        updated_at=now,
                    )
                )
                try:
                    session.commit()
                    return
                except IntegrityError:
                    # another writer inserted the key first
                    session.rollback()
                    row = self._row(session, key)
            row.value_json = value_json
            row.updated_at = now
            session.commit()

    def delete(self, key: str) -> None:
        with self._provider.session() as session:
            session.execute(
                delete(KeyValueRecordModel).where(
                    KeyValueRecordModel.namespace == self.namespace,
                    KeyValueRecordModel.key == key,
                )
            )
            session.commit()

    def get_all(self) -> Dict[str, Dict[str, Any]]:
        with self._provider.session() as session:
            rows = (
                session.execute(
                    select(KeyValueRecordModel)
                    .where(KeyValueRecordModel.namespace == self.namespace)
                    .order_by(KeyValueRecordModel.id)
                )
                .scalars()
                .all()
            )
            return {row.key: row.get_value() for row in rows}

    def close(self) -> None:
        self._provider.dispose()
