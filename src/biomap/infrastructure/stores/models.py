from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Dict

from sqlalchemy import DateTime, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


class KeyValueRecordModel(Base):
    """One JSON document per (namespace, key)."""

    __tablename__ = "kv_records"
    __table_args__ = (UniqueConstraint("namespace", "key", name="uq_kv_records_namespace_key"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    namespace: Mapped[str] = mapped_column(String(64), index=True)
    key: Mapped[str] = mapped_column(String(256), index=True)
    value_json: Mapped[str] = mapped_column(Text, default="{}")

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))

    def set_value(self, data: Dict[str, Any]) -> None:
        self.value_json = json.dumps(data, ensure_ascii=False)

    def get_value(self) -> Dict[str, Any]:
        try:
            data = json.loads(self.value_json or "{}")
        except Exception:
            return {}
        return data if isinstance(data, dict) else {}
