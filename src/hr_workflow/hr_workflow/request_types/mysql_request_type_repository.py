from __future__ import annotations

from typing import Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import RequestTypeRow
from .repository import RequestTypeRepository

_COLUMNS = "request_type_id, code, name, category, description, is_active, requires_approval"


def _row_to_type(row: dict) -> RequestTypeRow:
    return RequestTypeRow(
        request_type_id=int(row["request_type_id"]),
        code=row["code"],
        name=row["name"],
        category=row["category"],
        description=row.get("description"),
        is_active=bool(row.get("is_active", True)),
        requires_approval=bool(row.get("requires_approval", True)),
    )


class MySQLRequestTypeRepository(RequestTypeRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_code(self, code: str) -> Optional[RequestTypeRow]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM request_types WHERE code=%s", (code,))
            row = fetchone(cur)
            return _row_to_type(row) if row else None

    def get_by_id(self, request_type_id: int) -> Optional[RequestTypeRow]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM request_types WHERE request_type_id=%s", (int(request_type_id),))
            row = fetchone(cur)
            return _row_to_type(row) if row else None

    def list_active(self) -> Sequence[RequestTypeRow]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM request_types WHERE is_active=1 ORDER BY request_type_id")
            return [_row_to_type(r) for r in fetchall(cur)]
