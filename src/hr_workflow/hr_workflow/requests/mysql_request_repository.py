from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Sequence

from ..core.enums import RequestStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, dump_json, fetchall, fetchone, load_json
from .model import NewRequest, Request, RequestFilters
from .repository import RequestRepository

REQUEST_COLUMNS = """
    r.request_id, r.request_type_id, r.requester_employee_id, r.approver_employee_id,
    r.status, r.requested_at, r.created_at, r.updated_at, r.effective_from, r.effective_to,
    r.reason, r.payload, r.approval_comment, r.rejection_reason
"""


def _as_date(value) -> Optional[date]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    return value


def row_to_request(r: dict) -> Request:
    return Request(
        request_id=int(r["request_id"]),
        request_type_id=int(r["request_type_id"]),
        requester_employee_id=int(r["requester_employee_id"]),
        approver_employee_id=int(r["approver_employee_id"]) if r.get("approver_employee_id") is not None else None,
        status=RequestStatus(r["status"]),
        requested_at=r["requested_at"],
        created_at=r["created_at"],
        updated_at=r["updated_at"],
        reason=r["reason"],
        effective_from=_as_date(r.get("effective_from")),
        effective_to=_as_date(r.get("effective_to")),
        payload=load_json(r.get("payload")),
        approval_comment=r.get("approval_comment"),
        rejection_reason=r.get("rejection_reason"),
    )


def build_where(filters: RequestFilters) -> tuple[str, list[object]]:
    clauses = ["1=1"]
    params: list[object] = []

    if filters.requester_employee_id is not None:
        clauses.append("r.requester_employee_id=%s")
        params.append(int(filters.requester_employee_id))
    if filters.approver_employee_id is not None:
        clauses.append("r.approver_employee_id=%s")
        params.append(int(filters.approver_employee_id))
    if filters.category is not None:
        clauses.append("t.category=%s")
        params.append(filters.category.value)
    if filters.request_type_code is not None:
        clauses.append("t.code=%s")
        params.append(filters.request_type_code)
    if filters.status is not None:
        clauses.append("r.status=%s")
        params.append(filters.status.value)
    if filters.date_from is not None:
        clauses.append("r.requested_at >= %s")
        params.append(filters.date_from)
    if filters.date_to is not None:
        clauses.append("r.requested_at < DATE_ADD(%s, INTERVAL 1 DAY)")
        params.append(filters.date_to)
    if filters.year is not None:
        clauses.append("YEAR(r.effective_from)=%s")
        params.append(int(filters.year))
    if filters.month is not None:
        clauses.append("MONTH(r.effective_from)=%s")
        params.append(int(filters.month))

    return " AND ".join(clauses), params


class MySQLRequestRepository(RequestRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def create(self, new: NewRequest) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            return insert_request(cur, new)

    def get_by_id(self, request_id: int) -> Optional[Request]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {REQUEST_COLUMNS} FROM requests r WHERE r.request_id=%s",
                (int(request_id),),
            )
            r = fetchone(cur)
            return row_to_request(r) if r else None

    def update_status(
        self,
        *,
        request_id: int,
        expected_status: RequestStatus,
        status: RequestStatus,
        updated_at: datetime,
        approver_employee_id: Optional[int] = None,
        approval_comment: Optional[str] = None,
        rejection_reason: Optional[str] = None,
        payload: Optional[dict] = None,
    ) -> bool:
        sets = ["status=%s", "updated_at=%s"]
        params: list[object] = [status.value, updated_at]
        if approver_employee_id is not None:
            sets.append("approver_employee_id=%s")
            params.append(int(approver_employee_id))
        if approval_comment is not None:
            sets.append("approval_comment=%s")
            params.append(approval_comment)
        if rejection_reason is not None:
            sets.append("rejection_reason=%s")
            params.append(rejection_reason)
        if payload is not None:
            sets.append("payload=%s")
            params.append(dump_json(payload))

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"UPDATE requests SET {', '.join(sets)} WHERE request_id=%s AND status=%s",
                tuple(params + [int(request_id), expected_status.value]),
            )
            return cur.rowcount == 1

    def update_pending(
        self,
        *,
        request_id: int,
        reason: str,
        effective_from: Optional[date],
        effective_to: Optional[date],
        payload: Optional[dict],
        updated_at: datetime,
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE requests
                SET reason=%s, effective_from=%s, effective_to=%s, payload=%s, updated_at=%s
                WHERE request_id=%s AND status=%s
                """,
                (
                    reason,
                    effective_from,
                    effective_to,
                    dump_json(payload),
                    updated_at,
                    int(request_id),
                    RequestStatus.PENDING.value,
                ),
            )
            return cur.rowcount == 1

    def search(self, filters: RequestFilters, *, page: int, limit: int) -> Sequence[Request]:
        where, params = build_where(filters)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {REQUEST_COLUMNS}
                FROM requests r
                JOIN request_types t ON t.request_type_id = r.request_type_id
                WHERE {where}
                ORDER BY r.requested_at DESC, r.request_id DESC
                LIMIT %s OFFSET %s
                """,
                tuple(params + [int(limit), (int(page) - 1) * int(limit)]),
            )
            return [row_to_request(r) for r in fetchall(cur)]

    def count(self, filters: RequestFilters) -> int:
        where, params = build_where(filters)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT COUNT(*) AS n
                FROM requests r
                JOIN request_types t ON t.request_type_id = r.request_type_id
                WHERE {where}
                """,
                tuple(params),
            )
            row = fetchone(cur)
            return int(row["n"]) if row else 0

    def count_by_status(self, filters: RequestFilters) -> dict[str, int]:
        where, params = build_where(filters)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT r.status, COUNT(*) AS n
                FROM requests r
                JOIN request_types t ON t.request_type_id = r.request_type_id
                WHERE {where}
                GROUP BY r.status
                """,
                tuple(params),
            )
            return {row["status"]: int(row["n"]) for row in fetchall(cur)}


def insert_request(cur, new: NewRequest) -> int:
    """Insert a request row using an already-open cursor (caller owns the transaction)."""

    cur.execute(
        """
        INSERT INTO requests(
            request_type_id, requester_employee_id, approver_employee_id, status,
            requested_at, created_at, updated_at, effective_from, effective_to, reason, payload
        )
        VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
        """,
        (
            int(new.request_type_id),
            int(new.requester_employee_id),
            new.approver_employee_id,
            new.status.value,
            new.requested_at,
            new.requested_at,
            new.requested_at,
            new.effective_from,
            new.effective_to,
            new.reason,
            dump_json(new.payload),
        ),
    )
    return int(cur.lastrowid)
