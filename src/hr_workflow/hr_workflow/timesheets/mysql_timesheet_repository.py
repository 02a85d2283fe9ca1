from __future__ import annotations

import calendar
from datetime import date, datetime
from typing import Optional, Sequence

import mysql.connector

from ..core.constants import TIMESHEET_TYPE_CODE
from ..core.enums import EntryType, RequestStatus
from ..core.exceptions import DuplicateTaskError, DuplicateWeekError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, dump_json, fetchall, fetchone, to_decimal
from ..requests.model import NewRequest, Request
from ..requests.mysql_request_repository import REQUEST_COLUMNS, insert_request, row_to_request
from .model import EntryInput, Task, TimesheetEntry
from .repository import TimesheetRepository


def _row_to_task(r: dict) -> Task:
    return Task(
        task_id=int(r["task_id"]),
        task_code=r["task_code"],
        task_name=r["task_name"],
        description=r.get("description"),
        task_type=r["task_type"],
        is_active=bool(r["is_active"]),
        created_at=r.get("created_at"),
        updated_at=r.get("updated_at"),
    )


def _period_bounds(year: Optional[int], month: Optional[int]) -> Optional[tuple[date, date]]:
    if year is None:
        return None
    if month is None:
        return date(int(year), 1, 1), date(int(year), 12, 31)
    last_day = calendar.monthrange(int(year), int(month))[1]
    return date(int(year), int(month), 1), date(int(year), int(month), last_day)


def _insert_entries(cur, *, request_id: int, employee_id: int, week_start: date, week_end: date, entries) -> None:
    for e in entries:
        cur.execute(
            """
            INSERT INTO timesheet_entries(
                request_id, employee_id, task_id, entry_type, week_start_date, week_end_date, hours
            )
            VALUES(%s,%s,%s,%s,%s,%s,%s)
            """,
            (int(request_id), int(employee_id), int(e.task_id), e.entry_type.value, week_start, week_end, e.hours),
        )


class MySQLTimesheetRepository(TimesheetRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    # ---- week claims ----

    def get_week_claim(self, *, employee_id: int, week_start_date: date) -> Optional[int]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT request_id FROM timesheet_week_claims WHERE employee_id=%s AND week_start_date=%s",
                (int(employee_id), week_start_date),
            )
            r = fetchone(cur)
            return int(r["request_id"]) if r else None

    def release_week(self, *, employee_id: int, week_start_date: date, request_id: int) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM timesheet_entries WHERE request_id=%s", (int(request_id),))
            cur.execute(
                "DELETE FROM timesheet_week_claims WHERE employee_id=%s AND week_start_date=%s AND request_id=%s",
                (int(employee_id), week_start_date, int(request_id)),
            )

    # ---- entries ----

    def create_timesheet(
        self,
        new: NewRequest,
        *,
        week_start_date: date,
        week_end_date: date,
        entries: Sequence[EntryInput],
    ) -> int:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                request_id = insert_request(cur, new)
                cur.execute(
                    "INSERT INTO timesheet_week_claims(employee_id, week_start_date, request_id) VALUES(%s,%s,%s)",
                    (int(new.requester_employee_id), week_start_date, request_id),
                )
                _insert_entries(
                    cur,
                    request_id=request_id,
                    employee_id=new.requester_employee_id,
                    week_start=week_start_date,
                    week_end=week_end_date,
                    entries=entries,
                )
                return request_id
        except mysql.connector.IntegrityError as exc:
            if getattr(exc, "errno", None) == 1062:
                raise DuplicateWeekError("A timesheet for this week has already been submitted") from exc
            raise

    def replace_entries(
        self,
        *,
        request_id: int,
        expected_status: RequestStatus,
        entries: Sequence[EntryInput],
        payload: dict,
        reason: Optional[str],
        reopen: bool,
        updated_at: datetime,
    ) -> bool:
        sets = ["payload=%s", "updated_at=%s"]
        params: list[object] = [dump_json(payload), updated_at]
        if reason:
            sets.append("reason=%s")
            params.append(reason)
        if reopen:
            sets.append("status=%s")
            params.append(RequestStatus.PENDING.value)
            sets.append("rejection_reason=NULL")

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"UPDATE requests SET {', '.join(sets)} WHERE request_id=%s AND status=%s",
                tuple(params + [int(request_id), expected_status.value]),
            )
            if cur.rowcount != 1:
                return False

            cur.execute(
                "SELECT requester_employee_id, effective_from, effective_to FROM requests WHERE request_id=%s",
                (int(request_id),),
            )
            r = fetchone(cur)
            cur.execute("DELETE FROM timesheet_entries WHERE request_id=%s", (int(request_id),))
            _insert_entries(
                cur,
                request_id=request_id,
                employee_id=int(r["requester_employee_id"]),
                week_start=r["effective_from"],
                week_end=r["effective_to"],
                entries=entries,
            )
            return True

    def get_entries_by_request_id(self, request_id: int) -> list[TimesheetEntry]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT e.entry_id, e.request_id, e.employee_id, e.task_id, e.entry_type,
                       e.week_start_date, e.week_end_date, e.hours, t.task_code, t.task_name
                FROM timesheet_entries e
                LEFT JOIN timesheet_tasks t ON t.task_id = e.task_id
                WHERE e.request_id=%s
                ORDER BY e.entry_id ASC
                """,
                (int(request_id),),
            )
            return [
                TimesheetEntry(
                    entry_id=int(r["entry_id"]),
                    request_id=int(r["request_id"]),
                    employee_id=int(r["employee_id"]),
                    task_id=int(r["task_id"]),
                    entry_type=EntryType(r["entry_type"]),
                    week_start_date=r["week_start_date"],
                    week_end_date=r["week_end_date"],
                    hours=to_decimal(r["hours"]),
                    task_code=r.get("task_code") or "",
                    task_name=r.get("task_name") or "",
                )
                for r in fetchall(cur)
            ]

    # ---- queries ----

    @staticmethod
    def _employee_where(
        employee_id: int, year: Optional[int], month: Optional[int], status: Optional[RequestStatus]
    ) -> tuple[str, list[object]]:
        clauses = ["t.code=%s", "r.requester_employee_id=%s"]
        params: list[object] = [TIMESHEET_TYPE_CODE, int(employee_id)]
        bounds = _period_bounds(year, month)
        if bounds:
            # Weeks overlapping the period, so a week spanning two months shows in both.
            clauses.append("r.effective_from <= %s AND r.effective_to >= %s")
            params.extend([bounds[1], bounds[0]])
        if status is not None:
            clauses.append("r.status=%s")
            params.append(status.value)
        return " AND ".join(clauses), params

    def list_by_employee(
        self,
        *,
        employee_id: int,
        year: Optional[int],
        month: Optional[int],
        status: Optional[RequestStatus],
        page: int,
        limit: int,
    ) -> Sequence[Request]:
        where, params = self._employee_where(employee_id, year, month, status)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {REQUEST_COLUMNS}
                FROM requests r
                JOIN request_types t ON t.request_type_id = r.request_type_id
                WHERE {where}
                ORDER BY r.created_at DESC, r.request_id DESC
                LIMIT %s OFFSET %s
                """,
                tuple(params + [int(limit), (int(page) - 1) * int(limit)]),
            )
            return [row_to_request(r) for r in fetchall(cur)]

    def count_by_employee(
        self,
        *,
        employee_id: int,
        year: Optional[int],
        month: Optional[int],
        status: Optional[RequestStatus],
    ) -> int:
        where, params = self._employee_where(employee_id, year, month, status)
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

    def list_pending_for_approver(self, *, approver_id: int, page: int, limit: int) -> Sequence[Request]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {REQUEST_COLUMNS}
                FROM requests r
                JOIN request_types t ON t.request_type_id = r.request_type_id
                JOIN employees e ON e.employee_id = r.requester_employee_id
                WHERE t.code=%s AND r.status=%s AND e.manager_id=%s
                ORDER BY r.requested_at ASC, r.request_id ASC
                LIMIT %s OFFSET %s
                """,
                (
                    TIMESHEET_TYPE_CODE,
                    RequestStatus.PENDING.value,
                    int(approver_id),
                    int(limit),
                    (int(page) - 1) * int(limit),
                ),
            )
            return [row_to_request(r) for r in fetchall(cur)]

    def count_pending_for_approver(self, *, approver_id: int) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT COUNT(*) AS n
                FROM requests r
                JOIN request_types t ON t.request_type_id = r.request_type_id
                JOIN employees e ON e.employee_id = r.requester_employee_id
                WHERE t.code=%s AND r.status=%s AND e.manager_id=%s
                """,
                (TIMESHEET_TYPE_CODE, RequestStatus.PENDING.value, int(approver_id)),
            )
            row = fetchone(cur)
            return int(row["n"]) if row else 0

    # ---- tasks ----

    def get_task_by_id(self, task_id: int) -> Optional[Task]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT * FROM timesheet_tasks WHERE task_id=%s", (int(task_id),))
            r = fetchone(cur)
            return _row_to_task(r) if r else None

    def get_task_by_code(self, task_code: str) -> Optional[Task]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT * FROM timesheet_tasks WHERE task_code=%s", (task_code,))
            r = fetchone(cur)
            return _row_to_task(r) if r else None

    def list_tasks(self, *, active_only: bool) -> list[Task]:
        sql = "SELECT * FROM timesheet_tasks"
        if active_only:
            sql += " WHERE is_active=1"
        sql += " ORDER BY task_type ASC, task_code ASC"
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql)
            return [_row_to_task(r) for r in fetchall(cur)]

    def create_task(self, *, task_code: str, task_name: str, description: Optional[str], task_type: str) -> int:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    INSERT INTO timesheet_tasks(task_code, task_name, description, task_type, is_active)
                    VALUES(%s,%s,%s,%s,1)
                    """,
                    (task_code, task_name, description, task_type),
                )
                return int(cur.lastrowid)
        except mysql.connector.IntegrityError as exc:
            raise DuplicateTaskError(f"Task code {task_code} already exists") from exc

    def update_task(
        self,
        *,
        task_id: int,
        task_name: str,
        description: Optional[str],
        is_active: bool,
        updated_at: datetime,
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE timesheet_tasks
                SET task_name=%s, description=%s, is_active=%s, updated_at=%s
                WHERE task_id=%s
                """,
                (task_name, description, 1 if is_active else 0, updated_at, int(task_id)),
            )
            return cur.rowcount == 1
