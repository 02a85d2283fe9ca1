from __future__ import annotations

import calendar
from dataclasses import dataclass, replace
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Optional

import pytest

from src.hr_workflow.hr_workflow.container import Container, build_services
from src.hr_workflow.hr_workflow.core.constants import TIMESHEET_TYPE_CODE
from src.hr_workflow.hr_workflow.core.enums import EntryType, RequestStatus
from src.hr_workflow.hr_workflow.core.exceptions import DuplicateTaskError, DuplicateWeekError
from src.hr_workflow.hr_workflow.employees.model import Employee
from src.hr_workflow.hr_workflow.request_types.model import RequestTypeRow
from src.hr_workflow.hr_workflow.requests.model import NewRequest, Request, RequestFilters
from src.hr_workflow.hr_workflow.timesheets.model import EntryInput, Task, TimesheetEntry, TimesheetSubmission


class FakeRequestTypeRepo:
    def __init__(self, rows: list[RequestTypeRow]):
        self._rows = {r.request_type_id: r for r in rows}

    def get_by_code(self, code):
        return next((r for r in self._rows.values() if r.code == code), None)

    def get_by_id(self, request_type_id):
        return self._rows.get(int(request_type_id))

    def list_active(self):
        return [r for r in self._rows.values() if r.is_active]


class FakeEmployeeDirectory:
    def __init__(self, employees: list[Employee]):
        self._by_id = {e.employee_id: e for e in employees}

    def get_by_id(self, employee_id):
        return self._by_id.get(int(employee_id))

    def managed_by(self, manager_id: int) -> set[int]:
        return {e.employee_id for e in self._by_id.values() if e.manager_id == manager_id}


class FakeRequestRepo:
    def __init__(self, types: FakeRequestTypeRepo):
        self._types = types
        self._rows: dict[int, Request] = {}
        self._next_id = 1

    def create(self, new: NewRequest) -> int:
        rid = self._next_id
        self._next_id += 1
        self._rows[rid] = Request(
            request_id=rid,
            request_type_id=new.request_type_id,
            requester_employee_id=new.requester_employee_id,
            approver_employee_id=new.approver_employee_id,
            status=new.status,
            requested_at=new.requested_at,
            created_at=new.requested_at,
            updated_at=new.requested_at,
            reason=new.reason,
            effective_from=new.effective_from,
            effective_to=new.effective_to,
            payload=dict(new.payload) if new.payload is not None else None,
        )
        return rid

    def put(self, req: Request) -> None:
        self._rows[req.request_id] = req

    def get_by_id(self, request_id):
        return self._rows.get(int(request_id))

    def update_status(
        self,
        *,
        request_id,
        expected_status,
        status,
        updated_at,
        approver_employee_id=None,
        approval_comment=None,
        rejection_reason=None,
        payload=None,
    ):
        row = self._rows.get(int(request_id))
        if not row or row.status != expected_status:
            return False
        changes = {"status": status, "updated_at": updated_at}
        if approver_employee_id is not None:
            changes["approver_employee_id"] = int(approver_employee_id)
        if approval_comment is not None:
            changes["approval_comment"] = approval_comment
        if rejection_reason is not None:
            changes["rejection_reason"] = rejection_reason
        if payload is not None:
            changes["payload"] = payload
        self._rows[row.request_id] = replace(row, **changes)
        return True

    def update_pending(self, *, request_id, reason, effective_from, effective_to, payload, updated_at):
        row = self._rows.get(int(request_id))
        if not row or row.status != RequestStatus.PENDING:
            return False
        self._rows[row.request_id] = replace(
            row,
            reason=reason,
            effective_from=effective_from,
            effective_to=effective_to,
            payload=payload,
            updated_at=updated_at,
        )
        return True

    def type_code_of(self, req: Request) -> str:
        return self._types.get_by_id(req.request_type_id).code

    def _matches(self, r: Request, f: RequestFilters) -> bool:
        row_type = self._types.get_by_id(r.request_type_id)
        if f.requester_employee_id is not None and r.requester_employee_id != f.requester_employee_id:
            return False
        if f.approver_employee_id is not None and r.approver_employee_id != f.approver_employee_id:
            return False
        if f.category is not None and row_type.category != f.category.value:
            return False
        if f.request_type_code is not None and row_type.code != f.request_type_code:
            return False
        if f.status is not None and r.status != f.status:
            return False
        if f.date_from is not None and r.requested_at.date() < f.date_from:
            return False
        if f.date_to is not None and r.requested_at.date() > f.date_to:
            return False
        if f.year is not None and (r.effective_from is None or r.effective_from.year != f.year):
            return False
        if f.month is not None and (r.effective_from is None or r.effective_from.month != f.month):
            return False
        return True

    def all(self) -> list[Request]:
        return sorted(self._rows.values(), key=lambda r: (r.requested_at, r.request_id), reverse=True)

    def search(self, filters, *, page, limit):
        rows = [r for r in self.all() if self._matches(r, filters)]
        return rows[(page - 1) * limit : page * limit]

    def count(self, filters):
        return sum(1 for r in self._rows.values() if self._matches(r, filters))

    def count_by_status(self, filters):
        out: dict[str, int] = {}
        for r in self._rows.values():
            if self._matches(r, filters):
                out[r.status.value] = out.get(r.status.value, 0) + 1
        return out


class FakeTimesheetRepo:
    def __init__(self, requests: FakeRequestRepo, employees: FakeEmployeeDirectory, tasks: list[Task]):
        self._requests = requests
        self._employees = employees
        self.tasks: dict[int, Task] = {t.task_id: t for t in tasks}
        self.claims: dict[tuple[int, date], int] = {}
        self.entries: dict[int, list[TimesheetEntry]] = {}
        self._next_entry_id = 1

    # ---- week claims ----

    def get_week_claim(self, *, employee_id, week_start_date):
        return self.claims.get((int(employee_id), week_start_date))

    def release_week(self, *, employee_id, week_start_date, request_id):
        self.entries.pop(int(request_id), None)
        key = (int(employee_id), week_start_date)
        if self.claims.get(key) == int(request_id):
            del self.claims[key]

    # ---- entries ----

    def _build(self, request_id, employee_id, week_start, week_end, entries) -> list[TimesheetEntry]:
        out = []
        for e in entries:
            task = self.tasks.get(int(e.task_id))
            out.append(
                TimesheetEntry(
                    entry_id=self._next_entry_id,
                    request_id=request_id,
                    employee_id=employee_id,
                    task_id=int(e.task_id),
                    entry_type=e.entry_type,
                    week_start_date=week_start,
                    week_end_date=week_end,
                    hours=e.hours,
                    task_code=task.task_code if task else "",
                    task_name=task.task_name if task else "",
                )
            )
            self._next_entry_id += 1
        return out

    def create_timesheet(self, new, *, week_start_date, week_end_date, entries):
        key = (int(new.requester_employee_id), week_start_date)
        if key in self.claims:
            raise DuplicateWeekError("A timesheet for this week has already been submitted")
        rid = self._requests.create(new)
        self.claims[key] = rid
        self.entries[rid] = self._build(rid, new.requester_employee_id, week_start_date, week_end_date, entries)
        return rid

    def replace_entries(self, *, request_id, expected_status, entries, payload, reason, reopen, updated_at):
        row = self._requests.get_by_id(request_id)
        if not row or row.status != expected_status:
            return False
        changes = {"payload": payload, "updated_at": updated_at}
        if reason:
            changes["reason"] = reason
        if reopen:
            changes["status"] = RequestStatus.PENDING
            changes["rejection_reason"] = None
        self._requests.put(replace(row, **changes))
        self.entries[row.request_id] = self._build(
            row.request_id, row.requester_employee_id, row.effective_from, row.effective_to, entries
        )
        return True

    def get_entries_by_request_id(self, request_id):
        return list(self.entries.get(int(request_id), []))

    # ---- queries ----

    def _timesheets(self) -> list[Request]:
        return [r for r in self._requests.all() if self._requests.type_code_of(r) == TIMESHEET_TYPE_CODE]

    def _for_employee(self, employee_id, year, month, status) -> list[Request]:
        rows = [r for r in self._timesheets() if r.requester_employee_id == int(employee_id)]
        if year is not None:
            if month is None:
                start, end = date(year, 1, 1), date(year, 12, 31)
            else:
                start, end = date(year, month, 1), date(year, month, calendar.monthrange(year, month)[1])
            rows = [r for r in rows if r.effective_from <= end and r.effective_to >= start]
        if status is not None:
            rows = [r for r in rows if r.status == status]
        return rows

    def list_by_employee(self, *, employee_id, year, month, status, page, limit):
        return self._for_employee(employee_id, year, month, status)[(page - 1) * limit : page * limit]

    def count_by_employee(self, *, employee_id, year, month, status):
        return len(self._for_employee(employee_id, year, month, status))

    def _pending_for(self, approver_id) -> list[Request]:
        team = self._employees.managed_by(int(approver_id))
        rows = [r for r in self._timesheets() if r.status == RequestStatus.PENDING and r.requester_employee_id in team]
        return sorted(rows, key=lambda r: (r.requested_at, r.request_id))

    def list_pending_for_approver(self, *, approver_id, page, limit):
        return self._pending_for(approver_id)[(page - 1) * limit : page * limit]

    def count_pending_for_approver(self, *, approver_id):
        return len(self._pending_for(approver_id))

    # ---- tasks ----

    def get_task_by_id(self, task_id):
        return self.tasks.get(int(task_id))

    def get_task_by_code(self, task_code):
        return next((t for t in self.tasks.values() if t.task_code == task_code), None)

    def list_tasks(self, *, active_only):
        return [t for t in self.tasks.values() if t.is_active or not active_only]

    def create_task(self, *, task_code, task_name, description, task_type):
        if self.get_task_by_code(task_code):
            raise DuplicateTaskError(f"Task code {task_code} already exists")
        task_id = max(self.tasks, default=0) + 1
        self.tasks[task_id] = Task(
            task_id=task_id,
            task_code=task_code,
            task_name=task_name,
            description=description,
            task_type=task_type,
        )
        return task_id

    def update_task(self, *, task_id, task_name, description, is_active, updated_at):
        task = self.tasks.get(int(task_id))
        if not task:
            return False
        self.tasks[task.task_id] = replace(
            task, task_name=task_name, description=description, is_active=is_active, updated_at=updated_at
        )
        return True


class RecordingPublisher:
    def __init__(self):
        self.events: list[tuple[str, str, dict]] = []

    def publish(self, event, routing_key, *, exchange=""):
        self.events.append((exchange, routing_key, event))

    def routed_to(self, routing_key: str) -> list[dict]:
        return [e for _, key, e in self.events if key == routing_key]


class ExplodingPublisher:
    def __init__(self):
        self.calls = 0

    def publish(self, event, routing_key, *, exchange=""):
        self.calls += 1
        raise ConnectionError("broker unreachable")


REQUEST_TYPES = [
    RequestTypeRow(request_type_id=1, code="PAID_LEAVE", name="Paid Leave", category="time-off"),
    RequestTypeRow(request_type_id=2, code="TIMESHEET_WEEKLY", name="Weekly Timesheet", category="timesheet"),
    RequestTypeRow(request_type_id=3, code="PROFILE_UPDATE", name="Profile Update", category="profile"),
    RequestTypeRow(request_type_id=4, code="WFH", name="Work From Home", category="time-off"),
    RequestTypeRow(request_type_id=9, code="MYSTERY", name="Mystery", category="expense"),
]

EMPLOYEES = [
    Employee(employee_id=1, full_name="Alice Admin", manager_id=None, personal_email="alice@home.test"),
    Employee(employee_id=2, full_name="Mona Manager", manager_id=1, personal_email="mona@home.test"),
    Employee(
        employee_id=3,
        full_name="Evan Employee",
        manager_id=2,
        email="evan@corp.test",
        personal_email="evan@home.test",
        department_name="Engineering",
    ),
    Employee(employee_id=4, full_name="Lone Ranger", manager_id=None, personal_email="lone@home.test"),
    Employee(employee_id=5, full_name="Quiet Quinn", manager_id=2, email="quinn@corp.test"),
]

TASKS = [
    Task(task_id=1, task_code="DEV", task_name="Development", description=None, task_type="project"),
    Task(task_id=2, task_code="ANNUAL_LEAVE", task_name="Annual Leave", description=None, task_type="leave"),
    Task(task_id=3, task_code="LEGACY", task_name="Legacy Project", description=None, task_type="project", is_active=False),
]


@dataclass
class World:
    """In-memory wiring of every service, with handles on the fakes behind it."""

    types: FakeRequestTypeRepo
    employees: FakeEmployeeDirectory
    requests: FakeRequestRepo
    timesheets: FakeTimesheetRepo
    publisher: object
    container: Container

    admin_id: int = 1
    manager_id: int = 2
    employee_id: int = 3
    loner_id: int = 4
    no_email_id: int = 5

    @property
    def request_service(self):
        return self.container.request_service

    @property
    def timesheet_service(self):
        return self.container.timesheet_service

    @property
    def dispatcher(self):
        return self.container.dispatcher

    @staticmethod
    def submission(
        week_start: date = date(2026, 1, 5),
        entries: Optional[list[tuple[int, str, str]]] = None,
        reason: Optional[str] = None,
    ) -> TimesheetSubmission:
        entries = entries if entries is not None else [(1, "project", "40")]
        return TimesheetSubmission(
            year=week_start.year,
            month=week_start.month,
            week_number=week_start.isocalendar()[1],
            week_start_date=week_start,
            week_end_date=week_start + timedelta(days=6),
            entries=[EntryInput(task_id=t, entry_type=EntryType(k), hours=Decimal(h)) for t, k, h in entries],
            reason=reason,
        )

    def add_request(
        self,
        *,
        type_code: str,
        requester_id: int = 3,
        approver_id: Optional[int] = 2,
        status: RequestStatus = RequestStatus.PENDING,
        effective_from: Optional[date] = None,
        effective_to: Optional[date] = None,
        payload: Optional[dict] = None,
    ) -> Request:
        row = self.types.get_by_code(type_code)
        rid = self.requests.create(
            NewRequest(
                request_type_id=row.request_type_id,
                requester_employee_id=requester_id,
                approver_employee_id=approver_id,
                reason="Family trip to the mountains",
                requested_at=datetime(2026, 1, 2, 9, 0, 0),
                effective_from=effective_from,
                effective_to=effective_to,
                payload=payload,
                status=status,
            )
        )
        return self.requests.get_by_id(rid)


def build_world(publisher=None) -> World:
    types = FakeRequestTypeRepo(REQUEST_TYPES)
    employees = FakeEmployeeDirectory(EMPLOYEES)
    requests = FakeRequestRepo(types)
    timesheets = FakeTimesheetRepo(requests, employees, TASKS)
    publisher = publisher if publisher is not None else RecordingPublisher()
    container = build_services(
        request_types_repo=types,
        employees_repo=employees,
        requests_repo=requests,
        timesheets_repo=timesheets,
        publisher=publisher,
    )
    return World(
        types=types,
        employees=employees,
        requests=requests,
        timesheets=timesheets,
        publisher=publisher,
        container=container,
    )


@pytest.fixture
def world() -> World:
    return build_world()


@pytest.fixture
def broken_broker_world() -> World:
    return build_world(ExplodingPublisher())
