from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Optional, Sequence

from ..common.datetime_utils import now_utc
from ..common.pagination import Page, build_page, normalize_paging
from ..common.validators import require_hours_precision, require_length, require_non_empty, require_range
from ..core.constants import (
    AUTO_APPROVE_ADMIN_COMMENT,
    AUTO_APPROVE_NO_MANAGER_COMMENT,
    MAX_HOURS_PER_WEEK,
    REASON_MAX_LENGTH,
    TIMESHEET_TYPE_CODE,
)
from ..core.enums import EntryType, RequestCategory, RequestStatus, Role
from ..core.exceptions import (
    AuthorizationError,
    DuplicateTaskError,
    DuplicateWeekError,
    HoursExceededError,
    InactiveTaskError,
    InvalidStateError,
    NotFoundError,
    TypeNotConfiguredError,
    UnknownTaskError,
    ValidationError,
)
from ..employees.model import Employee
from ..employees.repository import EmployeeDirectory
from ..notifications.dispatcher import NotificationDispatcher
from ..request_types.service import RequestTypeRegistry
from ..requests.model import NewRequest, Request
from ..requests.repository import RequestRepository
from ..requests.service import RequestService
from .model import EntryInput, Task, TimesheetDetails, TimesheetListItem, TimesheetPayload, TimesheetSubmission
from .repository import TimesheetRepository
from .summary import compute_summary, total_hours

logger = logging.getLogger(__name__)


class TimesheetService:
    """Weekly timesheet submission, adjustment and approval.

    Transitions go through :class:`RequestService` with ``notify=False``; the
    only notification a timesheet produces is the submission notice sent to
    the approving manager.
    """

    def __init__(
        self,
        timesheets: TimesheetRepository,
        requests: RequestRepository,
        engine: RequestService,
        registry: RequestTypeRegistry,
        employees: EmployeeDirectory,
        dispatcher: NotificationDispatcher,
        *,
        clock: Callable[[], datetime] = now_utc,
    ):
        self._timesheets = timesheets
        self._requests = requests
        self._engine = engine
        self._registry = registry
        self._employees = employees
        self._dispatcher = dispatcher
        self._clock = clock

    # ---- helpers ----

    def _get_timesheet_request(self, request_id: int) -> Request:
        req = self._requests.get_by_id(int(request_id))
        if req is None:
            raise NotFoundError(f"Timesheet {request_id} not found")
        if self._registry.resolve_id(req.request_type_id).category is not RequestCategory.TIMESHEET:
            raise NotFoundError(f"Timesheet {request_id} not found")
        return req

    def _validate_entries(self, entries: Sequence[EntryInput]) -> None:
        if not entries:
            raise ValidationError("At least one timesheet entry is required")

        for e in entries:
            if e.hours < 0 or e.hours > MAX_HOURS_PER_WEEK:
                raise ValidationError(f"Hours must be between 0 and {MAX_HOURS_PER_WEEK}")
            require_hours_precision(e.hours)

        total = total_hours(entries)
        if total > MAX_HOURS_PER_WEEK:
            raise HoursExceededError(f"Total hours ({total}) exceed the weekly maximum of {MAX_HOURS_PER_WEEK}")

        for task_id in {int(e.task_id) for e in entries}:
            task = self._timesheets.get_task_by_id(task_id)
            if task is None:
                raise UnknownTaskError(f"Task {task_id} not found")
            if not task.is_active:
                raise InactiveTaskError(f"Task {task.task_code} is not active")

    @staticmethod
    def _auto_approval_comment(role: Role, requester: Employee) -> Optional[str]:
        if role == Role.ADMIN:
            return AUTO_APPROVE_ADMIN_COMMENT
        if requester.manager_id is None:
            return AUTO_APPROVE_NO_MANAGER_COMMENT
        return None

    def _claim_week(self, employee_id: int, submission: TimesheetSubmission) -> None:
        claimed_by = self._timesheets.get_week_claim(
            employee_id=employee_id,
            week_start_date=submission.week_start_date,
        )
        if claimed_by is None:
            return

        existing = self._requests.get_by_id(claimed_by)
        if existing is not None and existing.status != RequestStatus.CANCELLED:
            raise DuplicateWeekError("A timesheet for this week has already been submitted")

        self._timesheets.release_week(
            employee_id=employee_id,
            week_start_date=submission.week_start_date,
            request_id=claimed_by,
        )
        logger.info(
            "Released week %s held by cancelled timesheet %s",
            submission.week_start_date.isoformat(),
            claimed_by,
            extra={"request_id": claimed_by, "employee_id": employee_id},
        )

    # ---- submission ----

    def submit(self, *, employee_id: int, role: Role, submission: TimesheetSubmission) -> TimesheetDetails:
        employee_id = int(employee_id)
        require_range(submission.month, "Month", low=1, high=12)
        require_range(submission.week_number, "Week number", low=1, high=53)
        if submission.week_end_date < submission.week_start_date:
            raise ValidationError("Week end date must be on or after the week start date")

        self._claim_week(employee_id, submission)
        self._validate_entries(submission.entries)
        summary = compute_summary(submission.entries)

        requester = self._employees.get_by_id(employee_id)
        if requester is None:
            raise NotFoundError(f"Employee {employee_id} not found")

        info = self._registry.resolve_code(TIMESHEET_TYPE_CODE)
        if info.category is not RequestCategory.TIMESHEET:
            raise TypeNotConfiguredError(f"Request type {TIMESHEET_TYPE_CODE} is not a timesheet type")

        reason = (submission.reason or "").strip()
        if reason:
            reason = require_length(reason, "Reason", min_len=1, max_len=REASON_MAX_LENGTH)
        else:
            reason = f"Weekly timesheet for Week {submission.week_number}, {submission.month}/{submission.year}"

        payload = TimesheetPayload(
            period_year=submission.year,
            period_month=submission.month,
            week_number=submission.week_number,
            summary=summary,
        )
        request_id = self._timesheets.create_timesheet(
            NewRequest(
                request_type_id=info.request_type_id,
                requester_employee_id=employee_id,
                approver_employee_id=requester.manager_id,
                reason=reason,
                requested_at=self._clock(),
                effective_from=submission.week_start_date,
                effective_to=submission.week_end_date,
                payload=payload.to_dict(),
            ),
            week_start_date=submission.week_start_date,
            week_end_date=submission.week_end_date,
            entries=submission.entries,
        )
        logger.info(
            "Timesheet %s submitted for week %s",
            request_id,
            submission.week_start_date.isoformat(),
            extra={"request_id": request_id, "employee_id": employee_id},
        )

        comment = self._auto_approval_comment(role, requester)
        if comment:
            try:
                self._engine.approve(
                    request_id=request_id, approver_id=employee_id, comment=comment, notify=False, system=True
                )
            except Exception:
                logger.exception(
                    "Auto-approval failed for timesheet %s; left pending",
                    request_id,
                    extra={"request_id": request_id, "employee_id": employee_id},
                )
        elif requester.manager_id is not None:
            created = self._requests.get_by_id(request_id)
            if created is not None:
                self._dispatcher.notify_timesheet_submitted(created, requester)

        return self.get_timesheet(request_id)

    def adjust(
        self,
        *,
        request_id: int,
        employee_id: int,
        entries: Sequence[EntryInput],
        reason: Optional[str] = None,
    ) -> TimesheetDetails:
        req = self._get_timesheet_request(request_id)
        if req.requester_employee_id != int(employee_id):
            raise AuthorizationError("You can only adjust your own timesheets")
        if req.status not in (RequestStatus.PENDING, RequestStatus.REJECTED):
            raise InvalidStateError(f"Cannot adjust a timesheet with status {req.status.value}")

        self._validate_entries(entries)
        current = TimesheetPayload.from_dict(req.payload)
        payload = TimesheetPayload(
            period_year=current.period_year,
            period_month=current.period_month,
            week_number=current.week_number,
            summary=compute_summary(entries),
            period_type=current.period_type,
        )
        reason = (reason or "").strip() or None
        if reason:
            reason = require_length(reason, "Reason", min_len=1, max_len=REASON_MAX_LENGTH)

        ok = self._timesheets.replace_entries(
            request_id=req.request_id,
            expected_status=req.status,
            entries=entries,
            payload=payload.to_dict(),
            reason=reason,
            reopen=req.status == RequestStatus.REJECTED,
            updated_at=self._clock(),
        )
        if not ok:
            raise InvalidStateError("Timesheet was modified concurrently")

        logger.info(
            "Timesheet %s adjusted",
            req.request_id,
            extra={"request_id": req.request_id, "employee_id": employee_id},
        )
        return self.get_timesheet(req.request_id)

    # ---- approval ----

    def approve(self, *, request_id: int, approver_id: int, comment: Optional[str] = None) -> TimesheetDetails:
        self._get_timesheet_request(request_id)
        self._engine.approve(request_id=request_id, approver_id=approver_id, comment=comment, notify=False)
        return self.get_timesheet(request_id)

    def reject(self, *, request_id: int, approver_id: int, reason: str) -> TimesheetDetails:
        self._get_timesheet_request(request_id)
        self._engine.reject(request_id=request_id, approver_id=approver_id, reason=reason, notify=False)
        return self.get_timesheet(request_id)

    def cancel(self, *, request_id: int, employee_id: int) -> TimesheetDetails:
        self._get_timesheet_request(request_id)
        self._engine.cancel(request_id=request_id, caller_id=employee_id)
        return self.get_timesheet(request_id)

    # ---- queries ----

    def get_timesheet(self, request_id: int) -> TimesheetDetails:
        req = self._get_timesheet_request(request_id)
        requester = self._employees.get_by_id(req.requester_employee_id)
        approver = (
            self._employees.get_by_id(req.approver_employee_id) if req.approver_employee_id is not None else None
        )
        return TimesheetDetails(
            request_id=req.request_id,
            employee_id=req.requester_employee_id,
            employee_name=requester.full_name if requester else "",
            department=requester.department_name if requester else None,
            payload=TimesheetPayload.from_dict(req.payload),
            week_start_date=req.effective_from,
            week_end_date=req.effective_to,
            status=req.status.value,
            reason=req.reason,
            submitted_at=req.requested_at,
            approved_at=req.updated_at if req.status == RequestStatus.APPROVED else None,
            approver_employee_id=req.approver_employee_id,
            approver_name=approver.full_name if approver else None,
            approval_comment=req.approval_comment,
            rejection_reason=req.rejection_reason,
            entries=self._timesheets.get_entries_by_request_id(req.request_id),
            created_at=req.created_at,
            updated_at=req.updated_at,
        )

    def _list_items(self, rows: Sequence[Request]) -> list[TimesheetListItem]:
        employees: dict[int, Optional[Employee]] = {}
        items: list[TimesheetListItem] = []
        for r in rows:
            if r.requester_employee_id not in employees:
                employees[r.requester_employee_id] = self._employees.get_by_id(r.requester_employee_id)
            emp = employees[r.requester_employee_id]
            items.append(
                TimesheetListItem(
                    request_id=r.request_id,
                    employee_id=r.requester_employee_id,
                    employee_name=emp.full_name if emp else "",
                    department=emp.department_name if emp else None,
                    payload=TimesheetPayload.from_dict(r.payload),
                    week_start_date=r.effective_from,
                    week_end_date=r.effective_to,
                    status=r.status.value,
                    submitted_at=r.requested_at,
                    created_at=r.created_at,
                )
            )
        return items

    def list_my_timesheets(
        self,
        *,
        employee_id: int,
        year: Optional[int] = None,
        month: Optional[int] = None,
        status: Optional[RequestStatus] = None,
        page: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> Page[TimesheetListItem]:
        page, limit = normalize_paging(page, limit)
        if month is not None:
            require_range(month, "Month", low=1, high=12)
            if year is None:
                raise ValidationError("Year is required when filtering by month")

        rows = self._timesheets.list_by_employee(
            employee_id=int(employee_id), year=year, month=month, status=status, page=page, limit=limit
        )
        total = self._timesheets.count_by_employee(employee_id=int(employee_id), year=year, month=month, status=status)
        return build_page(self._list_items(rows), page=page, limit=limit, total=total)

    def list_pending_approvals(
        self,
        *,
        approver_id: int,
        page: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> Page[TimesheetListItem]:
        page, limit = normalize_paging(page, limit)
        rows = self._timesheets.list_pending_for_approver(approver_id=int(approver_id), page=page, limit=limit)
        total = self._timesheets.count_pending_for_approver(approver_id=int(approver_id))
        return build_page(self._list_items(rows), page=page, limit=limit, total=total)

    # ---- tasks ----

    def list_active_tasks(self) -> list[Task]:
        return self._timesheets.list_tasks(active_only=True)

    def list_all_tasks(self) -> list[Task]:
        return self._timesheets.list_tasks(active_only=False)

    def create_task(
        self,
        *,
        task_code: str,
        task_name: str,
        description: Optional[str] = None,
        task_type: str = EntryType.PROJECT.value,
    ) -> Task:
        code = require_non_empty(task_code, "Task code").upper()
        name = require_non_empty(task_name, "Task name")
        try:
            task_type = EntryType((task_type or "").strip().lower()).value
        except ValueError:
            raise ValidationError("Task type must be 'project' or 'leave'")

        if self._timesheets.get_task_by_code(code) is not None:
            raise DuplicateTaskError(f"Task code {code} already exists")

        task_id = self._timesheets.create_task(
            task_code=code,
            task_name=name,
            description=(description or "").strip() or None,
            task_type=task_type,
        )
        created = self._timesheets.get_task_by_id(task_id)
        if created is None:
            raise NotFoundError(f"Task {task_id} not found")
        return created

    def update_task(
        self,
        *,
        task_id: int,
        task_name: Optional[str] = None,
        description: Optional[str] = None,
        is_active: Optional[bool] = None,
    ) -> Task:
        task = self._timesheets.get_task_by_id(int(task_id))
        if task is None:
            raise NotFoundError(f"Task {task_id} not found")

        self._timesheets.update_task(
            task_id=task.task_id,
            task_name=require_non_empty(task_name, "Task name") if task_name is not None else task.task_name,
            description=description if description is not None else task.description,
            is_active=task.is_active if is_active is None else bool(is_active),
            updated_at=self._clock(),
        )
        updated = self._timesheets.get_task_by_id(task.task_id)
        if updated is None:
            raise NotFoundError(f"Task {task_id} not found")
        return updated
