from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import RequestStatus
from ..requests.model import NewRequest, Request
from .model import EntryInput, Task, TimesheetEntry


class TimesheetRepository(Protocol):
    """Storage for weekly timesheets: week claims, entry batches and tasks.

    ``create_timesheet`` and ``replace_entries`` are single transactions.
    """

    # ---- week claims ----

    def get_week_claim(self, *, employee_id: int, week_start_date: date) -> Optional[int]:
        """Request id currently holding the employee's week, if any."""
        raise NotImplementedError

    def release_week(self, *, employee_id: int, week_start_date: date, request_id: int) -> None:
        """Drop the claim and the entry batch of a cancelled timesheet."""
        raise NotImplementedError

    # ---- entries ----

    def create_timesheet(
        self,
        new: NewRequest,
        *,
        week_start_date: date,
        week_end_date: date,
        entries: Sequence[EntryInput],
    ) -> int:
        """Insert request, week claim and entries together.

        Raises DuplicateWeekError when the week is already claimed.
        """
        raise NotImplementedError

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
        """Swap the entry batch and payload while the request is in ``expected_status``.

        With ``reopen`` the request goes back to PENDING and its rejection reason is cleared.
        Returns False (and changes nothing) if the status no longer matches.
        """
        raise NotImplementedError

    def get_entries_by_request_id(self, request_id: int) -> list[TimesheetEntry]:
        raise NotImplementedError

    # ---- queries ----

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
        raise NotImplementedError

    def count_by_employee(
        self,
        *,
        employee_id: int,
        year: Optional[int],
        month: Optional[int],
        status: Optional[RequestStatus],
    ) -> int:
        raise NotImplementedError

    def list_pending_for_approver(self, *, approver_id: int, page: int, limit: int) -> Sequence[Request]:
        raise NotImplementedError

    def count_pending_for_approver(self, *, approver_id: int) -> int:
        raise NotImplementedError

    # ---- tasks ----

    def get_task_by_id(self, task_id: int) -> Optional[Task]:
        raise NotImplementedError

    def get_task_by_code(self, task_code: str) -> Optional[Task]:
        raise NotImplementedError

    def list_tasks(self, *, active_only: bool) -> list[Task]:
        raise NotImplementedError

    def create_task(self, *, task_code: str, task_name: str, description: Optional[str], task_type: str) -> int:
        raise NotImplementedError

    def update_task(
        self,
        *,
        task_id: int,
        task_name: str,
        description: Optional[str],
        is_active: bool,
        updated_at: datetime,
    ) -> bool:
        raise NotImplementedError
