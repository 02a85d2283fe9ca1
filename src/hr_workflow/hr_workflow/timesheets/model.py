from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from ..core.enums import EntryType


@dataclass(frozen=True)
class Task:
    task_id: int
    task_code: str
    task_name: str
    description: Optional[str]
    task_type: str
    is_active: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        return {
            "id": self.task_id,
            "taskCode": self.task_code,
            "taskName": self.task_name,
            "description": self.description,
            "taskType": self.task_type,
            "isActive": self.is_active,
        }


@dataclass(frozen=True)
class EntryInput:
    """One submitted line: hours against a task for the week."""

    task_id: int
    entry_type: EntryType
    hours: Decimal


@dataclass(frozen=True)
class TimesheetEntry:
    entry_id: int
    request_id: int
    employee_id: int
    task_id: int
    entry_type: EntryType
    week_start_date: date
    week_end_date: date
    hours: Decimal
    task_code: str = ""
    task_name: str = ""

    def to_dict(self) -> dict:
        return {
            "id": self.entry_id,
            "taskId": self.task_id,
            "taskCode": self.task_code,
            "taskName": self.task_name,
            "entryType": self.entry_type.value,
            "hours": float(self.hours),
        }


@dataclass(frozen=True)
class TimesheetSummary:
    total_hours: Decimal = Decimal("0")
    regular_hours: Decimal = Decimal("0")
    overtime_hours: Decimal = Decimal("0")
    leave_hours: Decimal = Decimal("0")

    def to_dict(self) -> dict:
        return {
            "totalHours": float(self.total_hours),
            "regularHours": float(self.regular_hours),
            "overtimeHours": float(self.overtime_hours),
            "leaveHours": float(self.leave_hours),
        }

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "TimesheetSummary":
        data = data or {}

        def _d(key: str) -> Decimal:
            return Decimal(str(data.get(key, 0) or 0))

        return cls(
            total_hours=_d("totalHours"),
            regular_hours=_d("regularHours"),
            overtime_hours=_d("overtimeHours"),
            leave_hours=_d("leaveHours"),
        )


@dataclass(frozen=True)
class TimesheetPayload:
    """Payload document owned by the timesheet subsystem."""

    period_year: int = 0
    period_month: int = 0
    week_number: int = 0
    summary: TimesheetSummary = field(default_factory=TimesheetSummary)
    period_type: str = "weekly"

    def to_dict(self) -> dict:
        return {
            "periodType": self.period_type,
            "periodYear": self.period_year,
            "periodMonth": self.period_month,
            "weekNumber": self.week_number,
            "summary": self.summary.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "TimesheetPayload":
        data = data or {}
        return cls(
            period_type=data.get("periodType", "weekly"),
            period_year=int(data.get("periodYear", 0) or 0),
            period_month=int(data.get("periodMonth", 0) or 0),
            week_number=int(data.get("weekNumber", 0) or 0),
            summary=TimesheetSummary.from_dict(data.get("summary")),
        )


@dataclass(frozen=True)
class TimesheetSubmission:
    year: int
    month: int
    week_number: int
    week_start_date: date
    week_end_date: date
    entries: list[EntryInput]
    reason: Optional[str] = None


@dataclass(frozen=True)
class TimesheetDetails:
    request_id: int
    employee_id: int
    employee_name: str
    department: Optional[str]
    payload: TimesheetPayload
    week_start_date: Optional[date]
    week_end_date: Optional[date]
    status: str
    reason: str
    submitted_at: datetime
    approved_at: Optional[datetime]
    approver_employee_id: Optional[int]
    approver_name: Optional[str]
    approval_comment: Optional[str]
    rejection_reason: Optional[str]
    entries: list[TimesheetEntry]
    created_at: datetime
    updated_at: datetime

    @property
    def summary(self) -> TimesheetSummary:
        return self.payload.summary

    def to_dict(self) -> dict:
        return {
            "requestId": self.request_id,
            "employeeId": self.employee_id,
            "employeeName": self.employee_name,
            "department": self.department,
            "year": self.payload.period_year,
            "month": self.payload.period_month,
            "weekNumber": self.payload.week_number,
            "weekStartDate": self.week_start_date.isoformat() if self.week_start_date else None,
            "weekEndDate": self.week_end_date.isoformat() if self.week_end_date else None,
            "status": self.status,
            "reason": self.reason,
            "submittedAt": self.submitted_at.isoformat(),
            "approvedAt": self.approved_at.isoformat() if self.approved_at else None,
            "approverEmployeeId": self.approver_employee_id,
            "approverName": self.approver_name,
            "approvalComment": self.approval_comment,
            "rejectionReason": self.rejection_reason,
            "summary": self.summary.to_dict(),
            "entries": [e.to_dict() for e in self.entries],
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
        }


@dataclass(frozen=True)
class TimesheetListItem:
    """Row of a timesheet listing; the summary is the snapshot stored in the payload."""

    request_id: int
    employee_id: int
    employee_name: str
    department: Optional[str]
    payload: TimesheetPayload
    week_start_date: Optional[date]
    week_end_date: Optional[date]
    status: str
    submitted_at: datetime
    created_at: datetime

    def to_dict(self) -> dict:
        return {
            "requestId": self.request_id,
            "employeeId": self.employee_id,
            "employeeName": self.employee_name,
            "department": self.department,
            "year": self.payload.period_year,
            "month": self.payload.period_month,
            "weekNumber": self.payload.week_number,
            "weekStartDate": self.week_start_date.isoformat() if self.week_start_date else None,
            "weekEndDate": self.week_end_date.isoformat() if self.week_end_date else None,
            "status": self.status,
            "summary": self.payload.summary.to_dict(),
            "submittedAt": self.submitted_at.isoformat(),
            "createdAt": self.created_at.isoformat(),
        }
