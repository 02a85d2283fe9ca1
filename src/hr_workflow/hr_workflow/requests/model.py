from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from ..core.enums import RequestCategory, RequestStatus


@dataclass(frozen=True)
class Request:
    """Single table of record for every request type.

    ``payload`` is the stored per-category document; only the subsystem that
    owns the request's category interprets it (see ``payload.py``).
    """

    request_id: int
    request_type_id: int
    requester_employee_id: int
    approver_employee_id: Optional[int]
    status: RequestStatus
    requested_at: datetime
    created_at: datetime
    updated_at: datetime
    reason: str
    effective_from: Optional[date] = None
    effective_to: Optional[date] = None
    payload: Optional[dict] = None
    approval_comment: Optional[str] = None
    rejection_reason: Optional[str] = None


@dataclass(frozen=True)
class RequestFilters:
    requester_employee_id: Optional[int] = None
    approver_employee_id: Optional[int] = None
    category: Optional[RequestCategory] = None
    request_type_code: Optional[str] = None
    status: Optional[RequestStatus] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    # year/month match the effective start date
    year: Optional[int] = None
    month: Optional[int] = None


@dataclass(frozen=True)
class NewRequest:
    request_type_id: int
    requester_employee_id: int
    approver_employee_id: Optional[int]
    reason: str
    requested_at: datetime
    effective_from: Optional[date] = None
    effective_to: Optional[date] = None
    payload: Optional[dict] = None
    status: RequestStatus = RequestStatus.PENDING


@dataclass(frozen=True)
class RequestDetails:
    """Read model returned by the generic request endpoints."""

    request: Request
    type_code: str
    type_name: str
    category: RequestCategory
    requester_name: Optional[str] = None
    approver_name: Optional[str] = None
    duration: Optional[int] = None

    def to_dict(self) -> dict:
        r = self.request
        return {
            "id": r.request_id,
            "requestTypeId": r.request_type_id,
            "requestTypeCode": self.type_code,
            "requestTypeName": self.type_name,
            "category": self.category.value,
            "requesterEmployeeId": r.requester_employee_id,
            "requesterName": self.requester_name,
            "approverEmployeeId": r.approver_employee_id,
            "approverName": self.approver_name,
            "status": r.status.value,
            "reason": r.reason,
            "effectiveFrom": r.effective_from.isoformat() if r.effective_from else None,
            "effectiveTo": r.effective_to.isoformat() if r.effective_to else None,
            "duration": self.duration,
            "payload": r.payload,
            "approvalComment": r.approval_comment,
            "rejectionReason": r.rejection_reason,
            "requestedAt": r.requested_at.isoformat(),
            "createdAt": r.created_at.isoformat(),
            "updatedAt": r.updated_at.isoformat(),
        }


@dataclass(frozen=True)
class RequestsSummary:
    total: int
    by_status: dict[str, int]

    def to_dict(self) -> dict:
        return {"total": self.total, "byStatus": dict(self.by_status)}
