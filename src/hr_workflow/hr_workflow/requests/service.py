from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Callable, Optional

from ..common.datetime_utils import inclusive_days, now_utc
from ..common.pagination import Page, build_page, normalize_paging
from ..common.validators import require_length, require_range
from ..core.constants import REASON_MAX_LENGTH, REASON_MIN_LENGTH
from ..core.enums import RequestCategory, RequestStatus
from ..core.exceptions import AuthorizationError, InvalidStateError, NotFoundError, ValidationError
from ..employees.repository import EmployeeDirectory
from ..notifications.dispatcher import NotificationDispatcher
from ..request_types.service import RequestTypeRegistry, display_name
from .model import NewRequest, Request, RequestDetails, RequestFilters, RequestsSummary
from .payload import ProfilePayload, TimeOffPayload, dump_payload, parse_payload
from .repository import RequestRepository

logger = logging.getLogger(__name__)


class RequestService:
    """Approval state machine shared by every request category.

    PENDING moves to APPROVED, REJECTED or CANCELLED. Every transition is a
    conditional write on the current status, so a concurrent decision on the
    same request surfaces as :class:`InvalidStateError`.

    Time-off and timesheet decisions are restricted to the requester's direct
    manager; ``system=True`` marks an approval made by the engine itself
    (timesheet auto-approval) and skips that check.
    """

    def __init__(
        self,
        requests: RequestRepository,
        registry: RequestTypeRegistry,
        employees: EmployeeDirectory,
        dispatcher: NotificationDispatcher,
        *,
        clock: Callable[[], datetime] = now_utc,
    ):
        self._requests = requests
        self._registry = registry
        self._employees = employees
        self._dispatcher = dispatcher
        self._clock = clock

    def _get_or_404(self, request_id: int) -> Request:
        req = self._requests.get_by_id(int(request_id))
        if not req:
            raise NotFoundError(f"Request {request_id} not found")
        return req

    @staticmethod
    def _require_pending(req: Request, action: str) -> None:
        if req.status != RequestStatus.PENDING:
            raise InvalidStateError(f"Cannot {action} a request with status {req.status.value}")

    def _require_team_approver(self, req: Request, approver_id: int) -> None:
        """Time-off and timesheet decisions belong to the requester's direct manager."""
        info = self._registry.resolve_id(req.request_type_id)
        if info.category not in (RequestCategory.TIME_OFF, RequestCategory.TIMESHEET):
            return
        requester = self._employees.get_by_id(req.requester_employee_id)
        if requester is None or requester.manager_id != int(approver_id):
            raise AuthorizationError("Cannot approve or reject a request from an employee outside your team")

    # ---- transitions ----

    def approve(
        self,
        *,
        request_id: int,
        approver_id: int,
        comment: Optional[str] = None,
        notify: bool = True,
        system: bool = False,
    ) -> Request:
        req = self._get_or_404(request_id)
        self._require_pending(req, "approve")
        if not system:
            self._require_team_approver(req, approver_id)

        comment = (comment or "").strip() or None
        ok = self._requests.update_status(
            request_id=req.request_id,
            expected_status=RequestStatus.PENDING,
            status=RequestStatus.APPROVED,
            updated_at=self._clock(),
            approver_employee_id=int(approver_id),
            approval_comment=comment,
        )
        if not ok:
            raise InvalidStateError("Request is no longer pending")

        updated = self._get_or_404(req.request_id)
        logger.info(
            "Request %s approved by %s",
            req.request_id,
            approver_id,
            extra={"request_id": req.request_id, "employee_id": approver_id},
        )
        if notify:
            self._dispatcher.notify_approval(updated, comment)
        return updated

    def reject(
        self,
        *,
        request_id: int,
        approver_id: int,
        reason: str,
        notify: bool = True,
    ) -> Request:
        reason = require_length(reason, "Rejection reason", min_len=REASON_MIN_LENGTH, max_len=REASON_MAX_LENGTH)
        req = self._get_or_404(request_id)
        self._require_pending(req, "reject")
        self._require_team_approver(req, approver_id)

        ok = self._requests.update_status(
            request_id=req.request_id,
            expected_status=RequestStatus.PENDING,
            status=RequestStatus.REJECTED,
            updated_at=self._clock(),
            approver_employee_id=int(approver_id),
            rejection_reason=reason,
        )
        if not ok:
            raise InvalidStateError("Request is no longer pending")

        updated = self._get_or_404(req.request_id)
        logger.info(
            "Request %s rejected by %s",
            req.request_id,
            approver_id,
            extra={"request_id": req.request_id, "employee_id": approver_id},
        )
        if notify:
            self._dispatcher.notify_rejection(updated, reason)
        return updated

    def cancel(self, *, request_id: int, caller_id: int, comment: Optional[str] = None) -> Request:
        req = self._get_or_404(request_id)
        if req.requester_employee_id != int(caller_id):
            raise AuthorizationError("Only the requester can cancel this request")
        self._require_pending(req, "cancel")

        payload = None
        comment = (comment or "").strip() or None
        if comment:
            info = self._registry.resolve_id(req.request_type_id)
            if info.category is RequestCategory.PROFILE:
                current = ProfilePayload.from_dict(req.payload)
                payload = ProfilePayload(
                    fields=current.fields,
                    attachments=current.attachments,
                    cancellation_comment=comment,
                ).to_dict()

        ok = self._requests.update_status(
            request_id=req.request_id,
            expected_status=RequestStatus.PENDING,
            status=RequestStatus.CANCELLED,
            updated_at=self._clock(),
            payload=payload,
        )
        if not ok:
            raise InvalidStateError("Request is no longer pending")

        logger.info(
            "Request %s cancelled by requester",
            req.request_id,
            extra={"request_id": req.request_id, "employee_id": caller_id},
        )
        return self._get_or_404(req.request_id)

    # ---- generic requests ----

    @staticmethod
    def _check_time_off_dates(effective_from: Optional[date], effective_to: Optional[date]) -> None:
        if not effective_from or not effective_to:
            raise ValidationError("Start date and end date are required for time-off requests")
        if effective_to < effective_from:
            raise ValidationError("End date must be on or after the start date")

    def create_request(
        self,
        *,
        requester_id: int,
        type_code: str,
        reason: str,
        effective_from: Optional[date] = None,
        effective_to: Optional[date] = None,
        payload: Optional[dict] = None,
    ) -> RequestDetails:
        info = self._registry.resolve_code(type_code)
        if info.category is RequestCategory.TIMESHEET:
            raise ValidationError("Timesheets must be submitted through the timesheet endpoints")

        reason = require_length(reason, "Reason", min_len=REASON_MIN_LENGTH, max_len=REASON_MAX_LENGTH)

        requester = self._employees.get_by_id(int(requester_id))
        if requester is None:
            raise NotFoundError(f"Employee {requester_id} not found")

        if info.category is RequestCategory.TIME_OFF:
            self._check_time_off_dates(effective_from, effective_to)
            parsed = TimeOffPayload.from_dict(payload)
        elif info.category is RequestCategory.PROFILE:
            parsed = ProfilePayload.from_dict(payload)
            if not any(v.strip() for v in parsed.fields.values()):
                raise ValidationError("At least one profile field must be provided")
            pending = self._requests.count(
                RequestFilters(
                    requester_employee_id=requester.employee_id,
                    request_type_code=info.code,
                    status=RequestStatus.PENDING,
                )
            )
            if pending:
                raise ValidationError(f"You already have a pending {display_name(info.code)} request")
        else:
            raise ValidationError(f"Unsupported request category: {info.category.value}")

        request_id = self._requests.create(
            NewRequest(
                request_type_id=info.request_type_id,
                requester_employee_id=requester.employee_id,
                approver_employee_id=requester.manager_id,
                reason=reason,
                requested_at=self._clock(),
                effective_from=effective_from,
                effective_to=effective_to,
                payload=dump_payload(parsed),
            )
        )
        logger.info(
            "Request %s created (%s)",
            request_id,
            info.code,
            extra={"request_id": request_id, "employee_id": requester.employee_id},
        )
        return self.get_request(request_id)

    def update_request(
        self,
        *,
        request_id: int,
        caller_id: int,
        reason: Optional[str] = None,
        effective_from: Optional[date] = None,
        effective_to: Optional[date] = None,
        payload: Optional[dict] = None,
    ) -> RequestDetails:
        req = self._get_or_404(request_id)
        if req.requester_employee_id != int(caller_id):
            raise AuthorizationError("Only the requester can update this request")
        self._require_pending(req, "update")

        info = self._registry.resolve_id(req.request_type_id)
        if info.category is RequestCategory.TIMESHEET:
            raise ValidationError("Timesheets are adjusted through the timesheet endpoints")

        new_reason = req.reason
        if reason is not None:
            new_reason = require_length(reason, "Reason", min_len=REASON_MIN_LENGTH, max_len=REASON_MAX_LENGTH)

        new_from = effective_from or req.effective_from
        new_to = effective_to or req.effective_to
        if info.category is RequestCategory.TIME_OFF:
            self._check_time_off_dates(new_from, new_to)

        new_payload = req.payload
        if payload is not None:
            merged = {**(req.payload or {}), **payload}
            new_payload = dump_payload(parse_payload(info.category, merged))

        ok = self._requests.update_pending(
            request_id=req.request_id,
            reason=new_reason,
            effective_from=new_from,
            effective_to=new_to,
            payload=new_payload,
            updated_at=self._clock(),
        )
        if not ok:
            raise InvalidStateError("Request is no longer pending")
        return self.get_request(req.request_id)

    # ---- queries ----

    def _name_of(self, employee_id: Optional[int], cache: dict[int, Optional[str]]) -> Optional[str]:
        if employee_id is None:
            return None
        if employee_id not in cache:
            emp = self._employees.get_by_id(employee_id)
            cache[employee_id] = emp.full_name if emp else None
        return cache[employee_id]

    def _details(self, req: Request, cache: Optional[dict[int, Optional[str]]] = None) -> RequestDetails:
        cache = {} if cache is None else cache
        info = self._registry.resolve_id(req.request_type_id)
        duration = None
        if info.category is RequestCategory.TIME_OFF and req.effective_from and req.effective_to:
            duration = inclusive_days(req.effective_from, req.effective_to)
        return RequestDetails(
            request=req,
            type_code=info.code,
            type_name=display_name(info.code),
            category=info.category,
            requester_name=self._name_of(req.requester_employee_id, cache),
            approver_name=self._name_of(req.approver_employee_id, cache),
            duration=duration,
        )

    def get_request(self, request_id: int) -> RequestDetails:
        return self._details(self._get_or_404(request_id))

    def list_requests(
        self,
        *,
        filters: Optional[RequestFilters] = None,
        page: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> Page[RequestDetails]:
        filters = filters or RequestFilters()
        if filters.month is not None:
            if filters.year is None:
                raise ValidationError("month filter requires year")
            require_range(filters.month, "Month", low=1, high=12)
        page, limit = normalize_paging(page, limit)
        rows = self._requests.search(filters, page=page, limit=limit)
        total = self._requests.count(filters)
        cache: dict[int, Optional[str]] = {}
        return build_page([self._details(r, cache) for r in rows], page=page, limit=limit, total=total)

    def summarize(self, *, requester_id: Optional[int] = None) -> RequestsSummary:
        filters = RequestFilters(requester_employee_id=int(requester_id) if requester_id is not None else None)
        counts = self._requests.count_by_status(filters)
        by_status = {s.value: int(counts.get(s.value, 0)) for s in RequestStatus}
        return RequestsSummary(total=sum(by_status.values()), by_status=by_status)
