from __future__ import annotations

import logging
from typing import Optional

from ..common.datetime_utils import human_date, inclusive_days
from ..core.constants import (
    DEFAULT_APPROVER_LABEL,
    DEFAULT_MANAGER_LABEL,
    NOTIFICATION_EXCHANGE,
    NOTIFICATION_ROUTING_KEY,
    SEND_EMAIL_QUEUE,
)
from ..core.enums import RequestCategory
from ..employees.model import Employee
from ..employees.repository import EmployeeDirectory
from ..request_types.model import RequestTypeInfo
from ..request_types.service import RequestTypeRegistry, display_name
from ..requests.model import Request
from ..timesheets.model import TimesheetPayload
from .best_effort import best_effort
from .email_templates import EmailTemplateRenderer
from .model import NotificationEvent, RequestEmailData, SendEmailEvent
from .publisher import Publisher

logger = logging.getLogger(__name__)


class NotificationDispatcher:
    """Turns request transitions into email / in-app events on the broker.

    Every public entry point is best-effort: it can never fail the transition
    that invoked it.
    """

    def __init__(
        self,
        publisher: Publisher,
        registry: RequestTypeRegistry,
        employees: EmployeeDirectory,
        renderer: Optional[EmailTemplateRenderer] = None,
        *,
        exchange: str = NOTIFICATION_EXCHANGE,
    ):
        self._publisher = publisher
        self._registry = registry
        self._employees = employees
        self._renderer = renderer or EmailTemplateRenderer()
        self._exchange = exchange

    @best_effort("send approval notification")
    def notify_approval(self, request: Request, comment: Optional[str] = None) -> None:
        info = self._registry.resolve_id(request.request_type_id)
        if info.category is RequestCategory.TIMESHEET:
            return
        elif info.category is RequestCategory.TIME_OFF:
            self._notify_time_off_approved(request, info, comment)
        elif info.category is not RequestCategory.PROFILE:
            return

        requester = self._requester_with_email(request, "approval")
        if requester is None:
            return

        data = self._email_data(info, request, requester, comment=comment)
        self._send_email(
            request,
            to=requester.personal_email,
            subject=f"Your {data.request_type} Request Has Been Approved",
            html=self._renderer.render_approval(data),
        )

    @best_effort("send rejection notification")
    def notify_rejection(self, request: Request, reason: str) -> None:
        info = self._registry.resolve_id(request.request_type_id)
        if info.category is RequestCategory.TIMESHEET:
            return

        requester = self._requester_with_email(request, "rejection")
        if requester is None:
            return

        data = self._email_data(info, request, requester, rejection_reason=reason)
        self._send_email(
            request,
            to=requester.personal_email,
            subject=f"Your {data.request_type} Request Has Been Rejected",
            html=self._renderer.render_rejection(data),
        )

    @best_effort("notify approver of timesheet submission")
    def notify_timesheet_submitted(self, request: Request, requester: Employee) -> None:
        if request.approver_employee_id is None:
            return
        payload = TimesheetPayload.from_dict(request.payload)
        event = NotificationEvent(
            emp_id=int(request.approver_employee_id),
            title="New Timesheet Submitted",
            message=(
                f"{requester.full_name} submitted a timesheet for week {payload.week_number}, "
                f"{payload.period_month}/{payload.period_year} "
                f"({payload.summary.total_hours} hours) and it is waiting for your approval."
            ),
            type="info",
        )
        self._publisher.publish(event.to_dict(), NOTIFICATION_ROUTING_KEY, exchange=self._exchange)
        logger.info(
            "Published timesheet submission notification to approver %s",
            request.approver_employee_id,
            extra={"request_id": request.request_id},
        )

    @best_effort("send time-off approval notification")
    def _notify_time_off_approved(self, request: Request, info: RequestTypeInfo, comment: Optional[str]) -> None:
        requester = self._employees.get_by_id(request.requester_employee_id)
        if requester is None:
            return

        type_name = display_name(info.code)
        approver_name = self._approver_name(request, DEFAULT_MANAGER_LABEL)
        if request.effective_from and request.effective_to:
            days = inclusive_days(request.effective_from, request.effective_to)
            message = (
                f"Your {type_name.lower()} request from {human_date(request.effective_from)} "
                f"to {human_date(request.effective_to)} ({days} day{'s' if days != 1 else ''}) "
                f"has been approved by {approver_name}."
            )
        else:
            message = f"Your {type_name.lower()} request has been approved by {approver_name}."
        if comment and comment.strip():
            message += f" Comment: {comment}"

        event = NotificationEvent(
            emp_id=requester.employee_id,
            title=f"{type_name} Request Approved",
            message=message,
            type="success",
        )
        self._publisher.publish(event.to_dict(), NOTIFICATION_ROUTING_KEY, exchange=self._exchange)
        logger.info(
            "Published time-off approval notification to employee %s",
            requester.employee_id,
            extra={"request_id": request.request_id},
        )

    def _requester_with_email(self, request: Request, kind: str) -> Optional[Employee]:
        requester = self._employees.get_by_id(request.requester_employee_id)
        if requester is None or not (requester.personal_email or "").strip():
            logger.warning(
                "Cannot send %s email: requester not found or personal email missing for request %s",
                kind,
                request.request_id,
                extra={"request_id": request.request_id},
            )
            return None
        return requester

    def _approver_name(self, request: Request, default: str) -> str:
        if request.approver_employee_id is None:
            return default
        approver = self._employees.get_by_id(request.approver_employee_id)
        return approver.full_name if approver else default

    def _email_data(
        self,
        info: RequestTypeInfo,
        request: Request,
        requester: Employee,
        *,
        comment: Optional[str] = None,
        rejection_reason: Optional[str] = None,
    ) -> RequestEmailData:
        start_date = end_date = None
        duration = None
        if info.category is RequestCategory.TIME_OFF and request.effective_from and request.effective_to:
            start_date = human_date(request.effective_from)
            end_date = human_date(request.effective_to)
            duration = inclusive_days(request.effective_from, request.effective_to)

        return RequestEmailData(
            employee_name=requester.full_name,
            request_type=display_name(info.code),
            request_id=str(request.request_id),
            approver_name=self._approver_name(request, DEFAULT_APPROVER_LABEL),
            start_date=start_date,
            end_date=end_date,
            duration=duration,
            comment=comment,
            rejection_reason=rejection_reason,
        )

    def _send_email(self, request: Request, *, to: str, subject: str, html: str) -> None:
        event = SendEmailEvent(email_to_send=to, subject=subject, html_content=html)
        self._publisher.publish(event.to_dict(), SEND_EMAIL_QUEUE)
        logger.info(
            "Published email event for request %s",
            request.request_id,
            extra={"request_id": request.request_id},
        )
