from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class NotificationEvent:
    """In-app notification consumed by the notification service."""

    emp_id: int
    title: str
    message: str
    type: Optional[str] = "info"  # info | warning | success | error

    def to_dict(self) -> dict:
        return {"empId": self.emp_id, "title": self.title, "message": self.message, "type": self.type}


@dataclass(frozen=True)
class SendEmailEvent:
    email_to_send: str
    subject: str
    html_content: str

    def to_dict(self) -> dict:
        return {"emailToSend": self.email_to_send, "subject": self.subject, "htmlContent": self.html_content}


@dataclass(frozen=True)
class RequestEmailData:
    """Structured input of the request approval/rejection email templates."""

    employee_name: str
    request_type: str
    request_id: str
    approver_name: str
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    duration: Optional[int] = None
    comment: Optional[str] = None
    rejection_reason: Optional[str] = None
