from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """Caller role carried by the authenticated identity."""

    ADMIN = "admin"
    MANAGER = "manager"
    EMPLOYEE = "employee"


class RequestStatus(str, Enum):
    """Approval lifecycle status shared by every request category."""

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"


class RequestCategory(str, Enum):
    """Coarse grouping of request types; selects validation and notification behaviour."""

    TIME_OFF = "time-off"
    TIMESHEET = "timesheet"
    PROFILE = "profile"


class EntryType(str, Enum):
    PROJECT = "project"
    LEAVE = "leave"
