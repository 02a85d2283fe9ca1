"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

from decimal import Decimal

MAX_HOURS_PER_WEEK = Decimal("168")  # 7 days * 24 hours
REGULAR_HOURS_PER_WEEK = Decimal("40")
HOURS_QUANTUM = Decimal("0.01")  # timesheet_entries.hours is DECIMAL(6,2)

REASON_MIN_LENGTH = 10
REASON_MAX_LENGTH = 500

DEFAULT_PAGE = 1
DEFAULT_PAGE_LIMIT = 20
MAX_PAGE_LIMIT = 100

TIMESHEET_TYPE_CODE = "TIMESHEET_WEEKLY"

SEND_EMAIL_QUEUE = "sendEmail"
NOTIFICATION_EXCHANGE = "hrms.exchange"
NOTIFICATION_ROUTING_KEY = "notification"

DEFAULT_APPROVER_LABEL = "HR Team"
DEFAULT_MANAGER_LABEL = "Manager"

AUTO_APPROVE_ADMIN_COMMENT = "Auto-approved: submitted by an administrator"
AUTO_APPROVE_NO_MANAGER_COMMENT = "Auto-approved: employee has no manager on file"
