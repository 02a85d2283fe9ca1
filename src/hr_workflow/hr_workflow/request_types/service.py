from __future__ import annotations

import logging
from typing import Optional

from ..core.enums import RequestCategory
from ..core.exceptions import TypeNotConfiguredError
from .model import RequestTypeInfo, RequestTypeRow
from .repository import RequestTypeRepository

logger = logging.getLogger(__name__)

_DISPLAY_NAMES = {
    "PROFILE_ID_CHANGE": "Profile ID Change",
    "PAID_LEAVE": "Paid Leave",
    "UNPAID_LEAVE": "Unpaid Leave",
    "PAID_SICK_LEAVE": "Paid Sick Leave",
    "UNPAID_SICK_LEAVE": "Unpaid Sick Leave",
    "WFH": "Work From Home",
}


def normalize_code(code: str) -> str:
    return (code or "").strip().upper().replace("-", "_")


def display_name(code: str) -> str:
    """Human-readable name for a business code, e.g. ``PAID_LEAVE`` -> ``Paid Leave``."""
    code = normalize_code(code)
    return _DISPLAY_NAMES.get(code, code.replace("_", " "))


class RequestTypeRegistry:
    """Resolves request-type codes and ids to a category.

    The category string stored in the database is parsed here, once, into
    :class:`RequestCategory`. A miss is a configuration fault; the engine never
    guesses a category.
    """

    def __init__(self, types: RequestTypeRepository):
        self._types = types

    @staticmethod
    def _to_info(row: Optional[RequestTypeRow], key: object) -> RequestTypeInfo:
        if row is None:
            raise TypeNotConfiguredError(f"Request type {key!r} is not configured")
        try:
            category = RequestCategory((row.category or "").strip().lower())
        except ValueError:
            raise TypeNotConfiguredError(f"Request type {row.code!r} has unknown category {row.category!r}")
        return RequestTypeInfo(
            request_type_id=row.request_type_id,
            code=normalize_code(row.code),
            name=row.name,
            category=category,
            requires_approval=row.requires_approval,
        )

    def resolve_code(self, code: str) -> RequestTypeInfo:
        normalized = normalize_code(code)
        return self._to_info(self._types.get_by_code(normalized), normalized)

    def resolve_id(self, request_type_id: int) -> RequestTypeInfo:
        return self._to_info(self._types.get_by_id(int(request_type_id)), request_type_id)

    def list_active(self) -> list[dict]:
        out: list[dict] = []
        for row in self._types.list_active():
            try:
                info = self._to_info(row, row.code)
            except TypeNotConfiguredError:
                logger.warning("Skipping misconfigured request type %s (category %r)", row.code, row.category)
                continue
            out.append(
                {
                    "id": info.request_type_id,
                    "code": info.code,
                    "name": info.name,
                    "category": info.category.value,
                    "requiresApproval": info.requires_approval,
                }
            )
        return out
