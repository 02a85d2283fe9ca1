from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import RequestStatus
from .model import NewRequest, Request, RequestFilters


class RequestRepository(Protocol):
    """Durable store for every request type.

    Note (DIP): services depend on this interface; the MySQL implementation is wired in the container.
    """

    def create(self, new: NewRequest) -> int:
        raise NotImplementedError

    def get_by_id(self, request_id: int) -> Optional[Request]:
        raise NotImplementedError

    def update_status(
        self,
        *,
        request_id: int,
        expected_status: RequestStatus,
        status: RequestStatus,
        updated_at: datetime,
        approver_employee_id: Optional[int] = None,
        approval_comment: Optional[str] = None,
        rejection_reason: Optional[str] = None,
        payload: Optional[dict] = None,
    ) -> bool:
        """Conditional transition: applies only while the row still has ``expected_status``.

        ``approver_employee_id``/``approval_comment``/``rejection_reason``/``payload`` are
        written only when not None. Returns False if no row matched.
        """

        raise NotImplementedError

    def update_pending(
        self,
        *,
        request_id: int,
        reason: str,
        effective_from: Optional[date],
        effective_to: Optional[date],
        payload: Optional[dict],
        updated_at: datetime,
    ) -> bool:
        raise NotImplementedError

    def search(self, filters: RequestFilters, *, page: int, limit: int) -> Sequence[Request]:
        raise NotImplementedError

    def count(self, filters: RequestFilters) -> int:
        raise NotImplementedError

    def count_by_status(self, filters: RequestFilters) -> dict[str, int]:
        raise NotImplementedError
