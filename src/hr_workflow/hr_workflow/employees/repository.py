from __future__ import annotations

from typing import Optional, Protocol

from .model import Employee


class EmployeeDirectory(Protocol):
    """Read-only lookup of employee identity, manager chain and contact addresses."""

    def get_by_id(self, employee_id: int) -> Optional[Employee]:
        raise NotImplementedError
