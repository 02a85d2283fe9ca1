from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Employee:
    """Read-only view of an employee as supplied by the directory.

    Note: The workflow engine never mutates employees.
    """

    employee_id: int
    full_name: str
    manager_id: Optional[int]
    email: Optional[str] = None
    personal_email: Optional[str] = None
    department_name: Optional[str] = None
