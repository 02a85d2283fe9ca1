from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..core.enums import RequestCategory


@dataclass(frozen=True)
class RequestTypeRow:
    """Raw registry row as stored; ``category`` is still the stored string."""

    request_type_id: int
    code: str
    name: str
    category: str
    description: Optional[str] = None
    is_active: bool = True
    requires_approval: bool = True


@dataclass(frozen=True)
class RequestTypeInfo:
    """Resolved registry entry with its category parsed into the closed enum."""

    request_type_id: int
    code: str
    name: str
    category: RequestCategory
    requires_approval: bool = True
