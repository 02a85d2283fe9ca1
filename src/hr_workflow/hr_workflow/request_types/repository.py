from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import RequestTypeRow


class RequestTypeRepository(Protocol):
    def get_by_code(self, code: str) -> Optional[RequestTypeRow]:
        raise NotImplementedError

    def get_by_id(self, request_type_id: int) -> Optional[RequestTypeRow]:
        raise NotImplementedError

    def list_active(self) -> Sequence[RequestTypeRow]:
        raise NotImplementedError
