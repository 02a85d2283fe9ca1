from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Union

from ..core.enums import RequestCategory
from ..timesheets.model import TimesheetPayload


@dataclass(frozen=True)
class TimeOffPayload:
    attachments: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {"attachments": list(self.attachments)}

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "TimeOffPayload":
        data = data or {}
        return cls(attachments=[str(a) for a in data.get("attachments") or [] if a])


@dataclass(frozen=True)
class ProfilePayload:
    """Requested profile field changes, keyed by field name."""

    fields: dict[str, str] = field(default_factory=dict)
    attachments: list[str] = field(default_factory=list)
    cancellation_comment: Optional[str] = None

    def to_dict(self) -> dict:
        out: dict = {"fields": dict(self.fields), "attachments": list(self.attachments)}
        if self.cancellation_comment:
            out["cancellationComment"] = self.cancellation_comment
        return out

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "ProfilePayload":
        data = data or {}
        return cls(
            fields={str(k): str(v) for k, v in (data.get("fields") or {}).items()},
            attachments=[str(a) for a in data.get("attachments") or [] if a],
            cancellation_comment=data.get("cancellationComment"),
        )


Payload = Union[TimeOffPayload, TimesheetPayload, ProfilePayload]


def parse_payload(category: RequestCategory, raw: Optional[dict]) -> Payload:
    if category is RequestCategory.TIMESHEET:
        return TimesheetPayload.from_dict(raw)
    if category is RequestCategory.TIME_OFF:
        return TimeOffPayload.from_dict(raw)
    if category is RequestCategory.PROFILE:
        return ProfilePayload.from_dict(raw)
    raise ValueError(f"Unsupported category: {category!r}")


def dump_payload(payload: Optional[Payload]) -> Optional[dict]:
    return payload.to_dict() if payload is not None else None
