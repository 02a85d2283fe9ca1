from __future__ import annotations

from decimal import Decimal
from typing import Iterable

from ..core.constants import REGULAR_HOURS_PER_WEEK
from ..core.enums import EntryType
from .model import EntryInput, TimesheetSummary


def total_hours(entries: Iterable[EntryInput]) -> Decimal:
    return sum((e.hours for e in entries), Decimal("0"))


def compute_summary(entries: Iterable[EntryInput]) -> TimesheetSummary:
    """Split a week's entries into regular, overtime and leave hours.

    Only project hours count toward the regular/overtime split; leave hours are
    reported separately but included in the total.
    """
    project = Decimal("0")
    leave = Decimal("0")
    for e in entries:
        if e.entry_type == EntryType.LEAVE:
            leave += e.hours
        else:
            project += e.hours

    return TimesheetSummary(
        total_hours=project + leave,
        regular_hours=min(project, REGULAR_HOURS_PER_WEEK),
        overtime_hours=max(Decimal("0"), project - REGULAR_HOURS_PER_WEEK),
        leave_hours=leave,
    )
