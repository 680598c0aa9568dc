from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from timeclock.models import PunchKind
from timeclock.services.normalizer import PunchEvent, event_sort_key


@dataclass(frozen=True)
class ClockActionCheck:
    valid: bool
    reason: str | None = None


def validate_clock_action(current_events: Sequence[PunchEvent], action: PunchKind) -> ClockActionCheck:
    """Check whether ``action`` may follow the worker's punches so far today."""
    if not current_events:
        if action is PunchKind.CLOCK_IN:
            return ClockActionCheck(valid=True)
        return ClockActionCheck(valid=False, reason="Must clock in first")

    last_kind = max(current_events, key=event_sort_key).kind

    if action is PunchKind.CLOCK_IN:
        if last_kind is PunchKind.CLOCK_OUT:
            return ClockActionCheck(valid=True)
        return ClockActionCheck(valid=False, reason="Already clocked in")

    if action is PunchKind.CLOCK_OUT:
        if last_kind in (PunchKind.CLOCK_IN, PunchKind.BREAK_END):
            return ClockActionCheck(valid=True)
        if last_kind is PunchKind.BREAK_START:
            return ClockActionCheck(valid=False, reason="Must end break before clocking out")
        return ClockActionCheck(valid=False, reason="Not clocked in")

    if action is PunchKind.BREAK_START:
        if last_kind in (PunchKind.CLOCK_IN, PunchKind.BREAK_END):
            return ClockActionCheck(valid=True)
        return ClockActionCheck(valid=False, reason="Must clock in first or end current break")

    if last_kind is PunchKind.BREAK_START:
        return ClockActionCheck(valid=True)
    return ClockActionCheck(valid=False, reason="No break to end")
