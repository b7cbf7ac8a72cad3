# finvue/recurring.py
from __future__ import annotations

import logging
from calendar import monthrange
from dataclasses import dataclass, field, replace
from datetime import date, timedelta
from typing import Callable, Dict, Iterable, List

from finvue.core.models import (
    PULSE_MARKER,
    PulseFrequency,
    RecurringPulse,
    Transaction,
    new_id,
    parse_date,
)

logger = logging.getLogger(__name__)


def _add_months(original_date: date, months: int) -> date:
    month_index = original_date.month - 1 + months
    year = original_date.year + month_index // 12
    month = month_index % 12 + 1
    day = min(original_date.day, monthrange(year, month)[1])
    return date(year, month, day)


def _add_years(original_date: date, years: int) -> date:
    return _add_months(original_date, 12 * years)


# Monthly and yearly steps clamp to the last day of shorter months.
ADVANCE: Dict[PulseFrequency, Callable[[date], date]] = {
    PulseFrequency.DAILY: lambda d: d + timedelta(days=1),
    PulseFrequency.WEEKLY: lambda d: d + timedelta(weeks=1),
    PulseFrequency.MONTHLY: lambda d: _add_months(d, 1),
    PulseFrequency.YEARLY: lambda d: _add_years(d, 1),
}


def next_date(current_date: date, frequency) -> date:
    """Advance ``current_date`` by one period of ``frequency``."""
    try:
        step = ADVANCE[PulseFrequency(frequency)]
    except (KeyError, ValueError):
        raise ValueError(f"Unsupported pulse frequency '{frequency}'.") from None
    return step(current_date)


@dataclass
class SyncResult:
    materialized: List[Transaction] = field(default_factory=list)
    updated_pulses: List[RecurringPulse] = field(default_factory=list)

    @property
    def modified(self) -> bool:
        return bool(self.materialized)


def _materialize(pulse: RecurringPulse, on: date) -> Transaction:
    return Transaction(
        id=new_id("pulse"),
        date=on,
        description=f"{PULSE_MARKER}{pulse.description}",
        amount=pulse.amount,
        category=pulse.category,
        type=pulse.type,
        currency_code=pulse.currency_code,
    )


def _catch_up(pulse: RecurringPulse, today: date) -> tuple[List[Transaction], RecurringPulse]:
    current = parse_date(pulse.next_pulse_date)
    emitted = []
    while current <= today:
        emitted.append(_materialize(pulse, current))
        current = next_date(current, pulse.frequency)
    if not emitted:
        return emitted, pulse
    return emitted, replace(pulse, next_pulse_date=current)


def synchronize(pulses: Iterable[RecurringPulse], today) -> SyncResult:
    """Materialize every elapsed period of every pulse up to ``today``.

    Parameters
    ----------
    pulses:
        Recurring definitions as currently stored.
    today:
        The reference date. A pulse due exactly on ``today`` fires in this
        pass.

    Returns a :class:`SyncResult` whose ``updated_pulses`` all have a
    ``next_pulse_date`` strictly after ``today``. Running it again with the
    same ``today`` against the updated pulses materializes nothing.
    """
    today = parse_date(today)
    result = SyncResult()
    for pulse in pulses or []:
        emitted, updated = _catch_up(pulse, today)
        if emitted:
            logger.debug(
                "Pulse %s materialized %d transaction(s); next due %s",
                pulse.id, len(emitted), updated.next_pulse_date,
            )
        result.materialized.extend(emitted)
        result.updated_pulses.append(updated)
    return result
