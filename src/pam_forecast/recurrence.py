"""Expansion of recurring expense series into concrete occurrence dates."""

from __future__ import annotations

from datetime import date, timedelta

import structlog

from pam_forecast.models import RecurrenceInterval
from pam_forecast.periods import add_months

logger = structlog.get_logger(__name__)

DEFAULT_MAX_ITERATIONS = 1000

_FIXED_STEPS: dict[RecurrenceInterval, timedelta] = {
    RecurrenceInterval.WEEKLY: timedelta(days=7),
    RecurrenceInterval.BIWEEKLY: timedelta(days=14),
}


def expand(
    seed: date,
    interval: RecurrenceInterval | None,
    recurrence_end: date | None,
    window_start: date,
    window_end: date,
    max_iterations: int = DEFAULT_MAX_ITERATIONS,
) -> list[date]:
    """Return the occurrences of a series that fall inside the window.

    The cursor starts at ``seed`` and advances one interval at a time until it
    passes ``min(recurrence_end or window_end, window_end)``. Monthly steps
    keep the seed's day of month (clamped in short months). Without a usable
    interval only the seed itself can be emitted. Hitting ``max_iterations``
    stops the walk and returns what was collected so far.
    """
    stop = min(recurrence_end or window_end, window_end)
    occurrences: list[date] = []
    cursor = seed
    steps = 0

    while cursor <= stop:
        if steps >= max_iterations:
            logger.warning(
                "recurrence_iteration_cap_reached",
                seed=seed.isoformat(),
                interval=interval.value if interval else None,
                max_iterations=max_iterations,
            )
            break
        steps += 1

        if cursor >= window_start:
            occurrences.append(cursor)

        if interval is None:
            break
        if interval == RecurrenceInterval.MONTHLY:
            # Step from the seed so a 31st never drifts to the 28th for good
            cursor = add_months(seed, steps)
        else:
            cursor = cursor + _FIXED_STEPS[interval]

    return occurrences
