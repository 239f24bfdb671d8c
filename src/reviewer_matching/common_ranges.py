from __future__ import annotations

from datetime import date, timedelta
from typing import Iterable

from .models import AvailabilityType, CommonRange, DateRange, ReviewerProfile

COMMON_TYPES = frozenset({AvailabilityType.AVAILABLE, AvailabilityType.TENTATIVE})


def available_days(reviewer: ReviewerProfile, period: DateRange) -> set[date]:
    days: set[date] = set()
    blocked: set[date] = set()
    for slot in reviewer.availability:
        if not slot.period.overlaps(period):
            continue
        clipped = DateRange(max(slot.start, period.start), min(slot.end, period.end))
        if slot.availability_type is AvailabilityType.ON_ASSIGNMENT:
            blocked.update(clipped.iter_days())
        elif slot.availability_type in COMMON_TYPES:
            days.update(clipped.iter_days())
    return days - blocked


def merge_days(days: Iterable[date]) -> list[DateRange]:
    ranges: list[DateRange] = []
    run_start: date | None = None
    run_end: date | None = None
    for day in sorted(days):
        if run_end is not None and day - run_end == timedelta(days=1):
            run_end = day
            continue
        if run_start is not None and run_end is not None:
            ranges.append(DateRange(run_start, run_end))
        run_start = run_end = day
    if run_start is not None and run_end is not None:
        ranges.append(DateRange(run_start, run_end))
    return ranges


def find_common_ranges(
    reviewers: Iterable[ReviewerProfile],
    start: date,
    end: date,
    min_days: int,
) -> list[CommonRange]:
    if min_days < 1:
        raise ValueError("min_days must be at least 1")
    period = DateRange(start, end)
    day_sets = [available_days(reviewer, period) for reviewer in reviewers]
    if not day_sets:
        return []

    common = set.intersection(*day_sets)
    return [
        CommonRange(start=item.start, end=item.end, days=item.days)
        for item in merge_days(common)
        if item.days >= min_days
    ]
