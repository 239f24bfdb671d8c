from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import date
from typing import Iterable

from .errors import OverlapConflict
from .models import (
    AvailabilityPeriod,
    AvailabilityType,
    CoverageResult,
    DateRange,
    ReviewerProfile,
)

logger = logging.getLogger(__name__)

# When periods of different types overlap on the same day, the first type
# listed here decides how the day is counted in statistics.
DAY_PRECEDENCE = (
    AvailabilityType.ON_ASSIGNMENT,
    AvailabilityType.UNAVAILABLE,
    AvailabilityType.AVAILABLE,
    AvailabilityType.TENTATIVE,
)

TENTATIVE_WEIGHT = 0.5


@dataclass(frozen=True)
class AvailabilityStats:
    total_days: int
    available_days: int
    tentative_days: int
    unavailable_days: int
    on_assignment_days: int
    availability_rate: float
    next_available: DateRange | None


def _periods_of_type(
    periods: Iterable[AvailabilityPeriod],
    period: DateRange,
    availability_type: AvailabilityType,
) -> list[AvailabilityPeriod]:
    return [
        slot
        for slot in periods
        if slot.availability_type is availability_type and slot.period.overlaps(period)
    ]


def _gaps(days: Iterable[tuple[date, bool]]) -> list[DateRange]:
    gaps: list[DateRange] = []
    gap_start: date | None = None
    previous: date | None = None
    for day, covered in days:
        if not covered and gap_start is None:
            gap_start = day
        elif covered and gap_start is not None:
            gaps.append(DateRange(gap_start, previous))
            gap_start = None
        previous = day
    if gap_start is not None and previous is not None:
        gaps.append(DateRange(gap_start, previous))
    return gaps


def coverage(reviewer: ReviewerProfile, start: date, end: date) -> CoverageResult:
    period = DateRange(start, end)
    available = _periods_of_type(reviewer.availability, period, AvailabilityType.AVAILABLE)
    tentative = _periods_of_type(reviewer.availability, period, AvailabilityType.TENTATIVE)
    blocked = _periods_of_type(reviewer.availability, period, AvailabilityType.ON_ASSIGNMENT)

    covered_days = 0
    tentative_days = 0
    day_flags: list[tuple[date, bool]] = []
    for day in period.iter_days():
        # Assignment blocks win over any declared availability on the same day.
        is_blocked = any(slot.period.contains(day) for slot in blocked)
        covered = not is_blocked and any(slot.period.contains(day) for slot in available)
        if covered:
            covered_days += 1
        elif not is_blocked and any(slot.period.contains(day) for slot in tentative):
            tentative_days += 1
        day_flags.append((day, covered))

    total_days = period.days
    ratio = covered_days / total_days
    weighted = (covered_days + tentative_days * TENTATIVE_WEIGHT) / total_days
    return CoverageResult(
        fully_covered=covered_days == total_days,
        ratio=ratio,
        gaps=tuple(_gaps(day_flags)),
        covered_days=covered_days,
        total_days=total_days,
        tentative_days=tentative_days,
        weighted_ratio=weighted,
    )


def has_full_period(reviewer: ReviewerProfile, period: DateRange) -> bool:
    if _periods_of_type(reviewer.availability, period, AvailabilityType.ON_ASSIGNMENT):
        return False
    return any(
        slot.availability_type is AvailabilityType.AVAILABLE and slot.period.spans(period)
        for slot in reviewer.availability
    )


def availability_stats(reviewer: ReviewerProfile, period: DateRange) -> AvailabilityStats:
    counts = {availability_type: 0 for availability_type in AvailabilityType}
    slots = [slot for slot in reviewer.availability if slot.period.overlaps(period)]
    no_slot_days = 0
    for day in period.iter_days():
        types_today = {slot.availability_type for slot in slots if slot.period.contains(day)}
        if not types_today:
            no_slot_days += 1
            continue
        winner = next(item for item in DAY_PRECEDENCE if item in types_today)
        counts[winner] += 1

    available_days = counts[AvailabilityType.AVAILABLE]
    tentative_days = counts[AvailabilityType.TENTATIVE]
    rate = (available_days + tentative_days * TENTATIVE_WEIGHT) / period.days

    upcoming = sorted(
        (
            slot
            for slot in reviewer.availability
            if slot.availability_type is AvailabilityType.AVAILABLE and slot.end >= period.start
        ),
        key=lambda slot: slot.start,
    )
    next_available = upcoming[0].period if upcoming else None

    return AvailabilityStats(
        total_days=period.days,
        available_days=available_days,
        tentative_days=tentative_days,
        unavailable_days=counts[AvailabilityType.UNAVAILABLE] + no_slot_days,
        on_assignment_days=counts[AvailabilityType.ON_ASSIGNMENT],
        availability_rate=round(rate, 4),
        next_available=next_available,
    )


def check_new_period(
    reviewer_id: str,
    existing: Iterable[AvailabilityPeriod],
    new_period: AvailabilityPeriod,
) -> None:
    if new_period.availability_type is AvailabilityType.ON_ASSIGNMENT:
        raise ValueError("Assignment blocks are created with block_for_review")
    for slot in existing:
        if (
            slot.availability_type is AvailabilityType.ON_ASSIGNMENT
            and slot.period.overlaps(new_period.period)
        ):
            raise OverlapConflict(reviewer_id, slot.start, slot.end)


def add_period(reviewer: ReviewerProfile, new_period: AvailabilityPeriod) -> ReviewerProfile:
    check_new_period(reviewer.id, reviewer.availability, new_period)
    return replace(reviewer, availability=reviewer.availability + (new_period,))


def block_for_review(
    reviewer: ReviewerProfile,
    review_id: str,
    period: DateRange,
) -> ReviewerProfile:
    kept: list[AvailabilityPeriod] = []
    for slot in reviewer.availability:
        if slot.availability_type is not AvailabilityType.ON_ASSIGNMENT:
            kept.append(slot)
            continue
        if slot.review_id == review_id:
            # Re-blocking the same review moves the existing block.
            continue
        if slot.period.overlaps(period):
            raise OverlapConflict(reviewer.id, slot.start, slot.end)
        kept.append(slot)

    block = AvailabilityPeriod(
        start=period.start,
        end=period.end,
        availability_type=AvailabilityType.ON_ASSIGNMENT,
        review_id=review_id,
    )
    logger.debug("Blocking %s for review %s (%s..%s)", reviewer.id, review_id, period.start, period.end)
    return replace(reviewer, availability=tuple(kept) + (block,))


def unblock_for_review(reviewer: ReviewerProfile, review_id: str) -> ReviewerProfile:
    kept = tuple(
        slot
        for slot in reviewer.availability
        if not (
            slot.availability_type is AvailabilityType.ON_ASSIGNMENT
            and slot.review_id == review_id
        )
    )
    return replace(reviewer, availability=kept)
