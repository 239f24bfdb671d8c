from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from .availability import AvailabilityStats, availability_stats
from .models import DateRange, ReviewerProfile, ReviewTarget, SelectionStatus


@dataclass(frozen=True)
class ReviewerAvailability:
    reviewer_id: str
    reviewer: str
    stats: AvailabilityStats


@dataclass(frozen=True)
class AvailabilitySummary:
    period: DateRange
    reviewer_count: int
    avg_availability_rate: float
    fully_booked: int
    bucket_counts: dict[str, int]
    reviewer_stats: list[ReviewerAvailability]


@dataclass(frozen=True)
class ExpertiseCapacity:
    area: str
    demand_count: int
    reviewer_count: int
    lead_count: int
    coverage_ratio: float | None


def bucket_rate(rate: float) -> str:
    if rate < 0.25:
        return "0-24%"
    if rate < 0.5:
        return "25-49%"
    if rate < 0.75:
        return "50-74%"
    return "75%+"


def build_availability_summary(
    reviewers: Iterable[ReviewerProfile],
    period: DateRange,
    *,
    selected_only: bool = True,
) -> AvailabilitySummary:
    bucket_counts = {"0-24%": 0, "25-49%": 0, "50-74%": 0, "75%+": 0}
    reviewer_stats: list[ReviewerAvailability] = []
    rates: list[float] = []
    fully_booked = 0

    for reviewer in reviewers:
        if selected_only and reviewer.selection_status is not SelectionStatus.SELECTED:
            continue
        stats = availability_stats(reviewer, period)
        rates.append(stats.availability_rate)
        bucket_counts[bucket_rate(stats.availability_rate)] += 1
        if stats.on_assignment_days == stats.total_days:
            fully_booked += 1
        reviewer_stats.append(
            ReviewerAvailability(reviewer_id=reviewer.id, reviewer=reviewer.name, stats=stats)
        )

    total = len(rates)
    avg_rate = sum(rates) / total if total else 0.0
    reviewer_stats.sort(key=lambda item: (-item.stats.availability_rate, item.reviewer))

    return AvailabilitySummary(
        period=period,
        reviewer_count=total,
        avg_availability_rate=round(avg_rate, 4),
        fully_booked=fully_booked,
        bucket_counts=bucket_counts,
        reviewer_stats=reviewer_stats,
    )


def build_expertise_capacity_report(
    reviewers: Iterable[ReviewerProfile],
    reviews: Iterable[ReviewTarget],
) -> list[ExpertiseCapacity]:
    demand_counts: dict[str, int] = {}
    for review in reviews:
        for area in dict.fromkeys(review.required_expertise):
            demand_counts[area.value] = demand_counts.get(area.value, 0) + 1

    reviewer_state: dict[str, dict[str, int]] = {}
    for reviewer in reviewers:
        if reviewer.selection_status is not SelectionStatus.SELECTED:
            continue
        for area in reviewer.expertise_areas:
            state = reviewer_state.setdefault(area.value, {"reviewers": 0, "leads": 0})
            state["reviewers"] += 1
            if reviewer.is_lead_qualified:
                state["leads"] += 1

    report: list[ExpertiseCapacity] = []
    for area in set(demand_counts) | set(reviewer_state):
        demand = demand_counts.get(area, 0)
        state = reviewer_state.get(area, {"reviewers": 0, "leads": 0})
        coverage_ratio = None
        if demand > 0:
            coverage_ratio = state["reviewers"] / demand
        report.append(
            ExpertiseCapacity(
                area=area,
                demand_count=demand,
                reviewer_count=state["reviewers"],
                lead_count=state["leads"],
                coverage_ratio=coverage_ratio,
            )
        )

    report.sort(
        key=lambda item: (
            item.demand_count == 0,
            float("inf") if item.coverage_ratio is None else item.coverage_ratio,
            -item.demand_count,
            item.area,
        )
    )
    return report
