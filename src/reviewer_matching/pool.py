from __future__ import annotations

from datetime import date
from typing import Iterable, Iterator

from . import availability as availability_calc
from .coi import check_conflict
from .common_ranges import find_common_ranges
from .config import MAX_SELECTED_REVIEWERS
from .errors import ReviewerNotFound
from .models import (
    AvailabilityPeriod,
    CommonRange,
    ConflictResult,
    CoverageResult,
    DateRange,
    ReviewerProfile,
    SelectionStatus,
)
from .selection import transition_status


class ReviewerPool:
    """Reviewer profiles keyed by id.

    Profiles never point at each other or at reviews; anything that takes a
    reviewer id resolves it here. Mutating operations swap in a new immutable
    profile under the same id.
    """

    def __init__(
        self,
        reviewers: Iterable[ReviewerProfile] = (),
        *,
        max_selected: int = MAX_SELECTED_REVIEWERS,
    ) -> None:
        self._reviewers: dict[str, ReviewerProfile] = {}
        self.max_selected = max_selected
        for reviewer in reviewers:
            if reviewer.id in self._reviewers:
                raise ValueError(f"Duplicate reviewer id {reviewer.id}")
            self._reviewers[reviewer.id] = reviewer

    def __len__(self) -> int:
        return len(self._reviewers)

    def __iter__(self) -> Iterator[ReviewerProfile]:
        return iter(self._reviewers.values())

    def __contains__(self, reviewer_id: object) -> bool:
        return reviewer_id in self._reviewers

    def get(self, reviewer_id: str) -> ReviewerProfile:
        try:
            return self._reviewers[reviewer_id]
        except KeyError:
            raise ReviewerNotFound(reviewer_id) from None

    def resolve(self, reviewer_ids: Iterable[str]) -> list[ReviewerProfile]:
        return [self.get(reviewer_id) for reviewer_id in reviewer_ids]

    def selected_count(self) -> int:
        return sum(
            1
            for reviewer in self._reviewers.values()
            if reviewer.selection_status is SelectionStatus.SELECTED
        )

    def check_conflict(
        self,
        reviewer_id: str,
        organization_id: str,
        as_of: date | None = None,
    ) -> ConflictResult:
        return check_conflict(self.get(reviewer_id), organization_id, as_of)

    def coverage(self, reviewer_id: str, period: DateRange) -> CoverageResult:
        return availability_calc.coverage(self.get(reviewer_id), period.start, period.end)

    def find_common_ranges(
        self,
        reviewer_ids: Iterable[str],
        period: DateRange,
        min_days: int,
    ) -> list[CommonRange]:
        return find_common_ranges(self.resolve(reviewer_ids), period.start, period.end, min_days)

    def apply_transition(self, reviewer_id: str, requested: SelectionStatus) -> ReviewerProfile:
        updated = transition_status(
            self.get(reviewer_id),
            requested,
            self.selected_count(),
            max_selected=self.max_selected,
        )
        self._reviewers[reviewer_id] = updated
        return updated

    def add_availability(self, reviewer_id: str, period: AvailabilityPeriod) -> ReviewerProfile:
        updated = availability_calc.add_period(self.get(reviewer_id), period)
        self._reviewers[reviewer_id] = updated
        return updated

    def block_for_review(
        self,
        reviewer_id: str,
        review_id: str,
        period: DateRange,
    ) -> ReviewerProfile:
        updated = availability_calc.block_for_review(self.get(reviewer_id), review_id, period)
        self._reviewers[reviewer_id] = updated
        return updated

    def unblock_for_review(self, reviewer_id: str, review_id: str) -> ReviewerProfile:
        updated = availability_calc.unblock_for_review(self.get(reviewer_id), review_id)
        self._reviewers[reviewer_id] = updated
        return updated
