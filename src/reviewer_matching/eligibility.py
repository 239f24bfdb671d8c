from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Iterable

from .availability import has_full_period
from .coi import check_conflict
from .errors import HardConstraintViolation, ReviewerNotFound
from .models import ConflictResult, MatchingCriteria, ReviewerProfile, SelectionStatus


@dataclass(frozen=True)
class EligibilityDecision:
    reviewer_id: str
    is_eligible: bool
    conflict: ConflictResult
    reason: str | None = None
    is_hard_failure: bool = False


def _is_self_review(reviewer: ReviewerProfile, criteria: MatchingCriteria) -> bool:
    return reviewer.home_organization_id == criteria.target_organization_id


def _violates_team_affiliation(reviewer: ReviewerProfile, criteria: MatchingCriteria) -> bool:
    if criteria.host_team_id is None or criteria.include_cross_team:
        return False
    return reviewer.team_id != criteria.host_team_id


def assess_eligibility(
    reviewer: ReviewerProfile,
    criteria: MatchingCriteria,
    as_of: date | None = None,
    *,
    must_include: bool = False,
) -> EligibilityDecision:
    # Conflicts are judged as they stand when the review starts.
    conflict = check_conflict(
        reviewer, criteria.target_organization_id, as_of or criteria.period.start
    )

    def rejected(reason: str, hard: bool = False) -> EligibilityDecision:
        return EligibilityDecision(
            reviewer_id=reviewer.id,
            is_eligible=False,
            conflict=conflict,
            reason=reason,
            is_hard_failure=hard,
        )

    if _is_self_review(reviewer, criteria):
        return rejected("Cannot review own organization", hard=True)
    if conflict.is_hard_block:
        return rejected(f"Hard conflict of interest: {conflict.reason}", hard=True)
    if reviewer.selection_status is not SelectionStatus.SELECTED:
        return rejected(f"Selection status is {reviewer.selection_status.value}", hard=True)
    if _violates_team_affiliation(reviewer, criteria):
        return rejected("Different team - requires cross-team approval", hard=True)
    if reviewer.id in criteria.exclude_ids:
        return rejected("Excluded from this review")

    if not must_include:
        if criteria.check_availability_flag and not reviewer.is_available:
            return rejected("Marked as unavailable")
        if criteria.require_lead_qualified and not reviewer.is_lead_qualified:
            return rejected("Not lead-qualified")
        if criteria.require_full_availability and not has_full_period(reviewer, criteria.period):
            return rejected("Not available for the full review period")

    return EligibilityDecision(reviewer_id=reviewer.id, is_eligible=True, conflict=conflict)


def check_must_include(
    reviewers: Iterable[ReviewerProfile],
    criteria: MatchingCriteria,
    as_of: date | None = None,
) -> None:
    by_id = {reviewer.id: reviewer for reviewer in reviewers}
    for reviewer_id in criteria.must_include_ids:
        reviewer = by_id.get(reviewer_id)
        if reviewer is None:
            raise ReviewerNotFound(reviewer_id)
        decision = assess_eligibility(reviewer, criteria, as_of, must_include=True)
        if not decision.is_eligible:
            raise HardConstraintViolation(reviewer_id, decision.reason or "ineligible")


def filter_eligible(
    pool: Iterable[ReviewerProfile],
    criteria: MatchingCriteria,
    as_of: date | None = None,
) -> list[ReviewerProfile]:
    reviewers = list(pool)
    check_must_include(reviewers, criteria, as_of)
    must_include = set(criteria.must_include_ids)
    return [
        reviewer
        for reviewer in reviewers
        if assess_eligibility(
            reviewer, criteria, as_of, must_include=reviewer.id in must_include
        ).is_eligible
    ]
