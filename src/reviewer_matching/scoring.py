from __future__ import annotations

import logging
from datetime import date
from typing import Iterable, Sequence, TypeVar

from .availability import coverage, has_full_period
from .config import DEFAULT_WEIGHTS, EXPERIENCE_SATURATION, MatchingWeights
from .eligibility import assess_eligibility, filter_eligible
from .models import MatchingCriteria, MatchResult, ReviewerProfile, ScoreBreakdown

logger = logging.getLogger(__name__)

REQUIRED_SHARE = 80
PREFERRED_SHARE = 20

T = TypeVar("T")


def _split(
    required: Sequence[T],
    preferred: Sequence[T],
    held: frozenset,
) -> tuple[list[T], list[T], list[T]]:
    matched = [item for item in dict.fromkeys(required) if item in held]
    missing = [item for item in dict.fromkeys(required) if item not in held]
    matched_preferred = [item for item in dict.fromkeys(preferred) if item in held]
    return matched, missing, matched_preferred


def requirement_score(
    required: Sequence[T],
    preferred: Sequence[T],
    held: frozenset,
) -> float:
    # An empty requirement list contributes nothing to its term.
    required_set = set(required)
    preferred_set = set(preferred)
    value = 0.0
    if required_set:
        value += len(required_set & held) / len(required_set) * REQUIRED_SHARE
    if preferred_set:
        value += len(preferred_set & held) / len(preferred_set) * PREFERRED_SHARE
    return value


def experience_score(reviews_completed: int) -> float:
    return min(reviews_completed / EXPERIENCE_SATURATION, 1) * 100


def weighted_total(breakdown: ScoreBreakdown, weights: MatchingWeights) -> float:
    return (
        breakdown.expertise * weights.expertise
        + breakdown.language * weights.language
        + breakdown.availability * weights.availability
        + breakdown.experience * weights.experience
    ) / 100


def score(
    reviewer: ReviewerProfile,
    criteria: MatchingCriteria,
    weights: MatchingWeights = DEFAULT_WEIGHTS,
    as_of: date | None = None,
) -> MatchResult:
    held_expertise = reviewer.expertise_areas
    held_languages = reviewer.language_codes

    matched_expertise, missing_expertise, matched_pref_expertise = _split(
        criteria.required_expertise, criteria.preferred_expertise, held_expertise
    )
    matched_languages, missing_languages, matched_pref_languages = _split(
        criteria.required_languages, criteria.preferred_languages, held_languages
    )

    availability = coverage(reviewer, criteria.period.start, criteria.period.end)
    breakdown = ScoreBreakdown(
        expertise=round(
            requirement_score(
                criteria.required_expertise, criteria.preferred_expertise, held_expertise
            ),
            2,
        ),
        language=round(
            requirement_score(
                criteria.required_languages, criteria.preferred_languages, held_languages
            ),
            2,
        ),
        availability=100.0 if has_full_period(reviewer, criteria.period) else 0.0,
        experience=round(experience_score(reviewer.reviews_completed), 2),
    )
    total = round(weighted_total(breakdown, weights), 2)

    decision = assess_eligibility(
        reviewer,
        criteria,
        as_of,
        must_include=reviewer.id in criteria.must_include_ids,
    )

    warnings: list[str] = []
    if decision.conflict.is_hard_block:
        warnings.append(f"Hard COI: {decision.conflict.reason}")
    elif decision.conflict.is_soft_warning:
        warnings.append(f"Soft COI: {decision.conflict.reason}")
    if missing_expertise:
        warnings.append(f"Missing expertise: {', '.join(area.value for area in missing_expertise)}")
    if missing_languages:
        warnings.append(
            f"Missing languages: {', '.join(language.value for language in missing_languages)}"
        )
    if not availability.fully_covered:
        warnings.append(f"Partial availability: {availability.ratio:.0%}")

    logger.debug("Scored %s: %.2f (%s)", reviewer.id, total, breakdown)
    return MatchResult(
        reviewer_id=reviewer.id,
        reviewer_name=reviewer.name,
        total=total,
        breakdown=breakdown,
        matched_expertise=tuple(matched_expertise),
        missing_expertise=tuple(missing_expertise),
        matched_preferred_expertise=tuple(matched_pref_expertise),
        matched_languages=tuple(matched_languages),
        missing_languages=tuple(missing_languages),
        matched_preferred_languages=tuple(matched_pref_languages),
        conflict=decision.conflict,
        is_eligible=decision.is_eligible,
        is_lead_qualified=reviewer.is_lead_qualified,
        reviews_completed=reviewer.reviews_completed,
        availability_ratio=round(availability.ratio, 4),
        ineligibility_reason=decision.reason,
        warnings=tuple(warnings),
    )


def ranking_key(result: MatchResult) -> tuple[float, int, bool, str]:
    return (-result.total, -result.reviews_completed, not result.is_lead_qualified, result.reviewer_id)


def rank_results(results: Iterable[MatchResult]) -> list[MatchResult]:
    return sorted(results, key=ranking_key)


def find_matches(
    pool: Iterable[ReviewerProfile],
    criteria: MatchingCriteria,
    weights: MatchingWeights = DEFAULT_WEIGHTS,
    *,
    min_score: float = 0.0,
    limit: int | None = None,
    as_of: date | None = None,
) -> list[MatchResult]:
    candidates = filter_eligible(pool, criteria, as_of)
    ranked = rank_results(score(reviewer, criteria, weights, as_of) for reviewer in candidates)
    ranked = [result for result in ranked if result.total >= min_score]
    if limit is not None:
        ranked = ranked[:limit]
    return ranked
