from __future__ import annotations

import logging
from datetime import date
from typing import Iterable, Sequence

from .config import DEFAULT_WEIGHTS, MatchingWeights
from .eligibility import filter_eligible
from .models import (
    CoverageReport,
    MatchingCriteria,
    MatchResult,
    ReviewerProfile,
    TeamBuildResult,
    TeamMember,
    TeamRole,
)
from .scoring import rank_results, ranking_key, score

logger = logging.getLogger(__name__)

NO_LEAD_REASON = "no lead-qualified reviewer available"
NO_LEAD_SLOT_REASON = "must-include reviewers leave no slot for a lead-qualified reviewer"


def _covered(team: Sequence[MatchResult]) -> tuple[set, set]:
    expertise = {area for member in team for area in member.matched_expertise}
    languages = {language for member in team for language in member.matched_languages}
    return expertise, languages


def _next_member(
    team: Sequence[MatchResult],
    remaining: Sequence[MatchResult],
    criteria: MatchingCriteria,
) -> MatchResult:
    covered_expertise, covered_languages = _covered(team)
    open_expertise = set(criteria.required_expertise) - covered_expertise
    open_languages = set(criteria.required_languages) - covered_languages
    if open_expertise or open_languages:
        for candidate in remaining:
            if open_expertise & set(candidate.matched_expertise) or open_languages & set(
                candidate.matched_languages
            ):
                return candidate
    # Requirements are covered, or nobody left can close a gap: take the best score.
    return remaining[0]


def _percent(covered: int, required: int) -> int:
    if required == 0:
        return 100
    return round(covered / required * 100)


def coverage_report(team: Sequence[MatchResult], criteria: MatchingCriteria) -> CoverageReport:
    covered_expertise, covered_languages = _covered(team)
    required_expertise = tuple(dict.fromkeys(criteria.required_expertise))
    required_languages = tuple(dict.fromkeys(criteria.required_languages))
    expertise_hit = tuple(area for area in required_expertise if area in covered_expertise)
    languages_hit = tuple(item for item in required_languages if item in covered_languages)
    return CoverageReport(
        required_expertise=required_expertise,
        covered_expertise=expertise_hit,
        uncovered_expertise=tuple(area for area in required_expertise if area not in covered_expertise),
        expertise_coverage_percent=_percent(len(expertise_hit), len(required_expertise)),
        required_languages=required_languages,
        covered_languages=languages_hit,
        uncovered_languages=tuple(item for item in required_languages if item not in covered_languages),
        language_coverage_percent=_percent(len(languages_hit), len(required_languages)),
        has_lead_qualified=any(member.is_lead_qualified for member in team),
        soft_warning_members=tuple(
            member.reviewer_id for member in team if member.conflict.is_soft_warning
        ),
        availability_by_member={member.reviewer_id: member.availability_ratio for member in team},
    )


def _warnings(
    team: Sequence[MatchResult],
    report: CoverageReport,
    criteria: MatchingCriteria,
) -> list[str]:
    warnings: list[str] = []
    if len(team) < criteria.team_size:
        warnings.append(
            f"Could only select {len(team)} of {criteria.team_size} required reviewers"
        )
    for member in team:
        if member.conflict.is_soft_warning:
            warnings.append(
                f"{member.reviewer_name} has a declared conflict of interest: {member.conflict.reason}"
            )
        if member.availability_ratio < 1:
            warnings.append(
                f"{member.reviewer_name} is available for {member.availability_ratio:.0%} "
                "of the review period"
            )
    if report.uncovered_expertise:
        warnings.append(
            "Missing expertise coverage: "
            + ", ".join(area.value for area in report.uncovered_expertise)
        )
    if report.uncovered_languages:
        warnings.append(
            "Missing language coverage: "
            + ", ".join(language.value for language in report.uncovered_languages)
        )
    if team and not report.has_lead_qualified:
        warnings.append("Team has no lead-qualified reviewer")
    return warnings


def _assemble(
    team: list[MatchResult],
    lead_id: str | None,
    criteria: MatchingCriteria,
    failure_reason: str | None = None,
) -> TeamBuildResult:
    if lead_id is None:
        lead_id = next((member.reviewer_id for member in team if member.is_lead_qualified), None)
    ordered = sorted(team, key=lambda member: member.reviewer_id != lead_id)
    members = tuple(
        TeamMember(
            reviewer_id=member.reviewer_id,
            role=TeamRole.LEAD_REVIEWER if member.reviewer_id == lead_id else TeamRole.REVIEWER,
            match=member,
        )
        for member in ordered
    )

    report = coverage_report(ordered, criteria)
    warnings = _warnings(ordered, report, criteria)
    if failure_reason:
        warnings.insert(0, failure_reason[0].upper() + failure_reason[1:])

    has_hard_block = any(member.conflict.is_hard_block for member in ordered)
    is_viable = (
        failure_reason is None and len(ordered) == criteria.team_size and not has_hard_block
    )
    total_score = sum(member.total for member in ordered)
    average_score = total_score / len(ordered) if ordered else 0.0

    if not is_viable:
        logger.warning(
            "Team for %s is not viable: %s",
            criteria.target_organization_id,
            failure_reason or f"{len(ordered)} of {criteria.team_size} reviewers",
        )
    return TeamBuildResult(
        members=members,
        coverage=report,
        warnings=tuple(warnings),
        is_viable=is_viable,
        team_size=criteria.team_size,
        failure_reason=failure_reason,
        total_score=round(total_score, 1),
        average_score=round(average_score, 1),
    )


def build_team(
    candidates: Iterable[ReviewerProfile],
    criteria: MatchingCriteria,
    weights: MatchingWeights = DEFAULT_WEIGHTS,
    as_of: date | None = None,
) -> TeamBuildResult:
    eligible = filter_eligible(candidates, criteria, as_of)
    ranked = rank_results(score(reviewer, criteria, weights, as_of) for reviewer in eligible)
    by_id = {result.reviewer_id: result for result in ranked}

    team: list[MatchResult] = [
        by_id[reviewer_id] for reviewer_id in dict.fromkeys(criteria.must_include_ids)
    ]
    lead_id: str | None = None

    if criteria.require_lead_reviewer:
        leads = sorted((member for member in team if member.is_lead_qualified), key=ranking_key)
        if leads:
            lead_id = leads[0].reviewer_id
        elif len(team) >= criteria.team_size:
            return _assemble(team, None, criteria, failure_reason=NO_LEAD_SLOT_REASON)
        else:
            picked = {member.reviewer_id for member in team}
            lead = next(
                (
                    result
                    for result in ranked
                    if result.is_lead_qualified and result.reviewer_id not in picked
                ),
                None,
            )
            if lead is None:
                return _assemble([], None, criteria, failure_reason=NO_LEAD_REASON)
            team.append(lead)
            lead_id = lead.reviewer_id

    picked = {member.reviewer_id for member in team}
    remaining = [result for result in ranked if result.reviewer_id not in picked]
    while len(team) < criteria.team_size and remaining:
        member = _next_member(team, remaining, criteria)
        logger.debug("Adding %s (score %.2f) to team", member.reviewer_id, member.total)
        team.append(member)
        remaining.remove(member)

    return _assemble(team, lead_id, criteria)
