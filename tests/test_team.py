import pytest

from helpers import available, jan, make_reviewer, review_period

from reviewer_matching.errors import HardConstraintViolation
from reviewer_matching.models import (
    COIDeclaration,
    COIType,
    ExpertiseArea,
    MatchingCriteria,
    SelectionStatus,
    TeamRole,
)
from reviewer_matching.team import NO_LEAD_REASON, NO_LEAD_SLOT_REASON, build_team

E = ExpertiseArea


def criteria(**overrides) -> MatchingCriteria:
    values = {
        "target_organization_id": "ORG-X",
        "period": review_period(),
        "required_expertise": (E.ATS, E.CNS),
        "team_size": 3,
    }
    values.update(overrides)
    return MatchingCriteria(**values)


def test_host_reviewer_excluded_and_gap_reported() -> None:
    pool = [
        make_reviewer("insider", organization="ORG-X", expertise=(E.ATS, E.CNS), lead=True),
        make_reviewer("amina", expertise=(E.ATS,), lead=True, reviews=5),
        make_reviewer("rafael", expertise=(E.ATS,), reviews=10),
        make_reviewer("david", expertise=(E.MET,)),
        make_reviewer("lila", expertise=(E.SAR,)),
    ]

    result = build_team(pool, criteria(), as_of=jan(1))

    assert "insider" not in result.reviewer_ids
    assert result.reviewer_ids == ["amina", "rafael", "david"]
    assert result.lead.reviewer_id == "amina"
    assert result.coverage.uncovered_expertise == (E.CNS,)
    assert result.coverage.expertise_coverage_percent == 50
    assert "Missing expertise coverage: CNS" in result.warnings
    assert result.is_viable


def test_prefers_candidate_adding_coverage_then_fills_by_score() -> None:
    pool = [
        make_reviewer("lead", expertise=(E.ATS,), lead=True, reviews=20),
        make_reviewer("top", expertise=(E.ATS,), reviews=20),
        make_reviewer("cns", expertise=(E.CNS,)),
    ]

    pair = build_team(pool, criteria(team_size=2), as_of=jan(1))
    trio = build_team(pool, criteria(), as_of=jan(1))

    assert pair.reviewer_ids == ["lead", "cns"]
    assert pair.coverage.expertise_coverage_percent == 100
    assert trio.reviewer_ids == ["lead", "cns", "top"]
    assert [member.role for member in trio.members] == [
        TeamRole.LEAD_REVIEWER,
        TeamRole.REVIEWER,
        TeamRole.REVIEWER,
    ]


def test_no_lead_qualified_candidate() -> None:
    pool = [make_reviewer("amina", expertise=(E.ATS,)), make_reviewer("david")]

    result = build_team(pool, criteria(), as_of=jan(1))

    assert result.members == ()
    assert not result.is_viable
    assert result.failure_reason == NO_LEAD_REASON
    assert result.warnings[0] == "No lead-qualified reviewer available"
    assert result.shortfall == 3


def test_lead_not_required() -> None:
    pool = [make_reviewer(name) for name in ("amina", "david", "lila")]

    result = build_team(pool, criteria(require_lead_reviewer=False), as_of=jan(1))

    assert result.is_viable
    assert result.lead is None
    assert "Team has no lead-qualified reviewer" in result.warnings


def test_shortfall_is_reported_not_raised() -> None:
    pool = [
        make_reviewer("amina", lead=True),
        make_reviewer("david"),
        make_reviewer("lila", status=SelectionStatus.INACTIVE),
    ]

    result = build_team(pool, criteria(team_size=4), as_of=jan(1))

    assert result.shortfall == 2
    assert not result.is_viable
    assert "Could only select 2 of 4 required reviewers" in result.warnings


def test_must_include_joins_first_and_can_lead() -> None:
    pool = [
        make_reviewer("amina", lead=True, reviews=20, expertise=(E.ATS, E.CNS)),
        make_reviewer("david", lead=True, is_available=False),
        make_reviewer("lila"),
    ]

    result = build_team(pool, criteria(team_size=2, must_include_ids=("david",)), as_of=jan(1))

    assert result.reviewer_ids == ["david", "amina"]
    assert result.lead.reviewer_id == "david"


def test_must_include_filling_every_slot_without_a_lead() -> None:
    pool = [
        make_reviewer("amina"),
        make_reviewer("david"),
        make_reviewer("lead", lead=True),
    ]

    result = build_team(
        pool, criteria(team_size=2, must_include_ids=("amina", "david")), as_of=jan(1)
    )

    assert result.reviewer_ids == ["amina", "david"]
    assert len(result.members) <= result.team_size
    assert not result.is_viable
    assert result.shortfall == 0
    assert result.failure_reason == NO_LEAD_SLOT_REASON
    assert result.warnings[0] == (
        "Must-include reviewers leave no slot for a lead-qualified reviewer"
    )


def test_must_include_leaving_one_slot_takes_the_lead() -> None:
    pool = [
        make_reviewer("amina"),
        make_reviewer("david"),
        make_reviewer("lead", lead=True),
    ]

    result = build_team(pool, criteria(must_include_ids=("amina", "david")), as_of=jan(1))

    assert result.reviewer_ids == ["lead", "amina", "david"]
    assert result.lead.reviewer_id == "lead"
    assert result.is_viable


def test_must_include_hard_conflict_raises() -> None:
    pool = [
        make_reviewer(
            "amina",
            lead=True,
            conflicts=(COIDeclaration("ORG-X", COIType.FAMILY_RELATIONSHIP),),
        ),
        make_reviewer("david", lead=True),
    ]

    with pytest.raises(HardConstraintViolation):
        build_team(pool, criteria(must_include_ids=("amina",)), as_of=jan(1))


def test_soft_conflict_and_partial_availability_warnings() -> None:
    pool = [
        make_reviewer(
            "amina",
            lead=True,
            expertise=(E.ATS, E.CNS),
            conflicts=(COIDeclaration("ORG-X", COIType.PREVIOUS_REVIEW),),
        ),
        make_reviewer("david", availability=(available(jan(10), jan(12)),)),
    ]

    result = build_team(pool, criteria(team_size=2), as_of=jan(1))

    assert result.coverage.soft_warning_members == ("amina",)
    assert "Amina has a declared conflict of interest: Previously reviewed" in result.warnings
    assert "David is available for 60% of the review period" in result.warnings
    assert result.coverage.availability_by_member == {"amina": 1.0, "david": 0.6}
    assert result.is_viable


def test_viable_team_never_contains_hard_block() -> None:
    pool = [
        make_reviewer("home", organization="ORG-X", lead=True),
        make_reviewer(
            "family", lead=True, conflicts=(COIDeclaration("ORG-X", COIType.FAMILY_RELATIONSHIP),)
        ),
        make_reviewer("amina", lead=True),
        make_reviewer("david"),
        make_reviewer("lila"),
    ]

    result = build_team(pool, criteria(), as_of=jan(1))

    assert result.is_viable
    assert not any(member.match.conflict.is_hard_block for member in result.members)
    assert set(result.reviewer_ids) == {"amina", "david", "lila"}


def test_excluded_reviewers_never_selected() -> None:
    pool = [
        make_reviewer("amina", lead=True),
        make_reviewer("david", expertise=(E.ATS, E.CNS), reviews=20),
        make_reviewer("lila"),
    ]

    result = build_team(
        pool, criteria(team_size=2, exclude_ids=frozenset({"david"})), as_of=jan(1)
    )

    assert result.reviewer_ids == ["amina", "lila"]
