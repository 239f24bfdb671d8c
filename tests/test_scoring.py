from helpers import available, jan, make_reviewer, review_period

from reviewer_matching.config import MatchingWeights
from reviewer_matching.models import (
    COIDeclaration,
    COIType,
    ExpertiseArea,
    Language,
    MatchingCriteria,
)
from reviewer_matching.scoring import find_matches, rank_results, requirement_score, score

E = ExpertiseArea


def criteria(**overrides) -> MatchingCriteria:
    values = {
        "target_organization_id": "ORG-HOST",
        "period": review_period(),
        "required_expertise": (E.ATS, E.CNS),
        "preferred_expertise": (E.MET,),
        "required_languages": (Language.EN, Language.FR),
    }
    values.update(overrides)
    return MatchingCriteria(**values)


def test_score_components_and_total() -> None:
    reviewer = make_reviewer("amina", expertise=(E.ATS, E.MET), reviews=10)

    result = score(reviewer, criteria())

    assert result.breakdown.expertise == 60
    assert result.breakdown.language == 80
    assert result.breakdown.availability == 100
    assert result.breakdown.experience == 50
    assert result.total == 74
    assert result.matched_expertise == (E.ATS,)
    assert result.missing_expertise == (E.CNS,)
    assert result.matched_preferred_expertise == (E.MET,)
    assert result.warnings == ("Missing expertise: CNS",)


def test_partial_availability_scores_zero() -> None:
    reviewer = make_reviewer(
        "amina", expertise=(E.ATS, E.CNS), availability=(available(jan(10), jan(12)),)
    )

    result = score(reviewer, criteria())

    assert result.breakdown.availability == 0
    assert result.availability_ratio == 0.6
    assert "Partial availability: 60%" in result.warnings


def test_empty_requirements_contribute_nothing() -> None:
    assert requirement_score((), (), frozenset({E.ATS})) == 0
    assert requirement_score((E.ATS,), (), frozenset({E.ATS})) == 80
    assert requirement_score((), (E.ATS,), frozenset({E.ATS})) == 20


def test_experience_saturates_at_twenty_reviews() -> None:
    low = score(make_reviewer("a", reviews=20), criteria())
    high = score(make_reviewer("b", reviews=35), criteria())

    assert low.breakdown.experience == high.breakdown.experience == 100


def test_custom_weights() -> None:
    reviewer = make_reviewer("amina", expertise=(E.ATS, E.MET), reviews=10)

    result = score(reviewer, criteria(), MatchingWeights(100, 0, 0, 0))

    assert result.total == 60


def test_score_is_deterministic() -> None:
    reviewer = make_reviewer(
        "amina",
        expertise=(E.ATS,),
        conflicts=(COIDeclaration("ORG-HOST", COIType.PREVIOUS_REVIEW),),
    )

    assert score(reviewer, criteria(), as_of=jan(1)) == score(reviewer, criteria(), as_of=jan(1))


def test_soft_conflict_warning() -> None:
    reviewer = make_reviewer(
        "amina", conflicts=(COIDeclaration("ORG-HOST", COIType.PREVIOUS_REVIEW),)
    )

    result = score(reviewer, criteria(), as_of=jan(1))

    assert result.is_eligible
    assert result.warnings[0] == "Soft COI: Previously reviewed"


def test_ranking_tie_breaks() -> None:
    results = [
        score(make_reviewer("zeta", reviews=20), criteria()),
        score(make_reviewer("beta", reviews=20), criteria()),
        score(make_reviewer("lead", reviews=20, lead=True), criteria()),
        score(make_reviewer("veteran", reviews=40), criteria()),
        score(make_reviewer("best", reviews=20, expertise=(E.ATS,)), criteria()),
    ]

    ranked = rank_results(results)

    assert [result.reviewer_id for result in ranked] == ["best", "veteran", "lead", "beta", "zeta"]


def test_find_matches_filters_and_limits() -> None:
    pool = [
        make_reviewer("host", organization="ORG-HOST", expertise=(E.ATS, E.CNS)),
        make_reviewer("full", expertise=(E.ATS, E.CNS, E.MET)),
        make_reviewer("half", expertise=(E.ATS,)),
        make_reviewer("none"),
    ]

    results = find_matches(pool, criteria(), min_score=50, limit=1)

    assert [result.reviewer_id for result in results] == ["full"]
    assert [r.reviewer_id for r in find_matches(pool, criteria())] == ["full", "half", "none"]
