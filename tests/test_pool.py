import pytest

from helpers import available, jan, make_reviewer, review_period

from reviewer_matching.errors import OverlapConflict, ReviewerNotFound
from reviewer_matching.models import COIDeclaration, COIType
from reviewer_matching.pool import ReviewerPool


def test_pool_rejects_duplicate_ids() -> None:
    with pytest.raises(ValueError):
        ReviewerPool([make_reviewer("amina"), make_reviewer("amina")])


def test_unknown_reviewer_raises() -> None:
    pool = ReviewerPool([make_reviewer("amina")])

    with pytest.raises(ReviewerNotFound):
        pool.get("ghost")
    with pytest.raises(LookupError):
        pool.coverage("ghost", review_period())
    assert "amina" in pool
    assert len(pool) == 1


def test_conflict_lookup_by_id() -> None:
    pool = ReviewerPool(
        [make_reviewer("amina", conflicts=(COIDeclaration("ORG-B", COIType.CONTRACTUAL),))]
    )

    assert pool.check_conflict("amina", "ORG-B", as_of=jan(1)).is_soft_warning
    assert pool.check_conflict("amina", "ORG-HOME", as_of=jan(1)).is_hard_block


def test_block_then_add_overlapping_availability() -> None:
    pool = ReviewerPool([make_reviewer("amina", availability=())])

    pool.block_for_review("amina", "REV-1", review_period(10, 14))
    with pytest.raises(OverlapConflict):
        pool.add_availability("amina", available(jan(12), jan(20)))

    pool.unblock_for_review("amina", "REV-1")
    pool.add_availability("amina", available(jan(12), jan(20)))

    assert pool.coverage("amina", review_period(12, 20)).fully_covered
