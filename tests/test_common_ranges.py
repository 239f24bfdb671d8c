import pytest

from helpers import available, jan, make_reviewer, review_period

from reviewer_matching.availability import block_for_review
from reviewer_matching.common_ranges import find_common_ranges, merge_days
from reviewer_matching.models import AvailabilityType, CommonRange, DateRange
from reviewer_matching.pool import ReviewerPool


def test_three_reviewers_share_one_range() -> None:
    reviewers = [
        make_reviewer("a", availability=(available(jan(1), jan(8)),)),
        make_reviewer("b", availability=(available(jan(3), jan(10)),)),
        make_reviewer("c", availability=(available(jan(1), jan(10)),)),
    ]

    ranges = find_common_ranges(reviewers, jan(1), jan(10), min_days=3)

    assert ranges == [CommonRange(start=jan(3), end=jan(8), days=6)]


def test_short_runs_are_dropped() -> None:
    reviewers = [
        make_reviewer(
            "a",
            availability=(
                available(jan(1), jan(2)),
                available(jan(5), jan(9), AvailabilityType.TENTATIVE),
            ),
        ),
        make_reviewer("b", availability=(available(jan(1), jan(10)),)),
    ]

    assert find_common_ranges(reviewers, jan(1), jan(10), min_days=3) == [
        CommonRange(start=jan(5), end=jan(9), days=5)
    ]
    assert len(find_common_ranges(reviewers, jan(1), jan(10), min_days=1)) == 2


def test_assignment_blocks_split_ranges() -> None:
    reviewer = make_reviewer("a", availability=(available(jan(1), jan(10)),))
    reviewer = block_for_review(reviewer, "REV-1", DateRange(jan(4), jan(5)))

    ranges = find_common_ranges([reviewer], jan(1), jan(10), min_days=1)

    assert [(item.start, item.end) for item in ranges] == [(jan(1), jan(3)), (jan(6), jan(10))]


def test_no_reviewers_and_invalid_min_days() -> None:
    assert find_common_ranges([], jan(1), jan(10), min_days=1) == []
    with pytest.raises(ValueError):
        find_common_ranges([make_reviewer("a")], jan(1), jan(10), min_days=0)


def test_merge_days_handles_unsorted_input() -> None:
    days = [jan(3), jan(1), jan(2), jan(7)]

    assert merge_days(days) == [DateRange(jan(1), jan(3)), DateRange(jan(7), jan(7))]


def test_pool_resolves_reviewer_ids() -> None:
    pool = ReviewerPool(
        [
            make_reviewer("a", availability=(available(jan(9), jan(20)),)),
            make_reviewer("b"),
        ]
    )

    ranges = pool.find_common_ranges(["a", "b"], review_period(1, 15), min_days=5)

    assert ranges == [CommonRange(start=jan(9), end=jan(15), days=7)]
