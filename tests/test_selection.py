from itertools import product

import pytest

from helpers import make_reviewer

from reviewer_matching.errors import CapacityExceeded, InvalidTransition, ProfileIncomplete
from reviewer_matching.models import Language, SelectionStatus
from reviewer_matching.pool import ReviewerPool
from reviewer_matching.selection import can_transition, transition_status

S = SelectionStatus

VALID = {
    (S.NOMINATED, S.UNDER_REVIEW),
    (S.NOMINATED, S.WITHDRAWN),
    (S.NOMINATED, S.REJECTED),
    (S.UNDER_REVIEW, S.SELECTED),
    (S.UNDER_REVIEW, S.NOMINATED),
    (S.UNDER_REVIEW, S.REJECTED),
    (S.SELECTED, S.INACTIVE),
    (S.SELECTED, S.WITHDRAWN),
    (S.INACTIVE, S.SELECTED),
    (S.INACTIVE, S.WITHDRAWN),
    (S.REJECTED, S.NOMINATED),
}


def test_transition_table_matches_state_machine() -> None:
    for current, requested in product(SelectionStatus, repeat=2):
        assert can_transition(current, requested) == ((current, requested) in VALID)


def test_invalid_transition_raises() -> None:
    reviewer = make_reviewer("amina", status=S.WITHDRAWN)

    with pytest.raises(InvalidTransition) as excinfo:
        transition_status(reviewer, S.SELECTED, selected_count=0)

    assert str(excinfo.value) == "Cannot transition from WITHDRAWN to SELECTED"


def test_valid_transition_returns_updated_profile() -> None:
    reviewer = make_reviewer("amina", status=S.NOMINATED)

    updated = transition_status(reviewer, S.UNDER_REVIEW, selected_count=0)

    assert updated.selection_status is S.UNDER_REVIEW
    assert reviewer.selection_status is S.NOMINATED


def test_selection_requires_english_and_french() -> None:
    reviewer = make_reviewer("amina", status=S.UNDER_REVIEW, languages=(Language.EN,))

    with pytest.raises(ProfileIncomplete) as excinfo:
        transition_status(reviewer, S.SELECTED, selected_count=0)

    assert excinfo.value.missing == ["FR"]


def test_selected_cap_allows_45th_and_rejects_46th() -> None:
    selected = [make_reviewer(f"r{index:02d}") for index in range(44)]
    pending = [
        make_reviewer("candidate-a", status=S.UNDER_REVIEW),
        make_reviewer("candidate-b", status=S.UNDER_REVIEW),
    ]
    pool = ReviewerPool(selected + pending)

    pool.apply_transition("candidate-a", S.SELECTED)
    assert pool.selected_count() == 45

    with pytest.raises(CapacityExceeded):
        pool.apply_transition("candidate-b", S.SELECTED)
    assert pool.get("candidate-b").selection_status is S.UNDER_REVIEW


def test_deactivating_frees_a_slot() -> None:
    pool = ReviewerPool(
        [make_reviewer("amina"), make_reviewer("david", status=S.UNDER_REVIEW)],
        max_selected=1,
    )

    with pytest.raises(CapacityExceeded):
        pool.apply_transition("david", S.SELECTED)

    pool.apply_transition("amina", S.INACTIVE)
    pool.apply_transition("david", S.SELECTED)

    assert pool.selected_count() == 1
    assert pool.get("david").selection_status is S.SELECTED
