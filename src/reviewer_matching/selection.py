from __future__ import annotations

import logging
from dataclasses import replace

from .config import MAX_SELECTED_REVIEWERS, REQUIRED_POOL_LANGUAGES
from .errors import CapacityExceeded, InvalidTransition, ProfileIncomplete
from .models import ReviewerProfile, SelectionStatus

logger = logging.getLogger(__name__)

S = SelectionStatus

SELECTION_TRANSITIONS: dict[SelectionStatus, frozenset[SelectionStatus]] = {
    S.NOMINATED: frozenset({S.UNDER_REVIEW, S.WITHDRAWN, S.REJECTED}),
    S.UNDER_REVIEW: frozenset({S.SELECTED, S.NOMINATED, S.REJECTED}),
    S.SELECTED: frozenset({S.INACTIVE, S.WITHDRAWN}),
    S.INACTIVE: frozenset({S.SELECTED, S.WITHDRAWN}),
    S.WITHDRAWN: frozenset(),
    S.REJECTED: frozenset({S.NOMINATED}),
}


def can_transition(current: SelectionStatus, requested: SelectionStatus) -> bool:
    return requested in SELECTION_TRANSITIONS[current]


def missing_pool_languages(reviewer: ReviewerProfile) -> list[str]:
    spoken = reviewer.language_codes
    return [language.value for language in REQUIRED_POOL_LANGUAGES if language not in spoken]


def transition_status(
    reviewer: ReviewerProfile,
    requested: SelectionStatus,
    selected_count: int,
    *,
    max_selected: int = MAX_SELECTED_REVIEWERS,
) -> ReviewerProfile:
    """Validate a selection-status change and return the updated profile.

    ``selected_count`` is the number of reviewers currently holding SELECTED,
    read in the same transaction that will persist the change.
    """
    if not can_transition(reviewer.selection_status, requested):
        raise InvalidTransition(reviewer.selection_status.value, requested.value)

    if requested is S.SELECTED:
        missing = missing_pool_languages(reviewer)
        if missing:
            raise ProfileIncomplete(reviewer.id, missing)
        if selected_count >= max_selected:
            raise CapacityExceeded(max_selected)

    logger.debug(
        "Reviewer %s: %s -> %s", reviewer.id, reviewer.selection_status.value, requested.value
    )
    return replace(reviewer, selection_status=requested)
