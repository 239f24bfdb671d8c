from __future__ import annotations

from datetime import date


class MatchingError(Exception):
    """Base class for constraint and capacity failures reported to callers."""


class InvalidTransition(MatchingError):
    def __init__(self, current: str, requested: str) -> None:
        self.current = current
        self.requested = requested
        super().__init__(f"Cannot transition from {current} to {requested}")


class CapacityExceeded(MatchingError):
    def __init__(self, limit: int) -> None:
        self.limit = limit
        super().__init__(f"Maximum of {limit} selected reviewers reached")


class HardConstraintViolation(MatchingError):
    def __init__(self, reviewer_id: str, reason: str) -> None:
        self.reviewer_id = reviewer_id
        self.reason = reason
        super().__init__(f"Reviewer {reviewer_id} cannot be placed on this team: {reason}")


class OverlapConflict(MatchingError):
    def __init__(self, reviewer_id: str, start: date, end: date) -> None:
        self.reviewer_id = reviewer_id
        self.start = start
        self.end = end
        super().__init__(
            f"Reviewer {reviewer_id} is on assignment between {start.isoformat()} "
            f"and {end.isoformat()}"
        )


class ReviewerNotFound(MatchingError, LookupError):
    def __init__(self, reviewer_id: str) -> None:
        self.reviewer_id = reviewer_id
        super().__init__(f"Reviewer {reviewer_id} not found")


class ProfileIncomplete(MatchingError):
    def __init__(self, reviewer_id: str, missing: list[str]) -> None:
        self.reviewer_id = reviewer_id
        self.missing = missing
        super().__init__(f"Reviewer {reviewer_id} is missing required languages: {', '.join(missing)}")


class DuplicateDeclaration(MatchingError):
    def __init__(self, organization_id: str, coi_type: str) -> None:
        self.organization_id = organization_id
        self.coi_type = coi_type
        super().__init__(
            f"An active {coi_type} declaration already exists for organization {organization_id}"
        )
