from __future__ import annotations

from datetime import date

from reviewer_matching.models import (
    AvailabilityPeriod,
    AvailabilityType,
    COIDeclaration,
    DateRange,
    ExpertiseArea,
    ExpertiseRecord,
    Language,
    LanguageRecord,
    ReviewerProfile,
    SelectionStatus,
)


def jan(day: int) -> date:
    return date(2026, 1, day)


def available(start: date, end: date, kind: AvailabilityType = AvailabilityType.AVAILABLE):
    return AvailabilityPeriod(start=start, end=end, availability_type=kind)


def make_reviewer(
    reviewer_id: str,
    *,
    organization: str = "ORG-HOME",
    status: SelectionStatus = SelectionStatus.SELECTED,
    lead: bool = False,
    expertise: tuple[ExpertiseArea, ...] = (),
    languages: tuple[Language, ...] = (Language.EN, Language.FR),
    reviews: int = 0,
    availability: tuple[AvailabilityPeriod, ...] | None = None,
    conflicts: tuple[COIDeclaration, ...] = (),
    team_id: str | None = None,
    is_available: bool = True,
) -> ReviewerProfile:
    if availability is None:
        availability = (available(jan(1), date(2026, 12, 31)),)
    return ReviewerProfile(
        id=reviewer_id,
        name=reviewer_id.title(),
        home_organization_id=organization,
        selection_status=status,
        is_lead_qualified=lead,
        is_available=is_available,
        reviews_completed=reviews,
        team_id=team_id,
        expertise=tuple(ExpertiseRecord(area) for area in expertise),
        languages=tuple(LanguageRecord(language) for language in languages),
        availability=availability,
        conflicts=conflicts,
    )


def review_period(start: int = 10, end: int = 14) -> DateRange:
    return DateRange(jan(start), jan(end))
