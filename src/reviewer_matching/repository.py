from __future__ import annotations

import logging
from typing import Iterable, Mapping, Sequence

from .availability import block_for_review as plan_block
from .availability import check_new_period
from .coi import add_declaration
from .config import MAX_SELECTED_REVIEWERS
from .db import SCHEMA, advisory_lock, db_cursor
from .errors import ReviewerNotFound
from .models import (
    AvailabilityPeriod,
    AvailabilityType,
    Certification,
    CertificationType,
    COIDeclaration,
    COISeverity,
    COIType,
    DateRange,
    ExpertiseArea,
    ExpertiseRecord,
    Language,
    LanguageProficiency,
    LanguageRecord,
    ProficiencyLevel,
    ReviewerProfile,
    ReviewTarget,
    SelectionStatus,
)
from .selection import transition_status

logger = logging.getLogger(__name__)

Row = Mapping[str, object]

SELECTION_LOCK_KEY = f"{SCHEMA}.selection"


def _reviewer_lock_key(reviewer_id: str) -> str:
    return f"{SCHEMA}.availability.{reviewer_id}"


def _expertise_from_row(row: Row) -> ExpertiseRecord:
    return ExpertiseRecord(
        area=ExpertiseArea(row["area"]),
        proficiency=ProficiencyLevel(row["proficiency"]),
        years_in_area=int(row["years_in_area"] or 0),
    )


def _language_from_row(row: Row) -> LanguageRecord:
    return LanguageRecord(
        language=Language(row["language"]),
        proficiency=LanguageProficiency(row["proficiency"]),
        is_native=bool(row["is_native"]),
        can_conduct_interviews=bool(row["can_conduct_interviews"]),
        icao_level=row.get("icao_level"),
        certified_on=row.get("certified_on"),
        certification_expires_on=row.get("certification_expires_on"),
    )


def _certification_from_row(row: Row) -> Certification:
    return Certification(
        certification_type=CertificationType(row["certification_type"]),
        issued_on=row["issued_on"],
        expires_on=row.get("expires_on"),
    )


def _availability_from_row(row: Row) -> AvailabilityPeriod:
    return AvailabilityPeriod(
        start=row["start_date"],
        end=row["end_date"],
        availability_type=AvailabilityType(row["availability_type"]),
        review_id=row.get("review_id"),
        id=row.get("id"),
    )


def _conflict_from_row(row: Row) -> COIDeclaration:
    severity = row.get("severity")
    return COIDeclaration(
        organization_id=row["organization_id"],
        coi_type=COIType(row["coi_type"]),
        severity=COISeverity(severity) if severity else None,
        is_active=bool(row["is_active"]),
        end_date=row.get("end_date"),
        reason=row.get("reason"),
        verified_by=row.get("verified_by"),
        verified_at=row.get("verified_at"),
        id=row.get("id"),
    )


def _group(rows: Iterable[Row], convert) -> dict[str, list]:
    grouped: dict[str, list] = {}
    for row in rows:
        grouped.setdefault(row["reviewer_id"], []).append(convert(row))
    return grouped


def assemble_profiles(
    profile_rows: Iterable[Row],
    expertise_rows: Iterable[Row] = (),
    language_rows: Iterable[Row] = (),
    certification_rows: Iterable[Row] = (),
    availability_rows: Iterable[Row] = (),
    conflict_rows: Iterable[Row] = (),
) -> list[ReviewerProfile]:
    expertise = _group(expertise_rows, _expertise_from_row)
    languages = _group(language_rows, _language_from_row)
    certifications = _group(certification_rows, _certification_from_row)
    availability = _group(availability_rows, _availability_from_row)
    conflicts = _group(conflict_rows, _conflict_from_row)

    profiles: list[ReviewerProfile] = []
    for row in profile_rows:
        reviewer_id = row["id"]
        profiles.append(
            ReviewerProfile(
                id=reviewer_id,
                name=row["name"],
                home_organization_id=row["home_organization_id"],
                selection_status=SelectionStatus(row["selection_status"]),
                is_lead_qualified=bool(row["is_lead_qualified"]),
                is_available=bool(row["is_available"]),
                reviews_completed=int(row["reviews_completed"] or 0),
                reviews_as_lead=int(row["reviews_as_lead"] or 0),
                team_id=row.get("team_id"),
                expertise=tuple(expertise.get(reviewer_id, [])),
                languages=tuple(languages.get(reviewer_id, [])),
                certifications=tuple(certifications.get(reviewer_id, [])),
                availability=tuple(
                    sorted(availability.get(reviewer_id, []), key=lambda slot: slot.start)
                ),
                conflicts=tuple(conflicts.get(reviewer_id, [])),
            )
        )
    return profiles


def review_from_row(row: Row, team_member_ids: Sequence[str] = ()) -> ReviewTarget:
    return ReviewTarget(
        id=row["id"],
        host_organization_id=row["host_organization_id"],
        host_team_id=row.get("host_team_id"),
        period=DateRange(row["start_date"], row["end_date"]),
        required_expertise=tuple(ExpertiseArea(item) for item in row["required_expertise"] or []),
        preferred_expertise=tuple(ExpertiseArea(item) for item in row["preferred_expertise"] or []),
        required_languages=tuple(Language(item) for item in row["required_languages"] or []),
        preferred_languages=tuple(Language(item) for item in row["preferred_languages"] or []),
        team_member_ids=tuple(team_member_ids),
    )


def _load_profiles(cursor, reviewer_ids: Sequence[str] | None = None) -> list[ReviewerProfile]:
    profile_query = f"""
        SELECT id, name, home_organization_id, team_id, selection_status,
               is_lead_qualified, is_available, reviews_completed, reviews_as_lead
          FROM {SCHEMA}.reviewer_profiles
    """
    params: tuple = ()
    if reviewer_ids is not None:
        profile_query += " WHERE id = ANY(%s)"
        params = (list(reviewer_ids),)
    cursor.execute(profile_query + " ORDER BY id;", params)
    profile_rows = cursor.fetchall()
    ids = [row["id"] for row in profile_rows]
    if not ids:
        return []

    def children(table: str, columns: str) -> list[Row]:
        cursor.execute(
            f"SELECT reviewer_id, {columns} FROM {SCHEMA}.{table} WHERE reviewer_id = ANY(%s);",
            (ids,),
        )
        return cursor.fetchall()

    return assemble_profiles(
        profile_rows,
        children("reviewer_expertise", "area, proficiency, years_in_area"),
        children(
            "reviewer_languages",
            "language, proficiency, is_native, can_conduct_interviews, icao_level, "
            "certified_on, certification_expires_on",
        ),
        children("reviewer_certifications", "certification_type, issued_on, expires_on"),
        children(
            "reviewer_availability",
            "id, review_id, start_date, end_date, availability_type",
        ),
        children(
            "reviewer_coi",
            "id, organization_id, coi_type, severity, is_active, end_date, reason, "
            "verified_by, verified_at",
        ),
    )


def _load_one(cursor, reviewer_id: str) -> ReviewerProfile:
    profiles = _load_profiles(cursor, [reviewer_id])
    if not profiles:
        raise ReviewerNotFound(reviewer_id)
    return profiles[0]


def fetch_pool(reviewer_ids: Sequence[str] | None = None) -> list[ReviewerProfile]:
    with db_cursor() as cursor:
        return _load_profiles(cursor, reviewer_ids)


def fetch_reviewer(reviewer_id: str) -> ReviewerProfile:
    with db_cursor() as cursor:
        return _load_one(cursor, reviewer_id)


def fetch_review(review_id: str) -> ReviewTarget:
    with db_cursor() as cursor:
        cursor.execute(
            f"""
            SELECT id, host_organization_id, host_team_id, start_date, end_date,
                   required_expertise, preferred_expertise,
                   required_languages, preferred_languages
              FROM {SCHEMA}.reviews
             WHERE id = %s;
            """,
            (review_id,),
        )
        row = cursor.fetchone()
        if row is None:
            raise LookupError(f"Review {review_id} not found")
        cursor.execute(
            f"SELECT reviewer_id FROM {SCHEMA}.review_team_members WHERE review_id = %s;",
            (review_id,),
        )
        members = [member["reviewer_id"] for member in cursor.fetchall()]
    return review_from_row(row, members)


def fetch_open_reviews() -> list[ReviewTarget]:
    with db_cursor() as cursor:
        cursor.execute(
            f"""
            SELECT id, host_organization_id, host_team_id, start_date, end_date,
                   required_expertise, preferred_expertise,
                   required_languages, preferred_languages
              FROM {SCHEMA}.reviews
             WHERE status = 'PLANNING'
             ORDER BY start_date;
            """
        )
        return [review_from_row(row) for row in cursor.fetchall()]


def count_selected(cursor) -> int:
    cursor.execute(
        f"SELECT COUNT(*) AS selected FROM {SCHEMA}.reviewer_profiles "
        "WHERE selection_status = 'SELECTED';"
    )
    return int(cursor.fetchone()["selected"])


def record_selection_status(
    reviewer_id: str,
    requested: SelectionStatus,
    max_selected: int = MAX_SELECTED_REVIEWERS,
) -> ReviewerProfile:
    with db_cursor() as cursor:
        # Count-then-write must not interleave with another selection.
        advisory_lock(cursor, SELECTION_LOCK_KEY)
        reviewer = _load_one(cursor, reviewer_id)
        updated = transition_status(
            reviewer, requested, count_selected(cursor), max_selected=max_selected
        )
        cursor.execute(
            f"""
            UPDATE {SCHEMA}.reviewer_profiles
               SET selection_status = %s,
                   selected_at = CASE WHEN %s = 'SELECTED' THEN NOW() ELSE selected_at END,
                   updated_at = NOW()
             WHERE id = %s;
            """,
            (requested.value, requested.value, reviewer_id),
        )
    logger.info("Reviewer %s moved to %s", reviewer_id, requested.value)
    return updated


def add_availability(reviewer_id: str, period: AvailabilityPeriod) -> int:
    with db_cursor() as cursor:
        advisory_lock(cursor, _reviewer_lock_key(reviewer_id))
        reviewer = _load_one(cursor, reviewer_id)
        check_new_period(reviewer.id, reviewer.availability, period)
        cursor.execute(
            f"""
            INSERT INTO {SCHEMA}.reviewer_availability
                (reviewer_id, review_id, start_date, end_date, availability_type)
            VALUES (%s, %s, %s, %s, %s)
            RETURNING id;
            """,
            (reviewer_id, period.review_id, period.start, period.end, period.availability_type.value),
        )
        period_id = cursor.fetchone()["id"]
    logger.info("Added %s period %s for %s", period.availability_type.value, period_id, reviewer_id)
    return period_id


def block_for_review(reviewer_id: str, review_id: str, period: DateRange) -> None:
    with db_cursor() as cursor:
        advisory_lock(cursor, _reviewer_lock_key(reviewer_id))
        reviewer = _load_one(cursor, reviewer_id)
        plan_block(reviewer, review_id, period)
        cursor.execute(
            f"""
            DELETE FROM {SCHEMA}.reviewer_availability
             WHERE reviewer_id = %s AND review_id = %s AND availability_type = 'ON_ASSIGNMENT';
            """,
            (reviewer_id, review_id),
        )
        cursor.execute(
            f"""
            INSERT INTO {SCHEMA}.reviewer_availability
                (reviewer_id, review_id, start_date, end_date, availability_type)
            VALUES (%s, %s, %s, %s, 'ON_ASSIGNMENT');
            """,
            (reviewer_id, review_id, period.start, period.end),
        )
    logger.info("Blocked %s for review %s", reviewer_id, review_id)


def unblock_for_review(reviewer_id: str, review_id: str) -> int:
    with db_cursor() as cursor:
        advisory_lock(cursor, _reviewer_lock_key(reviewer_id))
        cursor.execute(
            f"""
            DELETE FROM {SCHEMA}.reviewer_availability
             WHERE reviewer_id = %s AND review_id = %s AND availability_type = 'ON_ASSIGNMENT';
            """,
            (reviewer_id, review_id),
        )
        deleted = cursor.rowcount
    logger.info("Removed %s assignment block(s) for %s on review %s", deleted, reviewer_id, review_id)
    return deleted


def declare_conflict(reviewer_id: str, declaration: COIDeclaration) -> int:
    with db_cursor() as cursor:
        advisory_lock(cursor, _reviewer_lock_key(reviewer_id))
        reviewer = _load_one(cursor, reviewer_id)
        add_declaration(reviewer.conflicts, declaration)
        cursor.execute(
            f"""
            INSERT INTO {SCHEMA}.reviewer_coi
                (reviewer_id, organization_id, coi_type, severity, is_active, end_date, reason)
            VALUES (%s, %s, %s, %s, %s, %s, %s)
            RETURNING id;
            """,
            (
                reviewer_id,
                declaration.organization_id,
                declaration.coi_type.value,
                declaration.effective_severity.value,
                declaration.is_active,
                declaration.end_date,
                declaration.reason,
            ),
        )
        declaration_id = cursor.fetchone()["id"]
    logger.info("Declared %s conflict for %s", declaration.coi_type.value, reviewer_id)
    return declaration_id
