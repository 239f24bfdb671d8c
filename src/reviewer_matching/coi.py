from __future__ import annotations

from datetime import date
from typing import Iterable

from .errors import DuplicateDeclaration
from .models import COIDeclaration, COISeverity, COIType, ConflictResult, ReviewerProfile

CONFLICT_REASONS: dict[COIType, str] = {
    COIType.EMPLOYMENT: "Employment relationship",
    COIType.FINANCIAL: "Financial interest",
    COIType.CONTRACTUAL: "Contractual relationship",
    COIType.PERSONAL: "Personal relationship",
    COIType.PREVIOUS_REVIEW: "Previously reviewed",
    COIType.HOME_ORGANIZATION: "Current employer",
    COIType.FAMILY_RELATIONSHIP: "Family relationship",
    COIType.FORMER_EMPLOYEE: "Former employee",
    COIType.BUSINESS_INTEREST: "Business interest",
    COIType.RECENT_REVIEW: "Recently reviewed this organization",
    COIType.OTHER: "Other declared conflict",
}

HOME_ORGANIZATION_REASON = "Home organization"

NO_CONFLICT = ConflictResult(has_conflict=False)


def conflict_reason(declaration: COIDeclaration) -> str:
    label = CONFLICT_REASONS.get(declaration.coi_type, "Conflict of interest")
    if declaration.reason:
        return f"{label}: {declaration.reason}"
    return label


def active_declarations(
    declarations: Iterable[COIDeclaration],
    organization_id: str,
    as_of: date,
) -> list[COIDeclaration]:
    return [
        declaration
        for declaration in declarations
        if declaration.organization_id == organization_id and declaration.is_in_force(as_of)
    ]


def check_conflict(
    reviewer: ReviewerProfile,
    target_organization_id: str,
    as_of: date | None = None,
) -> ConflictResult:
    if reviewer.home_organization_id == target_organization_id:
        return ConflictResult(
            has_conflict=True,
            severity=COISeverity.HARD_BLOCK,
            reason=HOME_ORGANIZATION_REASON,
            coi_type=COIType.HOME_ORGANIZATION,
        )

    consulted = active_declarations(
        reviewer.conflicts, target_organization_id, as_of or date.today()
    )
    if not consulted:
        return NO_CONFLICT

    hard = [coi for coi in consulted if coi.effective_severity is COISeverity.HARD_BLOCK]
    chosen = hard[0] if hard else consulted[0]
    return ConflictResult(
        has_conflict=True,
        severity=chosen.effective_severity,
        reason=conflict_reason(chosen),
        coi_type=chosen.coi_type,
        declaration_id=chosen.id,
    )


def add_declaration(
    declarations: Iterable[COIDeclaration],
    declaration: COIDeclaration,
) -> tuple[COIDeclaration, ...]:
    existing = tuple(declarations)
    if declaration.is_active:
        for current in existing:
            if (
                current.is_active
                and current.organization_id == declaration.organization_id
                and current.coi_type == declaration.coi_type
            ):
                raise DuplicateDeclaration(declaration.organization_id, declaration.coi_type.value)
    return existing + (declaration,)
