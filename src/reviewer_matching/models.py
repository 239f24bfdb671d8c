from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Iterator


class SelectionStatus(str, Enum):
    NOMINATED = "NOMINATED"
    UNDER_REVIEW = "UNDER_REVIEW"
    SELECTED = "SELECTED"
    INACTIVE = "INACTIVE"
    WITHDRAWN = "WITHDRAWN"
    REJECTED = "REJECTED"


class AvailabilityType(str, Enum):
    AVAILABLE = "AVAILABLE"
    TENTATIVE = "TENTATIVE"
    UNAVAILABLE = "UNAVAILABLE"
    ON_ASSIGNMENT = "ON_ASSIGNMENT"


class COIType(str, Enum):
    EMPLOYMENT = "EMPLOYMENT"
    FINANCIAL = "FINANCIAL"
    CONTRACTUAL = "CONTRACTUAL"
    PERSONAL = "PERSONAL"
    PREVIOUS_REVIEW = "PREVIOUS_REVIEW"
    OTHER = "OTHER"
    HOME_ORGANIZATION = "HOME_ORGANIZATION"
    FAMILY_RELATIONSHIP = "FAMILY_RELATIONSHIP"
    FORMER_EMPLOYEE = "FORMER_EMPLOYEE"
    BUSINESS_INTEREST = "BUSINESS_INTEREST"
    RECENT_REVIEW = "RECENT_REVIEW"


class COISeverity(str, Enum):
    HARD_BLOCK = "HARD_BLOCK"
    SOFT_WARNING = "SOFT_WARNING"


class ExpertiseArea(str, Enum):
    ATS = "ATS"
    AIM_AIS = "AIM_AIS"
    FPD = "FPD"
    MAP = "MAP"
    MET = "MET"
    CNS = "CNS"
    PANS_OPS = "PANS_OPS"
    SAR = "SAR"
    SMS_POLICY = "SMS_POLICY"
    SMS_RISK = "SMS_RISK"
    SMS_ASSURANCE = "SMS_ASSURANCE"
    SMS_PROMOTION = "SMS_PROMOTION"
    AERODROME = "AERODROME"
    RFF = "RFF"
    ENGINEERING = "ENGINEERING"
    QMS = "QMS"
    TRAINING = "TRAINING"
    HUMAN_FACTORS = "HUMAN_FACTORS"


class Language(str, Enum):
    EN = "EN"
    FR = "FR"
    AR = "AR"
    PT = "PT"
    ES = "ES"


class ProficiencyLevel(str, Enum):
    BASIC = "BASIC"
    COMPETENT = "COMPETENT"
    PROFICIENT = "PROFICIENT"
    EXPERT = "EXPERT"


class LanguageProficiency(str, Enum):
    BASIC = "BASIC"
    INTERMEDIATE = "INTERMEDIATE"
    ADVANCED = "ADVANCED"
    NATIVE = "NATIVE"


class CertificationType(str, Enum):
    PEER_REVIEWER = "PEER_REVIEWER"
    LEAD_REVIEWER = "LEAD_REVIEWER"
    SMS_ASSESSOR = "SMS_ASSESSOR"
    ICAO_AUDITOR = "ICAO_AUDITOR"
    CANSO_TRAINER = "CANSO_TRAINER"
    ATC_LICENSE = "ATC_LICENSE"
    OTHER = "OTHER"


class TeamRole(str, Enum):
    LEAD_REVIEWER = "LEAD_REVIEWER"
    REVIEWER = "REVIEWER"


# Conflict types that can never be waived, whatever severity was recorded.
HARD_COI_TYPES = frozenset({COIType.HOME_ORGANIZATION, COIType.FAMILY_RELATIONSHIP})


@dataclass(frozen=True)
class DateRange:
    """Inclusive calendar range. A range with start == end covers one day."""

    start: date
    end: date

    def __post_init__(self) -> None:
        if self.end < self.start:
            raise ValueError(f"Range ends before it starts: {self.start} > {self.end}")

    @property
    def days(self) -> int:
        return (self.end - self.start).days + 1

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end

    def overlaps(self, other: DateRange) -> bool:
        return self.start <= other.end and self.end >= other.start

    def spans(self, other: DateRange) -> bool:
        return self.start <= other.start and self.end >= other.end

    def iter_days(self) -> Iterator[date]:
        current = self.start
        while current <= self.end:
            yield current
            current += timedelta(days=1)


@dataclass(frozen=True)
class ExpertiseRecord:
    area: ExpertiseArea
    proficiency: ProficiencyLevel = ProficiencyLevel.PROFICIENT
    years_in_area: int = 0


@dataclass(frozen=True)
class LanguageRecord:
    language: Language
    proficiency: LanguageProficiency = LanguageProficiency.ADVANCED
    is_native: bool = False
    can_conduct_interviews: bool = False
    icao_level: int | None = None
    certified_on: date | None = None
    certification_expires_on: date | None = None


@dataclass(frozen=True)
class Certification:
    certification_type: CertificationType
    issued_on: date
    expires_on: date | None = None

    def is_valid(self, as_of: date) -> bool:
        return self.issued_on <= as_of and (self.expires_on is None or self.expires_on > as_of)


@dataclass(frozen=True)
class AvailabilityPeriod:
    start: date
    end: date
    availability_type: AvailabilityType = AvailabilityType.AVAILABLE
    review_id: str | None = None
    id: int | None = None

    def __post_init__(self) -> None:
        if self.end < self.start:
            raise ValueError(f"Availability period ends before it starts: {self.start} > {self.end}")

    @property
    def period(self) -> DateRange:
        return DateRange(self.start, self.end)


@dataclass(frozen=True)
class COIDeclaration:
    organization_id: str
    coi_type: COIType
    severity: COISeverity | None = None
    is_active: bool = True
    end_date: date | None = None
    reason: str | None = None
    verified_by: str | None = None
    verified_at: datetime | None = None
    id: int | None = None

    @property
    def effective_severity(self) -> COISeverity:
        if self.coi_type in HARD_COI_TYPES:
            return COISeverity.HARD_BLOCK
        return self.severity or COISeverity.SOFT_WARNING

    def is_in_force(self, as_of: date) -> bool:
        return self.is_active and (self.end_date is None or self.end_date > as_of)


@dataclass(frozen=True)
class ReviewerProfile:
    id: str
    name: str
    home_organization_id: str
    selection_status: SelectionStatus = SelectionStatus.NOMINATED
    is_lead_qualified: bool = False
    is_available: bool = True
    reviews_completed: int = 0
    reviews_as_lead: int = 0
    team_id: str | None = None
    expertise: tuple[ExpertiseRecord, ...] = ()
    languages: tuple[LanguageRecord, ...] = ()
    certifications: tuple[Certification, ...] = ()
    availability: tuple[AvailabilityPeriod, ...] = ()
    conflicts: tuple[COIDeclaration, ...] = ()

    def __post_init__(self) -> None:
        areas = [record.area for record in self.expertise]
        if len(areas) != len(set(areas)):
            raise ValueError(f"Reviewer {self.id} has more than one record per expertise area")
        languages = [record.language for record in self.languages]
        if len(languages) != len(set(languages)):
            raise ValueError(f"Reviewer {self.id} has more than one record per language")
        active_keys = [
            (coi.organization_id, coi.coi_type) for coi in self.conflicts if coi.is_active
        ]
        if len(active_keys) != len(set(active_keys)):
            raise ValueError(
                f"Reviewer {self.id} has duplicate active conflict declarations"
            )

    @property
    def expertise_areas(self) -> frozenset[ExpertiseArea]:
        return frozenset(record.area for record in self.expertise)

    @property
    def language_codes(self) -> frozenset[Language]:
        return frozenset(record.language for record in self.languages)


@dataclass(frozen=True)
class ReviewTarget:
    id: str
    host_organization_id: str
    period: DateRange
    required_expertise: tuple[ExpertiseArea, ...] = ()
    preferred_expertise: tuple[ExpertiseArea, ...] = ()
    required_languages: tuple[Language, ...] = ()
    preferred_languages: tuple[Language, ...] = ()
    host_team_id: str | None = None
    team_member_ids: tuple[str, ...] = ()


@dataclass(frozen=True)
class MatchingCriteria:
    target_organization_id: str
    period: DateRange
    required_expertise: tuple[ExpertiseArea, ...] = ()
    preferred_expertise: tuple[ExpertiseArea, ...] = ()
    required_languages: tuple[Language, ...] = ()
    preferred_languages: tuple[Language, ...] = ()
    team_size: int = 4
    require_lead_reviewer: bool = True
    require_lead_qualified: bool = False
    check_availability_flag: bool = True
    require_full_availability: bool = False
    host_team_id: str | None = None
    include_cross_team: bool = False
    exclude_ids: frozenset[str] = field(default_factory=frozenset)
    must_include_ids: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if self.team_size < 1:
            raise ValueError("Team size must be at least 1")
        both = set(self.must_include_ids) & set(self.exclude_ids)
        if both:
            raise ValueError(
                f"Reviewers both required and excluded: {', '.join(sorted(both))}"
            )
        if len(set(self.must_include_ids)) > self.team_size:
            raise ValueError("More must-include reviewers than team slots")

    @classmethod
    def for_review(cls, review: ReviewTarget, **overrides: object) -> MatchingCriteria:
        values: dict[str, object] = {
            "target_organization_id": review.host_organization_id,
            "period": review.period,
            "required_expertise": review.required_expertise,
            "preferred_expertise": review.preferred_expertise,
            "required_languages": review.required_languages,
            "preferred_languages": review.preferred_languages,
            "host_team_id": review.host_team_id,
        }
        values.update(overrides)
        # The review's current team is always excluded, whatever else is.
        values["exclude_ids"] = frozenset(overrides.get("exclude_ids") or ()) | frozenset(
            review.team_member_ids
        )
        return cls(**values)


@dataclass(frozen=True)
class ConflictResult:
    has_conflict: bool
    severity: COISeverity | None = None
    reason: str | None = None
    coi_type: COIType | None = None
    declaration_id: int | None = None

    @property
    def is_hard_block(self) -> bool:
        return self.severity is COISeverity.HARD_BLOCK

    @property
    def is_soft_warning(self) -> bool:
        return self.severity is COISeverity.SOFT_WARNING


@dataclass(frozen=True)
class CoverageResult:
    fully_covered: bool
    ratio: float
    gaps: tuple[DateRange, ...]
    covered_days: int
    total_days: int
    tentative_days: int = 0
    weighted_ratio: float = 0.0


@dataclass(frozen=True)
class ScoreBreakdown:
    expertise: float
    language: float
    availability: float
    experience: float


@dataclass(frozen=True)
class MatchResult:
    reviewer_id: str
    reviewer_name: str
    total: float
    breakdown: ScoreBreakdown
    matched_expertise: tuple[ExpertiseArea, ...]
    missing_expertise: tuple[ExpertiseArea, ...]
    matched_preferred_expertise: tuple[ExpertiseArea, ...]
    matched_languages: tuple[Language, ...]
    missing_languages: tuple[Language, ...]
    matched_preferred_languages: tuple[Language, ...]
    conflict: ConflictResult
    is_eligible: bool
    is_lead_qualified: bool
    reviews_completed: int
    availability_ratio: float
    ineligibility_reason: str | None = None
    warnings: tuple[str, ...] = ()


@dataclass(frozen=True)
class TeamMember:
    reviewer_id: str
    role: TeamRole
    match: MatchResult


@dataclass(frozen=True)
class CoverageReport:
    required_expertise: tuple[ExpertiseArea, ...]
    covered_expertise: tuple[ExpertiseArea, ...]
    uncovered_expertise: tuple[ExpertiseArea, ...]
    expertise_coverage_percent: int
    required_languages: tuple[Language, ...]
    covered_languages: tuple[Language, ...]
    uncovered_languages: tuple[Language, ...]
    language_coverage_percent: int
    has_lead_qualified: bool
    soft_warning_members: tuple[str, ...]
    availability_by_member: dict[str, float]


@dataclass(frozen=True)
class TeamBuildResult:
    members: tuple[TeamMember, ...]
    coverage: CoverageReport
    warnings: tuple[str, ...]
    is_viable: bool
    team_size: int
    failure_reason: str | None = None
    total_score: float = 0.0
    average_score: float = 0.0

    @property
    def shortfall(self) -> int:
        return max(self.team_size - len(self.members), 0)

    @property
    def reviewer_ids(self) -> list[str]:
        return [member.reviewer_id for member in self.members]

    @property
    def lead(self) -> TeamMember | None:
        return next(
            (member for member in self.members if member.role is TeamRole.LEAD_REVIEWER),
            None,
        )


@dataclass(frozen=True)
class CommonRange:
    start: date
    end: date
    days: int
