from __future__ import annotations

import logging
from datetime import date, datetime
from pathlib import Path
from typing import NoReturn

import typer
from rich import print
from rich.logging import RichHandler
from rich.table import Table

from . import repository
from .config import MAX_SELECTED_REVIEWERS, log_level_from_env, weights_from_env
from .db import db_cursor, load_sql
from .errors import MatchingError
from .models import (
    AvailabilityPeriod,
    AvailabilityType,
    COIDeclaration,
    COISeverity,
    COIType,
    DateRange,
    ExpertiseArea,
    Language,
    MatchingCriteria,
    SelectionStatus,
)
from .pool import ReviewerPool
from .reports import build_availability_summary, build_expertise_capacity_report
from .scoring import find_matches
from .team import build_team

app = typer.Typer(help="Peer review team matching CLI.")

SQL_DIR = Path(__file__).resolve().parents[2] / "sql"

DATE_FORMATS = ["%Y-%m-%d"]


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Log debug output.")) -> None:
    logging.basicConfig(
        level="DEBUG" if verbose else log_level_from_env(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True)],
    )


def _fail(exc: Exception) -> NoReturn:
    print(f"[red]{exc}[/red]")
    raise typer.Exit(code=1)


def _day(value: datetime | None) -> date | None:
    return value.date() if value is not None else None


def _criteria(
    review_id: str | None,
    organization: str | None,
    start: datetime | None,
    end: datetime | None,
    expertise: list[str],
    languages: list[str],
    **options: object,
) -> MatchingCriteria:
    expertise_areas = tuple(ExpertiseArea(item.upper()) for item in expertise)
    language_codes = tuple(Language(item.upper()) for item in languages)
    if review_id:
        review = repository.fetch_review(review_id)
        overrides: dict[str, object] = dict(options)
        if expertise_areas:
            overrides["required_expertise"] = expertise_areas
        if language_codes:
            overrides["required_languages"] = language_codes
        return MatchingCriteria.for_review(review, **overrides)

    if not organization or start is None or end is None:
        raise typer.BadParameter("Provide --review, or --organization with --start and --end.")
    return MatchingCriteria(
        target_organization_id=organization,
        period=DateRange(start.date(), end.date()),
        required_expertise=expertise_areas,
        required_languages=language_codes or (Language.EN, Language.FR),
        **options,
    )


@app.command("init-db")
def init_db() -> None:
    """Create schema and tables."""
    sql = load_sql(SQL_DIR / "001_init.sql")
    with db_cursor() as cursor:
        cursor.execute(sql)
    print("[green]Database initialized.[/green]")


@app.command("pool")
def pool(
    status: SelectionStatus | None = typer.Option(None, help="Only show reviewers in this status."),
) -> None:
    """Show reviewer pool with selection status and qualifications."""
    reviewers = ReviewerPool(repository.fetch_pool())
    table = Table(title="Reviewer Pool")
    table.add_column("ID")
    table.add_column("Reviewer")
    table.add_column("Organization")
    table.add_column("Status")
    table.add_column("Lead", justify="center")
    table.add_column("Reviews", justify="right")
    table.add_column("Expertise")
    table.add_column("Languages")

    for reviewer in reviewers:
        if status is not None and reviewer.selection_status is not status:
            continue
        table.add_row(
            reviewer.id,
            reviewer.name,
            reviewer.home_organization_id,
            reviewer.selection_status.value,
            "yes" if reviewer.is_lead_qualified else "-",
            str(reviewer.reviews_completed),
            ", ".join(sorted(area.value for area in reviewer.expertise_areas)),
            ", ".join(sorted(language.value for language in reviewer.language_codes)),
        )

    print(
        f"[bold]Selected:[/bold] {reviewers.selected_count()}/{MAX_SELECTED_REVIEWERS}"
    )
    print(table)


@app.command("coi")
def coi(reviewer_id: str, organization_id: str) -> None:
    """Check a reviewer for conflicts of interest with an organization."""
    try:
        result = ReviewerPool([repository.fetch_reviewer(reviewer_id)]).check_conflict(
            reviewer_id, organization_id
        )
    except MatchingError as exc:
        _fail(exc)
    if not result.has_conflict:
        print("[green]No conflict of interest.[/green]")
        return
    colour = "red" if result.is_hard_block else "yellow"
    print(f"[{colour}]{result.severity.value}[/{colour}]: {result.reason}")


@app.command("select")
def select(reviewer_id: str, status: SelectionStatus) -> None:
    """Change a reviewer's selection status."""
    try:
        updated = repository.record_selection_status(reviewer_id, status)
    except MatchingError as exc:
        _fail(exc)
    print(f"[green]{updated.name} is now {updated.selection_status.value}.[/green]")


@app.command("match")
def match(
    review: str | None = typer.Option(None, help="Review id to match against."),
    organization: str | None = typer.Option(None, help="Target (host) organization id."),
    start: datetime | None = typer.Option(None, formats=DATE_FORMATS),
    end: datetime | None = typer.Option(None, formats=DATE_FORMATS),
    expertise: list[str] = typer.Option([], help="Required expertise area (repeatable)."),
    language: list[str] = typer.Option([], help="Required language (repeatable)."),
    lead_only: bool = typer.Option(False, help="Only lead-qualified reviewers."),
    min_score: float = typer.Option(0.0, help="Minimum score to list."),
    limit: int = typer.Option(20, help="Maximum reviewers to list."),
) -> None:
    """Rank eligible reviewers for a review."""
    try:
        criteria = _criteria(
            review, organization, start, end, expertise, language, require_lead_qualified=lead_only
        )
        results = find_matches(
            repository.fetch_pool(), criteria, weights_from_env(), min_score=min_score, limit=limit
        )
    except (MatchingError, LookupError, ValueError) as exc:
        _fail(exc)

    if not results:
        print("[yellow]No eligible reviewers.[/yellow]")
        return

    table = Table(title="Reviewer Matches")
    table.add_column("Reviewer")
    table.add_column("Score", justify="right")
    table.add_column("Expertise", justify="right")
    table.add_column("Language", justify="right")
    table.add_column("Avail.", justify="right")
    table.add_column("Exp.", justify="right")
    table.add_column("Lead", justify="center")
    table.add_column("Warnings")
    for result in results:
        table.add_row(
            result.reviewer_name,
            f"{result.total:.2f}",
            f"{result.breakdown.expertise:.0f}",
            f"{result.breakdown.language:.0f}",
            f"{result.breakdown.availability:.0f}",
            f"{result.breakdown.experience:.0f}",
            "yes" if result.is_lead_qualified else "-",
            "; ".join(result.warnings),
        )
    print(table)


@app.command("build-team")
def build_team_command(
    review: str | None = typer.Option(None, help="Review id to staff."),
    organization: str | None = typer.Option(None, help="Target (host) organization id."),
    start: datetime | None = typer.Option(None, formats=DATE_FORMATS),
    end: datetime | None = typer.Option(None, formats=DATE_FORMATS),
    expertise: list[str] = typer.Option([], help="Required expertise area (repeatable)."),
    language: list[str] = typer.Option([], help="Required language (repeatable)."),
    size: int = typer.Option(4, help="Team size."),
    require_lead: bool = typer.Option(True, help="Require a lead reviewer."),
    include: list[str] = typer.Option([], help="Reviewer id that must be on the team."),
    exclude: list[str] = typer.Option([], help="Reviewer id to leave out."),
    cross_team: bool = typer.Option(False, help="Allow reviewers from other regional teams."),
) -> None:
    """Assemble a review team and show its coverage."""
    try:
        criteria = _criteria(
            review,
            organization,
            start,
            end,
            expertise,
            language,
            team_size=size,
            require_lead_reviewer=require_lead,
            must_include_ids=tuple(include),
            exclude_ids=frozenset(exclude),
            include_cross_team=cross_team,
        )
        result = build_team(repository.fetch_pool(), criteria, weights_from_env())
    except (MatchingError, LookupError, ValueError) as exc:
        _fail(exc)

    table = Table(title="Proposed Team")
    table.add_column("Reviewer")
    table.add_column("Role")
    table.add_column("Score", justify="right")
    table.add_column("Expertise")
    table.add_column("Languages")
    table.add_column("Availability", justify="right")
    for member in result.members:
        table.add_row(
            member.match.reviewer_name,
            member.role.value,
            f"{member.match.total:.2f}",
            ", ".join(area.value for area in member.match.matched_expertise),
            ", ".join(language.value for language in member.match.matched_languages),
            f"{member.match.availability_ratio:.0%}",
        )
    print(table)

    report = result.coverage
    print(
        f"[bold]Expertise:[/bold] {report.expertise_coverage_percent}% | "
        f"[bold]Languages:[/bold] {report.language_coverage_percent}% | "
        f"[bold]Lead:[/bold] {'yes' if report.has_lead_qualified else 'no'}"
    )
    for warning in result.warnings:
        print(f"[yellow]- {warning}[/yellow]")
    if result.is_viable:
        print("[green]Team is viable.[/green]")
    else:
        print(f"[red]Team is not viable (shortfall {result.shortfall}).[/red]")


@app.command("common-availability")
def common_availability(
    reviewer_ids: list[str],
    start: datetime = typer.Option(..., formats=DATE_FORMATS),
    end: datetime = typer.Option(..., formats=DATE_FORMATS),
    min_days: int = typer.Option(5, help="Shortest range worth listing."),
) -> None:
    """Find date ranges where every listed reviewer is available."""
    try:
        reviewers = ReviewerPool(repository.fetch_pool(reviewer_ids))
        ranges = reviewers.find_common_ranges(
            reviewer_ids, DateRange(start.date(), end.date()), min_days
        )
    except (MatchingError, ValueError) as exc:
        _fail(exc)

    if not ranges:
        print("[yellow]No common availability.[/yellow]")
        return

    table = Table(title="Common Availability")
    table.add_column("Start")
    table.add_column("End")
    table.add_column("Days", justify="right")
    for item in ranges:
        table.add_row(item.start.isoformat(), item.end.isoformat(), str(item.days))
    print(table)


@app.command("add-availability")
def add_availability(
    reviewer_id: str,
    start: datetime = typer.Option(..., formats=DATE_FORMATS),
    end: datetime = typer.Option(..., formats=DATE_FORMATS),
    kind: AvailabilityType = typer.Option(AvailabilityType.AVAILABLE, "--type"),
) -> None:
    """Declare an availability period for a reviewer."""
    try:
        period_id = repository.add_availability(
            reviewer_id, AvailabilityPeriod(start.date(), end.date(), kind)
        )
    except (MatchingError, ValueError) as exc:
        _fail(exc)
    print(f"[green]Added period {period_id}.[/green]")


@app.command("block")
def block(
    reviewer_id: str,
    review_id: str,
    start: datetime | None = typer.Option(None, formats=DATE_FORMATS),
    end: datetime | None = typer.Option(None, formats=DATE_FORMATS),
) -> None:
    """Block a reviewer's calendar for a review assignment."""
    try:
        if start is None or end is None:
            period = repository.fetch_review(review_id).period
        else:
            period = DateRange(start.date(), end.date())
        repository.block_for_review(reviewer_id, review_id, period)
    except (MatchingError, LookupError, ValueError) as exc:
        _fail(exc)
    print(f"[green]Blocked {period.start} to {period.end}.[/green]")


@app.command("unblock")
def unblock(reviewer_id: str, review_id: str) -> None:
    """Release a reviewer's assignment block for a review."""
    deleted = repository.unblock_for_review(reviewer_id, review_id)
    if not deleted:
        print("[yellow]No assignment block found.[/yellow]")
        return
    print(f"[green]Removed {deleted} assignment block(s).[/green]")


@app.command("declare-coi")
def declare_coi(
    reviewer_id: str,
    organization_id: str,
    coi_type: COIType,
    severity: COISeverity | None = typer.Option(None, help="Defaults to SOFT_WARNING."),
    until: datetime | None = typer.Option(None, formats=DATE_FORMATS, help="Conflict end date."),
    reason: str | None = typer.Option(None, help="Free-text explanation."),
) -> None:
    """Record a conflict-of-interest declaration for a reviewer."""
    declaration = COIDeclaration(
        organization_id=organization_id,
        coi_type=coi_type,
        severity=severity,
        end_date=_day(until),
        reason=reason,
    )
    try:
        declaration_id = repository.declare_conflict(reviewer_id, declaration)
    except MatchingError as exc:
        _fail(exc)
    print(
        f"[green]Declared {coi_type.value} conflict {declaration_id} "
        f"({declaration.effective_severity.value}).[/green]"
    )


@app.command("availability-summary")
def availability_summary(
    start: datetime = typer.Option(..., formats=DATE_FORMATS),
    end: datetime = typer.Option(..., formats=DATE_FORMATS),
) -> None:
    """Show pool availability for a window (tentative days count half)."""
    summary = build_availability_summary(
        repository.fetch_pool(), DateRange(start.date(), end.date())
    )
    print(
        f"[bold]Reviewers:[/bold] {summary.reviewer_count} | "
        f"[bold]Avg Availability:[/bold] {summary.avg_availability_rate:.0%} | "
        f"[bold]Fully Booked:[/bold] {summary.fully_booked}"
    )

    table = Table(title="Reviewer Availability")
    table.add_column("Reviewer")
    table.add_column("Available", justify="right")
    table.add_column("Tentative", justify="right")
    table.add_column("On Assignment", justify="right")
    table.add_column("Rate", justify="right")
    table.add_column("Next Available")
    for item in summary.reviewer_stats:
        stats = item.stats
        table.add_row(
            item.reviewer,
            str(stats.available_days),
            str(stats.tentative_days),
            str(stats.on_assignment_days),
            f"{stats.availability_rate:.0%}",
            stats.next_available.start.isoformat() if stats.next_available else "-",
        )
    print(table)


@app.command("expertise-capacity")
def expertise_capacity() -> None:
    """Compare expertise demand from open reviews with the selected pool."""
    report = build_expertise_capacity_report(
        repository.fetch_pool(), repository.fetch_open_reviews()
    )
    if not report:
        print("[yellow]No expertise data.[/yellow]")
        return

    table = Table(title="Expertise Capacity")
    table.add_column("Area")
    table.add_column("Demand", justify="right")
    table.add_column("Reviewers", justify="right")
    table.add_column("Leads", justify="right")
    table.add_column("Coverage", justify="right")
    for item in report:
        table.add_row(
            item.area,
            str(item.demand_count),
            str(item.reviewer_count),
            str(item.lead_count),
            "-" if item.coverage_ratio is None else f"{item.coverage_ratio:.1f}",
        )
    print(table)


if __name__ == "__main__":
    app()
