"""
Employment-history analysis.

Classifies each history entry as current or past, computes tenure and total
experience from leading year tokens, renders past experience, and folds
per-entry contributions into deduplicated collections.
"""

import re
from collections.abc import Iterable, Sequence
from datetime import date
from typing import Any, NamedTuple

from pydantic import BaseModel, Field

from .extractor import as_flag, as_location, as_text, unique
from .field_paths import ENTRY_PATHS, FieldPath, resolve

YEAR_PATTERN = re.compile(r"^\s*(\d{4})")
DATE_PATTERN = re.compile(r"^\s*(\d{4})(?:-(\d{1,2})(?:-(\d{1,2}))?)?")

DEFAULT_SENTINELS = ("current", "present", "ongoing")

PAST_EXPERIENCE_FORMAT = "{title} at {company} ({start} – {end})"
PAST_EXPERIENCE_SEPARATOR = "; "
OPEN_END_LABEL = "Present"


def leading_year(value: str | None) -> int | None:
    """Return the leading 4-digit year of a date string, or None."""
    if not value:
        return None
    match = YEAR_PATTERN.match(value)
    return int(match.group(1)) if match else None


def parse_start_date(value: str | None) -> date | None:
    """
    Parse YYYY, YYYY-MM or YYYY-MM-DD into a date.

    Missing month/day default to 1. Impossible dates yield None.
    """
    if not value:
        return None
    match = DATE_PATTERN.match(value)
    if not match:
        return None
    year = int(match.group(1))
    month = int(match.group(2) or 1)
    day = int(match.group(3) or 1)
    try:
        return date(year, month, day)
    except ValueError:
        return None


class EmploymentEntry(BaseModel):
    """
    One employment-history entry resolved to a common shape.

    Attributes:
        index: Position in document order
        open_ended: Whether the entry qualifies as ongoing
        start_year: Leading year of start_date
        end_year: Leading year of end_date, or the evaluation year if open-ended
    """

    index: int
    company: str | None = None
    title: str | None = None
    industry: str | None = None
    start_date: str | None = None
    end_date: str | None = None
    company_size: str | None = None
    company_location: str | None = None
    open_ended: bool = False
    start_year: int | None = None
    end_year: int | None = None

    @property
    def years(self) -> int:
        """Inclusive year span, or 0 when the range is unresolvable or inverted."""
        if self.start_year is None or self.end_year is None:
            return 0
        if self.end_year < self.start_year:
            return 0
        return self.end_year - self.start_year + 1


class EntryContribution(NamedTuple):
    """Collection values contributed by a single history entry."""

    companies: tuple[str, ...] = ()
    titles: tuple[str, ...] = ()
    industries: tuple[str, ...] = ()


class ExperienceSummary(BaseModel):
    """Everything the normalizer needs from the employment history."""

    current: EmploymentEntry | None = None
    current_company: str | None = None
    current_title: str | None = None
    current_start_date: date | None = None
    company_size: str | None = None
    company_industry: str | None = None
    company_location: str | None = None
    total_years_experience: int = 0
    years_at_current_company: int = 0
    past_experience: str | None = None
    previous_companies: list[str] = Field(default_factory=list)
    job_titles: list[str] = Field(default_factory=list)
    industries: list[str] = Field(default_factory=list)


def reduce_contributions(contributions: Iterable[EntryContribution]) -> dict[str, list[str]]:
    """Fold per-entry contributions into deduplicated, first-seen-ordered lists."""
    companies: list[str] = []
    titles: list[str] = []
    industries: list[str] = []
    for contribution in contributions:
        companies.extend(contribution.companies)
        titles.extend(contribution.titles)
        industries.extend(contribution.industries)

    return {
        "previous_companies": unique(companies),
        "job_titles": unique(titles),
        "industries": unique(industries),
    }


class ExperienceAnalyzer:
    """
    Analyzes a document's employment history.

    An entry is current when its end marker is absent, empty or a sentinel
    token, or when its duration sub-object is flagged to_present or carries
    no end date. When several entries qualify, the first in document order
    wins and the rest are treated as past experience.
    """

    def __init__(
        self,
        sentinels: Sequence[str] = DEFAULT_SENTINELS,
        include_current_in_collections: bool = True,
        entry_paths: dict[str, tuple[FieldPath, ...]] | None = None,
    ):
        """
        Initialize the analyzer.

        Args:
            sentinels: End-marker tokens meaning "ongoing" (case-insensitive)
            include_current_in_collections: Whether the selected current entry
                contributes to previous_companies, job_titles and industries
            entry_paths: Per-entry fallback table
        """
        self.sentinel_pattern = re.compile(
            r"\b(" + "|".join(re.escape(token) for token in sentinels) + r")\b",
            re.IGNORECASE,
        )
        self.include_current_in_collections = include_current_in_collections
        self.entry_paths = entry_paths or ENTRY_PATHS

    def _field(self, raw: dict[str, Any], name: str, coerce=as_text) -> Any:
        return resolve(raw, self.entry_paths.get(name, ()), coerce)

    def is_sentinel(self, end_marker: str | None) -> bool:
        return bool(end_marker) and bool(self.sentinel_pattern.search(end_marker))

    def _flagged_current(self, raw: dict[str, Any]) -> bool:
        return bool(self._field(raw, "to_present", as_flag))

    def parse_entry(self, raw: Any, index: int, current_year: int) -> EmploymentEntry | None:
        """
        Resolve a raw history entry, or return None if it is not a map.

        Args:
            raw: Entry from the document's employment list
            index: Position in document order
            current_year: Year used as the end of open-ended ranges
        """
        if not isinstance(raw, dict):
            return None

        end_date = self._field(raw, "end_date")
        open_ended = self._flagged_current(raw) or end_date is None or self.is_sentinel(end_date)
        start_date = self._field(raw, "start_date")

        return EmploymentEntry(
            index=index,
            company=self._field(raw, "company"),
            title=self._field(raw, "title"),
            industry=self._field(raw, "industry"),
            start_date=start_date,
            end_date=end_date,
            company_size=self._field(raw, "company_size"),
            company_location=self._field(raw, "company_location", as_location),
            open_ended=open_ended,
            start_year=leading_year(start_date),
            end_year=current_year if open_ended else leading_year(end_date),
        )

    def parse_history(self, history: Any, current_year: int) -> list[EmploymentEntry]:
        if not isinstance(history, list):
            return []
        entries = (self.parse_entry(raw, index, current_year) for index, raw in enumerate(history))
        return [entry for entry in entries if entry is not None]

    @staticmethod
    def select_current(entries: Sequence[EmploymentEntry]) -> EmploymentEntry | None:
        """Return the first open-ended entry in document order."""
        for entry in entries:
            if entry.open_ended:
                return entry
        return None

    @staticmethod
    def format_past(entry: EmploymentEntry) -> str:
        """Render "title at company (start – end)"; missing parts render empty."""
        if entry.open_ended:
            end = entry.end_date or OPEN_END_LABEL
        else:
            end = entry.end_date or ""
        return PAST_EXPERIENCE_FORMAT.format(
            title=entry.title or "",
            company=entry.company or "",
            start=entry.start_date or "",
            end=end,
        )

    def contribution(self, entry: EmploymentEntry, is_current: bool) -> EntryContribution:
        """Collection values this entry adds, honoring the current-entry policy."""
        if is_current and not self.include_current_in_collections:
            return EntryContribution()
        return EntryContribution(
            companies=(entry.company,) if entry.company else (),
            titles=(entry.title,) if entry.title else (),
            industries=(entry.industry,) if entry.industry else (),
        )

    def analyze(
        self,
        history: Any,
        current_year: int,
        fallback_company: str | None = None,
        fallback_title: str | None = None,
        headline: str | None = None,
    ) -> ExperienceSummary:
        """
        Analyze an employment history.

        Args:
            history: The document's employment list (anything else is treated as empty)
            current_year: Year used as the end of open-ended ranges
            fallback_company: Root-level current company, used if no entry is current
            fallback_title: Root-level current title, used if no entry is current
            headline: Profile headline, last fallback for company and title

        Returns:
            ExperienceSummary
        """
        entries = self.parse_history(history, current_year)
        current = self.select_current(entries)

        past_fragments = [
            self.format_past(entry) for entry in entries if entry is not current
        ]
        collections = reduce_contributions(
            self.contribution(entry, entry is current) for entry in entries
        )

        summary = ExperienceSummary(
            current=current,
            total_years_experience=sum(entry.years for entry in entries),
            past_experience=PAST_EXPERIENCE_SEPARATOR.join(past_fragments) or None,
            **collections,
        )

        if current is None:
            summary.current_company = fallback_company or headline
            summary.current_title = fallback_title or headline
            return summary

        summary.current_company = current.company
        summary.current_title = current.title
        summary.current_start_date = parse_start_date(current.start_date)
        summary.company_size = current.company_size
        summary.company_industry = current.industry
        summary.company_location = current.company_location
        summary.years_at_current_company = current.years
        return summary
