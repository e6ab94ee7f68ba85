"""
Profile normalizer: one semi-structured document in, one FlattenedRecord out.

Composes the field extractor and the experience analyzer. Deterministic and
side-effect free for a fixed evaluation year; callable on its own for
debugging and backfills.
"""

import copy
from datetime import datetime
from typing import Any

from profile_sync.core.config import ProjectionConfig
from profile_sync.core.errors import TransformFailure
from profile_sync.core.models import FlattenedRecord
from profile_sync.search import SearchIndexMaintainer

from .experience import ExperienceAnalyzer
from .extractor import FieldExtractor


class ProfileNormalizer:
    """
    Transforms profile documents into flattened records.

    Only a structurally invalid input (a document that is not a map, or an
    empty key) is a hard failure; any map yields a best-effort record.
    """

    def __init__(self, config: ProjectionConfig | None = None):
        """
        Initialize normalizer.

        Args:
            config: Projection policy (defaults apply when omitted)
        """
        self.config = config or ProjectionConfig()
        self.extractor = FieldExtractor()
        self.analyzer = ExperienceAnalyzer(
            sentinels=self.config.current_sentinels,
            include_current_in_collections=self.config.collections_include_current,
        )
        self.search_maintainer = SearchIndexMaintainer(self.config.search_variant)

    def normalize(
        self,
        document: Any,
        key: str,
        *,
        label: str | None = None,
        source_version: datetime | None = None,
        current_year: int | None = None,
    ) -> FlattenedRecord:
        """
        Flatten a document.

        Args:
            document: Profile document (legacy flat or nested shape)
            key: Source record key
            label: Optional batch label
            source_version: Version of the source row
            current_year: Year closing open-ended ranges (defaults to this year)

        Returns:
            FlattenedRecord with a computed search representation

        Raises:
            TransformFailure: If the document is not a map, the key is empty,
                or the record cannot be built
        """
        if not isinstance(key, str) or not key.strip():
            raise TransformFailure(None, "key must be a non-empty string")
        if not isinstance(document, dict):
            raise TransformFailure(key, f"document must be a map, got {type(document).__name__}")

        year = current_year or datetime.now().year

        try:
            person = self.extractor.person_fields(document)
            experience = self.analyzer.analyze(
                self.extractor.items(document, "employment"),
                current_year=year,
                fallback_company=self.extractor.text(document, "current_company"),
                fallback_title=self.extractor.text(document, "current_position"),
                headline=person["current_title"],
            )

            record = FlattenedRecord(
                key=key,
                **person,
                current_company=experience.current_company,
                current_title_from_workexp=experience.current_title,
                current_start_date=experience.current_start_date,
                company_size=experience.company_size,
                company_industry=experience.company_industry,
                company_location=experience.company_location,
                total_years_experience=experience.total_years_experience,
                years_at_current_company=experience.years_at_current_company,
                past_experience=experience.past_experience,
                previous_companies=experience.previous_companies,
                job_titles=experience.job_titles,
                industries=experience.industries,
                **self.extractor.skill_fields(document),
                **self.extractor.education_fields(document),
                certifications=self.extractor.certifications(document),
                label=label,
                full_jsonb=copy.deepcopy(document),
                source_version=source_version,
            )
        except Exception as e:
            raise TransformFailure(key, f"{type(e).__name__}: {e}") from e

        return self.search_maintainer.refresh(record)


_default_normalizer: ProfileNormalizer | None = None


def get_default_normalizer() -> ProfileNormalizer:
    """Return the process-wide normalizer built from default policy."""
    global _default_normalizer
    if _default_normalizer is None:
        _default_normalizer = ProfileNormalizer()
    return _default_normalizer


def normalize(
    document: Any,
    key: str,
    config: ProjectionConfig | None = None,
    **kwargs,
) -> FlattenedRecord:
    """
    Flatten a document with the given policy, or the default one.

    Manual entry point for debugging and backfills; see ProfileNormalizer.normalize.
    """
    normalizer = ProfileNormalizer(config) if config is not None else get_default_normalizer()
    return normalizer.normalize(document, key, **kwargs)
