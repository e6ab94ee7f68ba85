"""
FlattenedRecord model representing one row of the derived flattened_profiles table.
"""

from datetime import date, datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


# Collection columns; every one is a deduplicated list of non-empty strings
COLLECTION_FIELDS = (
    "skills",
    "technologies",
    "programming_languages",
    "previous_companies",
    "job_titles",
    "industries",
    "education_degrees",
    "education_schools",
    "education_fields",
    "certifications",
)


class SearchRepresentation(BaseModel):
    """
    Weighted text-search content derived from a flattened record.

    Attributes:
        variant: "structured" (weighted record fields) or "document" (raw document)
        weighted: Text per weight class, A (highest) to D (lowest)
        text: All weighted text concatenated, highest weight first
    """

    variant: Literal["structured", "document"] = "structured"
    weighted: dict[str, str] = Field(default_factory=dict)
    text: str = ""


class FlattenedRecord(BaseModel):
    """
    Structured, query-optimized projection of one source profile.

    Attributes:
        key: Source record key (flattened_profiles.original_id)
        full_jsonb: Verbatim copy of the source document
        search: Search representation, recomputed on every write
        source_version: Version of the source row this record was derived from
    """

    key: str = Field(..., min_length=1)

    # Person
    full_name: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None
    phone: str | None = None
    linkedin: str | None = None
    github_url: str | None = None
    website_url: str | None = None
    location: str | None = None
    current_title: str | None = None
    about_me: str | None = None
    gender: str | None = None

    # Current position
    current_company: str | None = None
    current_title_from_workexp: str | None = None
    current_start_date: date | None = None
    company_size: str | None = None
    company_industry: str | None = None
    company_location: str | None = None

    # Aggregate experience
    total_years_experience: int = Field(0, ge=0)
    years_at_current_company: int = Field(0, ge=0)
    past_experience: str | None = None

    # Collections
    skills: list[str] = Field(default_factory=list)
    technologies: list[str] = Field(default_factory=list)
    programming_languages: list[str] = Field(default_factory=list)
    previous_companies: list[str] = Field(default_factory=list)
    job_titles: list[str] = Field(default_factory=list)
    industries: list[str] = Field(default_factory=list)
    education_degrees: list[str] = Field(default_factory=list)
    education_schools: list[str] = Field(default_factory=list)
    education_fields: list[str] = Field(default_factory=list)
    certifications: list[str] = Field(default_factory=list)

    # Provenance
    label: str | None = None
    profile_source: str = "public_profiles"
    full_jsonb: dict[str, Any] = Field(default_factory=dict)
    source_version: datetime | None = None

    search: SearchRepresentation | None = None

    @field_validator(*COLLECTION_FIELDS)
    @classmethod
    def check_collection_clean(cls, v):
        """Collections may not contain duplicates or empty strings."""
        if any(not item for item in v):
            raise ValueError("collection contains an empty value")
        if len(set(v)) != len(v):
            raise ValueError("collection contains duplicate values")
        return v

    def derived_columns(self) -> dict[str, Any]:
        """Return every derived column except the key, search and provenance version."""
        return self.model_dump(exclude={"key", "search", "source_version"})

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "key": "p1",
                "full_name": "Jane Smith",
                "first_name": "Jane",
                "last_name": "Smith",
                "location": "New York, NY",
                "current_title": "Product Manager",
                "current_company": "BigTech Corp",
                "current_title_from_workexp": "Senior PM",
                "current_start_date": "2021-03-01",
                "total_years_experience": 4,
                "years_at_current_company": 4,
                "skills": ["Product Strategy", "User Research"],
                "previous_companies": ["BigTech Corp"],
                "job_titles": ["Senior PM"],
                "profile_source": "public_profiles"
            }
        }
    )
