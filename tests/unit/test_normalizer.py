"""
Unit tests for the profile normalizer.

Includes property-based testing with hypothesis for determinism and dedup.
"""

from datetime import date, datetime, timezone

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from profile_sync.core.config import ProjectionConfig
from profile_sync.core.errors import TransformFailure
from profile_sync.core.flattening import ProfileNormalizer, normalize
from profile_sync.core.models import COLLECTION_FIELDS

json_scalars = (
    st.none()
    | st.booleans()
    | st.integers()
    | st.floats(allow_nan=False, allow_infinity=False)
    | st.text(max_size=20)
)
json_values = st.recursive(
    json_scalars,
    lambda children: st.lists(children, max_size=4) | st.dictionaries(st.text(max_size=10), children, max_size=4),
    max_leaves=20,
)
profile_keys = st.sampled_from([
    "name", "headline", "skills", "location", "work_experience", "education",
    "candidate", "experience", "certifications", "current_company", "summary",
])
documents = st.dictionaries(profile_keys | st.text(max_size=10), json_values, max_size=8)


class TestEndToEndScenario:
    """The Jane Smith profile flattened from the legacy flat shape"""

    def setup_method(self):
        self.normalizer = ProfileNormalizer()

    def test_flattened_fields(self, jane_document):
        record = self.normalizer.normalize(jane_document, "p1", current_year=2024)

        assert record.key == "p1"
        assert record.full_name == "Jane Smith"
        assert record.first_name == "Jane"
        assert record.last_name == "Smith"
        assert record.location == "New York, NY"
        assert record.current_title == "Product Manager"
        assert record.current_company == "BigTech Corp"
        assert record.current_title_from_workexp == "Senior PM"
        assert record.current_start_date == date(2021, 3, 1)
        assert record.years_at_current_company == 4
        assert record.total_years_experience == 4
        assert record.skills == ["Product Strategy", "User Research"]
        assert record.past_experience is None
        assert record.profile_source == "public_profiles"

    def test_search_representation(self, jane_document):
        record = self.normalizer.normalize(jane_document, "p1", current_year=2024)

        assert record.search is not None
        assert "Jane Smith" in record.search.text
        assert "BigTech Corp" in record.search.text
        assert "Jane Smith" in record.search.weighted["A"]

    def test_full_jsonb_is_a_copy(self, jane_document):
        record = self.normalizer.normalize(jane_document, "p1", current_year=2024)
        jane_document["skills"].append("Mutated Later")

        assert record.full_jsonb["skills"] == ["Product Strategy", "User Research"]
        assert record.full_jsonb["name"] == "Jane Smith"

    def test_label_and_version_carried(self, jane_document):
        version = datetime(2024, 11, 17, 12, 0, tzinfo=timezone.utc)
        record = self.normalizer.normalize(
            jane_document, "p1", label="Q4 2024 Product Candidates",
            source_version=version, current_year=2024,
        )
        assert record.label == "Q4 2024 Product Candidates"
        assert record.source_version == version


class TestShapeFallback:
    """Equivalent flat and nested documents flatten to the same logical record"""

    def test_flat_and_nested_agree(self, nested_document):
        flat_document = {
            "name": "Ana Lima",
            "headline": "Data Engineer",
            "email": "ana@example.com",
            "work_experience": [
                {"company": "Acme Analytics", "title": "Data Engineer", "start_date": "2020-05",
                 "end_date": "present", "industry": "Software"},
                {"company": "Old Bank", "title": "Analyst", "start_date": "2016-09",
                 "end_date": "2020-04", "industry": "Finance"},
            ],
        }
        normalizer = ProfileNormalizer()
        flat = normalizer.normalize(flat_document, "a1", current_year=2024)
        nested = normalizer.normalize(nested_document, "a1", current_year=2024)

        for field in (
            "full_name",
            "email",
            "current_company",
            "current_title_from_workexp",
            "current_start_date",
            "years_at_current_company",
            "total_years_experience",
            "past_experience",
            "previous_companies",
            "job_titles",
            "industries",
        ):
            assert getattr(flat, field) == getattr(nested, field), field

        assert nested.current_company == "Acme Analytics"
        assert nested.total_years_experience == 5 + 5
        assert nested.past_experience == "Analyst at Old Bank (2016-09 – 2020-04)"
        assert nested.education_schools == ["Universidade de Lisboa"]

    def test_first_open_entry_is_current(self):
        document = {"work_experience": [
            {"company": "First Co", "title": "CTO", "start_date": "2020"},
            {"company": "Second Co", "title": "Advisor", "start_date": "2022"},
        ]}
        record = normalize(document, "k", current_year=2024)
        assert record.current_company == "First Co"
        assert "Second Co" in record.past_experience


class TestNormalizerFailures:
    """Tests for the only hard failures: bad keys and non-map documents"""

    @pytest.mark.parametrize("document", ["garbage", ["a", "b"], 42, None])
    def test_non_map_document(self, document):
        with pytest.raises(TransformFailure) as exc_info:
            ProfileNormalizer().normalize(document, "p1")
        assert exc_info.value.key == "p1"
        assert "map" in exc_info.value.cause

    @pytest.mark.parametrize("key", ["", "   ", None])
    def test_empty_key(self, key):
        with pytest.raises(TransformFailure):
            ProfileNormalizer().normalize({"name": "x"}, key)

    def test_empty_map_is_best_effort(self):
        record = ProfileNormalizer().normalize({}, "p1", current_year=2024)
        assert record.full_name is None
        assert record.skills == []
        assert record.total_years_experience == 0
        assert record.search is not None


class TestNormalizerPolicy:
    """Tests for config-driven behavior"""

    def test_document_search_variant(self, jane_document):
        normalizer = ProfileNormalizer(ProjectionConfig(search_variant="document"))
        record = normalizer.normalize(jane_document, "p1", current_year=2024)
        assert record.search.variant == "document"
        assert record.search.weighted["A"] == ""
        assert "Jane Smith" in record.search.weighted["D"]

    def test_collections_exclude_current(self, jane_document):
        normalizer = ProfileNormalizer(ProjectionConfig(collections_include_current=False))
        record = normalizer.normalize(jane_document, "p1", current_year=2024)
        assert record.previous_companies == []
        assert record.current_company == "BigTech Corp"

    def test_module_normalize_with_config(self, jane_document):
        record = normalize(jane_document, "p1", ProjectionConfig(search_variant="document"), current_year=2024)
        assert record.search.variant == "document"
        assert normalize(jane_document, "p1", current_year=2024).search.variant == "structured"

    def test_default_evaluation_year(self, jane_document):
        record = normalize(jane_document, "p1")
        assert record.years_at_current_company == datetime.now().year - 2021 + 1


class TestNormalizerProperties:
    """Property-based tests"""

    @settings(max_examples=100, deadline=None)
    @given(documents)
    def test_property_deterministic(self, document):
        """Property test: normalizing the same input twice yields identical output"""
        normalizer = ProfileNormalizer()
        first = normalizer.normalize(document, "k1", current_year=2024)
        second = normalizer.normalize(document, "k1", current_year=2024)
        assert first.model_dump() == second.model_dump()

    @settings(max_examples=100, deadline=None)
    @given(documents)
    def test_property_collections_clean(self, document):
        """Property test: collection fields never contain duplicates or empty values"""
        record = ProfileNormalizer().normalize(document, "k1", current_year=2024)
        for field in COLLECTION_FIELDS:
            values = getattr(record, field)
            assert len(values) == len(set(values))
            assert all(values)

    @given(st.lists(st.sampled_from(["Python", "SQL", "Go", "Rust", "python"]), max_size=12))
    def test_property_skills_first_seen_order(self, skills):
        """Property test: repeated skills appear once each, in first-seen order"""
        record = normalize({"skills": skills}, "k1", current_year=2024)
        assert record.skills == list(dict.fromkeys(skills))
