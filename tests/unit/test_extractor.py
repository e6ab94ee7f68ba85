"""
Unit tests for field extraction and the fallback path table.
"""

from hypothesis import given
from hypothesis import strategies as st

from profile_sync.core.flattening.extractor import (
    FieldExtractor,
    as_collection,
    as_flag,
    as_location,
    as_text,
    split_name,
    unique,
)
from profile_sync.core.flattening.field_paths import (
    FLAT,
    NESTED,
    FieldPath,
    iter_path,
    path,
    resolve,
)


class TestCoercion:
    """Tests for raw value coercers"""

    def test_as_text_strips(self):
        assert as_text("  Jane  ") == "Jane"

    def test_as_text_rejects_blank_and_non_scalars(self):
        assert as_text("   ") is None
        assert as_text(None) is None
        assert as_text({"name": "x"}) is None
        assert as_text(["x"]) is None

    def test_as_text_booleans_are_not_text(self):
        assert as_text(True) is None

    def test_as_text_numbers(self):
        assert as_text(42) == "42"

    def test_as_flag(self):
        assert as_flag(True) is True
        assert as_flag("yes") is True
        assert as_flag("False") is False
        assert as_flag("maybe") is None
        assert as_flag(1) is None

    def test_as_location_from_map(self):
        assert as_location({"city": "Austin", "state": "TX", "country": "USA"}) == "Austin, TX, USA"
        assert as_location({"city": "Lisbon", "region": None, "country": "Portugal"}) == "Lisbon, Portugal"
        assert as_location({}) is None

    def test_as_location_from_text(self):
        assert as_location("New York, NY") == "New York, NY"

    def test_as_collection_from_delimited_string(self):
        assert as_collection("Python, SQL;Go | Python\nRust") == ["Python", "SQL", "Go", "Rust"]

    def test_as_collection_from_array(self):
        value = ["Python", {"name": "SQL"}, None, "", "Python", {"title": "Spark"}, 3]
        assert as_collection(value) == ["Python", "SQL", "Spark", "3"]

    def test_as_collection_unusable(self):
        assert as_collection([]) is None
        assert as_collection([None, ""]) is None
        assert as_collection({"skills": ["x"]}) is None
        assert as_collection(7) is None

    @given(st.lists(st.sampled_from(["Python", "SQL", "Go", "Rust", ""])))
    def test_property_unique_keeps_first_seen_order(self, values):
        """Property test: each distinct non-empty value appears once, in first-seen order"""
        result = unique(values)
        assert result == list(dict.fromkeys(v for v in values if v))


class TestSplitName:
    """Tests for splitting full names"""

    def test_two_tokens(self):
        assert split_name("Jane Smith") == ("Jane", "Smith")

    def test_remainder_is_last_name(self):
        assert split_name("Mary Ann Lee") == ("Mary", "Ann Lee")

    def test_single_token(self):
        assert split_name("Cher") == ("Cher", None)

    def test_missing(self):
        assert split_name(None) == (None, None)


class TestFieldPaths:
    """Tests for path traversal and fallback resolution"""

    def test_path_builds_segments(self):
        assert path("candidate.name", NESTED) == FieldPath(("candidate", "name"), NESTED)
        assert path("name").shape == FLAT
        assert str(path("a.b.c")) == "a.b.c"

    def test_iter_path_wildcard_and_index(self):
        doc = {"projects": [{"title": "A"}, {"title": "B"}, {"name": "C"}]}
        assert list(iter_path(doc, ("projects", "*", "title"))) == ["A", "B"]
        assert list(iter_path(doc, ("projects", "1", "title"))) == ["B"]
        assert list(iter_path(doc, ("projects", "9", "title"))) == []

    def test_iter_path_type_mismatch_yields_nothing(self):
        assert list(iter_path({"a": "text"}, ("a", "b"))) == []
        assert list(iter_path(["x"], ("a",))) == []

    def test_resolve_skips_unusable_values(self):
        chain = (path("name"), path("full_name"), path("candidate.name", NESTED))
        assert resolve({"name": "  ", "full_name": "Jane Doe"}, chain, as_text) == "Jane Doe"
        assert resolve({"candidate": {"name": "Nested"}}, chain, as_text) == "Nested"
        assert resolve({}, chain, as_text) is None

    def test_resolve_respects_priority(self):
        chain = (path("name"), path("full_name"))
        assert resolve({"full_name": "Second", "name": "First"}, chain, as_text) == "First"


class TestFieldExtractor:
    """Tests for FieldExtractor"""

    def setup_method(self):
        self.extractor = FieldExtractor()

    def test_person_fields_flat(self, jane_document):
        person = self.extractor.person_fields(jane_document)
        assert person["full_name"] == "Jane Smith"
        assert person["first_name"] == "Jane"
        assert person["last_name"] == "Smith"
        assert person["location"] == "New York, NY"
        assert person["current_title"] == "Product Manager"
        assert person["email"] is None

    def test_person_fields_nested(self, nested_document):
        person = self.extractor.person_fields(nested_document)
        assert person["full_name"] == "Ana Lima"
        assert person["email"] == "ana@example.com"
        assert person["location"] == "Lisbon, Portugal"
        assert person["current_title"] == "Data Engineer"

    def test_explicit_name_parts_take_precedence(self):
        person = self.extractor.person_fields(
            {"name": "Maria de la Cruz", "first_name": "Maria", "last_name": "de la Cruz Diaz"}
        )
        assert person["first_name"] == "Maria"
        assert person["last_name"] == "de la Cruz Diaz"

    def test_full_name_built_from_parts(self):
        person = self.extractor.person_fields({"first_name": "Li", "last_name": "Wei"})
        assert person["full_name"] == "Li Wei"

    def test_summary_and_handles(self):
        person = self.extractor.person_fields({
            "about": "Builds things",
            "linkedin_url": "https://linkedin.com/in/x",
            "github": "https://github.com/x",
            "website": "https://x.dev",
        })
        assert person["about_me"] == "Builds things"
        assert person["linkedin"] == "https://linkedin.com/in/x"
        assert person["github_url"] == "https://github.com/x"
        assert person["website_url"] == "https://x.dev"

    def test_skill_fields(self, nested_document):
        skills = self.extractor.skill_fields(nested_document)
        assert skills["skills"] == ["Python", "Spark", "SQL"]
        assert skills["technologies"] == []
        assert skills["programming_languages"] == []

    def test_education_fields(self, nested_document):
        education = self.extractor.education_fields(nested_document)
        assert education == {
            "education_degrees": ["BSc"],
            "education_schools": ["Universidade de Lisboa"],
            "education_fields": ["Statistics"],
        }

    def test_education_ignores_non_map_entries(self):
        education = self.extractor.education_fields({"education": ["MIT", {"degree": "PhD"}]})
        assert education["education_degrees"] == ["PhD"]
        assert education["education_schools"] == []

    def test_certifications(self):
        doc = {"certifications": [{"name": "AWS SA"}, "CKA", "CKA", None]}
        assert self.extractor.certifications(doc) == ["AWS SA", "CKA"]

    def test_document_ids(self):
        assert self.extractor.document_ids({"id": 17, "original_id": "x"}) == ["17", "x"]
        assert self.extractor.document_ids({"profile_id": "p9"}) == ["p9"]
        assert self.extractor.document_ids({}) == []

    def test_wrong_types_never_raise(self):
        doc = {"name": ["not", "text"], "skills": 12, "education": "none", "location": 5}
        person = self.extractor.person_fields(doc)
        assert person["full_name"] is None
        assert person["location"] == "5"
        assert self.extractor.skill_fields(doc)["skills"] == []
        assert self.extractor.education_fields(doc)["education_degrees"] == []

    def test_custom_path_table(self):
        extractor = FieldExtractor(field_paths={"full_name": (path("person.display_name", NESTED),)})
        person = extractor.person_fields({"person": {"display_name": "Custom Shape"}})
        assert person["full_name"] == "Custom Shape"
        assert person["location"] is None
