"""Tests for the Term model: identity, immutability and helper methods."""

import pytest
from pydantic import ValidationError

from vocabsearch.term import Synonym, SynonymScope, Term

from tests.conftest import make_term


class TestTermIdentity:
    """Equality and hashing use the id alone."""

    def test_equal_ids_are_equal_terms(self):
        a = make_term("MONDO:0000001", "disease")
        b = make_term("MONDO:0000001", "disorder", definition="different")
        assert a == b
        assert hash(a) == hash(b)
        assert len({a, b}) == 1

    def test_different_ids_differ(self):
        assert make_term("MONDO:0000001", "disease") != make_term("MONDO:0000002", "disease")

    def test_not_equal_to_other_types(self):
        assert make_term("MONDO:0000001", "disease") != "MONDO:0000001"

    def test_terms_are_frozen(self):
        term = make_term("MONDO:0000001", "disease")
        with pytest.raises(ValidationError):
            term.name = "changed"

    def test_str(self):
        assert str(make_term("MONDO:0000001", "disease")) == "MONDO:0000001 disease"


class TestTermValidation:
    """Construction-time invariants."""

    def test_own_id_in_alt_ids_rejected(self):
        with pytest.raises(ValidationError):
            Term(id="MONDO:0000001", name="disease", alt_ids=("MONDO:0000001",))

    def test_empty_id_rejected(self):
        with pytest.raises(ValidationError):
            Term(id="", name="disease")

    def test_empty_name_rejected(self):
        with pytest.raises(ValidationError):
            Term(id="MONDO:0000001", name="")

    def test_multi_valued_fields_deduplicated_in_order(self):
        term = Term(
            id="MONDO:0000002",
            name="x",
            parent_ids=("MONDO:3", "MONDO:1", "MONDO:3"),
            alt_ids=("MONDO:9", "MONDO:9"),
        )
        assert term.parent_ids == ("MONDO:3", "MONDO:1")
        assert term.alt_ids == ("MONDO:9",)

    def test_synonym_scope_defaults_to_related(self):
        assert Synonym(text="sugar disease").scope is SynonymScope.RELATED


class TestTermHelpers:
    """Derived accessors used by callers of search."""

    @pytest.fixture
    def term(self) -> Term:
        return make_term(
            "MONDO:0005267",
            "heart disease",
            [("cardiac disease", SynonymScope.EXACT), ("cardiopathy", SynonymScope.RELATED)],
            alt_ids=("MONDO:0001234",),
        )

    def test_has_alt_id_ignores_case_and_whitespace(self, term):
        assert term.has_alt_id("MONDO:0001234")
        assert term.has_alt_id(" mondo:0001234 ")
        assert not term.has_alt_id("MONDO:0005267")

    def test_matches_id(self, term):
        assert term.matches_id("mondo:0005267")
        assert term.matches_id("MONDO:0001234")
        assert not term.matches_id("MONDO:0000001")

    def test_synonym_texts(self, term):
        assert term.synonym_texts == ("cardiac disease", "cardiopathy")

    def test_synonyms_with_scope(self, term):
        assert term.synonyms_with_scope(SynonymScope.EXACT) == ("cardiac disease",)
        assert term.synonyms_with_scope(SynonymScope.BROAD) == ()

    def test_json_round_trip_keeps_scope(self, term):
        restored = Term.model_validate(term.model_dump(mode="json"))
        assert restored.synonyms == term.synonyms
        assert restored.alt_ids == term.alt_ids
