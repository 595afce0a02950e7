"""Tests for the Vocabulary facade.

This module verifies:
- Identifier lookups by id and alternate id, ignoring case
- Free-text ranking on the sample ontology
- Custom filters and sort specifications
- Searches never raise; blank input and bad filters come back empty
- Rebuilds are atomic: failures keep the active generation, concurrent
  rebuilds are refused and readers always see a complete generation
- Asynchronous rebuilds from remote and local sources
"""

from concurrent.futures import ThreadPoolExecutor

import httpx
import pytest

from vocabsearch.config import HPO, MONDO
from vocabsearch.errors import RebuildError, RebuildInProgressError, VocabularyConfigError
from vocabsearch.query.models import QueryMode
from vocabsearch.vocabulary import Vocabulary

from tests.conftest import SAMPLE_OBO


def ids(terms) -> list[str]:
    return [t.id for t in terms]


class TestIdentifierLookup:
    def test_by_id(self, mondo):
        assert ids(mondo.search("MONDO:0005015")) == ["MONDO:0005015"]

    def test_lowercase_id(self, mondo):
        assert ids(mondo.search("mondo:0005015")) == ["MONDO:0005015"]

    def test_alt_id(self, mondo):
        assert mondo.get_term("MONDO:0001234").name == "heart disease"

    def test_get_term(self, mondo):
        term = mondo.get_term("MONDO:0005252")
        assert term.name == "heart failure"
        assert term.synonyms[0].text == "cardiac failure"

    def test_get_term_not_found(self, mondo):
        assert mondo.get_term("MONDO:7777777") is None

    def test_get_term_rejects_free_text(self, mondo):
        assert mondo.get_term("heart failure") is None

    def test_get_terms_deduplicates(self, mondo):
        found = mondo.get_terms(["MONDO:0005267", "MONDO:0001234", "MONDO:404", "MONDO:0005015"])
        assert ids(found) == ["MONDO:0005267", "MONDO:0005015"]

    def test_id_mode_reported(self, mondo):
        response = mondo.search_with_suggestions("MONDO:0005015")
        assert response.mode is QueryMode.ID
        assert response.collations == ()

    def test_id_with_extra_words_is_free_text(self, mondo):
        assert mondo.search_with_suggestions("MONDO:0005015 diabetes").mode is QueryMode.TEXT


class TestFreeText:
    def test_exact_name_first(self, mondo):
        assert ids(mondo.search("heart failure"))[0] == "MONDO:0005252"

    def test_exact_synonym_first(self, mondo):
        assert ids(mondo.search("diabetes"))[:3] == ["MONDO:0005015", "MONDO:0005147", "MONDO:0005148"]

    def test_synonym_only_match(self, mondo):
        assert ids(mondo.search("NIDDM")) == ["MONDO:0005148"]

    def test_case_and_punctuation_ignored(self, mondo):
        assert ids(mondo.search("Heart-Failure!"))[0] == "MONDO:0005252"

    def test_max_results(self, mondo):
        response = mondo.search_with_suggestions("heart", max_results=1)
        assert len(response.terms) == 1
        assert response.total == 3

    def test_spelling_suggestion(self, mondo):
        response = mondo.search_with_suggestions("diabetis")
        assert response.terms == ()
        assert response.collations[0].query == "diabetes"


class TestFiltersAndSorting:
    def test_custom_filter_replaces_id_filter(self, mondo):
        assert ids(mondo.search("MONDO:0005147", custom_filter="is_a:MONDO:0005015")) == ["MONDO:0005147"]
        assert ids(mondo.search("MONDO:0001234", custom_filter="is_obsolete:false")) == ["MONDO:0005267"]

    def test_id_lookup_stays_on_the_named_term(self, mondo):
        assert ids(mondo.search("MONDO:0005252", custom_filter="is_obsolete:false")) == ["MONDO:0005252"]
        assert mondo.search("MONDO:0005015", custom_filter="is_a:MONDO:0005015") == []

    def test_custom_filter_restricts_free_text(self, mondo):
        assert ids(mondo.search("diabetes", custom_filter="+is_a:MONDO:0005015")) == [
            "MONDO:0005147",
            "MONDO:0005148",
        ]

    def test_exclude_obsolete(self, mondo):
        found = mondo.search("heart failure", custom_filter="-is_obsolete:true")
        assert "MONDO:0000999" not in ids(found)
        assert ids(found)[0] == "MONDO:0005252"

    def test_invalid_filter_returns_nothing(self, mondo, caplog):
        response = mondo.search_with_suggestions("diabetes", custom_filter="label:diabetes")
        assert response.terms == ()
        assert response.mode is None
        assert "invalid filter" in caplog.text

    def test_sort_by_name(self, mondo):
        assert [t.name for t in mondo.search("heart", sort="name")] == [
            "heart disease",
            "heart failure",
            "obsolete congestive heart failure",
        ]

    def test_sort_by_id_descending(self, mondo):
        assert ids(mondo.search("heart", sort="-id")) == ["MONDO:0005267", "MONDO:0005252", "MONDO:0000999"]

    def test_unknown_sort_ignored(self, mondo):
        assert ids(mondo.search("heart failure", sort="colour"))[0] == "MONDO:0005252"


class TestEmptyRequests:
    @pytest.mark.parametrize("text", [None, "", "   "])
    def test_blank_input(self, mondo, text, monkeypatch):
        def fail(query):
            raise AssertionError("executor should not run")

        monkeypatch.setattr(mondo.executor, "execute", fail)
        response = mondo.search_with_suggestions(text)
        assert response.terms == ()
        assert response.mode is None

    @pytest.mark.parametrize("max_results", [0, -1])
    def test_no_rows_requested(self, mondo, max_results, monkeypatch):
        def fail(query):
            raise AssertionError("executor should not run")

        monkeypatch.setattr(mondo.executor, "execute", fail)
        assert mondo.search("diabetes", max_results=max_results) == []

    def test_never_built(self):
        vocabulary = Vocabulary(HPO)
        assert vocabulary.search("abnormality") == []
        assert vocabulary.get_term("HP:0000118") is None
        assert vocabulary.size == 0
        assert vocabulary.version is None
        assert vocabulary.generation == 0


class TestMetadata:
    def test_configuration(self, mondo):
        assert mondo.identifier == "mondo"
        assert mondo.display_name == MONDO.display_name
        assert "MONDO" in mondo.aliases
        assert mondo.website == MONDO.website
        assert mondo.citation.startswith("A census of disease ontologies")
        assert mondo.source_location == MONDO.source_location

    def test_size_and_version(self, mondo):
        assert mondo.size == 8
        assert mondo.version == "mondo/releases/2024-01-03/mondo.owl"
        assert mondo.generation == 1

    def test_report(self, mondo):
        report = mondo.last_report
        assert report.term_count == 8
        assert report.generation == 1
        assert report.source_location == "sample.obo"
        assert len(report.diagnostics) == 1

    def test_unknown_backend(self):
        with pytest.raises(VocabularyConfigError, match="backend"):
            Vocabulary(MONDO.model_copy(update={"backend": "lucene"}))

    def test_invalid_pattern(self):
        with pytest.raises(VocabularyConfigError):
            Vocabulary(MONDO.model_copy(update={"id_pattern": "MONDO:[0-9"}))


class TestRebuild:
    def test_rebuild_is_idempotent(self, mondo):
        before = ids(mondo.search("heart"))
        report = mondo.rebuild_from_lines(SAMPLE_OBO)
        assert report.generation == 2
        assert mondo.size == 8
        assert ids(mondo.search("heart")) == before

    def test_rebuild_closes_superseded_generation(self, mondo, monkeypatch):
        superseded = mondo.handle.current
        closed = []
        monkeypatch.setattr(superseded, "close", lambda: closed.append(superseded.number))
        mondo.rebuild_from_lines(SAMPLE_OBO)
        assert closed == [1]
        assert mondo.handle.current is not superseded

    def test_failed_rebuild_keeps_generation(self, mondo):
        with pytest.raises(RebuildError):
            mondo.rebuild_from_lines("[Term]\nthis line is not a tag\n")
        assert mondo.generation == 1
        assert ids(mondo.search("heart failure"))[0] == "MONDO:0005252"
        assert mondo.rebuild_from_lines(SAMPLE_OBO).generation == 3

    def test_empty_source_fails(self, mondo):
        with pytest.raises(RebuildError):
            mondo.rebuild_from_lines("")
        assert mondo.size == 8

    def test_missing_path(self, mondo, tmp_path):
        with pytest.raises(RebuildError):
            mondo.rebuild_from_path(tmp_path / "missing.obo")

    def test_rebuild_from_path(self, sample_path):
        vocabulary = Vocabulary(MONDO)
        report = vocabulary.rebuild_from_path(sample_path)
        assert report.source_location == str(sample_path)
        assert vocabulary.size == 8

    def test_concurrent_rebuild_refused(self, mondo):
        refused = []

        def lines():
            try:
                mondo.rebuild_from_lines(SAMPLE_OBO)
            except RebuildInProgressError as exc:
                refused.append(exc)
            yield from SAMPLE_OBO.splitlines()

        mondo.rebuild_from_lines(lines())
        assert len(refused) == 1
        assert mondo.generation == 2

    def test_searches_during_rebuild_see_complete_generation(self, mondo):
        def search(_):
            return ids(mondo.search("diabetes"))

        with ThreadPoolExecutor(max_workers=4) as pool:
            pending = pool.map(search, range(200))
            for _ in range(3):
                mondo.rebuild_from_lines(SAMPLE_OBO)
            results = list(pending)
        assert all(result[0] == "MONDO:0005015" and len(result) == 3 for result in results)

    def test_rebuild_with_different_content(self, mondo):
        mondo.rebuild_from_lines("[Term]\nid: MONDO:0000001\nname: disease\n")
        assert mondo.size == 1
        assert mondo.search("heart") == []
        assert mondo.version is None


class TestAsyncRebuild:
    async def test_remote_source(self):
        vocabulary = Vocabulary(MONDO)
        def handler(request):
            return httpx.Response(200, content=SAMPLE_OBO.encode())

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            report = await vocabulary.rebuild("https://example.org/mondo.obo", client=client)
        assert report.term_count == 8
        assert report.source_location == "https://example.org/mondo.obo"
        assert ids(vocabulary.search("heart failure"))[0] == "MONDO:0005252"

    async def test_remote_failure(self):
        vocabulary = Vocabulary(MONDO)
        async with httpx.AsyncClient(transport=httpx.MockTransport(lambda request: httpx.Response(500))) as client:
            with pytest.raises(RebuildError, match="500"):
                await vocabulary.rebuild("https://example.org/mondo.obo", client=client)
        assert vocabulary.generation == 0

    async def test_configured_local_source(self, sample_path):
        vocabulary = Vocabulary(MONDO.model_copy(update={"source_location": str(sample_path)}))
        report = await vocabulary.rebuild()
        assert report.source_location == str(sample_path)
        assert vocabulary.size == 8
