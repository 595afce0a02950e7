"""Tests for turning stored hits back into terms."""

from vocabsearch.index.interfaces import RawHit
from vocabsearch.search.materializer import TermMaterializer
from vocabsearch.term import SynonymScope

from tests.conftest import make_term


def test_round_trip():
    term = make_term(
        "MONDO:0005267",
        "heart disease",
        [("cardiac disease", SynonymScope.EXACT)],
        alt_ids=("MONDO:0001234",),
        parent_ids=("MONDO:0000001",),
    )
    restored = TermMaterializer().materialize(RawHit(fields=term.model_dump(mode="json"), score=3.0))
    assert restored == term
    assert restored.synonyms[0].scope is SynonymScope.EXACT
    assert restored.parent_ids == ("MONDO:0000001",)


def test_invalid_hit_dropped(caplog):
    materializer = TermMaterializer()
    good = RawHit(fields=make_term("X:1", "one").model_dump(mode="json"))
    bad = RawHit(fields={"id": "X:2"})
    assert materializer.materialize(bad) is None
    assert [t.id for t in materializer.materialize_all([good, bad])] == ["X:1"]
    assert "Dropping hit" in caplog.text
