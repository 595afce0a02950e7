"""Result ordering and spelling-candidate ranking shared by the backends."""

from typing import Callable, Mapping, Sequence

from rapidfuzz import process
from rapidfuzz.distance import Levenshtein

from vocabsearch.index.interfaces import RawHit
from vocabsearch.query.models import SortClause

_FIELD_KEYS: dict[str, Callable[[Mapping], str]] = {
    "id": lambda fields: fields["id"],
    "name": lambda fields: fields["name"].casefold(),
    "namespace": lambda fields: (fields.get("namespace") or "").casefold(),
}


def _key(field: str) -> Callable[[RawHit], object]:
    if field == "score":
        return lambda hit: hit.score
    field_key = _FIELD_KEYS[field]
    return lambda hit: field_key(hit.fields)


def order_hits(hits: Sequence[RawHit], sort: Sequence[SortClause] = ()) -> list[RawHit]:
    """Order hits by the sort clauses, falling back to relevance then id.

    Without clauses the order is score descending with ties broken by id
    ascending, so equal-scoring results are deterministic across rebuilds.
    Clauses are applied as successive stable sorts, last clause first.
    """
    ordered = sorted(hits, key=lambda hit: (-hit.score, hit.fields["id"]))
    for clause in reversed(sort):
        ordered.sort(key=_key(clause.field), reverse=clause.descending)
    return ordered


def rank_suggestions(
    word: str,
    dictionary: Sequence[str],
    frequency: Mapping[str, int],
    limit: int,
    max_edit_distance: int,
) -> list[str]:
    """Dictionary words within ``max_edit_distance`` edits of ``word``.

    Closest first; among equally close words the more frequent one wins,
    then alphabetical order. ``word`` itself is never suggested.
    """
    if not word or limit <= 0 or not dictionary:
        return []
    matches = process.extract(
        word,
        dictionary,
        scorer=Levenshtein.distance,
        score_cutoff=max_edit_distance,
        limit=None,
    )
    ranked = sorted(
        (distance, -frequency.get(candidate, 0), candidate)
        for candidate, distance, _ in matches
        if candidate != word
    )
    return [candidate for _, _, candidate in ranked[:limit]]
