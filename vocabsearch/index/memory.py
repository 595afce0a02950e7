"""In-memory index backend.

Keeps every generation as plain dictionaries and sets: inverted word and
stem postings for candidate selection, a sorted word list for stub
matching, and per-field value maps for filters. Suitable for:

- **Unit testing**: fast, isolated tests without an index directory
- **Small and mid-sized vocabularies**: HPO or MONDO fit comfortably in RAM

Ranking implements the scoring contract directly. For a free-text query
the score of a term is

    sum(phrase_boost[f] * best_weight(f) for every phrase field f the whole query matches)
    + mean(best(token_boost[f] * best_weight(f)) for each query word)

where ``best_weight`` is the highest synonym scope weight among the values
that matched (1.0 for names, free text and the ``synonym_exact`` tier, so an
exact synonym match counts in full whatever its scope). A term with score 0
is not a hit.

Thread safety: a sealed generation is read-only and can be searched from
any number of threads. Writers are single-threaded.
"""

from bisect import bisect_left
from typing import Any, Iterable, Sequence

from vocabsearch.index.analysis import (
    AnalyzedQuery,
    AnalyzedValue,
    analyze_query,
    analyze_term,
    contains_run,
)
from vocabsearch.index.interfaces import (
    GenerationInfo,
    HitList,
    IndexBackend,
    IndexGeneration,
    IndexWriter,
    RawHit,
)
from vocabsearch.index.ranking import order_hits, rank_suggestions
from vocabsearch.query.filters import FilterClause, FilterExpression
from vocabsearch.query.models import QueryMode, SearchQuery, split_field
from vocabsearch.term import Term


def filter_values(term: Term) -> dict[str, tuple[str, ...]]:
    """The values a term exposes to filter clauses, case-folded."""
    values = {
        "id": (term.id,),
        "alt_id": term.alt_ids,
        "namespace": (term.namespace,) if term.namespace else (),
        "is_a": term.parent_ids,
        "xref": term.xrefs,
        "is_obsolete": ("true" if term.is_obsolete else "false",),
    }
    return {field: tuple(v.casefold() for v in vals) for field, vals in values.items()}


class _Document:
    __slots__ = ("term_id", "stored", "fields", "filters")

    def __init__(self, term: Term):
        self.term_id = term.id
        self.stored: dict[str, Any] = term.model_dump(mode="json")
        self.fields = analyze_term(term)
        self.filters = filter_values(term)


def _matches(kind: str, value: AnalyzedValue, query: AnalyzedQuery) -> bool:
    if kind == "exact":
        return value.exact == query.exact
    if kind == "prefix":
        return value.exact.startswith(query.exact)
    if kind == "spell":
        return contains_run(value.words, query.words)
    return bool(query.stems) and contains_run(value.stems, query.stems)


def _matches_word(kind: str, value: AnalyzedValue, word: str, word_stem: str | None) -> bool:
    if kind == "spell":
        return word in value.word_set
    if kind == "stub":
        return any(w.startswith(word) for w in value.words)
    return word_stem is not None and word_stem in value.stem_set


class InMemoryIndexGeneration(IndexGeneration):
    """A sealed, read-only in-memory generation."""

    def __init__(self, info: GenerationInfo, documents: Iterable[_Document]):
        super().__init__(info)
        self._docs: list[_Document] = sorted(documents, key=lambda d: d.term_id)
        self._word_postings: dict[str, set[int]] = {}
        self._stem_postings: dict[str, set[int]] = {}
        self._filters: dict[str, dict[str, set[int]]] = {}
        self._has_field: dict[str, set[int]] = {}
        for position, doc in enumerate(self._docs):
            for value in doc.fields["text"]:
                for word in value.word_set:
                    self._word_postings.setdefault(word, set()).add(position)
                for word_stem in value.stem_set:
                    self._stem_postings.setdefault(word_stem, set()).add(position)
            for field, keys in doc.filters.items():
                by_value = self._filters.setdefault(field, {})
                for key in keys:
                    by_value.setdefault(key, set()).add(position)
                if keys:
                    self._has_field.setdefault(field, set()).add(position)
        self._sorted_words = sorted(self._word_postings)
        self._frequency = {word: len(docs) for word, docs in self._word_postings.items()}

    def search(self, query: SearchQuery) -> HitList:
        allowed = self._apply_filter(query.filter)
        if query.match_id is not None:
            allowed &= self._id_docs(query.match_id)
        if query.mode is QueryMode.ID:
            scored = [(position, 1.0) for position in allowed]
        else:
            scored = self._score_text(query, allowed)
        hits = order_hits(
            [RawHit(fields=self._docs[position].stored, score=score) for position, score in scored],
            query.sort,
        )
        return HitList(hits=tuple(hits[: query.rows]), total=len(hits))

    def has_word(self, word: str) -> bool:
        return word in self._word_postings

    def suggest(self, word: str, limit: int, max_edit_distance: int = 2) -> list[str]:
        return rank_suggestions(word, self._sorted_words, self._frequency, limit, max_edit_distance)

    def _apply_filter(self, expression: FilterExpression | None) -> set[int]:
        everything = set(range(len(self._docs)))
        if expression is None:
            return everything
        if expression.must:
            result = everything
            for clause in expression.must:
                result = result & self._clause_docs(clause)
        elif expression.should:
            result = set()
            for clause in expression.should:
                result |= self._clause_docs(clause)
        else:
            result = everything
        for clause in expression.must_not:
            result = result - self._clause_docs(clause)
        return result

    def _id_docs(self, term_id: str) -> set[int]:
        key = term_id.casefold()
        return self._filters.get("id", {}).get(key, set()) | self._filters.get("alt_id", {}).get(key, set())

    def _clause_docs(self, clause: FilterClause) -> set[int]:
        if clause.is_wildcard:
            return self._has_field.get(clause.field, set())
        return self._filters.get(clause.field, {}).get(clause.key, set())

    def _candidates(self, query: AnalyzedQuery) -> set[int]:
        found: set[int] = set()
        for word in query.words:
            found |= self._word_postings.get(word, set())
            index = bisect_left(self._sorted_words, word)
            while index < len(self._sorted_words) and self._sorted_words[index].startswith(word):
                found |= self._word_postings[self._sorted_words[index]]
                index += 1
        for word_stem in query.stems:
            found |= self._stem_postings.get(word_stem, set())
        return found

    def _score_text(self, query: SearchQuery, allowed: set[int]) -> list[tuple[int, float]]:
        analyzed = analyze_query(query.text)
        if not analyzed.words:
            return []
        scored = []
        for position in sorted(self._candidates(analyzed) & allowed):
            score = self._score(self._docs[position], analyzed, query)
            if score > 0:
                scored.append((position, score))
        return scored

    def _score(self, doc: _Document, analyzed: AnalyzedQuery, query: SearchQuery) -> float:
        phrase_score = 0.0
        for field, boost in query.phrase_boosts.items():
            family, kind = split_field(field)
            weight = max(
                (query.scope_weight(v.scope, kind) for v in doc.fields[family] if _matches(kind, v, analyzed)),
                default=0.0,
            )
            phrase_score += boost * weight
        token_total = 0.0
        for word, word_stem in zip(analyzed.words, analyzed.word_stems):
            best = 0.0
            for field, boost in query.token_boosts.items():
                family, kind = split_field(field)
                for value in doc.fields[family]:
                    if _matches_word(kind, value, word, word_stem):
                        best = max(best, boost * query.scope_weight(value.scope, kind))
            token_total += best
        return phrase_score + token_total / len(analyzed.words)


class InMemoryIndexWriter(IndexWriter):
    """Stages documents in a dict keyed by term id; later batches overwrite earlier ones."""

    def __init__(self, vocabulary: str, number: int):
        self.vocabulary = vocabulary
        self.number = number
        self._staged: dict[str, _Document] = {}
        self._open = True

    def add_batch(self, terms: Sequence[Term]) -> None:
        self._check_open()
        batch = {}
        for term in terms:
            if not isinstance(term, Term):
                raise TypeError(f"expected Term, got {type(term).__name__}")
            batch[term.id] = _Document(term)
        self._staged.update(batch)

    def staged_count(self) -> int:
        return len(self._staged)

    def seal(self, info: GenerationInfo) -> InMemoryIndexGeneration:
        self._check_open()
        self._open = False
        info = info.model_copy(update={"term_count": len(self._staged)})
        generation = InMemoryIndexGeneration(info, self._staged.values())
        self._staged = {}
        return generation

    def abort(self) -> None:
        self._open = False
        self._staged = {}

    def _check_open(self) -> None:
        if not self._open:
            raise RuntimeError(f"writer for {self.vocabulary} generation {self.number} is closed")


class InMemoryIndexBackend(IndexBackend):
    name = "memory"

    def create_writer(self, vocabulary: str, number: int) -> InMemoryIndexWriter:
        return InMemoryIndexWriter(vocabulary, number)


__all__ = [
    "InMemoryIndexBackend",
    "InMemoryIndexGeneration",
    "InMemoryIndexWriter",
    "filter_values",
]
