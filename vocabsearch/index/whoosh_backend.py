"""Whoosh index backend.

Each generation is a Whoosh index in a ``RamStorage``. Terms are run through
:mod:`vocabsearch.index.analysis` before indexing, so Whoosh only ever sees
pre-analyzed tokens and both backends agree on what matches.

Schema layout, per field family base (``name``, ``syn_<scope>``, ``text``):

- ``<base>_stems``: stemmed words, stopwords removed;
- ``<base>_words``: folded words, also the spelling dictionary for ``text``;
- ``<base>_exact``: one token per whole value (not for ``text``).

Synonyms get one base per scope so each scope can carry its own weight.
Multiple values of one field are separated by a position gap, so a phrase
never spans two synonyms.

Scoring reproduces the in-memory contract with constant-score leaves:
``DisjunctionMax`` picks the best variant of a field, ``Or`` sums fields.
"""

from typing import Any, Sequence

from whoosh import query as wq
from whoosh.analysis import RegexTokenizer, SpaceSeparatedTokenizer, StopFilter
from whoosh.collectors import TimeLimitCollector
from whoosh.fields import ID, STORED, TEXT, Schema
from whoosh.filedb.filestore import RamStorage
from whoosh.searching import TimeLimit

from vocabsearch.index.analysis import AnalyzedQuery, analyze_query, analyze_term
from vocabsearch.index.interfaces import (
    GenerationInfo,
    HitList,
    IndexBackend,
    IndexGeneration,
    IndexWriter,
    RawHit,
)
from vocabsearch.index.memory import filter_values
from vocabsearch.index.ranking import order_hits, rank_suggestions
from vocabsearch.logging import setup_logging
from vocabsearch.query.filters import FILTER_FIELDS, FilterClause, FilterExpression
from vocabsearch.query.models import QueryMode, SearchQuery, split_field
from vocabsearch.term import SynonymScope, Term

logger = setup_logging()

_GAP = "|"
_SPELLING_FIELD = "text_words"


def _synonym_base(scope: SynonymScope) -> str:
    return f"syn_{scope.value.lower()}"


_BASES = ("name", *(_synonym_base(scope) for scope in SynonymScope), "text")


def _token_analyzer():
    return SpaceSeparatedTokenizer() | StopFilter(stoplist=[_GAP], minsize=1, renumber=False)


def build_schema() -> Schema:
    schema = Schema(id=ID(stored=True, unique=True), term=STORED)
    for field in sorted(FILTER_FIELDS):
        schema.add(f"f_{field}", TEXT(analyzer=RegexTokenizer(r"[^\n]+"), phrase=False))
    for base in _BASES:
        schema.add(f"{base}_stems", TEXT(analyzer=_token_analyzer()))
        schema.add(f"{base}_words", TEXT(analyzer=_token_analyzer()))
        if base != "text":
            schema.add(f"{base}_exact", TEXT(analyzer=RegexTokenizer(r"[^\n]+"), phrase=False))
    return schema


def build_document(term: Term) -> dict[str, Any]:
    if not isinstance(term, Term):
        raise TypeError(f"expected Term, got {type(term).__name__}")
    families = analyze_term(term)
    document: dict[str, Any] = {"id": term.id, "term": term.model_dump(mode="json")}
    for field, keys in filter_values(term).items():
        if keys:
            document[f"f_{field}"] = "\n".join(keys)
    groups = {"name": families["name"], "text": families["text"]}
    for scope in SynonymScope:
        groups[_synonym_base(scope)] = tuple(v for v in families["synonym"] if v.scope is scope)
    separator = f" {_GAP} "
    for base, values in groups.items():
        if not values:
            continue
        document[f"{base}_stems"] = separator.join(" ".join(v.stems) for v in values)
        document[f"{base}_words"] = separator.join(" ".join(v.words) for v in values)
        if base != "text":
            document[f"{base}_exact"] = "\n".join(v.exact for v in values)
    return document


def _variants(family: str, kind: str, query: SearchQuery) -> list[tuple[str, float]]:
    if family == "synonym":
        return [(_synonym_base(scope), query.scope_weight(scope, kind)) for scope in SynonymScope]
    return [(family, 1.0)]


def _phrase_leaf(base: str, kind: str, analyzed: AnalyzedQuery) -> wq.Query | None:
    if kind == "exact":
        return wq.Term(f"{base}_exact", analyzed.exact)
    if kind == "prefix":
        return wq.Prefix(f"{base}_exact", analyzed.exact)
    if kind == "spell":
        field, tokens = f"{base}_words", analyzed.words
    else:
        field, tokens = f"{base}_stems", analyzed.stems
    if not tokens:
        return None
    if len(tokens) == 1:
        return wq.Term(field, tokens[0])
    return wq.Phrase(field, list(tokens))


def _token_leaf(base: str, kind: str, word: str, word_stem: str | None) -> wq.Query | None:
    if kind == "spell":
        return wq.Term(f"{base}_words", word)
    if kind == "stub":
        return wq.Prefix(f"{base}_words", word)
    if word_stem is None:
        return None
    return wq.Term(f"{base}_stems", word_stem)


def translate_text(query: SearchQuery) -> wq.Query | None:
    """Translate a free-text query into constant-score Whoosh queries."""
    analyzed = analyze_query(query.text)
    if not analyzed.words:
        return None
    parts: list[wq.Query] = []
    for field, boost in query.phrase_boosts.items():
        family, kind = split_field(field)
        options = []
        for base, weight in _variants(family, kind, query):
            leaf = _phrase_leaf(base, kind, analyzed)
            if leaf is not None and boost * weight > 0:
                options.append(wq.ConstantScoreQuery(leaf, boost * weight))
        if options:
            parts.append(wq.DisjunctionMax(options))
    word_count = len(analyzed.words)
    for word, word_stem in zip(analyzed.words, analyzed.word_stems):
        options = []
        for field, boost in query.token_boosts.items():
            family, kind = split_field(field)
            for base, weight in _variants(family, kind, query):
                leaf = _token_leaf(base, kind, word, word_stem)
                if leaf is not None and boost * weight > 0:
                    options.append(wq.ConstantScoreQuery(leaf, boost * weight / word_count))
        if options:
            parts.append(wq.DisjunctionMax(options))
    if not parts:
        return None
    return wq.Or(parts)


def translate_match_id(term_id: str | None) -> wq.Query:
    if term_id is None:
        return wq.Every()
    key = term_id.casefold()
    return wq.Or([wq.Term("f_id", key), wq.Term("f_alt_id", key)])


def _clause_query(clause: FilterClause) -> wq.Query:
    field = f"f_{clause.field}"
    if clause.is_wildcard:
        return wq.Every(field)
    return wq.Term(field, clause.key)


def translate_filter(expression: FilterExpression) -> wq.Query:
    """Required clauses AND-ed, else optional clauses OR-ed, minus excluded clauses."""
    if expression.must:
        base: wq.Query = wq.And([_clause_query(c) for c in expression.must])
    elif expression.should:
        base = wq.Or([_clause_query(c) for c in expression.should])
    else:
        base = wq.Every()
    if expression.must_not:
        base = wq.AndNot(base, wq.Or([_clause_query(c) for c in expression.must_not]))
    return base


class WhooshIndexGeneration(IndexGeneration):
    """A sealed generation backed by a RAM Whoosh index.

    Every search opens its own searcher, so concurrent queries share nothing
    but the immutable index.
    """

    def __init__(self, info: GenerationInfo, index):
        super().__init__(info)
        self._index = index
        with index.searcher() as searcher:
            reader = searcher.reader()
            self._frequency = {
                word: reader.doc_frequency(_SPELLING_FIELD, word)
                for word in reader.field_terms(_SPELLING_FIELD)
            }
        self._dictionary = sorted(self._frequency)

    def search(self, query: SearchQuery) -> HitList:
        if query.mode is QueryMode.ID:
            matcher_query: wq.Query | None = translate_match_id(query.match_id)
        else:
            matcher_query = translate_text(query)
        if matcher_query is None:
            return HitList()
        filter_query = translate_filter(query.filter) if query.filter is not None else None
        partial = False
        with self._index.searcher() as searcher:
            collector = searcher.collector(limit=None, filter=filter_query)
            if query.time_limit is not None:
                collector = TimeLimitCollector(collector, timelimit=query.time_limit, use_alarm=False)
            try:
                searcher.search_with_collector(matcher_query, collector)
            except TimeLimit:
                partial = True
                logger.warning({"message": "Query hit its time limit", "vocabulary": self.info.vocabulary, "query": query.text})
            results = collector.results()
            scored = [
                RawHit(fields=hit["term"], score=1.0 if query.mode is QueryMode.ID else hit.score)
                for hit in results
            ]
        hits = order_hits(scored, query.sort)
        return HitList(hits=tuple(hits[: query.rows]), total=len(hits), partial=partial)

    def has_word(self, word: str) -> bool:
        return word in self._frequency

    def suggest(self, word: str, limit: int, max_edit_distance: int = 2) -> list[str]:
        return rank_suggestions(word, self._dictionary, self._frequency, limit, max_edit_distance)

    def close(self) -> None:
        self._index.close()


class WhooshIndexWriter(IndexWriter):
    """Commits each batch with its own Whoosh writer.

    ``update_document`` only replaces documents from earlier commits, so
    duplicates inside one batch are collapsed first (the later one wins).
    """

    def __init__(self, vocabulary: str, number: int):
        self.vocabulary = vocabulary
        self.number = number
        self._index = RamStorage().create_index(build_schema())
        self._open = True

    def add_batch(self, terms: Sequence[Term]) -> None:
        self._check_open()
        documents = {}
        for term in terms:
            document = build_document(term)
            documents[document["id"]] = document
        writer = self._index.writer()
        try:
            for document in documents.values():
                writer.update_document(**document)
        except Exception:
            writer.cancel()
            raise
        writer.commit()

    def staged_count(self) -> int:
        return self._index.doc_count()

    def seal(self, info: GenerationInfo) -> WhooshIndexGeneration:
        self._check_open()
        self._open = False
        info = info.model_copy(update={"term_count": self._index.doc_count()})
        return WhooshIndexGeneration(info, self._index)

    def abort(self) -> None:
        if self._open:
            self._open = False
            self._index.close()

    def _check_open(self) -> None:
        if not self._open:
            raise RuntimeError(f"writer for {self.vocabulary} generation {self.number} is closed")


class WhooshIndexBackend(IndexBackend):
    name = "whoosh"

    def create_writer(self, vocabulary: str, number: int) -> WhooshIndexWriter:
        return WhooshIndexWriter(vocabulary, number)
