"""Text analysis shared by every index backend.

Both indexing and querying run through the Whoosh analyzer chains defined
here, so a backend only has to compare the values they produce:

- ``exact_key``: folded words joined by single spaces; punctuation and case
  are ignored, so "Type-2 Diabetes" and "type 2 diabetes" are the same key;
- ``words``: folded words, used for spelling, stub and ``*_spell`` fields;
- ``stems``: words minus stopwords, reduced by the Porter stemmer, used for
  the bare ``name``/``synonym``/``text`` fields.
"""

from typing import NamedTuple

from whoosh.analysis import CharsetFilter, LowercaseFilter, RegexTokenizer, StemFilter, StopFilter
from whoosh.analysis.filters import STOP_WORDS
from whoosh.support.charset import accent_map

from vocabsearch.term import SynonymScope, Term

WORD_PATTERN = r"[^\W_]+"

# Lowercased, accent-folded words; nothing dropped.
WORD_ANALYZER = RegexTokenizer(WORD_PATTERN) | LowercaseFilter() | CharsetFilter(accent_map)

# Same tokens minus stopwords, Porter-stemmed. minsize=1 keeps "1" in "type 1 diabetes".
# No stem cache: the analyzers are shared by concurrent queries.
STEM_ANALYZER = WORD_ANALYZER | StopFilter(stoplist=STOP_WORDS, minsize=1) | StemFilter(cachesize=None)


def _texts(analyzer, text: str) -> tuple[str, ...]:
    # Whoosh reuses one Token object per call, so copy the text out as we go.
    return tuple(token.text for token in analyzer(text))


def words(text: str) -> tuple[str, ...]:
    return _texts(WORD_ANALYZER, text)


def exact_key(text: str) -> str:
    return " ".join(words(text))


def stems(text: str) -> tuple[str, ...]:
    return _texts(STEM_ANALYZER, text)


def stem_or_none(word: str) -> str | None:
    """The indexed form of one word for the stemmed fields, or None for a stopword."""
    found = stems(word)
    return found[0] if found else None


class AnalyzedValue(NamedTuple):
    """One indexed string (a name, a synonym, a definition) in every analyzed form."""

    exact: str
    words: tuple[str, ...]
    stems: tuple[str, ...]
    word_set: frozenset[str]
    stem_set: frozenset[str]
    scope: SynonymScope | None = None


def analyze(text: str, scope: SynonymScope | None = None) -> AnalyzedValue:
    text_words = words(text)
    text_stems = stems(text)
    return AnalyzedValue(
        exact=" ".join(text_words),
        words=text_words,
        stems=text_stems,
        word_set=frozenset(text_words),
        stem_set=frozenset(text_stems),
        scope=scope,
    )


def analyze_term(term: Term) -> dict[str, tuple[AnalyzedValue, ...]]:
    """Analyze a term into the ``name``, ``synonym`` and ``text`` field families."""
    name = analyze(term.name)
    synonyms = tuple(analyze(s.text, s.scope) for s in term.synonyms)
    text = [name, *(s._replace(scope=None) for s in synonyms)]
    for extra in (term.definition, term.comment):
        if extra:
            text.append(analyze(extra))
    return {
        "name": (name,),
        "synonym": tuple(s for s in synonyms if s.words),
        "text": tuple(v for v in text if v.words),
    }


class AnalyzedQuery(NamedTuple):
    """A free-text query in the same forms as the indexed values.

    ``word_stems`` is aligned with ``words`` (None for stopwords) so per-word
    matching can consult both the unstemmed and the stemmed field.
    """

    exact: str
    words: tuple[str, ...]
    stems: tuple[str, ...]
    word_stems: tuple[str | None, ...]


def analyze_query(text: str) -> AnalyzedQuery:
    query_words = words(text)
    return AnalyzedQuery(
        exact=" ".join(query_words),
        words=query_words,
        stems=stems(text),
        word_stems=tuple(stem_or_none(w) for w in query_words),
    )


def contains_run(haystack: tuple[str, ...], needle: tuple[str, ...]) -> bool:
    """True if ``needle`` occurs as a contiguous run inside ``haystack``."""
    size = len(needle)
    if size == 0 or size > len(haystack):
        return False
    first = needle[0]
    for start in range(len(haystack) - size + 1):
        if haystack[start] == first and haystack[start:start + size] == needle:
            return True
    return False
