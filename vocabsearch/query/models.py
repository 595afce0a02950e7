"""Engine-agnostic query models.

The query builder produces a :class:`SearchQuery`; each index backend
translates it into whatever its engine understands. Nothing in this module
knows about a particular engine.

Index fields are named ``<family>`` or ``<family>_<kind>``:

- families: ``name`` (primary label), ``synonym`` (synonym labels) and
  ``text`` (catch-all over name, synonyms, definition and comment);
- kinds: ``exact`` (whole normalized value equals the query), ``prefix``
  (whole value starts with the query), ``spell`` (unstemmed words),
  ``stub`` (a word starts with the query word) and the bare family name
  (stemmed words without stopwords).

Phrase boosts apply when the whole query matches a field, token boosts
per query word. ``exact`` and ``prefix`` only make sense for whole-query
matches, ``stub`` only per word.
"""

from enum import Enum

from pydantic import BaseModel, Field, field_validator

from vocabsearch.query.filters import FilterExpression
from vocabsearch.term import SynonymScope

FAMILIES = ("name", "synonym", "text")

PHRASE_FIELDS = frozenset(
    {
        "name", "name_exact", "name_prefix", "name_spell",
        "synonym", "synonym_exact", "synonym_prefix", "synonym_spell",
        "text", "text_spell",
    }
)
TOKEN_FIELDS = frozenset(
    {
        "name", "name_spell", "name_stub",
        "synonym", "synonym_spell", "synonym_stub",
        "text", "text_spell", "text_stub",
    }
)

DEFAULT_PHRASE_BOOSTS = {
    "name_exact": 100.0,
    "synonym_exact": 70.0,
    "name_spell": 36.0,
    "name_prefix": 30.0,
    "synonym_spell": 25.0,
    "name": 20.0,
    "synonym_prefix": 20.0,
    "synonym": 15.0,
    "text_spell": 5.0,
    "text": 3.0,
}
DEFAULT_TOKEN_BOOSTS = {
    "name_spell": 18.0,
    "name": 10.0,
    "synonym_spell": 10.0,
    "synonym": 6.0,
    "name_stub": 5.0,
    "synonym_stub": 3.0,
    "text_spell": 2.0,
    "text": 1.0,
    "text_stub": 0.5,
}
DEFAULT_SYNONYM_SCOPE_WEIGHTS = {
    SynonymScope.EXACT: 1.0,
    SynonymScope.NARROW: 0.75,
    SynonymScope.RELATED: 0.6,
    SynonymScope.BROAD: 0.5,
}
# Lowest accepted scope weight. Under the default boosts an exact synonym match
# of any scope then still outranks a match on a name prefix.
MIN_SCOPE_WEIGHT = 0.5


def split_field(field: str) -> tuple[str, str]:
    """Split an index field name into (family, kind); the bare family has kind ``"text"``."""
    family, _, kind = field.partition("_")
    return family, kind or "text"


class QueryMode(str, Enum):
    ID = "id"
    TEXT = "text"


class FieldBoosts(BaseModel, frozen=True):
    """Relative weights of field matches for free-text ranking."""

    phrase: dict[str, float] = Field(default_factory=lambda: dict(DEFAULT_PHRASE_BOOSTS))
    token: dict[str, float] = Field(default_factory=lambda: dict(DEFAULT_TOKEN_BOOSTS))

    @field_validator("phrase")
    @classmethod
    def _known_phrase_fields(cls, value: dict[str, float]) -> dict[str, float]:
        return _check_boosts(value, PHRASE_FIELDS, "phrase")

    @field_validator("token")
    @classmethod
    def _known_token_fields(cls, value: dict[str, float]) -> dict[str, float]:
        return _check_boosts(value, TOKEN_FIELDS, "token")


def _check_boosts(value: dict[str, float], allowed: frozenset[str], label: str) -> dict[str, float]:
    unknown = sorted(set(value) - allowed)
    if unknown:
        raise ValueError(f"unknown {label} boost fields: {', '.join(unknown)}")
    negative = sorted(k for k, v in value.items() if v < 0)
    if negative:
        raise ValueError(f"negative {label} boosts: {', '.join(negative)}")
    return {k: v for k, v in value.items() if v > 0}


class SpellcheckConfig(BaseModel, frozen=True):
    """Per-vocabulary spelling correction settings."""

    enabled: bool = True
    count: int = Field(100, gt=0, description="Candidate corrections requested per misspelled word.")
    collate: bool = True
    max_collation_tries: int = Field(3, gt=0, description="Alternate queries actually executed.")
    max_collations: int = Field(3, gt=0, description="Collations returned to the caller.")
    max_edit_distance: int = Field(2, ge=1, le=3)
    min_hits: int | None = Field(
        None,
        ge=1,
        description="Offer collations when fewer literal hits than this; None means the requested row count.",
    )


class SpellcheckParams(BaseModel, frozen=True):
    """Spellcheck request attached to a single query."""

    query: str
    count: int = 100
    collate: bool = True
    max_collation_tries: int = 3
    max_collations: int = 3
    max_edit_distance: int = 2
    min_hits: int = 1


class SortClause(BaseModel, frozen=True):
    field: str
    descending: bool = False


class SearchQuery(BaseModel, frozen=True):
    """A structured, engine-agnostic search request."""

    mode: QueryMode
    text: str = Field(description="Trimmed user input.")
    escaped: str = Field(description="Input with query-syntax characters escaped.")
    rows: int = Field(gt=0)
    filter: FilterExpression | None = None
    match_id: str | None = Field(
        None,
        description="Identifier lookups: only terms whose id or alternate id equals this (ignoring case) are hits.",
    )
    phrase_boosts: dict[str, float] = Field(default_factory=dict)
    token_boosts: dict[str, float] = Field(default_factory=dict)
    synonym_scope_weights: dict[SynonymScope, float] = Field(
        default_factory=lambda: dict(DEFAULT_SYNONYM_SCOPE_WEIGHTS)
    )
    spellcheck: SpellcheckParams | None = None
    sort: tuple[SortClause, ...] = ()
    time_limit: float | None = Field(None, gt=0, description="Seconds; honoured by engines that support it.")

    def scope_weight(self, scope: SynonymScope | None, kind: str = "text") -> float:
        """Weight of a match on a synonym of ``scope``; whole-value exact matches count in full."""
        if scope is None or kind == "exact":
            return 1.0
        return self.synonym_scope_weights.get(scope, 1.0)
