"""Term model: one ontology concept as stored in and returned from the index."""

from enum import Enum
from typing import Iterable

from pydantic import BaseModel, Field, field_validator, model_validator


class SynonymScope(str, Enum):
    """OBO synonym scope; controls how much a synonym match counts when ranking."""

    EXACT = "EXACT"
    RELATED = "RELATED"
    BROAD = "BROAD"
    NARROW = "NARROW"


class Synonym(BaseModel, frozen=True):
    """A synonym text tagged with its relation to the term's name."""

    text: str = Field(min_length=1, description="The synonym label.")
    scope: SynonymScope = Field(
        default=SynonymScope.RELATED,
        description="OBO scope; RELATED is the OBO default when none is given.",
    )


def _ordered_unique(values: Iterable) -> tuple:
    return tuple(dict.fromkeys(values))


class Term(BaseModel):
    """An ontology concept.

    Terms are immutable once built. Identity is the ``id`` alone: two terms
    with the same id compare equal and hash the same no matter what else
    differs, which lets callers de-duplicate search results from different
    index generations.
    """

    model_config = {"frozen": True}

    id: str = Field(min_length=1, description="Vocabulary-prefixed identifier, e.g. MONDO:0000123.")
    name: str = Field(min_length=1, description="Primary label.")
    synonyms: tuple[Synonym, ...] = Field(default=(), description="Alternative labels with scope.")
    alt_ids: tuple[str, ...] = Field(default=(), description="Historical identifiers resolving to this term.")
    parent_ids: tuple[str, ...] = Field(default=(), description="Direct is_a parents, in source order.")
    namespace: str | None = None
    definition: str | None = None
    comment: str | None = None
    xrefs: tuple[str, ...] = ()
    is_obsolete: bool = False
    replaced_by: tuple[str, ...] = ()
    consider: tuple[str, ...] = ()

    @field_validator("synonyms", "alt_ids", "parent_ids", "xrefs", "replaced_by", "consider")
    @classmethod
    def _dedupe(cls, value: tuple) -> tuple:
        return _ordered_unique(value)

    @model_validator(mode="after")
    def _own_id_not_alternate(self) -> "Term":
        if self.id in self.alt_ids:
            raise ValueError(f"term {self.id} lists its own id as an alt_id")
        return self

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Term):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)

    def __str__(self) -> str:
        return f"{self.id} {self.name}"

    @property
    def synonym_texts(self) -> tuple[str, ...]:
        return tuple(s.text for s in self.synonyms)

    def synonyms_with_scope(self, scope: SynonymScope) -> tuple[str, ...]:
        return tuple(s.text for s in self.synonyms if s.scope is scope)

    def has_alt_id(self, value: str) -> bool:
        """True if ``value`` is one of this term's alternate ids (case-insensitive)."""
        key = value.strip().casefold()
        return any(alt.casefold() == key for alt in self.alt_ids)

    def matches_id(self, value: str) -> bool:
        """True if ``value`` names this term by its id or any alt id."""
        return self.id.casefold() == value.strip().casefold() or self.has_alt_id(value)
