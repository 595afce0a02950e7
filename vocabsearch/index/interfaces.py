"""Index backend interfaces.

An index backend turns batches of terms into an :class:`IndexGeneration`,
an immutable snapshot that answers structured queries. The lifecycle is:

1. ``backend.create_writer()`` stages a new, invisible generation;
2. ``writer.add_batch()`` commits terms, one all-or-nothing batch at a time;
3. ``writer.seal()`` freezes the staged data into a queryable generation,
   or ``writer.abort()`` throws it away.

Publishing a sealed generation (making it the one queries see) is not the
backend's job; see :mod:`vocabsearch.index.handle`.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Sequence

from pydantic import BaseModel, Field

from vocabsearch.query.models import SearchQuery
from vocabsearch.term import Term


class GenerationInfo(BaseModel, frozen=True):
    """Where a generation came from."""

    vocabulary: str
    number: int = Field(ge=0, description="Monotonic per vocabulary; 0 is the never-built generation.")
    term_count: int = Field(0, ge=0)
    source_location: str | None = None
    data_version: str | None = None
    built_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class RawHit(BaseModel, frozen=True):
    """One search hit as stored by the engine, before materialization."""

    fields: dict[str, Any] = Field(description="Stored term fields (the Term's JSON dump).")
    score: float = 0.0


class HitList(BaseModel, frozen=True):
    hits: tuple[RawHit, ...] = ()
    total: int = Field(0, ge=0, description="Number of matches before the row limit.")
    partial: bool = Field(False, description="True when a time limit cut collection short.")


class IndexGeneration(ABC):
    """An immutable, queryable snapshot of one vocabulary."""

    def __init__(self, info: GenerationInfo):
        self.info = info

    @property
    def number(self) -> int:
        return self.info.number

    @property
    def term_count(self) -> int:
        return self.info.term_count

    @abstractmethod
    def search(self, query: SearchQuery) -> HitList:
        """Run a structured query; hits come back ranked and capped at ``query.rows``."""

    @abstractmethod
    def has_word(self, word: str) -> bool:
        """True if ``word`` (already folded) occurs anywhere in the indexed text."""

    @abstractmethod
    def suggest(self, word: str, limit: int, max_edit_distance: int = 2) -> list[str]:
        """Indexed words within ``max_edit_distance`` of ``word``, best first."""

    def close(self) -> None:
        """Release engine resources once superseded.

        In-flight queries may still hold this generation, so it must keep
        answering them after ``close``.
        """


class IndexWriter(ABC):
    """Stages a new generation batch by batch."""

    @abstractmethod
    def add_batch(self, terms: Sequence[Term]) -> None:
        """Commit one batch. Either every term in it is staged or none is.

        A term whose id was already staged replaces the earlier one.
        """

    @abstractmethod
    def staged_count(self) -> int:
        """Distinct terms committed so far."""

    @abstractmethod
    def seal(self, info: GenerationInfo) -> IndexGeneration:
        """Freeze the committed batches into a generation. The writer is done afterwards."""

    @abstractmethod
    def abort(self) -> None:
        """Discard everything staged. Safe to call more than once."""


class IndexBackend(ABC):
    """Factory for writers of one engine type."""

    name: str = ""

    @abstractmethod
    def create_writer(self, vocabulary: str, number: int) -> IndexWriter:
        """Start staging generation ``number`` of ``vocabulary``."""


class EmptyGeneration(IndexGeneration):
    """The generation of a vocabulary that has never been built."""

    def __init__(self, vocabulary: str):
        super().__init__(GenerationInfo(vocabulary=vocabulary, number=0))

    def search(self, query: SearchQuery) -> HitList:
        return HitList()

    def has_word(self, word: str) -> bool:
        return False

    def suggest(self, word: str, limit: int, max_edit_distance: int = 2) -> list[str]:
        return []


def get_backend(name: str) -> IndexBackend:
    """Instantiate a backend by name. The Whoosh backend is imported lazily."""
    if name == "memory":
        from vocabsearch.index.memory import InMemoryIndexBackend

        return InMemoryIndexBackend()
    if name == "whoosh":
        from vocabsearch.index.whoosh_backend import WhooshIndexBackend

        return WhooshIndexBackend()
    raise ValueError(f"unknown index backend {name!r}")
