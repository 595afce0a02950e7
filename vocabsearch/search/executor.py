"""Run structured queries against the active generation."""

from itertools import product

from pydantic import BaseModel, Field

from vocabsearch.index.analysis import words
from vocabsearch.index.handle import GenerationHandle
from vocabsearch.index.interfaces import IndexGeneration, RawHit
from vocabsearch.logging import setup_logging
from vocabsearch.query.filters import escape_query_chars
from vocabsearch.query.models import SearchQuery

logger = setup_logging()


class Collation(BaseModel, frozen=True):
    """A complete alternate query built from corrected words ("did you mean")."""

    query: str
    hits: int = Field(ge=1, description="Matches the alternate query would return.")
    corrections: dict[str, str] = Field(default_factory=dict, description="Original word -> replacement.")


class SearchResult(BaseModel, frozen=True):
    hits: tuple[RawHit, ...] = ()
    total: int = 0
    collations: tuple[Collation, ...] = ()
    generation: int = Field(0, description="Number of the generation that answered.")
    partial: bool = False


class SearchExecutor:
    """Executes queries and builds spelling collations.

    ``execute`` reads ``handle.current`` exactly once, so every search made
    on behalf of one call (the query itself and the collation checks) sees
    the same generation even if a rebuild publishes a new one meanwhile.
    Failures are logged and answered with an empty result.
    """

    def __init__(self, handle: GenerationHandle):
        self.handle = handle

    def execute(self, query: SearchQuery) -> SearchResult:
        generation = self.handle.current
        try:
            found = generation.search(query)
            collations = self._collate(generation, query, found.total)
        except Exception:
            logger.exception(
                {
                    "message": "Search failed; returning no results",
                    "vocabulary": self.handle.vocabulary,
                    "generation": generation.number,
                    "query": query.text,
                }
            )
            return SearchResult(generation=generation.number)
        return SearchResult(
            hits=found.hits,
            total=found.total,
            collations=collations,
            generation=generation.number,
            partial=found.partial,
        )

    def _collate(self, generation: IndexGeneration, query: SearchQuery, total: int) -> tuple[Collation, ...]:
        params = query.spellcheck
        if params is None or not params.collate or total >= params.min_hits:
            return ()
        query_words = words(query.text)
        options: list[list[str]] = []
        for word in query_words:
            if generation.has_word(word):
                options.append([word])
            else:
                options.append(generation.suggest(word, params.count, params.max_edit_distance) or [word])
        if all(len(choices) == 1 for choices in options):
            if [choices[0] for choices in options] == list(query_words):
                return ()

        collations: list[Collation] = []
        tries = 0
        for combination in product(*options):
            if combination == query_words:
                continue
            if tries >= params.max_collation_tries:
                break
            tries += 1
            collated = " ".join(combination)
            check = query.model_copy(
                update={
                    "text": collated,
                    "escaped": escape_query_chars(collated),
                    "rows": 1,
                    "sort": (),
                    "spellcheck": None,
                }
            )
            hits = generation.search(check).total
            logger.debug({"message": "Tried collation", "collation": collated, "hits": hits})
            if hits > 0:
                corrections = {w: c for w, c in zip(query_words, combination) if w != c}
                collations.append(Collation(query=collated, hits=hits, corrections=corrections))
                if len(collations) >= params.max_collations:
                    break
        return tuple(collations)
