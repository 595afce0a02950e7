"""Turn caller input into an engine-agnostic :class:`SearchQuery`."""

from abc import ABC, abstractmethod

from vocabsearch.config import VocabularyConfig, validate_vocabulary_config
from vocabsearch.query.classifier import QueryClassifier
from vocabsearch.query.filters import escape_query_chars, id_filter, parse_filter
from vocabsearch.query.models import QueryMode, SearchQuery, SpellcheckParams
from vocabsearch.query.sorting import parse_sort


class QueryBuilderInterface(ABC):
    """Builds structured queries for one vocabulary."""

    @abstractmethod
    def build(
        self,
        text: str | None,
        max_results: int,
        sort: str | None = None,
        custom_filter: str | None = None,
    ) -> SearchQuery | None:
        """Return the query to run, or None when there is nothing to search for.

        None means blank input or ``max_results <= 0``; callers answer with
        an empty result without touching the index. A malformed
        ``custom_filter`` raises :class:`~vocabsearch.errors.FilterSyntaxError`.
        """


class QueryBuilder(QueryBuilderInterface):
    """Identifier lookups become filter-only queries; everything else is boosted free text.

    In identifier mode the filter is ``id:<input> alt_id:<input>`` unless the
    caller passes ``custom_filter``, which then replaces it; hits are still
    limited to the term the identifier names. No boosts and no spellcheck
    apply. In free-text mode the vocabulary's boost tables and
    spellcheck settings are attached and ``custom_filter`` restricts the
    matches.
    """

    def __init__(self, config: VocabularyConfig, classifier: QueryClassifier | None = None):
        self.config = config
        self.classifier = classifier or QueryClassifier(validate_vocabulary_config(config))

    def build(
        self,
        text: str | None,
        max_results: int,
        sort: str | None = None,
        custom_filter: str | None = None,
    ) -> SearchQuery | None:
        mode = self.classifier.classify(text)
        if mode is None or max_results <= 0:
            return None
        stripped = text.strip()
        escaped = escape_query_chars(stripped)
        custom = custom_filter.strip() if custom_filter and custom_filter.strip() else None
        common = {
            "text": stripped,
            "escaped": escaped,
            "rows": max_results,
            "sort": parse_sort(sort),
            "time_limit": self.config.query_time_limit,
        }
        if mode is QueryMode.ID:
            return SearchQuery(
                mode=mode,
                filter=parse_filter(custom or id_filter(escaped)),
                match_id=stripped,
                **common,
            )
        return SearchQuery(
            mode=mode,
            filter=parse_filter(custom) if custom else None,
            phrase_boosts=dict(self.config.field_boosts.phrase),
            token_boosts=dict(self.config.field_boosts.token),
            synonym_scope_weights=dict(self.config.synonym_scope_weights),
            spellcheck=self._spellcheck(stripped, max_results),
            **common,
        )

    def _spellcheck(self, text: str, rows: int) -> SpellcheckParams | None:
        settings = self.config.spellcheck
        if not settings.enabled:
            return None
        return SpellcheckParams(
            query=text,
            count=settings.count,
            collate=settings.collate,
            max_collation_tries=settings.max_collation_tries,
            max_collations=settings.max_collations,
            max_edit_distance=settings.max_edit_distance,
            min_hits=settings.min_hits or rows,
        )
