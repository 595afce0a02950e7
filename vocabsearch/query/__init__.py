"""Query classification, filter and sort parsing, and the engine-agnostic query model.

``QueryBuilder`` lives in :mod:`vocabsearch.query.builder`; it depends on the
vocabulary configuration and is not re-exported here.
"""

from vocabsearch.query.classifier import QueryClassifier
from vocabsearch.query.filters import FilterClause, FilterExpression, Occur, escape_query_chars, parse_filter
from vocabsearch.query.models import FieldBoosts, QueryMode, SearchQuery, SortClause, SpellcheckConfig
from vocabsearch.query.sorting import parse_sort

__all__ = [
    "FieldBoosts",
    "FilterClause",
    "FilterExpression",
    "Occur",
    "QueryClassifier",
    "QueryMode",
    "SearchQuery",
    "SortClause",
    "SpellcheckConfig",
    "escape_query_chars",
    "parse_filter",
    "parse_sort",
]
