"""Query execution and hit materialization."""

from vocabsearch.search.executor import Collation, SearchExecutor, SearchResult
from vocabsearch.search.materializer import TermMaterializer

__all__ = ["Collation", "SearchExecutor", "SearchResult", "TermMaterializer"]
