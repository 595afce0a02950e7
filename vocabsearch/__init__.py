"""
vocabsearch - ranked, typo-tolerant search over OBO vocabularies.

Parses OBO ontologies (MONDO, HPO, ...) into immutable index generations and
answers identifier lookups and free-text queries against them:

    from vocabsearch import MONDO, Vocabulary

    mondo = Vocabulary(MONDO)
    mondo.rebuild_from_path("mondo.obo")
    mondo.search("diabetes mellitus", max_results=5)
"""

from vocabsearch.config import (
    BUILTIN_VOCABULARIES,
    HPO,
    MONDO,
    Settings,
    VocabularyConfig,
    load_vocabulary_configs,
)
from vocabsearch.errors import (
    CommitError,
    FilterSyntaxError,
    OboSyntaxError,
    RebuildError,
    RebuildInProgressError,
    SourceError,
    VocabularyConfigError,
    VocabularyError,
)
from vocabsearch.obo import OboHeader, OboParser, ParseDiagnostic
from vocabsearch.registry import VocabularyRegistry
from vocabsearch.term import Synonym, SynonymScope, Term
from vocabsearch.vocabulary import SearchResponse, Vocabulary

__version__ = "0.1.0"

__all__ = [
    "BUILTIN_VOCABULARIES",
    "CommitError",
    "FilterSyntaxError",
    "HPO",
    "MONDO",
    "OboHeader",
    "OboParser",
    "OboSyntaxError",
    "ParseDiagnostic",
    "RebuildError",
    "RebuildInProgressError",
    "SearchResponse",
    "Settings",
    "SourceError",
    "Synonym",
    "SynonymScope",
    "Term",
    "Vocabulary",
    "VocabularyConfig",
    "VocabularyConfigError",
    "VocabularyError",
    "VocabularyRegistry",
    "load_vocabulary_configs",
]
