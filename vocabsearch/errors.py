"""Exception hierarchy for vocabulary indexing and search.

Indexing failures (parse, source, commit) propagate to whoever asked for the
rebuild, wrapped in :class:`RebuildError`. Query-time problems never reach
``search`` callers; they degrade to empty results and are only logged.
"""


class VocabularyError(Exception):
    """Base class for all vocabulary errors."""


class VocabularyConfigError(VocabularyError):
    """A vocabulary definition is unusable (bad id pattern, missing source, ...).

    Raised while a vocabulary is being set up, before any query is served.
    """


class OboSyntaxError(VocabularyError):
    """The ontology source cannot be read as OBO at all.

    Unlike a malformed stanza, which is skipped, this aborts the whole parse.
    """

    def __init__(self, line_number: int, message: str):
        self.line_number = line_number
        self.message = message
        super().__init__(f"line {line_number}: {message}")


class SourceError(VocabularyError):
    """The ontology source could not be retrieved."""


class CommitError(VocabularyError):
    """A batch of terms could not be committed to the index being built."""

    def __init__(self, batch_number: int, message: str):
        self.batch_number = batch_number
        super().__init__(f"batch {batch_number}: {message}")


class RebuildError(VocabularyError):
    """A rebuild failed; the previously active index generation is still serving."""

    def __init__(self, vocabulary: str, message: str):
        self.vocabulary = vocabulary
        super().__init__(f"{vocabulary}: {message}")


class RebuildInProgressError(RebuildError):
    """Another rebuild of the same vocabulary is already running."""


class FilterSyntaxError(VocabularyError):
    """A custom filter expression could not be parsed."""

    def __init__(self, expression: str, position: int, message: str):
        self.expression = expression
        self.position = position
        super().__init__(f"{message} at position {position} in filter {expression!r}")
