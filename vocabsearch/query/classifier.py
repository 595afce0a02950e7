"""Decide whether user input is an identifier lookup or a free-text query."""

import re

from vocabsearch.query.models import QueryMode


class QueryClassifier:
    """Classifies input against a vocabulary's identifier pattern.

    The pattern must match the whole trimmed input and case is ignored, so
    with ``MONDO:[0-9]+`` both ``MONDO:0000123`` and ``mondo:0000123`` are
    identifier lookups while ``MONDO:0000123 diabetes`` is free text.
    """

    def __init__(self, id_pattern: str | re.Pattern[str]):
        if isinstance(id_pattern, str):
            id_pattern = re.compile(id_pattern, re.IGNORECASE)
        elif not id_pattern.flags & re.IGNORECASE:
            id_pattern = re.compile(id_pattern.pattern, id_pattern.flags | re.IGNORECASE)
        self.pattern = id_pattern

    def classify(self, text: str | None) -> QueryMode | None:
        """Return the query mode, or None for blank input."""
        if text is None or not text.strip():
            return None
        if self.pattern.fullmatch(text.strip()):
            return QueryMode.ID
        return QueryMode.TEXT

    def is_id(self, text: str | None) -> bool:
        return self.classify(text) is QueryMode.ID
