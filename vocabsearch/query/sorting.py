"""Parsing of caller sort specifications."""

import re

from vocabsearch.logging import setup_logging
from vocabsearch.query.models import SortClause

SORTABLE_FIELDS = frozenset({"id", "name", "namespace", "score"})

_SEPARATOR = re.compile(r"\s*,\s*")

logger = setup_logging()


def parse_sort(sort: str | None) -> tuple[SortClause, ...]:
    """Parse ``"name, -id"`` / ``"namespace desc, name asc"`` into sort clauses.

    A leading hyphen means descending, as does a trailing ``desc``. Clauses
    keep their left-to-right priority. Tokens that cannot be understood
    (unknown field, stray words) are dropped individually; the rest still apply.
    """
    if sort is None or not sort.strip():
        return ()
    clauses: list[SortClause] = []
    for item in _SEPARATOR.split(sort.strip()):
        clause = _parse_item(item)
        if clause is None:
            logger.debug({"message": "Ignoring sort token", "token": item})
            continue
        if any(c.field == clause.field for c in clauses):
            continue
        clauses.append(clause)
    return tuple(clauses)


def _parse_item(item: str) -> SortClause | None:
    descending = item.startswith("-")
    parts = item.lstrip("-").split()
    if not parts or len(parts) > 2:
        return None
    if len(parts) == 2:
        direction = parts[1].lower()
        if direction not in ("asc", "desc"):
            return None
        descending = descending or direction == "desc"
    field = parts[0]
    if field not in SORTABLE_FIELDS:
        return None
    return SortClause(field=field, descending=descending)
