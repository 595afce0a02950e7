"""Caller-supplied filter expressions.

Syntax: whitespace-separated ``field:value`` clauses. Plain clauses are
alternatives (any one may match), ``+field:value`` clauses are required and
``-field:value`` clauses exclude. When required clauses are present the plain
ones no longer restrict the result. Values may be double-quoted; a backslash
escapes the next character, so ``id:MONDO\\:0000123`` and
``id:"MONDO:0000123"`` are equivalent. The value ``*`` matches any term that
has the field at all. Matching ignores case.
"""

from enum import Enum

from pydantic import BaseModel, Field

from vocabsearch.errors import FilterSyntaxError

FILTER_FIELDS = frozenset({"id", "alt_id", "namespace", "is_a", "xref", "is_obsolete"})

# Characters with a meaning in Lucene-style query syntax.
_SPECIAL_CHARS = frozenset('\\+-!():^[]"{}~*?|&;/')


def escape_query_chars(text: str) -> str:
    """Backslash-escape every query-syntax character and whitespace in ``text``."""
    out = []
    for char in text:
        if char in _SPECIAL_CHARS or char.isspace():
            out.append("\\")
        out.append(char)
    return "".join(out)


class Occur(str, Enum):
    SHOULD = "should"
    MUST = "must"
    MUST_NOT = "must_not"


class FilterClause(BaseModel, frozen=True):
    field: str
    value: str = Field(description="Unescaped value; '*' matches any value.")
    occur: Occur = Occur.SHOULD

    @property
    def key(self) -> str:
        return self.value.casefold()

    @property
    def is_wildcard(self) -> bool:
        return self.value == "*"


class FilterExpression(BaseModel, frozen=True):
    clauses: tuple[FilterClause, ...]

    def _of(self, occur: Occur) -> tuple[FilterClause, ...]:
        return tuple(c for c in self.clauses if c.occur is occur)

    @property
    def should(self) -> tuple[FilterClause, ...]:
        return self._of(Occur.SHOULD)

    @property
    def must(self) -> tuple[FilterClause, ...]:
        return self._of(Occur.MUST)

    @property
    def must_not(self) -> tuple[FilterClause, ...]:
        return self._of(Occur.MUST_NOT)


def id_filter(escaped_id: str) -> str:
    """The default ID-lookup filter: the id itself or any alt id."""
    return f"id:{escaped_id} alt_id:{escaped_id}"


def parse_filter(expression: str) -> FilterExpression:
    """Parse a filter expression; raises FilterSyntaxError on malformed input."""
    clauses: list[FilterClause] = []
    pos = 0
    length = len(expression)
    while pos < length:
        if expression[pos].isspace():
            pos += 1
            continue
        occur = Occur.SHOULD
        if expression[pos] in "+-":
            occur = Occur.MUST if expression[pos] == "+" else Occur.MUST_NOT
            pos += 1
        start = pos
        while pos < length and (expression[pos].isalnum() or expression[pos] == "_"):
            pos += 1
        field = expression[start:pos]
        if not field:
            raise FilterSyntaxError(expression, pos, "expected a field name")
        if pos >= length or expression[pos] != ":":
            raise FilterSyntaxError(expression, pos, "expected ':' after field name")
        if field not in FILTER_FIELDS:
            raise FilterSyntaxError(expression, start, f"unknown filter field {field!r}")
        pos += 1
        value, pos = _read_value(expression, pos)
        clauses.append(FilterClause(field=field, value=value, occur=occur))
    if not clauses:
        raise FilterSyntaxError(expression, 0, "empty filter")
    return FilterExpression(clauses=tuple(clauses))


def _read_value(expression: str, pos: int) -> tuple[str, int]:
    length = len(expression)
    chars: list[str] = []
    quoted = pos < length and expression[pos] == '"'
    if quoted:
        pos += 1
    while pos < length:
        char = expression[pos]
        if char == "\\":
            if pos + 1 >= length:
                raise FilterSyntaxError(expression, pos, "dangling escape")
            chars.append(expression[pos + 1])
            pos += 2
            continue
        if quoted and char == '"':
            return "".join(chars), pos + 1
        if not quoted and char.isspace():
            break
        chars.append(char)
        pos += 1
    if quoted:
        raise FilterSyntaxError(expression, pos, "unterminated quoted value")
    if not chars:
        raise FilterSyntaxError(expression, pos, "empty value")
    return "".join(chars), pos
