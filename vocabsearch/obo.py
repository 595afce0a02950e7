"""Streaming parser for OBO flat-file ontologies.

The parser turns a line source into a lazy iterator of :class:`Term`. Only
one stanza is held in memory at a time, so ontologies of any size can be
piped straight into the index builder.

Failure handling has two levels:

- a malformed ``[Term]`` stanza (no id, no name, a broken synonym, two
  different values for a single-valued tag, ...) is skipped; a
  :class:`ParseDiagnostic` is recorded and a warning logged;
- a source that cannot be read as OBO at all (undecodable bytes, a broken
  stanza header, a line that is not ``tag: value``, no stanza anywhere)
  raises :class:`OboSyntaxError` and the whole parse fails.

Typical usage:
    ```python
    parser = OboParser()
    with open("mondo.obo", "rb") as f:
        for term in parser.parse(f):
            ...
    print(parser.header.data_version, len(parser.diagnostics))
    ```
"""

from typing import IO, Iterable, Iterator

from pydantic import BaseModel, ValidationError

from vocabsearch.errors import OboSyntaxError
from vocabsearch.logging import setup_logging
from vocabsearch.term import Synonym, SynonymScope, Term

logger = setup_logging()

_ESCAPES = {"n": "\n", "t": "\t", "W": " "}

_LEGACY_SYNONYM_TAGS = {
    "exact_synonym": SynonymScope.EXACT,
    "related_synonym": SynonymScope.RELATED,
    "broad_synonym": SynonymScope.BROAD,
    "narrow_synonym": SynonymScope.NARROW,
}
_IDENTIFIER_LIST_TAGS = ("alt_id", "is_a", "xref", "replaced_by", "consider")

_HEADER_TAGS = {
    "format-version": "format_version",
    "data-version": "data_version",
    "ontology": "ontology",
    "default-namespace": "default_namespace",
    "date": "date",
}


class ParseDiagnostic(BaseModel, frozen=True):
    """A recoverable problem found while parsing; the stanza was skipped or repaired."""

    line_number: int
    term_id: str | None = None
    message: str


class OboHeader(BaseModel):
    """Ontology-level tags from the lines before the first stanza.

    Filled in while the source is being read, so it is only complete once
    parsing has reached the first stanza.
    """

    format_version: str | None = None
    data_version: str | None = None
    ontology: str | None = None
    default_namespace: str | None = None
    date: str | None = None


class _StanzaError(Exception):
    pass


def unescape(text: str) -> str:
    """Decode OBO backslash escapes (``\\n``, ``\\W``, ``\\"``, ``\\:`` ...)."""
    if "\\" not in text:
        return text
    out: list[str] = []
    chars = iter(text)
    for char in chars:
        if char != "\\":
            out.append(char)
            continue
        escaped = next(chars, "\\")
        out.append(_ESCAPES.get(escaped, escaped))
    return "".join(out)


def strip_trailing(value: str) -> str:
    """Drop a trailing ``! comment`` and ``{modifier=...}`` block outside quotes."""
    in_quotes = False
    escaped = False
    last_brace = -1
    for index, char in enumerate(value):
        if escaped:
            escaped = False
        elif char == "\\":
            escaped = True
        elif char == '"':
            in_quotes = not in_quotes
        elif not in_quotes and char == "!":
            value = value[:index]
            break
        elif not in_quotes and char == "{":
            last_brace = index
    value = value.rstrip()
    if last_brace >= 0 and last_brace < len(value) and value.endswith("}"):
        value = value[:last_brace].rstrip()
    return value


def parse_quoted(value: str) -> tuple[str, str]:
    """Split ``"quoted text" rest`` into the unescaped text and the rest."""
    if not value.startswith('"'):
        raise _StanzaError(f"expected a quoted string in {value!r}")
    escaped = False
    for index in range(1, len(value)):
        char = value[index]
        if escaped:
            escaped = False
        elif char == "\\":
            escaped = True
        elif char == '"':
            return unescape(value[1:index]), value[index + 1:].strip()
    raise _StanzaError(f"unterminated quoted string in {value!r}")


class OboParser:
    """Parse one OBO source into Terms.

    A parser instance reads a single source; ``header`` and ``diagnostics``
    describe that source once iteration has finished.
    """

    def __init__(self, default_namespace: str | None = None):
        self.default_namespace = default_namespace
        self.header = OboHeader()
        self.diagnostics: list[ParseDiagnostic] = []
        self.stanzas_read = 0
        self._used = False

    def parse(self, source: Iterable[str | bytes] | IO | str) -> Iterator[Term]:
        """Return a lazy iterator of the terms in ``source``.

        ``source`` may be a binary or text file object, any iterable of lines,
        or a whole OBO document as one string.
        """
        if self._used:
            raise RuntimeError("an OboParser instance parses a single source")
        self._used = True
        if isinstance(source, str):
            source = source.splitlines()
        return self._iter_terms(source)

    def _lines(self, source: Iterable[str | bytes]) -> Iterator[tuple[int, str]]:
        for line_number, raw in enumerate(source, start=1):
            if isinstance(raw, bytes):
                try:
                    raw = raw.decode("utf-8")
                except UnicodeDecodeError as exc:
                    raise OboSyntaxError(line_number, f"not valid UTF-8 ({exc.reason})") from exc
            if line_number == 1:
                raw = raw.lstrip("\ufeff")
            yield line_number, raw.rstrip("\r\n")

    def _iter_terms(self, source: Iterable[str | bytes]) -> Iterator[Term]:
        stanza_type: str | None = None
        stanza_line = 0
        tags: list[tuple[str, str, int]] = []
        line_number = 0
        for line_number, line in self._lines(source):
            stripped = line.strip()
            if not stripped or stripped.startswith("!"):
                continue
            if stripped.startswith("["):
                if not stripped.endswith("]"):
                    raise OboSyntaxError(line_number, f"unterminated stanza header {stripped!r}")
                term = self._finish_stanza(stanza_type, tags, stanza_line)
                if term is not None:
                    yield term
                stanza_type = stripped[1:-1].strip()
                stanza_line = line_number
                tags = []
                continue
            tag, separator, value = stripped.partition(":")
            if not separator or not tag.strip():
                raise OboSyntaxError(line_number, f"expected 'tag: value', got {stripped[:60]!r}")
            if stanza_type is None:
                self._read_header_tag(tag.strip(), value.strip())
            else:
                tags.append((tag.strip(), value.strip(), line_number))
        term = self._finish_stanza(stanza_type, tags, stanza_line)
        if term is not None:
            yield term
        if stanza_type is None:
            raise OboSyntaxError(line_number, "no stanzas found; the source is empty or truncated")

    def _read_header_tag(self, tag: str, value: str) -> None:
        attribute = _HEADER_TAGS.get(tag)
        if attribute is not None:
            setattr(self.header, attribute, unescape(strip_trailing(value)))

    def _finish_stanza(
        self,
        stanza_type: str | None,
        tags: list[tuple[str, str, int]],
        stanza_line: int,
    ) -> Term | None:
        if stanza_type != "Term":
            return None
        self.stanzas_read += 1
        term_id: str | None = None
        try:
            collected: dict[str, list[str]] = {}
            for tag, value, _ in tags:
                collected.setdefault(tag, []).append(value)
            term_id = self._single(collected, "id")
            if not term_id:
                raise _StanzaError("stanza has no id")
            return self._build_term(term_id, collected, stanza_line)
        except _StanzaError as exc:
            self._skip(stanza_line, term_id, str(exc))
        except ValidationError as exc:
            first = exc.errors()[0]
            self._skip(stanza_line, term_id, f"invalid term: {first['msg']}")
        return None

    def _build_term(self, term_id: str, collected: dict[str, list[str]], stanza_line: int) -> Term:
        name = self._single(collected, "name")
        if not name:
            raise _StanzaError("stanza has no name")

        definition = None
        raw_def = self._single(collected, "def", clean=False)
        if raw_def is not None:
            definition, _ = parse_quoted(strip_trailing(raw_def))

        obsolete = self._single(collected, "is_obsolete")
        if obsolete not in (None, "true", "false"):
            raise _StanzaError(f"is_obsolete must be true or false, got {obsolete!r}")

        lists = {tag: self._identifiers(collected.get(tag, ())) for tag in _IDENTIFIER_LIST_TAGS}
        if term_id in lists["alt_id"]:
            lists["alt_id"] = [alt for alt in lists["alt_id"] if alt != term_id]
            self._record(stanza_line, term_id, "dropped alt_id equal to the term's own id")

        return Term(
            id=term_id,
            name=name,
            synonyms=tuple(self._synonyms(collected)),
            alt_ids=tuple(lists["alt_id"]),
            parent_ids=tuple(lists["is_a"]),
            namespace=self._single(collected, "namespace") or self.header.default_namespace or self.default_namespace,
            definition=definition,
            comment=self._single(collected, "comment"),
            xrefs=tuple(lists["xref"]),
            is_obsolete=obsolete == "true",
            replaced_by=tuple(lists["replaced_by"]),
            consider=tuple(lists["consider"]),
        )

    @staticmethod
    def _single(collected: dict[str, list[str]], tag: str, clean: bool = True) -> str | None:
        values = collected.get(tag, [])
        if clean:
            values = [unescape(strip_trailing(v)) for v in values]
        distinct = list(dict.fromkeys(values))
        if len(distinct) > 1:
            raise _StanzaError(f"conflicting values for single-valued tag '{tag}'")
        return distinct[0] if distinct else None

    @staticmethod
    def _identifiers(values: Iterable[str]) -> list[str]:
        result: list[str] = []
        for value in values:
            cleaned = strip_trailing(value).split()
            if cleaned:
                result.append(unescape(cleaned[0]))
        return result

    @staticmethod
    def _synonyms(collected: dict[str, list[str]]) -> Iterator[Synonym]:
        for value in collected.get("synonym", ()):
            text, rest = parse_quoted(strip_trailing(value))
            qualifiers = rest.split("[", 1)[0].split()
            scope_name = qualifiers[0] if qualifiers else SynonymScope.RELATED.value
            try:
                scope = SynonymScope(scope_name)
            except ValueError:
                raise _StanzaError(f"unknown synonym scope {scope_name!r}") from None
            yield Synonym(text=text, scope=scope)
        for tag, scope in _LEGACY_SYNONYM_TAGS.items():
            for value in collected.get(tag, ()):
                text, _ = parse_quoted(strip_trailing(value))
                yield Synonym(text=text, scope=scope)

    def _record(self, line_number: int, term_id: str | None, message: str) -> None:
        self.diagnostics.append(ParseDiagnostic(line_number=line_number, term_id=term_id, message=message))
        logger.warning({"message": message, "line": line_number, "term_id": term_id})

    def _skip(self, line_number: int, term_id: str | None, reason: str) -> None:
        self._record(line_number, term_id, f"skipped stanza: {reason}")
