"""A vocabulary: its configuration plus the runtime that indexes and searches it.

Typical usage:
    ```python
    mondo = Vocabulary(MONDO)
    report = await mondo.rebuild()          # download, parse, index, publish
    terms = mondo.search("diabetes", max_results=5)
    term = mondo.get_term("MONDO:0005015")
    ```
"""

import asyncio
import threading
from contextlib import contextmanager
from pathlib import Path
from tempfile import TemporaryDirectory
from typing import IO, Iterable, Iterator

import httpx
from pydantic import BaseModel

from vocabsearch.config import Settings, VocabularyConfig, validate_vocabulary_config
from vocabsearch.errors import (
    FilterSyntaxError,
    RebuildError,
    RebuildInProgressError,
    SourceError,
    VocabularyConfigError,
    VocabularyError,
)
from vocabsearch.index.builder import BuildReport, IndexBuilder
from vocabsearch.index.handle import GenerationHandle
from vocabsearch.index.interfaces import IndexBackend, get_backend
from vocabsearch.logging import setup_logging
from vocabsearch.obo import OboParser
from vocabsearch.query.builder import QueryBuilder
from vocabsearch.query.classifier import QueryClassifier
from vocabsearch.query.models import QueryMode
from vocabsearch.search.executor import Collation, SearchExecutor
from vocabsearch.search.materializer import TermMaterializer
from vocabsearch.source import DEFAULT_TIMEOUT, fetch_source
from vocabsearch.term import Term

logger = setup_logging()


class SearchResponse(BaseModel):
    """Terms found for one search, plus spelling suggestions.

    ``mode`` is None when nothing was searched (blank input, no rows requested).
    """

    model_config = {"frozen": True}

    terms: tuple[Term, ...] = ()
    total: int = 0
    collations: tuple[Collation, ...] = ()
    mode: QueryMode | None = None
    generation: int = 0
    partial: bool = False


class Vocabulary:
    """One ontology, searchable once it has been rebuilt at least once.

    Searches never raise: bad filters, backend failures and searches of a
    vocabulary that was never built all come back empty. Rebuilds raise
    :class:`RebuildError` on failure and leave the active generation alone;
    only one rebuild per vocabulary may run at a time.
    """

    def __init__(
        self,
        config: VocabularyConfig,
        backend: IndexBackend | None = None,
        settings: Settings | None = None,
    ):
        pattern = validate_vocabulary_config(config)
        self.config = config
        if backend is None:
            try:
                backend = get_backend(config.backend)
            except ValueError as exc:
                raise VocabularyConfigError(f"{config.identifier}: {exc}") from exc
        self.backend = backend
        self.http_timeout = settings.http_timeout if settings is not None else DEFAULT_TIMEOUT
        self.classifier = QueryClassifier(pattern)
        self.query_builder = QueryBuilder(config, self.classifier)
        self.handle = GenerationHandle(config.identifier)
        self.executor = SearchExecutor(self.handle)
        self.materializer = TermMaterializer()
        self.last_report: BuildReport | None = None
        self._rebuild_lock = threading.Lock()

    def __repr__(self) -> str:
        return f"Vocabulary({self.identifier!r}, generation={self.generation}, size={self.size})"

    @property
    def identifier(self) -> str:
        return self.config.identifier

    @property
    def display_name(self) -> str:
        return self.config.display_name

    @property
    def aliases(self) -> frozenset[str]:
        return self.config.aliases

    @property
    def website(self) -> str | None:
        return self.config.website

    @property
    def citation(self) -> str | None:
        return self.config.citation

    @property
    def source_location(self) -> str:
        return self.config.source_location

    @property
    def size(self) -> int:
        """Number of terms in the active generation (0 before the first rebuild)."""
        return self.handle.current.term_count

    @property
    def version(self) -> str | None:
        """The ``data-version`` of the source the active generation was built from."""
        return self.handle.current.info.data_version

    @property
    def generation(self) -> int:
        return self.handle.current.number

    def search(
        self,
        text: str | None,
        max_results: int = 10,
        sort: str | None = None,
        custom_filter: str | None = None,
    ) -> list[Term]:
        return list(self.search_with_suggestions(text, max_results, sort, custom_filter).terms)

    def search_with_suggestions(
        self,
        text: str | None,
        max_results: int = 10,
        sort: str | None = None,
        custom_filter: str | None = None,
    ) -> SearchResponse:
        try:
            query = self.query_builder.build(text, max_results, sort, custom_filter)
        except FilterSyntaxError as exc:
            logger.warning({"message": "Ignoring search with invalid filter", "vocabulary": self.identifier, "error": str(exc)})
            return SearchResponse()
        if query is None:
            return SearchResponse()
        result = self.executor.execute(query)
        return SearchResponse(
            terms=tuple(self.materializer.materialize_all(result.hits)),
            total=result.total,
            collations=result.collations,
            mode=query.mode,
            generation=result.generation,
            partial=result.partial,
        )

    def get_term(self, term_id: str) -> Term | None:
        """Look a term up by id or alternate id; None if it does not resolve."""
        if not self.classifier.is_id(term_id):
            return None
        found = self.search(term_id, max_results=1)
        return found[0] if found else None

    def get_terms(self, term_ids: Iterable[str]) -> list[Term]:
        """Resolve several ids, skipping unknown ones; each term appears once."""
        terms: dict[Term, None] = {}
        for term_id in term_ids:
            term = self.get_term(term_id)
            if term is not None:
                terms.setdefault(term, None)
        return list(terms)

    def rebuild_from_lines(self, lines: Iterable[str | bytes] | IO | str, source_location: str | None = None) -> BuildReport:
        """Rebuild from OBO text already in hand (a string, lines or an open file)."""
        with self._exclusive_rebuild():
            return self._rebuild(lines, source_location or "<lines>")

    def rebuild_from_path(self, path: str | Path) -> BuildReport:
        with self._exclusive_rebuild():
            return self._rebuild_path(Path(path), str(path))

    async def rebuild(self, source: str | None = None, *, client: httpx.AsyncClient | None = None) -> BuildReport:
        """Fetch the source (the configured location by default) and rebuild from it.

        The download runs on the event loop; parsing and indexing run in a
        worker thread.
        """
        location = source or self.config.source_location
        with self._exclusive_rebuild():
            with TemporaryDirectory(prefix=f"vocabsearch-{self.identifier}-") as directory:
                try:
                    path = await fetch_source(location, Path(directory), client=client, timeout=self.http_timeout)
                except SourceError as exc:
                    raise self._failure(location, exc) from exc
                return await asyncio.to_thread(self._rebuild_path, path, location)

    def close(self) -> None:
        self.handle.close()

    @contextmanager
    def _exclusive_rebuild(self) -> Iterator[None]:
        if not self._rebuild_lock.acquire(blocking=False):
            raise RebuildInProgressError(self.identifier, "a rebuild is already running")
        try:
            yield
        finally:
            self._rebuild_lock.release()

    def _rebuild_path(self, path: Path, location: str) -> BuildReport:
        try:
            with open(path, "rb") as f:
                return self._rebuild(f, location)
        except OSError as exc:
            raise self._failure(location, exc) from exc

    def _rebuild(self, lines: Iterable[str | bytes] | IO | str, location: str) -> BuildReport:
        parser = OboParser()
        builder = IndexBuilder(self.config, self.backend)
        number = self.handle.reserve_number()
        logger.info({"message": "Rebuilding vocabulary", "vocabulary": self.identifier, "source": location, "generation": number})
        try:
            generation = builder.build(parser.parse(lines), number=number, source_location=location, header=parser.header)
        except VocabularyError as exc:
            raise self._failure(location, exc) from exc
        previous = self.handle.swap(generation)
        previous.close()
        report = BuildReport(
            vocabulary=self.identifier,
            generation=generation.number,
            term_count=generation.term_count,
            batches_committed=builder.batches_committed,
            duplicate_ids=builder.duplicate_ids,
            diagnostics=tuple(parser.diagnostics),
            source_location=location,
            data_version=generation.info.data_version,
            elapsed_seconds=builder.elapsed_seconds,
        )
        self.last_report = report
        return report

    def _failure(self, location: str, exc: Exception) -> RebuildError:
        logger.error(
            {
                "message": "Rebuild failed; keeping the active generation",
                "vocabulary": self.identifier,
                "source": location,
                "error": f"{type(exc).__name__}: {exc}",
                "active_generation": self.generation,
            }
        )
        return RebuildError(self.identifier, f"rebuild from {location} failed: {exc}")
