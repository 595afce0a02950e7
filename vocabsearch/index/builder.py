"""Batch indexing of a term stream into a new index generation."""

import time
from itertools import islice
from typing import Iterable, Iterator

from pydantic import BaseModel, Field

from vocabsearch.config import VocabularyConfig
from vocabsearch.errors import CommitError
from vocabsearch.index.interfaces import GenerationInfo, IndexBackend, IndexGeneration, IndexWriter
from vocabsearch.logging import setup_logging
from vocabsearch.obo import OboHeader, ParseDiagnostic
from vocabsearch.term import Term

logger = setup_logging()


class BuildReport(BaseModel):
    """Outcome of one successful rebuild.

    Attributes:
        vocabulary: Identifier of the rebuilt vocabulary.
        generation: Number of the generation that was published.
        term_count: Distinct terms in the new generation.
        batches_committed: Write transactions used to build it.
        duplicate_ids: Stanzas whose id had already been indexed; the later one won.
        diagnostics: Stanzas skipped or repaired by the parser.
        source_location: Where the terms were read from.
        data_version: The source's ``data-version`` header, if any.
        elapsed_seconds: Wall time from first term read to generation sealed.
    """

    model_config = {"frozen": True}

    vocabulary: str
    generation: int
    term_count: int
    batches_committed: int
    duplicate_ids: int = 0
    diagnostics: tuple[ParseDiagnostic, ...] = ()
    source_location: str | None = None
    data_version: str | None = None
    elapsed_seconds: float = Field(0.0, ge=0)


def batched(terms: Iterable[Term], size: int) -> Iterator[list[Term]]:
    iterator = iter(terms)
    while True:
        batch = list(islice(iterator, size))
        if not batch:
            return
        yield batch


class IndexBuilder:
    """Writes a term stream into a fresh generation, ``batch_size`` terms per commit.

    Nothing built here is visible to queries: the caller publishes the
    returned generation through its :class:`~vocabsearch.index.handle.GenerationHandle`.
    If anything fails (the term source, a commit) the staged data is
    discarded and the exception propagates; a commit failure surfaces as
    :class:`CommitError`.

    A builder is good for one ``build`` call; counters describing that build
    are left on the instance.
    """

    def __init__(self, config: VocabularyConfig, backend: IndexBackend):
        self.config = config
        self.backend = backend
        self.batches_committed = 0
        self.duplicate_ids = 0
        self.elapsed_seconds = 0.0

    def build(
        self,
        terms: Iterable[Term],
        *,
        number: int,
        source_location: str | None = None,
        header: OboHeader | None = None,
    ) -> IndexGeneration:
        started = time.monotonic()
        writer = self.backend.create_writer(self.config.identifier, number)
        logger.info(
            {
                "message": "Building index generation",
                "vocabulary": self.config.identifier,
                "generation": number,
                "backend": self.backend.name,
                "batch_size": self.config.batch_size,
            }
        )
        seen_ids: set[str] = set()
        alt_owners: dict[str, str] = {}
        try:
            for batch in batched(terms, self.config.batch_size):
                for term in batch:
                    self._check_identity(term, seen_ids, alt_owners)
                self._commit(writer, batch)
            info = GenerationInfo(
                vocabulary=self.config.identifier,
                number=number,
                source_location=source_location,
                data_version=header.data_version if header is not None else None,
            )
            generation = writer.seal(info)
        except BaseException:
            writer.abort()
            raise
        self.elapsed_seconds = time.monotonic() - started
        logger.info(
            {
                "message": "Index generation built",
                "vocabulary": self.config.identifier,
                "generation": number,
                "terms": generation.term_count,
                "batches": self.batches_committed,
                "seconds": round(self.elapsed_seconds, 3),
            }
        )
        return generation

    def _commit(self, writer: IndexWriter, batch: list[Term]) -> None:
        batch_number = self.batches_committed + 1
        try:
            writer.add_batch(batch)
        except Exception as exc:
            raise CommitError(batch_number, str(exc) or type(exc).__name__) from exc
        self.batches_committed = batch_number
        logger.debug(
            {
                "message": "Committed batch",
                "vocabulary": self.config.identifier,
                "batch": batch_number,
                "terms": len(batch),
                "staged": writer.staged_count(),
            }
        )

    def _check_identity(self, term: Term, seen_ids: set[str], alt_owners: dict[str, str]) -> None:
        if term.id in seen_ids:
            self.duplicate_ids += 1
            logger.warning({"message": "Duplicate term id; the later stanza wins", "term_id": term.id})
        seen_ids.add(term.id)
        for alt_id in term.alt_ids:
            owner = alt_owners.setdefault(alt_id, term.id)
            if owner != term.id:
                logger.warning(
                    {"message": "Alternate id claimed by more than one term", "alt_id": alt_id, "terms": [owner, term.id]}
                )
