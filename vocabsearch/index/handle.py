"""The active-generation handle owned by each vocabulary."""

import threading

from vocabsearch.index.interfaces import EmptyGeneration, IndexGeneration
from vocabsearch.logging import setup_logging

logger = setup_logging()


class GenerationHandle:
    """Points at the generation queries should use.

    Readers take ``handle.current`` once and keep using that object for the
    whole call; the attribute is replaced by a single assignment, so a
    reader sees either the old generation or the new one. The lock only
    serializes writers (``swap``, ``reserve_number``, ``close``).
    """

    def __init__(self, vocabulary: str):
        self.vocabulary = vocabulary
        self.current: IndexGeneration = EmptyGeneration(vocabulary)
        self._last_number = 0
        self._lock = threading.Lock()
        self._closed = False

    def reserve_number(self) -> int:
        """Hand out the next generation number; numbers are never reused."""
        with self._lock:
            self._last_number += 1
            return self._last_number

    def swap(self, generation: IndexGeneration) -> IndexGeneration:
        """Publish ``generation`` and return the one it replaced.

        The caller closes the replaced generation. Queries that bound it
        before the swap may still be running, so closing must leave it
        searchable; its memory goes once they drop it.
        """
        with self._lock:
            if self._closed:
                raise RuntimeError(f"generation handle for {self.vocabulary} is closed")
            previous = self.current
            self.current = generation
        logger.info(
            {
                "message": "Published index generation",
                "vocabulary": self.vocabulary,
                "generation": generation.number,
                "replaced": previous.number,
                "terms": generation.term_count,
            }
        )
        return previous

    def close(self) -> None:
        """Drop the active generation; later searches see an empty vocabulary."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            previous = self.current
            self.current = EmptyGeneration(self.vocabulary)
        previous.close()
