"""Index backends, the batch builder and the active-generation handle."""

from vocabsearch.index.interfaces import (
    EmptyGeneration,
    GenerationInfo,
    HitList,
    IndexBackend,
    IndexGeneration,
    IndexWriter,
    RawHit,
    get_backend,
)

__all__ = [
    "EmptyGeneration",
    "GenerationInfo",
    "HitList",
    "IndexBackend",
    "IndexGeneration",
    "IndexWriter",
    "RawHit",
    "get_backend",
]
