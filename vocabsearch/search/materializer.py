"""Turn raw index hits back into Term values."""

from typing import Iterable

from pydantic import ValidationError

from vocabsearch.index.interfaces import RawHit
from vocabsearch.logging import setup_logging
from vocabsearch.term import Term

logger = setup_logging()


class TermMaterializer:
    """Validates stored hit fields into :class:`Term` instances.

    A hit whose stored fields no longer validate (an index written by an
    incompatible version, say) is dropped with a warning instead of failing
    the whole search.
    """

    def materialize(self, hit: RawHit) -> Term | None:
        try:
            return Term.model_validate(hit.fields)
        except ValidationError as exc:
            logger.warning(
                {
                    "message": "Dropping hit that does not validate as a term",
                    "id": hit.fields.get("id"),
                    "errors": exc.errors(include_url=False),
                }
            )
            return None

    def materialize_all(self, hits: Iterable[RawHit]) -> list[Term]:
        terms = []
        for hit in hits:
            term = self.materialize(hit)
            if term is not None:
                terms.append(term)
        return terms
