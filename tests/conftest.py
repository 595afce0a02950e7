"""Test fixtures: a small MONDO-like OBO document and term/vocabulary factories.

The sample ontology is laid out so that ranking is easy to reason about:

- "diabetes mellitus" has the EXACT synonym "diabetes";
- its children "type 1 diabetes mellitus" and "type 2 diabetes mellitus"
  contain "diabetes" only as a word;
- "heart disease" carries an alternate id (MONDO:0001234);
- one obsolete term and one malformed stanza (no name) are included, plus a
  [Typedef] stanza that must be ignored.
"""

from typing import Sequence

import pytest

from vocabsearch.config import MONDO, VocabularyConfig
from vocabsearch.index.builder import IndexBuilder
from vocabsearch.index.interfaces import IndexGeneration
from vocabsearch.index.memory import InMemoryIndexBackend
from vocabsearch.obo import OboParser
from vocabsearch.term import Synonym, SynonymScope, Term
from vocabsearch.vocabulary import Vocabulary

SAMPLE_OBO = """\
format-version: 1.2
data-version: mondo/releases/2024-01-03/mondo.owl
ontology: mondo
default-namespace: disease

[Term]
id: MONDO:0000001
name: disease
synonym: "disorder" EXACT []
def: "A disposition to undergo pathological processes." [OGMS:0000031]

[Term]
id: MONDO:0005015
name: diabetes mellitus
synonym: "diabetes" EXACT []
alt_id: MONDO:0000987
is_a: MONDO:0000001 ! disease
xref: DOID:9351

[Term]
id: MONDO:0005147
name: type 1 diabetes mellitus
synonym: "juvenile onset diabetes" RELATED []
synonym: "insulin-dependent diabetes mellitus" EXACT []
is_a: MONDO:0005015 ! diabetes mellitus

[Term]
id: MONDO:0005148
name: type 2 diabetes mellitus
synonym: "NIDDM" EXACT ABBREVIATION []
is_a: MONDO:0005015 ! diabetes mellitus

[Term]
id: MONDO:0005267
name: heart disease
synonym: "cardiac disease" EXACT []
alt_id: MONDO:0001234
is_a: MONDO:0000001 ! disease

[Term]
id: MONDO:0005252
name: heart failure
synonym: "cardiac failure" EXACT []
def: "Inability of the heart to pump blood at an adequate rate." []
is_a: MONDO:0005267 ! heart disease

[Term]
id: MONDO:0000999
name: obsolete congestive heart failure
is_obsolete: true
replaced_by: MONDO:0005252

[Term]
id: MONDO:0007254
name: breast cancer
synonym: "breast carcinoma" RELATED []
synonym: "mammary cancer" NARROW []
is_a: MONDO:0000001 ! disease

[Term]
id: MONDO:0009999
comment: this stanza has no name and is skipped

[Typedef]
id: part_of
name: part of
"""

SAMPLE_IDS = {
    "MONDO:0000001",
    "MONDO:0005015",
    "MONDO:0005147",
    "MONDO:0005148",
    "MONDO:0005267",
    "MONDO:0005252",
    "MONDO:0000999",
    "MONDO:0007254",
}


def make_term(
    term_id: str,
    name: str,
    synonyms: Sequence[tuple[str, SynonymScope]] = (),
    **kwargs,
) -> Term:
    """Create a Term with synonyms given as (text, scope) pairs."""
    return Term(
        id=term_id,
        name=name,
        synonyms=tuple(Synonym(text=text, scope=scope) for text, scope in synonyms),
        **kwargs,
    )


def build_generation(
    terms: Sequence[Term],
    config: VocabularyConfig = MONDO,
    backend=None,
    number: int = 1,
) -> IndexGeneration:
    builder = IndexBuilder(config, backend or InMemoryIndexBackend())
    return builder.build(terms, number=number)


@pytest.fixture
def sample_obo() -> str:
    return SAMPLE_OBO


@pytest.fixture
def sample_terms() -> list[Term]:
    return list(OboParser().parse(SAMPLE_OBO))


@pytest.fixture
def sample_path(tmp_path):
    path = tmp_path / "mondo.obo"
    path.write_text(SAMPLE_OBO, encoding="utf-8")
    return path


@pytest.fixture
def sample_generation(sample_terms) -> IndexGeneration:
    return build_generation(sample_terms)


@pytest.fixture
def mondo() -> Vocabulary:
    """A MONDO vocabulary built from the sample document."""
    vocabulary = Vocabulary(MONDO)
    vocabulary.rebuild_from_lines(SAMPLE_OBO, source_location="sample.obo")
    yield vocabulary
    vocabulary.close()
