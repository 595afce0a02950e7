"""Process-wide collection of vocabularies, addressable by identifier or alias."""

from pathlib import Path
from typing import Iterable, Iterator

from vocabsearch.config import Settings, VocabularyConfig, load_vocabulary_configs
from vocabsearch.errors import VocabularyConfigError
from vocabsearch.logging import setup_logging
from vocabsearch.vocabulary import Vocabulary

logger = setup_logging()


class VocabularyRegistry:
    """Owns the vocabularies of one process.

    Lookup keys are the identifier and every alias, compared without regard
    to case; two vocabularies may not share a key.
    """

    def __init__(self) -> None:
        self._vocabularies: dict[str, Vocabulary] = {}
        self._keys: dict[str, str] = {}

    @classmethod
    def from_configs(cls, configs: Iterable[VocabularyConfig], settings: Settings | None = None) -> "VocabularyRegistry":
        registry = cls()
        for config in configs:
            registry.register(Vocabulary(config, settings=settings))
        return registry

    @classmethod
    def load(cls, path: Path | None = None, settings: Settings | None = None) -> "VocabularyRegistry":
        """Registry of the built-in vocabularies plus those in the config file."""
        settings = settings or Settings.from_env()
        return cls.from_configs(load_vocabulary_configs(path, settings), settings)

    def register(self, vocabulary: Vocabulary) -> Vocabulary:
        keys = {key.casefold() for key in vocabulary.config.keys}
        for key in keys:
            owner = self._keys.get(key)
            if owner is not None and owner != vocabulary.identifier:
                raise VocabularyConfigError(
                    f"key {key!r} of vocabulary {vocabulary.identifier!r} is already used by {owner!r}"
                )
        if vocabulary.identifier in self._vocabularies:
            raise VocabularyConfigError(f"vocabulary {vocabulary.identifier!r} is already registered")
        self._vocabularies[vocabulary.identifier] = vocabulary
        for key in keys:
            self._keys[key] = vocabulary.identifier
        logger.debug({"message": "Registered vocabulary", "vocabulary": vocabulary.identifier, "keys": sorted(keys)})
        return vocabulary

    def get(self, key: str) -> Vocabulary | None:
        identifier = self._keys.get(key.strip().casefold())
        return self._vocabularies.get(identifier) if identifier is not None else None

    def __getitem__(self, key: str) -> Vocabulary:
        vocabulary = self.get(key)
        if vocabulary is None:
            raise KeyError(key)
        return vocabulary

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.get(key) is not None

    def __iter__(self) -> Iterator[Vocabulary]:
        return iter(self._vocabularies.values())

    def __len__(self) -> int:
        return len(self._vocabularies)

    def close(self) -> None:
        """Release every vocabulary's active generation."""
        for vocabulary in self._vocabularies.values():
            vocabulary.close()
        logger.info({"message": "Closed vocabulary registry", "vocabularies": len(self._vocabularies)})
