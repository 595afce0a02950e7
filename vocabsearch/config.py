"""Vocabulary definitions and runtime settings.

Vocabularies are described by :class:`VocabularyConfig`; MONDO and HPO ship
built in. Extra vocabularies (or overrides of the built-in ones) are read
from a TOML file, looked up in order:

  1. Path in the VOCABSEARCH_CONFIG env var (if set)
  2. vocabsearch.toml in the current working directory

Each ``[vocabularies.<identifier>]`` table maps onto VocabularyConfig::

    [vocabularies.hpo]
    display_name = "Human Phenotype Ontology"
    id_pattern = "HP:[0-9]+"
    source_location = "/data/hp.obo"
    batch_size = 20000

    [vocabularies.hpo.spellcheck]
    max_collation_tries = 5
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any, Mapping

import tomllib

from pydantic import BaseModel, Field, ValidationError, field_validator

from vocabsearch.errors import VocabularyConfigError
from vocabsearch.query.models import (
    DEFAULT_SYNONYM_SCOPE_WEIGHTS,
    MIN_SCOPE_WEIGHT,
    FieldBoosts,
    SpellcheckConfig,
)
from vocabsearch.term import SynonymScope

CONFIG_ENV = "VOCABSEARCH_CONFIG"
HTTP_TIMEOUT_ENV = "VOCABSEARCH_HTTP_TIMEOUT"
BACKEND_ENV = "VOCABSEARCH_BACKEND"
LOG_LEVEL_ENV = "VOCABSEARCH_LOG_LEVEL"

DEFAULT_BATCH_SIZE = 50000


class VocabularyConfig(BaseModel, frozen=True):
    """Everything needed to index and query one ontology."""

    identifier: str = Field(min_length=1, description="Short machine key, e.g. 'mondo'.")
    display_name: str = Field(min_length=1)
    id_pattern: str = Field(description="Regex an identifier must fully match, e.g. 'MONDO:[0-9]+'.")
    source_location: str = Field(description="URL or path of the OBO source.")
    aliases: frozenset[str] = frozenset()
    website: str | None = None
    citation: str | None = None
    batch_size: int = Field(DEFAULT_BATCH_SIZE, gt=0, description="Terms per index commit.")
    backend: str = Field("memory", description="Index backend name: 'memory' or 'whoosh'.")
    field_boosts: FieldBoosts = Field(default_factory=FieldBoosts)
    spellcheck: SpellcheckConfig = Field(default_factory=SpellcheckConfig)
    synonym_scope_weights: dict[SynonymScope, float] = Field(
        default_factory=lambda: dict(DEFAULT_SYNONYM_SCOPE_WEIGHTS)
    )
    query_time_limit: float | None = Field(None, gt=0, description="Seconds before a query returns partial hits.")

    @field_validator("identifier")
    @classmethod
    def _identifier_is_key(cls, value: str) -> str:
        if not re.fullmatch(r"[A-Za-z0-9_.-]+", value):
            raise ValueError(f"identifier {value!r} must be a short key without spaces")
        return value

    @field_validator("synonym_scope_weights")
    @classmethod
    def _weights_in_range(cls, value: dict[SynonymScope, float]) -> dict[SynonymScope, float]:
        for scope, weight in value.items():
            if not MIN_SCOPE_WEIGHT <= weight <= 1.0:
                raise ValueError(f"weight for {scope.value} synonyms must be within [{MIN_SCOPE_WEIGHT}, 1]")
        return {**DEFAULT_SYNONYM_SCOPE_WEIGHTS, **value}

    @property
    def keys(self) -> frozenset[str]:
        """All names this vocabulary can be looked up by."""
        return frozenset({self.identifier, *self.aliases})


def validate_vocabulary_config(config: VocabularyConfig) -> re.Pattern[str]:
    """Fail fast on settings that would only break at query or rebuild time.

    Returns the compiled, case-insensitive identifier pattern.
    """
    if not config.id_pattern.strip():
        raise VocabularyConfigError(f"{config.identifier}: no identifier pattern configured")
    try:
        pattern = re.compile(config.id_pattern, re.IGNORECASE)
    except re.error as exc:
        raise VocabularyConfigError(f"{config.identifier}: invalid identifier pattern {config.id_pattern!r}: {exc}") from exc
    if pattern.fullmatch(""):
        raise VocabularyConfigError(f"{config.identifier}: identifier pattern matches the empty string")
    if not config.source_location.strip():
        raise VocabularyConfigError(f"{config.identifier}: no source location configured")
    return pattern


MONDO = VocabularyConfig(
    identifier="mondo",
    display_name="Mondo Disease Ontology (MONDO)",
    id_pattern=r"MONDO:[0-9]+",
    source_location="https://github.com/monarch-initiative/mondo/releases/download/current/mondo.obo",
    aliases=frozenset({"Mondo", "MONDO"}),
    website="http://www.obofoundry.org/ontology/mondo.html",
    citation=(
        "A census of disease ontologies. Melissa A. Haendel, Julie A. McMurry, Rose Relevo,"
        " Christopher J. Mungall, Peter N. Robinson, and Christopher G. Chute."
        " Annual Review of Biomedical Data Science (20 July 2018) 1: 305-331."
    ),
    batch_size=50000,
)

HPO = VocabularyConfig(
    identifier="hpo",
    display_name="Human Phenotype Ontology (HPO)",
    id_pattern=r"HP:[0-9]+",
    source_location="http://purl.obolibrary.org/obo/hp.obo",
    aliases=frozenset({"HPO", "HP", "hp"}),
    website="https://hpo.jax.org/",
    citation=(
        "The Human Phenotype Ontology in 2021. Sebastian Kohler et al."
        " Nucleic Acids Research (2021) 49(D1): D1207-D1217."
    ),
    batch_size=50000,
)

BUILTIN_VOCABULARIES: tuple[VocabularyConfig, ...] = (MONDO, HPO)


class Settings(BaseModel, frozen=True):
    """Process-wide settings, read from the environment."""

    log_level: str = "INFO"
    http_timeout: float = Field(60.0, gt=0)
    default_backend: str = "memory"
    config_path: Path | None = None

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "Settings":
        env = os.environ if environ is None else environ
        values: dict[str, Any] = {}
        if env.get(LOG_LEVEL_ENV):
            values["log_level"] = env[LOG_LEVEL_ENV]
        if env.get(HTTP_TIMEOUT_ENV):
            values["http_timeout"] = env[HTTP_TIMEOUT_ENV]
        if env.get(BACKEND_ENV):
            values["default_backend"] = env[BACKEND_ENV]
        if env.get(CONFIG_ENV):
            values["config_path"] = Path(env[CONFIG_ENV])
        try:
            return cls(**values)
        except ValidationError as exc:
            raise VocabularyConfigError(f"invalid environment settings: {exc}") from exc


def _default_config_paths(settings: Settings) -> list[Path]:
    paths: list[Path] = []
    if settings.config_path is not None:
        paths.append(settings.config_path)
    paths.append(Path.cwd() / "vocabsearch.toml")
    return paths


def parse_vocabulary_tables(data: Mapping[str, Any], default_backend: str = "memory") -> list[VocabularyConfig]:
    """Build configs from the ``vocabularies`` table of a parsed TOML document."""
    tables = data.get("vocabularies", {})
    if not isinstance(tables, dict):
        raise VocabularyConfigError("'vocabularies' must be a table")
    builtins = {c.identifier: c for c in BUILTIN_VOCABULARIES}
    configs: list[VocabularyConfig] = []
    for identifier, table in tables.items():
        if not isinstance(table, dict):
            raise VocabularyConfigError(f"vocabularies.{identifier} must be a table")
        base = builtins.get(identifier)
        values: dict[str, Any] = base.model_dump() if base is not None else {}
        values["backend"] = default_backend
        values.update(table)
        values["identifier"] = identifier
        try:
            configs.append(VocabularyConfig(**values))
        except ValidationError as exc:
            raise VocabularyConfigError(f"invalid configuration for vocabulary {identifier!r}: {exc}") from exc
    return configs


def load_vocabulary_configs(
    path: Path | None = None,
    settings: Settings | None = None,
) -> list[VocabularyConfig]:
    """Return the built-in vocabularies merged with those from the config file.

    A file entry with the identifier of a built-in vocabulary overrides only
    the keys it sets. If ``path`` is given it must exist; otherwise the
    default locations are searched and a missing file is not an error.
    """
    settings = settings or Settings.from_env()
    merged = {
        c.identifier: c.model_copy(update={"backend": settings.default_backend})
        for c in BUILTIN_VOCABULARIES
    }
    if path is not None and not path.is_file():
        raise VocabularyConfigError(f"config file not found: {path}")
    candidates = [path] if path is not None else _default_config_paths(settings)
    for candidate in candidates:
        if not candidate.is_file():
            continue
        try:
            with open(candidate, "rb") as f:
                data = tomllib.load(f)
        except (OSError, ValueError) as exc:
            raise VocabularyConfigError(f"cannot read {candidate}: {exc}") from exc
        for config in parse_vocabulary_tables(data, settings.default_backend):
            merged[config.identifier] = config
        break
    return list(merged.values())
