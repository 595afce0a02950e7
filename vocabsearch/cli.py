"""Command-line entry point.

Indexes live in memory, so every command builds what it needs in-process:

    vocabsearch rebuild mondo --source mondo.obo
    vocabsearch search hpo "abnormality of the heart" --source hp.obo --max-results 5
    vocabsearch info mondo
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Sequence

from vocabsearch.config import Settings
from vocabsearch.errors import VocabularyError
from vocabsearch.logging import setup_logging
from vocabsearch.registry import VocabularyRegistry
from vocabsearch.vocabulary import Vocabulary


def _metadata(vocabulary: Vocabulary) -> dict:
    return {
        "identifier": vocabulary.identifier,
        "display_name": vocabulary.display_name,
        "aliases": sorted(vocabulary.aliases),
        "website": vocabulary.website,
        "citation": vocabulary.citation,
        "source_location": vocabulary.source_location,
        "backend": vocabulary.backend.name,
        "generation": vocabulary.generation,
        "size": vocabulary.size,
        "version": vocabulary.version,
    }


def _rebuild(vocabulary: Vocabulary, source: str | None) -> None:
    report = asyncio.run(vocabulary.rebuild(source))
    print(
        f"{vocabulary.identifier}: indexed {report.term_count} terms in {report.batches_committed} batch(es), "
        f"{len(report.diagnostics)} stanza(s) skipped, {report.elapsed_seconds:.1f}s",
        file=sys.stderr,
    )


def _run(args: argparse.Namespace) -> int:
    settings = Settings.from_env()
    setup_logging("vocabsearch", args.log_level or settings.log_level)
    registry = VocabularyRegistry.load(args.config, settings)
    try:
        vocabulary = registry.get(args.vocabulary)
        if vocabulary is None:
            known = ", ".join(sorted(v.identifier for v in registry))
            print(f"Unknown vocabulary {args.vocabulary!r} (known: {known})", file=sys.stderr)
            return 2
        if args.command == "info":
            print(json.dumps(_metadata(vocabulary), indent=2))
            return 0
        _rebuild(vocabulary, args.source)
        if args.command == "rebuild":
            print(json.dumps(vocabulary.last_report.model_dump(mode="json"), indent=2))
            return 0
        response = vocabulary.search_with_suggestions(args.query, args.max_results, args.sort, args.filter)
        print(json.dumps(response.model_dump(mode="json"), indent=2))
        return 0
    finally:
        registry.close()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="vocabsearch", description="Index and search OBO vocabularies")
    parser.add_argument("--config", type=Path, default=None, help="vocabsearch.toml with extra vocabularies")
    parser.add_argument("--log-level", default=None, help="DEBUG, INFO, WARNING or ERROR (default: $VOCABSEARCH_LOG_LEVEL or INFO)")
    commands = parser.add_subparsers(dest="command", required=True)

    rebuild = commands.add_parser("rebuild", help="Download, parse and index a vocabulary")
    rebuild.add_argument("vocabulary", help="Identifier or alias, e.g. mondo")
    rebuild.add_argument("--source", default=None, metavar="PATH_OR_URL", help="Override the configured source")

    search = commands.add_parser("search", help="Build the index, then search it")
    search.add_argument("vocabulary")
    search.add_argument("query")
    search.add_argument("--source", default=None, metavar="PATH_OR_URL")
    search.add_argument("--max-results", type=int, default=10)
    search.add_argument("--sort", default=None, help='e.g. "name" or "namespace desc, -id"')
    search.add_argument("--filter", default=None, help='e.g. "+is_obsolete:false -is_a:MONDO:0000001"')

    info = commands.add_parser("info", help="Show vocabulary metadata")
    info.add_argument("vocabulary")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        return _run(args)
    except VocabularyError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
