# src/main.py — v2
"""CLI entry point — upload, rollback, backups, word-of-the-day commands.

Usage:
    kubishi upload <lift_file> (--backup | --no-backup) [options]
    kubishi rollback <selector> [--db NAME] [--yes]
    kubishi backups [--db NAME]
    kubishi word-of-the-day [--db NAME]
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
import uuid
from pathlib import Path
from typing import NoReturn

from kubishi.version import __version__

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    _setup_logging(args.verbose)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    try:
        return asyncio.run(args.func(args))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except Exception as exc:
        logger.error("Fatal error: %s", exc, exc_info=args.verbose)
        return 1


class _ArgumentParser(argparse.ArgumentParser):
    """Usage errors exit 1 like every other failure."""

    def error(self, message: str) -> NoReturn:
        self.print_usage(sys.stderr)
        self.exit(1, f"{self.prog}: error: {message}\n")


def _build_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    parser = _ArgumentParser(
        prog="kubishi",
        description=f"kubishi v{__version__} — LIFT dictionary ingestion",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command")

    # --- upload ---
    p_upload = subparsers.add_parser(
        "upload", help="Replace the dictionary with the contents of a LIFT file",
    )
    p_upload.add_argument("lift_file", type=Path, help="Path to the .lift file")
    p_upload.add_argument("--db", default=None, help="Target database (default: MONGO_DB)")
    backup = p_upload.add_mutually_exclusive_group()
    backup.add_argument(
        "--backup", dest="backup", action="store_true", default=None,
        help="Snapshot the current collections first (required choice)",
    )
    backup.add_argument(
        "--no-backup", dest="backup", action="store_false",
        help="Skip the snapshot (required choice)",
    )
    p_upload.add_argument(
        "--clean", action="store_true",
        help="Delete documents instead of dropping collections (keeps indexes)",
    )
    reuse = p_upload.add_mutually_exclusive_group()
    reuse.add_argument(
        "--reuse-from-db", default=None, metavar="NAME",
        help="Reuse embeddings stored in another database",
    )
    reuse.add_argument(
        "--reuse-from-backup", default=None, metavar="SELECTOR",
        help="Reuse embeddings from a backup (number or timestamp)",
    )
    p_upload.add_argument("-y", "--yes", action="store_true", help="Do not ask for confirmation")
    p_upload.set_defaults(func=_cmd_upload)

    # --- rollback ---
    p_rollback = subparsers.add_parser(
        "rollback", help="Restore a backup over the current collections",
    )
    p_rollback.add_argument("selector", help="Backup number (see 'backups') or timestamp")
    p_rollback.add_argument("--db", default=None, help="Target database (default: MONGO_DB)")
    p_rollback.add_argument("-y", "--yes", action="store_true", help="Do not ask for confirmation")
    p_rollback.set_defaults(func=_cmd_rollback)

    # --- backups ---
    p_backups = subparsers.add_parser("backups", help="List available backups")
    p_backups.add_argument("--db", default=None, help="Database (default: MONGO_DB)")
    p_backups.set_defaults(func=_cmd_backups)

    # --- word-of-the-day ---
    p_wotd = subparsers.add_parser("word-of-the-day", help="Show today's word")
    p_wotd.add_argument("--db", default=None, help="Database (default: MONGO_DB)")
    p_wotd.set_defaults(func=_cmd_word_of_the_day)

    return parser


async def _cmd_upload(args: argparse.Namespace) -> int:
    """Execute a full upload of a LIFT file."""
    from kubishi.cache.embedding_cache import EmbeddingCache
    from kubishi.embeddings.embedder_factory import create_embedder
    from kubishi.embeddings.resolver import EmbeddingResolver
    from kubishi.extraction.source_formatter import SourceFormatter
    from kubishi.pipeline.models import UploadOptions
    from kubishi.pipeline.upload import UploadPipeline
    from kubishi.store.store_factory import create_document_store

    lift_file: Path = args.lift_file
    if not lift_file.is_file():
        logger.error("File not found: %s", lift_file)
        return 1
    if args.backup is None:
        logger.error("Choose --backup or --no-backup before replacing collections")
        return 1

    settings = _load_settings(args)
    store = create_document_store(settings, database=args.db)
    _start_run(store.database_name)

    try:
        await store.connect()
        backups = _backup_manager(store, settings)
        embedder = create_embedder(settings)
        cache = EmbeddingCache(
            settings.cache_path, embedder, batch_size=settings.embedding_batch_size,
        )
        pipeline = UploadPipeline(
            store,
            EmbeddingResolver(cache, progress_interval=settings.progress_interval),
            backups,
            formatter=SourceFormatter(settings.source_abbreviations),
            insert_batch_size=settings.insert_batch_size,
        )

        entries = pipeline.prepare(lift_file)

        options = UploadOptions(backup=args.backup, clean=args.clean)
        if args.reuse_from_db:
            options.prior = await _lookups_from_database(settings, args.reuse_from_db)
            options.prior_source = f"database {args.reuse_from_db}"
        elif args.reuse_from_backup:
            key = backups.resolve_selector(args.reuse_from_backup)
            options.prior = backups.load_lookups(key)
            options.prior_source = f"backup {key}"

        action = "clear" if args.clean else "drop"
        if not _confirm(
            f"About to {action} words/sentences in '{store.database_name}' "
            f"({'with' if args.backup else 'WITHOUT'} backup) and upload "
            f"{len(entries)} entries.",
            args.yes,
        ):
            logger.error("Upload cancelled")
            return 1

        report = await pipeline.run(entries, options)
        logger.debug("Cache hits=%d misses=%d provider calls=%d",
                     cache.hits, cache.misses, cache.provider_calls)
    finally:
        await store.close()

    _print_upload_report(report)
    return 0


async def _cmd_rollback(args: argparse.Namespace) -> int:
    """Restore a backup."""
    from kubishi.store.store_factory import create_document_store

    settings = _load_settings(args)
    store = create_document_store(settings, database=args.db)
    _start_run(store.database_name)

    try:
        backups = _backup_manager(store, settings)
        key = backups.resolve_selector(args.selector)
        await store.connect()
        if not _confirm(
            f"About to replace words/sentences in '{store.database_name}' "
            f"with backup {key}.",
            args.yes,
        ):
            logger.error("Rollback cancelled")
            return 1
        report = await backups.restore(key)
    finally:
        await store.close()

    print("\nRollback complete:")
    print(f"  Restored from:   {report.restored_from}")
    print(f"  Safety backup:   {report.safety_snapshot}")
    for collection, count in report.restored.items():
        print(f"  {collection + ':':16s} {count}")
    if report.missing_files:
        print(f"  Missing files:   {', '.join(report.missing_files)}")
    return 0


async def _cmd_backups(args: argparse.Namespace) -> int:
    """List backups, newest first."""
    from kubishi.storage.backup import describe
    from kubishi.store.store_factory import create_document_store

    settings = _load_settings(args)
    store = create_document_store(settings, database=args.db)
    try:
        backups = _backup_manager(store, settings)
        snapshots = backups.list_snapshots()
    finally:
        await store.close()

    if not snapshots:
        print(f"No backups in {backups.backup_dir}")
        return 0
    print(f"Backups in {backups.backup_dir}:")
    for number, info in enumerate(snapshots, start=1):
        print(f"  {number:3d}. {describe(info)}")
    return 0


async def _cmd_word_of_the_day(args: argparse.Namespace) -> int:
    """Print today's word as JSON."""
    from kubishi.dictionary.reader import DictionaryReader
    from kubishi.store.store_factory import create_document_store

    settings = _load_settings(args)
    store = create_document_store(settings, database=args.db)
    try:
        await store.connect()
        word = await DictionaryReader(store).word_of_the_day()
    finally:
        await store.close()

    if word is None:
        logger.error("No words found in %s", store.database_name)
        return 1
    print(json.dumps(word, indent=2, ensure_ascii=False, default=str))
    return 0


# --- Helpers ---


def _load_settings(args: argparse.Namespace):
    """Load settings and re-apply logging with the configured format/file."""
    from kubishi.config.settings import load_settings
    from kubishi.logging.logger import setup_logging

    settings = load_settings()
    setup_logging(
        level="DEBUG" if args.verbose else settings.log_level,
        log_format=settings.log_format,
        log_file=str(settings.log_file) if settings.log_file else None,
        rotation=settings.log_rotation,
        retention=settings.log_retention,
    )
    return settings


def _backup_manager(store, settings):
    """Backups live in one subdirectory per database."""
    from kubishi.storage.backup import BackupManager

    return BackupManager(store, settings.backup_path / store.database_name)


async def _lookups_from_database(settings, database: str) -> dict:
    """Id lookups of another database's collections."""
    from kubishi.storage.backup import build_lookup
    from kubishi.store.models import DICTIONARY_COLLECTIONS
    from kubishi.store.store_factory import create_document_store

    source = create_document_store(settings, database=database)
    try:
        await source.connect()
        lookups = {}
        for collection in DICTIONARY_COLLECTIONS:
            lookups[collection] = build_lookup(await source.find(collection))
            logger.info(
                "Loaded %d %s from %s for reuse",
                len(lookups[collection]), collection, database,
            )
    finally:
        await source.close()
    return lookups


def _start_run(database: str) -> None:
    from kubishi.logging.context import set_run_context

    set_run_context(uuid.uuid4().hex[:12], database)


def _confirm(message: str, assume_yes: bool) -> bool:
    """Ask the operator to type 'yes' unless --yes was given."""
    if assume_yes:
        return True
    try:
        answer = input(f"{message}\nType 'yes' to continue: ")
    except EOFError:
        return False
    return answer.strip().lower() == "yes"


def _print_upload_report(report: object) -> None:
    """Print a human-readable summary of an UploadReport."""
    print("\nUpload complete:")
    print(f"  Database:     {report.database}")
    print(f"  Entries:      {report.entries}")
    print(f"  Backup:       {report.backup or 'none'}")
    print(f"  Reused from:  {report.prior_source or 'nothing'}")
    print(f"  Words:        {report.words_inserted} inserted")
    print(f"  Sentences:    {report.sentences_inserted} inserted")
    for name, tally in (("words", report.words), ("sentences", report.sentences)):
        print(
            f"  {name + ' emb.:':13s} reused={tally.reused} cached={tally.cached} "
            f"computed={tally.computed} failed={tally.failed} skipped={tally.skipped}"
        )
        if tally.failed_ids:
            print(f"  {'':13s} failed ids: {', '.join(tally.failed_ids[:20])}")
    print(f"  Duration:     {report.duration_seconds:.1f}s")


def _setup_logging(verbose: bool) -> None:
    """Configure logging for CLI usage until settings are loaded."""
    from kubishi.logging.logger import setup_logging

    setup_logging(level="DEBUG" if verbose else "INFO")


if __name__ == "__main__":
    sys.exit(main())
