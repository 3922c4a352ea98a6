# main.py

"""Entry point for catalog_dedup (dashboard or headless CLI)."""

import argparse
import logging
import sys
from pathlib import Path

from catalog_dedup.config.logging_config import setup_logging
from catalog_dedup.config.settings import Settings
from catalog_dedup.storage.store_factory import BACKENDS

logger = logging.getLogger("catalog_dedup.main")


def _build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="catalog_dedup",
        description="Near-duplicate detection for scanned product catalogs.",
        epilog="Run without an action to open the dashboard.",
    )
    actions = parser.add_mutually_exclusive_group()
    actions.add_argument(
        "--stats",
        action="store_true",
        help="Show sample duplicate statistics.",
    )
    actions.add_argument(
        "--batch",
        action="store_true",
        help="Sweep the catalog for duplicate groups (dry run by default).",
    )
    actions.add_argument(
        "--check",
        action="store_true",
        help="Check one record given by --brand/--name/--category.",
    )
    actions.add_argument(
        "--import",
        default=None,
        dest="import_file",
        metavar="FILE",
        help="Import products from a JSON array file.",
    )

    parser.add_argument(
        "--apply",
        action="store_true",
        help="With --batch: delete duplicates after confirmation.",
    )
    parser.add_argument(
        "-y",
        "--yes",
        action="store_true",
        dest="assume_yes",
        help="With --apply: skip the confirmation prompt.",
    )
    parser.add_argument(
        "--threshold",
        type=float,
        default=None,
        help=f"Overall duplicate threshold (default: {Settings.THRESHOLD_OVERALL}).",
    )
    parser.add_argument(
        "--max-processed",
        type=int,
        default=Settings.BATCH_MAX_PROCESSED,
        dest="max_processed",
        help="Records considered by a sweep (cost grows quadratically).",
    )
    parser.add_argument(
        "--no-backup",
        action="store_false",
        dest="save_backup",
        help="With --apply: do not back up deleted records.",
    )
    parser.add_argument("--brand", default="", help="Brand for --check.")
    parser.add_argument("--name", default="", help="Name for --check.")
    parser.add_argument("--category", default="", help="Category for --check.")
    parser.add_argument(
        "--ingredients",
        default=None,
        help="Raw ingredient list text for --check.",
    )
    parser.add_argument(
        "--backend",
        choices=BACKENDS,
        default=None,
        help=f"Catalog store backend (default: {Settings.STORE_BACKEND}).",
    )
    parser.add_argument(
        "--db",
        default=None,
        dest="db_path",
        help="SQLite database path.",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Echo INFO logs to the console.",
    )
    return parser


def _run_tui(args: argparse.Namespace) -> None:
    """Launch the interactive Textual dashboard."""
    from catalog_dedup.ui.app import DedupDashboardApp

    try:
        app = DedupDashboardApp(
            backend=args.backend,
            db_path=Path(args.db_path) if args.db_path else None,
        )
        app.run()
    except Exception:
        logger.critical("Fatal error during dashboard run", exc_info=True)
        raise
    finally:
        logger.info("catalog_dedup dashboard shutting down")


def _run_cli(args: argparse.Namespace) -> int:
    """Run one headless command and return its exit code."""
    from catalog_dedup.cli import runner
    from catalog_dedup.services.dedup_service import DeduplicationService
    from catalog_dedup.storage.store_factory import open_store

    store = open_store(
        backend=args.backend,
        db_path=Path(args.db_path) if args.db_path else None,
    )
    service = DeduplicationService(store)
    try:
        if args.import_file:
            return runner.run_import(service, Path(args.import_file))
        if args.stats:
            return runner.run_stats(service)
        if args.check:
            return runner.run_check(
                service,
                brand=args.brand,
                name=args.name,
                category=args.category,
                ingredients_text=args.ingredients,
            )
        return runner.run_batch(
            service,
            apply=args.apply,
            threshold=args.threshold,
            max_processed=args.max_processed,
            save_backup=args.save_backup,
            assume_yes=args.assume_yes,
        )
    finally:
        store.close()


def main() -> None:
    """Route to the dashboard (no action) or a headless command."""
    parser = _build_parser()
    args = parser.parse_args()

    log_file = setup_logging(verbose=args.verbose)
    logger.info("catalog_dedup starting, log file: %s", log_file)

    if args.check and not (args.brand or args.name):
        parser.error("--check needs at least --brand or --name")

    if args.stats or args.batch or args.check or args.import_file:
        sys.exit(_run_cli(args))
    _run_tui(args)


if __name__ == "__main__":
    main()
