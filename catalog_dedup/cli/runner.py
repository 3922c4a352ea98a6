# catalog_dedup/cli/runner.py

"""Headless commands: statistics, sweeps, single checks and import."""

import json
import logging
import sys
from pathlib import Path

from rich.console import Console
from rich.prompt import Confirm
from rich.table import Table

from catalog_dedup.filters.categories import list_categories
from catalog_dedup.models.dedup import DeduplicationReport, DedupStats
from catalog_dedup.models.product import IngredientRecord, ProductRecord
from catalog_dedup.services.dedup_service import DeduplicationService
from catalog_dedup.storage.file_manager import FileManager

logger = logging.getLogger("catalog_dedup.cli")

# Stderr console for status messages so stdout stays clean for JSON
_err = Console(stderr=True)


def _print_stats(stats: DedupStats) -> None:
    """Render the sample statistics as a Rich table."""
    table = Table(
        title="Duplicate Statistics (sample)",
        show_lines=True,
        title_style="bold cyan",
    )
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")
    table.add_row("Total products", str(stats.total_products))
    table.add_row("Sampled", str(stats.sample_size))
    table.add_row("Duplicate pairs", str(stats.potential_duplicates))
    table.add_row("Estimated reduction", f"{stats.estimated_reduction}%")
    Console().print(table)

    if stats.top_duplicates:
        pairs = Table(title="Top duplicate pairs", title_style="bold")
        pairs.add_column("#", style="dim", width=4)
        pairs.add_column("Product A", max_width=40)
        pairs.add_column("Product B", max_width=40)
        pairs.add_column("Similarity", justify="right", style="green")
        for idx, pair in enumerate(stats.top_duplicates, 1):
            pairs.add_row(
                str(idx),
                pair.first.name,
                pair.second.name,
                f"{pair.similarity:.3f}",
            )
        Console().print(pairs)

    if stats.categories:
        cats = Table(title="Products by category", title_style="bold")
        cats.add_column("Category")
        cats.add_column("Products", justify="right", style="magenta")
        known = list_categories()
        extra = sorted(set(stats.categories) - set(known))
        for name in known + extra:
            cats.add_row(name, str(stats.categories.get(name, 0)))
        Console().print(cats)


def _print_report(report: DeduplicationReport) -> None:
    """Render duplicate groups and the summary of a sweep."""
    table = Table(
        title="Duplicate Groups" + (" (dry run)" if report.dry_run else ""),
        show_lines=True,
        title_style="bold cyan",
    )
    table.add_column("#", style="dim", width=4)
    table.add_column("Kept (oldest)", max_width=40)
    table.add_column("Duplicates", max_width=60)
    table.add_column("Count", justify="right", style="magenta")

    for idx, group in enumerate(report.groups, 1):
        table.add_row(
            str(idx),
            f"{group.canonical.brand} {group.canonical.name}",
            "\n".join(f"{d.brand} {d.name}" for d in group.duplicates),
            str(len(group.duplicates)),
        )
    Console().print(table)

    summary = report.summary
    _err.print(
        f"[green]Processed {summary['processed_products']}"
        f" of {summary['total_products']}:"
        f" {summary['duplicate_groups']} group(s),"
        f" {summary['duplicates_found']} duplicate(s),"
        f" {summary['duplicates_removed']} removed,"
        f" ~{summary['estimated_reduction']}% reduction[/green]"
    )
    for err in report.errors:
        _err.print(
            f"[red]Failed to remove {err.product_name}"
            f" ({err.product_id}): {err.error}[/red]"
        )
    if report.backup:
        _err.print(f"[dim]Backup → {report.backup}[/dim]")


def run_stats(service: DeduplicationService) -> int:
    """Print sample statistics; 0 on success."""
    stats = service.get_stats()
    if stats.error:
        _err.print(f"[red]Statistics failed: {stats.error}[/red]")
        return 1
    _print_stats(stats)
    return 0


def run_batch(
    service: DeduplicationService,
    apply: bool,
    threshold: float | None,
    max_processed: int,
    save_backup: bool,
    assume_yes: bool = False,
    file_manager: FileManager | None = None,
) -> int:
    """Dry-run a sweep, then delete duplicates if asked and confirmed."""
    report = service.run_batch(
        dry_run=True, threshold=threshold, max_processed=max_processed,
    )
    if report.error:
        _err.print(f"[red]Sweep failed: {report.error}[/red]")
        return 1
    _print_report(report)

    if apply and report.duplicates_found:
        confirmed = assume_yes or Confirm.ask(
            f"Delete {report.duplicates_found} duplicate product(s)?",
            console=_err,
            default=False,
        )
        if not confirmed:
            _err.print("[yellow]Aborted, nothing deleted.[/yellow]")
            return 0
        report = service.run_batch(
            dry_run=False,
            threshold=threshold,
            max_processed=max_processed,
            save_backup=save_backup,
        )
        if report.error:
            _err.print(f"[red]Sweep failed: {report.error}[/red]")
            return 1
        _print_report(report)

    try:
        path = (file_manager or FileManager()).save_report(report)
        _err.print(f"[dim]Report → {path}[/dim]")
    except OSError as exc:
        logger.error("Saving report failed: %s", exc, exc_info=True)
        _err.print(f"[red]Saving report failed: {exc}[/red]")

    return 1 if report.errors else 0


def run_check(
    service: DeduplicationService,
    brand: str,
    name: str,
    category: str = "",
    ingredients_text: str | None = None,
) -> int:
    """Check one would-be record and write the resolution as JSON."""
    candidate = ProductRecord(brand=brand, name=name, category=category)
    ingredients = (
        IngredientRecord(product_id="", ingredients_list=ingredients_text)
        if ingredients_text
        else None
    )
    resolution = service.check_duplication(candidate, ingredients)

    json.dump(resolution.to_dict(), sys.stdout, ensure_ascii=False, indent=2)
    sys.stdout.write("\n")
    return 1 if resolution.error else 0


def run_import(
    service: DeduplicationService,
    filepath: Path,
    file_manager: FileManager | None = None,
) -> int:
    """Load a JSON export into the configured store."""
    if not filepath.exists():
        _err.print(f"[red]File not found: {filepath}[/red]")
        return 1
    try:
        count = (file_manager or FileManager()).import_records(
            service.store, filepath,
        )
    except (OSError, ValueError) as exc:
        logger.error("Import failed: %s", exc, exc_info=True)
        _err.print(f"[red]Import failed: {exc}[/red]")
        return 1
    _err.print(f"[green]✓ Imported {count} products[/green]")
    return 0
