# catalog_dedup/ui/app.py

"""Terminal dashboard showing duplicate statistics and dry-run groups."""

import asyncio
import logging
from pathlib import Path
from typing import cast

from rich.text import Text
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Container
from textual.widgets import DataTable, Footer, Header, Static

from catalog_dedup.models.dedup import DeduplicationReport, DedupStats
from catalog_dedup.services.dedup_service import DeduplicationService
from catalog_dedup.storage.store_factory import open_store

logger = logging.getLogger("catalog_dedup.ui")


class DedupDashboardApp(App[object]):
    """Read-only dashboard; it never deletes records."""

    CSS_PATH = "styles.css"

    BINDINGS = [
        Binding("q", "quit", "Quit"),
        Binding("r", "refresh_stats", "Refresh"),
        Binding("d", "dry_run", "Dry Run"),
    ]

    def __init__(
        self,
        service: DeduplicationService | None = None,
        backend: str | None = None,
        db_path: Path | None = None,
    ) -> None:
        super().__init__()
        self._owns_store = service is None
        self.service = service or DeduplicationService(
            open_store(backend=backend, db_path=db_path)
        )
        self.stats: DedupStats | None = None
        self.report: DeduplicationReport | None = None

    def compose(self) -> ComposeResult:
        """Build the widget tree for the dashboard."""
        yield Header()
        yield Container(
            Static(
                f"🧹 Catalog Deduplication ({self.service.store.backend})",
                id="title",
            ),
            Static("", id="summary"),
            Static("Ready", id="status"),
            Static("Top duplicate pairs", classes="section"),
            DataTable(id="pairs_table", zebra_stripes=True, cursor_type="row"),
            Static("Dry-run groups", classes="section"),
            DataTable(id="groups_table", zebra_stripes=True, cursor_type="row"),
            id="main_container",
        )
        yield Footer()

    def _table(self, selector: str) -> DataTable[str | Text]:
        return cast(
            DataTable[str | Text], self.query_one(selector, DataTable),
        )

    async def on_mount(self) -> None:
        """Configure table columns and load the first statistics."""
        self._table("#pairs_table").add_columns(
            "Product A", "Product B", "Similarity",
        )
        self._table("#groups_table").add_columns(
            "Kept (oldest)", "Duplicates", "Count",
        )
        await self.action_refresh_stats()

    def on_unmount(self) -> None:
        if self._owns_store:
            self.service.store.close()

    async def action_refresh_stats(self) -> None:
        """Recompute sample statistics off the event loop."""
        status = self.query_one("#status", Static)
        status.update("🔍 Sampling catalog...")

        stats = await asyncio.to_thread(self.service.get_stats)
        self.stats = stats
        if stats.error:
            status.update("❌ Statistics failed")
            self.notify(f"Error: {stats.error}", severity="error")
            return

        self.query_one("#summary", Static).update(
            f"{stats.total_products} products · "
            f"{stats.potential_duplicates} duplicate pair(s) in the first "
            f"{stats.sample_size} · ~{stats.estimated_reduction}% reducible"
        )
        table = self._table("#pairs_table")
        table.clear()
        for pair in stats.top_duplicates:
            table.add_row(
                pair.first.name[:40],
                pair.second.name[:40],
                Text(f"{pair.similarity:.3f}", style="bold green"),
            )
        status.update("✅ Statistics updated")

    async def action_dry_run(self) -> None:
        """Run a dry sweep and list the groups it would collapse."""
        status = self.query_one("#status", Static)
        status.update("🔍 Running dry-run sweep...")

        report = await asyncio.to_thread(self.service.run_batch, True)
        self.report = report
        if report.error:
            status.update("❌ Dry run failed")
            self.notify(f"Error: {report.error}", severity="error")
            return

        table = self._table("#groups_table")
        table.clear()
        for group in report.groups:
            table.add_row(
                f"{group.canonical.brand} {group.canonical.name}"[:40],
                ", ".join(d.name for d in group.duplicates)[:60],
                str(len(group.duplicates)),
            )
        status.update(
            f"✅ {report.duplicate_groups} group(s), "
            f"{report.duplicates_found} removable duplicate(s)"
        )
        logger.info("Dashboard dry run: %s", report.summary)
