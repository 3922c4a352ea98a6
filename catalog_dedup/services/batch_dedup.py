# catalog_dedup/services/batch_dedup.py

"""Retroactive whole-catalog duplicate sweep."""

import logging
from collections.abc import Sequence

from catalog_dedup.config.settings import Settings
from catalog_dedup.filters.categories import category_stats
from catalog_dedup.models.dedup import (
    DedupError,
    DedupOperation,
    DedupStats,
    DeduplicationReport,
    DuplicateGroup,
    DuplicatePair,
)
from catalog_dedup.models.product import IngredientRecord, ProductRecord
from catalog_dedup.services.candidate_search import index_ingredients
from catalog_dedup.services.similarity_engine import (
    SimilarityConfig,
    SimilarityEngine,
)
from catalog_dedup.storage.catalog_store import CatalogStore
from catalog_dedup.storage.file_manager import FileManager

logger = logging.getLogger("catalog_dedup.batch")


def group_duplicates(
    products: Sequence[ProductRecord],
    engine: SimilarityEngine,
    config: SimilarityConfig | None = None,
) -> tuple[list[DuplicateGroup], int]:
    """Greedily partition *products* into duplicate groups.

    Each unclaimed record, in list order, claims every later unclaimed
    record the engine judges a duplicate of it.  Pairs are scored on
    product fields only.  Similarity is not transitive, so for a chain
    A~B~C with A not~C the result depends on order: A claims B, and C
    stays outside the group.

    Returns the groups (members sorted oldest first) and the number of
    records that started a scan.
    """
    claimed: set[str] = set()
    groups: list[DuplicateGroup] = []
    processed = 0

    for i, head in enumerate(products):
        if head.id in claimed:
            continue

        members = [head]
        for other in products[i + 1:]:
            if other.id in claimed:
                continue
            result = engine.score(head, other, config=config)
            if result.is_duplicate:
                members.append(other)
                claimed.add(other.id)

        claimed.add(head.id)
        processed += 1

        if len(members) > 1:
            members.sort(key=lambda p: p.created_at)
            groups.append(
                DuplicateGroup(canonical=members[0], duplicates=members[1:])
            )

    return groups, processed


class BatchDeduplicator:
    """Scans a store for duplicate groups and optionally removes extras."""

    def __init__(
        self,
        store: CatalogStore,
        engine: SimilarityEngine | None = None,
        file_manager: FileManager | None = None,
    ) -> None:
        self.store = store
        self.engine = engine or SimilarityEngine()
        self.file_manager = file_manager or FileManager()

    def run(
        self,
        dry_run: bool = True,
        threshold: float | None = None,
        max_processed: int = Settings.BATCH_MAX_PROCESSED,
        save_backup: bool = True,
    ) -> DeduplicationReport:
        """Sweep the first *max_processed* records once.

        Cost is quadratic in *max_processed*.  With ``dry_run`` nothing
        is written.  A failing deletion is recorded in ``errors`` and
        the sweep moves on.  A failing store read or category lookup
        ends the run with an empty report and ``error`` set.
        """
        report = DeduplicationReport(dry_run=dry_run)
        config = self.engine.config.with_overrides(threshold_overall=threshold)
        logger.info(
            "Starting batch deduplication (%s, threshold=%.2f, max=%d)",
            "dry run" if dry_run else "apply",
            config.threshold_overall,
            max_processed,
        )

        try:
            products = self.store.list_products()
            ingredients = index_ingredients(self.store.list_ingredients())
            groups, processed = group_duplicates(
                products[:max(0, max_processed)],
                self.engine,
                config,
            )
        except Exception as exc:
            logger.error("Batch deduplication failed: %s", exc, exc_info=True)
            report.error = str(exc)
            return report

        report.total_products = len(products)
        report.groups = groups
        report.processed = processed
        report.duplicates_found = sum(len(g.duplicates) for g in groups)
        logger.info(
            "Found %d duplicate group(s), %d duplicate record(s)",
            report.duplicate_groups,
            report.duplicates_found,
        )

        if not dry_run and groups:
            self._remove_duplicates(report, ingredients, save_backup)

        logger.info("Batch deduplication finished: %s", report.summary)
        return report

    def _remove_duplicates(
        self,
        report: DeduplicationReport,
        ingredients: dict[str, IngredientRecord],
        save_backup: bool,
    ) -> None:
        if save_backup:
            doomed = [d for g in report.groups for d in g.duplicates]
            try:
                path = self.file_manager.save_backup(
                    doomed,
                    [ingredients[d.id] for d in doomed if d.id in ingredients],
                )
            except OSError as exc:
                logger.error(
                    "Backup failed, no records deleted: %s", exc,
                    exc_info=True,
                )
                report.error = f"Backup failed: {exc}"
                return
            report.backup = str(path)

        for group in report.groups:
            master = group.canonical
            for duplicate in group.duplicates:
                try:
                    self.store.delete_product(duplicate.id)
                    self.store.delete_ingredients_by_product(duplicate.id)
                except Exception as exc:
                    report.errors.append(
                        DedupError(
                            product_id=duplicate.id,
                            product_name=duplicate.name,
                            error=str(exc),
                        )
                    )
                    logger.error(
                        "Failed to remove duplicate %r (%s): %s",
                        duplicate.name,
                        duplicate.id,
                        exc,
                    )
                    continue

                report.duplicates_removed += 1
                report.operations.append(
                    DedupOperation(
                        type="remove",
                        duplicate_id=duplicate.id,
                        duplicate_name=duplicate.name,
                        master_id=master.id,
                        master_name=master.name,
                    )
                )
                logger.info(
                    "Removed duplicate %r (%s), kept %r (%s)",
                    duplicate.name,
                    duplicate.id,
                    master.name,
                    master.id,
                )

    def _duplicate_pairs(
        self, sample: Sequence[ProductRecord],
    ) -> list[DuplicatePair]:
        pairs: list[DuplicatePair] = []
        for i, first in enumerate(sample):
            for second in sample[i + 1:]:
                result = self.engine.score(first, second)
                if result.is_duplicate:
                    pairs.append(
                        DuplicatePair(
                            first=first,
                            second=second,
                            similarity=result.overall_similarity,
                        )
                    )
        return pairs

    def sample_stats(
        self,
        sample_size: int = Settings.STATS_SAMPLE_SIZE,
        top_n: int = Settings.STATS_TOP_PAIRS,
    ) -> DedupStats:
        """Count duplicate pairs among the first *sample_size* records.

        Every pair in the sample is compared, without grouping, so the
        numbers are an approximation meant for dashboards.
        """
        stats = DedupStats()
        try:
            products = self.store.list_products()
            sample = products[:max(0, sample_size)]
            pairs = self._duplicate_pairs(sample)
            categories = category_stats(
                products, self.engine.normalize_category,
            )["canonical"]
        except Exception as exc:
            logger.error("Failed to collect statistics: %s", exc, exc_info=True)
            stats.error = str(exc)
            return stats

        stats.categories = categories
        stats.total_products = len(products)
        stats.sample_size = len(sample)
        stats.potential_duplicates = len(pairs)
        pairs.sort(key=lambda p: p.similarity, reverse=True)
        stats.top_duplicates = pairs[:top_n]
        return stats
