# catalog_dedup/services/dedup_service.py

"""Entry points used by ingestion code, the CLI and the dashboard."""

import logging
from dataclasses import replace

from catalog_dedup.config.settings import Settings
from catalog_dedup.filters.categories import simplify_category
from catalog_dedup.models.dedup import (
    RECOMMEND_MERGE,
    RECOMMEND_PROCEED,
    RECOMMEND_SKIP,
    DedupStats,
    DeduplicationReport,
    DuplicateCandidate,
    IngestResult,
    MergeResult,
    Resolution,
)
from catalog_dedup.models.product import IngredientRecord, ProductRecord
from catalog_dedup.services.batch_dedup import BatchDeduplicator
from catalog_dedup.services.candidate_search import (
    find_candidates,
    index_ingredients,
)
from catalog_dedup.services.merge_resolver import merge_records
from catalog_dedup.services.resolution import decide
from catalog_dedup.services.similarity_engine import (
    CategoryNormalizer,
    SimilarityConfig,
    SimilarityEngine,
)
from catalog_dedup.storage.catalog_store import (
    CatalogStore,
    RecordNotFoundError,
)
from catalog_dedup.storage.file_manager import FileManager

logger = logging.getLogger("catalog_dedup.service")


class DeduplicationService:
    """Duplicate checks, merges and sweeps against one catalog store.

    The store is injected; nothing here knows which backend it is.
    Calls are not synchronised, so a caller running sweeps and
    inserts against the same store must serialise its writes.
    """

    def __init__(
        self,
        store: CatalogStore,
        config: SimilarityConfig | None = None,
        normalize_category: CategoryNormalizer = simplify_category,
        file_manager: FileManager | None = None,
    ) -> None:
        self.store = store
        self.normalize_category = normalize_category
        self.engine = SimilarityEngine(config, normalize_category)
        self.batch = BatchDeduplicator(store, self.engine, file_manager)

    # ── Insert-time checks ───────────────────────────────

    def _candidates(
        self,
        candidate: ProductRecord,
        candidate_ingredients: IngredientRecord | None,
    ) -> list[DuplicateCandidate]:
        products = self.store.list_products()
        ingredients = index_ingredients(self.store.list_ingredients())
        return find_candidates(
            candidate,
            candidate_ingredients,
            products,
            ingredients,
            self.engine,
        )

    def check_duplication(
        self,
        candidate: ProductRecord,
        candidate_ingredients: IngredientRecord | None = None,
    ) -> Resolution:
        """Decide whether *candidate* should be skipped, merged or added.

        Store failures fail open: the answer is "proceed" with the
        error attached, so ingestion is never blocked.
        """
        try:
            candidates = self._candidates(candidate, candidate_ingredients)
        except Exception as exc:
            logger.error(
                "Duplicate check failed for %r: %s",
                candidate.name,
                exc,
                exc_info=True,
            )
            return Resolution(
                is_duplicate=False,
                recommendation=RECOMMEND_PROCEED,
                message="Duplicate check failed, confirm manually",
                error=str(exc),
            )

        resolution = decide(candidates)
        logger.info(
            "Duplicate check for %r: %s (%s)",
            candidate.name,
            resolution.recommendation,
            resolution.message,
        )
        return resolution

    def find_duplicates_of(self, product_id: str) -> list[DuplicateCandidate]:
        """Candidates for an already stored product."""
        product = self.store.get_product(product_id)
        if product is None:
            raise RecordNotFoundError(f"Product {product_id} not found")
        return self._candidates(product, self.store.find_ingredients(product_id))

    # ── Merging ──────────────────────────────────────────

    def merge(
        self,
        original: ProductRecord,
        incoming: ProductRecord,
        original_ingredients: IngredientRecord | None = None,
        incoming_ingredients: IngredientRecord | None = None,
    ) -> MergeResult:
        """Pure field reconciliation; nothing is written."""
        return merge_records(
            original,
            incoming,
            original_ingredients,
            incoming_ingredients,
            normalize_category=self.normalize_category,
        )

    def apply_merge(
        self,
        product_id: str,
        incoming: ProductRecord,
        incoming_ingredients: IngredientRecord | None = None,
    ) -> MergeResult:
        """Merge *incoming* into a stored product and persist the result."""
        original = self.store.get_product(product_id)
        if original is None:
            raise RecordNotFoundError(f"Product {product_id} not found")
        original_ingredients = self.store.find_ingredients(product_id)

        result = self.merge(
            original, incoming, original_ingredients, incoming_ingredients,
        )
        if not result.changed:
            logger.info("Merge into %s changed nothing", product_id)
            return result

        result.record = self.store.update_product(
            product_id,
            {
                "brand": result.record.brand,
                "name": result.record.name,
                "category": result.record.category,
                "image_url": result.record.image_url,
                "updated_at": result.record.updated_at,
            },
        )

        merged_ingredients = result.ingredients
        if merged_ingredients is not None:
            if original_ingredients is None:
                result.ingredients = self.store.insert_ingredients(
                    merged_ingredients
                )
            else:
                result.ingredients = self.store.update_ingredients(
                    original_ingredients.id,
                    {
                        "ingredients_list": merged_ingredients.ingredients_list,
                        "ingredients": merged_ingredients.ingredients,
                        "health_score": merged_ingredients.health_score,
                        "health_level": merged_ingredients.health_level,
                        "health_analysis": merged_ingredients.health_analysis,
                        "updated_at": merged_ingredients.updated_at,
                    },
                )

        for change in result.changes:
            logger.info("Merge %s: %s", product_id, change)
        return result

    # ── Ingestion ────────────────────────────────────────

    def ingest(
        self,
        candidate: ProductRecord,
        ingredients: IngredientRecord | None = None,
    ) -> IngestResult:
        """Check *candidate* and act on the recommendation."""
        resolution = self.check_duplication(candidate, ingredients)
        best = resolution.best_match

        if resolution.recommendation == RECOMMEND_SKIP and best is not None:
            return IngestResult(
                action=RECOMMEND_SKIP,
                record=best.record,
                resolution=resolution,
            )

        if resolution.recommendation == RECOMMEND_MERGE and best is not None:
            merged = self.apply_merge(best.record.id, candidate, ingredients)
            return IngestResult(
                action=RECOMMEND_MERGE,
                record=merged.record,
                resolution=resolution,
                changes=merged.changes,
            )

        stored = self.store.insert_product(replace(candidate, id=""))
        if ingredients is not None:
            self.store.insert_ingredients(
                replace(ingredients, id="", product_id=stored.id)
            )
        logger.info("Inserted new product %r (%s)", stored.name, stored.id)
        return IngestResult(
            action=RECOMMEND_PROCEED,
            record=stored,
            resolution=resolution,
        )

    # ── Sweeps ───────────────────────────────────────────

    def run_batch(
        self,
        dry_run: bool = True,
        threshold: float | None = None,
        max_processed: int = Settings.BATCH_MAX_PROCESSED,
        save_backup: bool = True,
    ) -> DeduplicationReport:
        return self.batch.run(
            dry_run=dry_run,
            threshold=threshold,
            max_processed=max_processed,
            save_backup=save_backup,
        )

    def get_stats(self) -> DedupStats:
        return self.batch.sample_stats()
