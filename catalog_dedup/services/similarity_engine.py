# catalog_dedup/services/similarity_engine.py

"""Weighted multi-field similarity between two catalog records."""

import logging
import math
from collections.abc import Callable
from dataclasses import dataclass, replace
from typing import Any

from catalog_dedup.config.settings import Settings
from catalog_dedup.filters.categories import simplify_category
from catalog_dedup.filters.ingredient_matcher import ingredients_similarity
from catalog_dedup.filters.string_similarity import similarity
from catalog_dedup.models.dedup import (
    TIER_EXACT,
    TIER_HIGH,
    TIER_LOW,
    TIER_MEDIUM,
    TIER_NONE,
    TIER_RANK,
    Decision,
    EscalatedByBrandName,
    SimilarityResult,
    WeightedScore,
)
from catalog_dedup.models.product import IngredientRecord, ProductRecord

logger = logging.getLogger("catalog_dedup.engine")

CategoryNormalizer = Callable[[str], str]


@dataclass(frozen=True)
class SimilarityConfig:
    """Weights and thresholds for one scoring run."""

    weight_brand: float = Settings.WEIGHT_BRAND
    weight_name: float = Settings.WEIGHT_NAME
    weight_category: float = Settings.WEIGHT_CATEGORY
    weight_ingredients: float = Settings.WEIGHT_INGREDIENTS
    threshold_overall: float = Settings.THRESHOLD_OVERALL
    threshold_high: float = Settings.THRESHOLD_HIGH
    threshold_exact: float = Settings.THRESHOLD_EXACT
    threshold_brand_name: float = Settings.THRESHOLD_BRAND_NAME
    threshold_low: float = Settings.THRESHOLD_LOW
    ingredient_top_n: int = Settings.INGREDIENT_TOP_N
    ingredient_match_threshold: float = Settings.INGREDIENT_MATCH_THRESHOLD
    max_candidates: int = Settings.MAX_CANDIDATES

    def __post_init__(self) -> None:
        total = math.fsum((
            self.weight_brand,
            self.weight_name,
            self.weight_category,
            self.weight_ingredients,
        ))
        if not math.isclose(total, 1.0, abs_tol=1e-9):
            raise ValueError(
                f"Similarity weights must sum to 1.0, got {total:.4f}"
            )

    def with_overrides(self, **overrides: Any) -> "SimilarityConfig":
        """Copy with the given fields replaced; ``None`` values are ignored."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        if not changes:
            return self
        return replace(self, **changes)


class SimilarityEngine:
    """Scores record pairs and assigns a confidence tier."""

    def __init__(
        self,
        config: SimilarityConfig | None = None,
        normalize_category: CategoryNormalizer = simplify_category,
    ) -> None:
        self.config = config or SimilarityConfig()
        self.normalize_category = normalize_category

    def _weighted_tier(
        self, overall: float, config: SimilarityConfig,
    ) -> str:
        if overall >= config.threshold_exact:
            return TIER_EXACT
        if overall >= config.threshold_high:
            return TIER_HIGH
        if overall >= config.threshold_overall:
            return TIER_MEDIUM
        if overall >= config.threshold_low:
            return TIER_LOW
        return TIER_NONE

    def score(
        self,
        record_a: ProductRecord,
        record_b: ProductRecord,
        ingredients_a: IngredientRecord | None = None,
        ingredients_b: IngredientRecord | None = None,
        config: SimilarityConfig | None = None,
    ) -> SimilarityResult:
        """Compare two records field by field and combine the scores.

        Decision happens in two stages.  The weighted composite picks a
        tier first; then, when brand and name agree strongly under the
        same canonical category, the pair is forced to be a duplicate
        and raised to at least "high".  The second stage is recorded as
        :class:`EscalatedByBrandName` so the reason stays visible.
        """
        cfg = config or self.config
        result = SimilarityResult()

        result.brand_similarity = similarity(record_a.brand, record_b.brand)
        result.name_similarity = similarity(record_a.name, record_b.name)

        category_a = self.normalize_category(record_a.category)
        category_b = self.normalize_category(record_b.category)
        result.category_match = 1.0 if category_a == category_b else 0.0

        if (
            ingredients_a is not None
            and ingredients_b is not None
            and ingredients_a.ingredients_list
            and ingredients_b.ingredients_list
        ):
            result.ingredients_similarity = ingredients_similarity(
                ingredients_a.ingredients_list,
                ingredients_b.ingredients_list,
                top_n=cfg.ingredient_top_n,
                match_threshold=cfg.ingredient_match_threshold,
            )

        # fsum keeps 0.3 + 0.4 + 0.2 at exactly 0.9
        result.overall_similarity = math.fsum((
            result.brand_similarity * cfg.weight_brand,
            result.name_similarity * cfg.weight_name,
            result.category_match * cfg.weight_category,
            result.ingredients_similarity * cfg.weight_ingredients,
        ))

        weighted_tier = self._weighted_tier(result.overall_similarity, cfg)
        decision: Decision = WeightedScore(tier=weighted_tier)
        result.is_duplicate = (
            result.overall_similarity >= cfg.threshold_overall
        )

        brand_name = (
            result.brand_similarity + result.name_similarity
        ) / 2
        if (
            brand_name >= cfg.threshold_brand_name
            and result.category_match == 1.0
        ):
            result.is_duplicate = True
            if TIER_RANK[weighted_tier] < TIER_RANK[TIER_HIGH]:
                decision = EscalatedByBrandName(
                    tier=TIER_HIGH,
                    weighted_tier=weighted_tier,
                    brand_name_similarity=brand_name,
                )
        result.decision = decision

        result.details = {
            "record_a": {
                "id": record_a.id,
                "brand": record_a.brand,
                "name": record_a.name,
                "category": category_a,
            },
            "record_b": {
                "id": record_b.id,
                "brand": record_b.brand,
                "name": record_b.name,
                "category": category_b,
            },
            "threshold_used": cfg.threshold_overall,
        }

        if result.overall_similarity > cfg.threshold_low:
            logger.info(
                "Pair %r vs %r = %.3f (%s, %s)",
                record_a.name,
                record_b.name,
                result.overall_similarity,
                result.confidence,
                "duplicate" if result.is_duplicate else "distinct",
            )

        return result
