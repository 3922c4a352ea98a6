# tests/test_similarity_engine.py

"""Tests for the weighted record-pair scorer."""

import unittest

from catalog_dedup.models.dedup import (
    EscalatedByBrandName,
    WeightedScore,
)
from catalog_dedup.models.product import IngredientRecord, ProductRecord
from catalog_dedup.services.similarity_engine import (
    SimilarityConfig,
    SimilarityEngine,
)


def _rec(
    brand: str, name: str, category: str, rid: str = "",
) -> ProductRecord:
    """Create a minimal ProductRecord."""
    return ProductRecord(id=rid, brand=brand, name=name, category=category)


class TestScore(unittest.TestCase):
    """SimilarityEngine.score tiers and verdicts."""

    def setUp(self) -> None:
        self.engine = SimilarityEngine()

    def test_identical_without_ingredients_is_high(self) -> None:
        a = _rec("乐事", "原味薯片", "膨化食品", "a")
        b = _rec("乐事", "原味薯片", "膨化食品", "b")
        result = self.engine.score(a, b)
        self.assertAlmostEqual(result.overall_similarity, 0.9)
        self.assertEqual(result.confidence, "high")
        self.assertTrue(result.is_duplicate)
        self.assertFalse(result.escalated)
        self.assertIsInstance(result.decision, WeightedScore)

    def test_identical_with_ingredients_is_exact(self) -> None:
        a = _rec("乐事", "薯片", "膨化食品")
        b = _rec("乐事", "薯片", "膨化食品")
        ing_a = IngredientRecord(product_id="a", ingredients_list="马铃薯、植物油、食盐")
        ing_b = IngredientRecord(product_id="b", ingredients_list="马铃薯,植物油,食盐")
        result = self.engine.score(a, b, ing_a, ing_b)
        self.assertEqual(result.ingredients_similarity, 1.0)
        self.assertEqual(result.overall_similarity, 1.0)
        self.assertEqual(result.confidence, "exact")

    def test_ingredients_ignored_when_one_side_missing(self) -> None:
        a = _rec("乐事", "薯片", "膨化食品")
        b = _rec("乐事", "薯片", "膨化食品")
        ing_a = IngredientRecord(product_id="a", ingredients_list="马铃薯")
        ing_b = IngredientRecord(product_id="b", ingredients_list="")
        result = self.engine.score(a, b, ing_a, ing_b)
        self.assertEqual(result.ingredients_similarity, 0.0)
        self.assertAlmostEqual(result.overall_similarity, 0.9)

    def test_descriptive_suffix_still_duplicate(self) -> None:
        a = _rec("乐事", "原味薯片", "膨化食品")
        b = _rec("乐事", "经典原味薯片", "膨化食品")
        result = self.engine.score(a, b)
        self.assertGreater(result.overall_similarity, 0.85)
        self.assertTrue(result.is_duplicate)

    def test_different_brand_same_name_is_low(self) -> None:
        a = _rec("乐事", "原味薯片", "膨化食品")
        b = _rec("品客", "原味薯片", "膨化食品")
        result = self.engine.score(a, b)
        self.assertEqual(result.brand_similarity, 0.0)
        self.assertAlmostEqual(result.overall_similarity, 0.6)
        self.assertEqual(result.confidence, "low")
        self.assertFalse(result.is_duplicate)

    def test_unrelated_records_score_zero(self) -> None:
        a = _rec("乐事", "薯片", "膨化食品")
        b = _rec("雪碧", "汽水", "饮料")
        result = self.engine.score(a, b)
        self.assertEqual(result.overall_similarity, 0.0)
        self.assertEqual(result.category_match, 0.0)
        self.assertEqual(result.confidence, "none")
        self.assertFalse(result.is_duplicate)

    def test_brand_name_escalation(self) -> None:
        """Strong brand+name agreement lifts a weak composite to high."""
        a = _rec("康师傅", "红烧牛肉拌面", "方便面")
        b = _rec("康师傅", "红烧牛肉汤面", "方便面")
        result = self.engine.score(a, b)
        self.assertAlmostEqual(result.name_similarity, 5 / 6)
        self.assertLess(result.overall_similarity, 0.85)
        self.assertTrue(result.is_duplicate)
        self.assertEqual(result.confidence, "high")
        self.assertTrue(result.escalated)
        decision = result.decision
        assert isinstance(decision, EscalatedByBrandName)
        self.assertEqual(decision.weighted_tier, "low")
        self.assertAlmostEqual(decision.brand_name_similarity, 11 / 12)

    def test_no_escalation_across_categories(self) -> None:
        a = _rec("康师傅", "红烧牛肉拌面", "方便面")
        b = _rec("康师傅", "红烧牛肉汤面", "饮料")
        result = self.engine.score(a, b)
        self.assertFalse(result.is_duplicate)
        self.assertFalse(result.escalated)

    def test_categories_compared_after_canonicalisation(self) -> None:
        a = _rec("乐事", "薯片", "薯片")
        b = _rec("乐事", "薯片", "膨化食品")
        self.assertEqual(self.engine.score(a, b).category_match, 1.0)

        raw_engine = SimilarityEngine(normalize_category=lambda c: c)
        self.assertEqual(raw_engine.score(a, b).category_match, 0.0)

    def test_details_carry_both_records(self) -> None:
        a = _rec("乐事", "薯片", "薯片", "a")
        b = _rec("乐事", "薯片", "膨化食品", "b")
        details = self.engine.score(a, b).details
        self.assertEqual(details["record_a"]["id"], "a")
        self.assertEqual(details["record_b"]["category"], "膨化食品")
        self.assertEqual(details["record_a"]["category"], "膨化食品")
        self.assertEqual(details["threshold_used"], 0.85)

    def test_per_call_threshold_override(self) -> None:
        """A raised threshold can reject a pair the default accepts."""
        a = _rec("ABCD", "薯片", "膨化食品")
        b = _rec("ABCE", "薯片", "膨化食品")
        ing = IngredientRecord(product_id="x", ingredients_list="马铃薯、植物油、食盐")
        self.assertTrue(self.engine.score(a, b, ing, ing).is_duplicate)

        strict = self.engine.config.with_overrides(
            threshold_overall=0.95, threshold_brand_name=1.0,
        )
        result = self.engine.score(a, b, ing, ing, config=strict)
        self.assertAlmostEqual(result.overall_similarity, 0.925)
        self.assertFalse(result.is_duplicate)
        self.assertEqual(result.details["threshold_used"], 0.95)


class TestSimilarityConfig(unittest.TestCase):
    """SimilarityConfig validation and overrides."""

    def test_defaults_sum_to_one(self) -> None:
        config = SimilarityConfig()
        self.assertEqual(config.weight_brand, 0.3)
        self.assertEqual(config.weight_name, 0.4)

    def test_bad_weights_rejected(self) -> None:
        with self.assertRaises(ValueError):
            SimilarityConfig(weight_brand=0.5)

    def test_none_overrides_ignored(self) -> None:
        config = SimilarityConfig()
        self.assertIs(config.with_overrides(threshold_overall=None), config)
        changed = config.with_overrides(threshold_overall=0.7)
        self.assertEqual(changed.threshold_overall, 0.7)
        self.assertEqual(config.threshold_overall, 0.85)


if __name__ == "__main__":
    unittest.main()
