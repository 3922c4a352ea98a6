# tests/test_categories.py

"""Tests for category canonicalisation."""

import unittest

from catalog_dedup.filters.categories import (
    category_stats,
    list_categories,
    simplify_category,
)
from catalog_dedup.models.product import ProductRecord


class TestSimplifyCategory(unittest.TestCase):
    """simplify_category() lookup order."""

    def test_exact_lookup(self) -> None:
        self.assertEqual(simplify_category("薯片"), "膨化食品")
        self.assertEqual(simplify_category("生抽"), "酱油")
        self.assertEqual(simplify_category("烘烤类糕点"), "饼干")

    def test_substring_lookup(self) -> None:
        """A label containing a known key maps like the key."""
        self.assertEqual(simplify_category("碳酸饮料(500ml)"), "饮料")
        self.assertEqual(simplify_category("进口坚果礼盒"), "坚果")

    def test_keyword_fallback(self) -> None:
        self.assertEqual(simplify_category("手工拉面"), "方便面")
        self.assertEqual(simplify_category("汽水"), "饮料")

    def test_unknown_is_other(self) -> None:
        self.assertEqual(simplify_category("电子产品"), "其他")

    def test_empty_and_none(self) -> None:
        self.assertEqual(simplify_category(""), "其他")
        self.assertEqual(simplify_category("   "), "其他")
        self.assertEqual(simplify_category(None), "其他")

    def test_surrounding_whitespace_ignored(self) -> None:
        self.assertEqual(simplify_category("  薯片 "), "膨化食品")


class TestCategoryListing(unittest.TestCase):
    """list_categories() and category_stats()."""

    def test_list_is_sorted_and_unique(self) -> None:
        categories = list_categories()
        self.assertEqual(categories, sorted(set(categories)))
        self.assertIn("饮料", categories)
        self.assertIn("其他", categories)

    def test_stats_counts_raw_and_canonical(self) -> None:
        records = [
            ProductRecord(id="1", category="薯片"),
            ProductRecord(id="2", category="膨化食品"),
            ProductRecord(id="3", category="生抽"),
            ProductRecord(id="4", category=""),
        ]
        stats = category_stats(records)
        self.assertEqual(stats["raw"], {"薯片": 1, "膨化食品": 1, "生抽": 1})
        self.assertEqual(stats["canonical"], {"膨化食品": 2, "酱油": 1})


if __name__ == "__main__":
    unittest.main()
