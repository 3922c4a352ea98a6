# tests/test_batch_dedup.py

"""Tests for the retroactive catalog sweep."""

import json
import unittest
from datetime import datetime, timedelta
from pathlib import Path
from unittest.mock import MagicMock

from catalog_dedup.config.settings import Settings
from catalog_dedup.models.product import IngredientRecord, ProductRecord
from catalog_dedup.services.batch_dedup import (
    BatchDeduplicator,
    group_duplicates,
)
from catalog_dedup.services.similarity_engine import SimilarityEngine
from catalog_dedup.storage.catalog_store import (
    CatalogStoreError,
    InMemoryCatalogStore,
)
from catalog_dedup.storage.file_manager import FileManager

_T0 = datetime(2024, 1, 1, 12, 0, 0)


def _rec(
    rid: str, brand: str, name: str, category: str, minutes: int = 0,
) -> ProductRecord:
    """Create a ProductRecord created *minutes* after a fixed epoch."""
    return ProductRecord(
        id=rid,
        brand=brand,
        name=name,
        category=category,
        created_at=_T0 + timedelta(minutes=minutes),
    )


def _catalog() -> list[ProductRecord]:
    """Five records: one three-member group plus two singletons."""
    return [
        _rec("r1", "康师傅", "红烧牛肉拌面", "方便面", 0),
        _rec("r2", "雪碧", "柠檬汽水", "饮料", 1),
        _rec("r3", "康师傅", "红烧牛肉汤面", "方便面", 2),
        _rec("r4", "乐事", "薯片", "膨化食品", 3),
        _rec("r5", "康师傅", "红烧牛肉拌面", "方便面", 4),
    ]


def _store(records: list[ProductRecord]) -> InMemoryCatalogStore:
    store = InMemoryCatalogStore()
    for record in records:
        store.insert_product(record)
    return store


class _FailingDeleteStore(InMemoryCatalogStore):
    """Refuses to delete one product id."""

    def __init__(self, bad_id: str) -> None:
        super().__init__()
        self.bad_id = bad_id

    def delete_product(self, product_id: str) -> None:
        if product_id == self.bad_id:
            raise CatalogStoreError("disk full")
        super().delete_product(product_id)


class _BrokenStore(InMemoryCatalogStore):
    """Cannot even list its products."""

    def list_products(self) -> list[ProductRecord]:
        raise CatalogStoreError("connection lost")


def _failing_category(label: str) -> str:
    raise RuntimeError("category service down")


class TestGroupDuplicates(unittest.TestCase):
    """group_duplicates() greedy grouping."""

    def setUp(self) -> None:
        self.engine = SimilarityEngine()

    def test_groups_and_processed(self) -> None:
        groups, processed = group_duplicates(_catalog(), self.engine)
        self.assertEqual(len(groups), 1)
        self.assertEqual(
            [m.id for m in groups[0].members], ["r1", "r3", "r5"],
        )
        self.assertEqual(processed, 3)

    def test_members_sorted_oldest_first(self) -> None:
        records = [
            _rec("new", "乐事", "薯片", "膨化食品", 10),
            _rec("old", "乐事", "薯片", "膨化食品", 0),
        ]
        groups, _ = group_duplicates(records, self.engine)
        self.assertEqual(groups[0].canonical.id, "old")
        self.assertEqual([d.id for d in groups[0].duplicates], ["new"])

    def test_every_record_in_at_most_one_group(self) -> None:
        groups, _ = group_duplicates(_catalog(), self.engine)
        seen = [m.id for g in groups for m in g.members]
        self.assertEqual(len(seen), len(set(seen)))

    def test_chain_depends_on_order(self) -> None:
        """A~B and B~C with A not~C groups differently by order."""
        a = _rec("A", "康师傅", "红烧牛肉拌面", "方便面", 0)
        b = _rec("B", "康师傅", "红烧牛肉汤面", "方便面", 1)
        c = _rec("C", "康师傅", "红烧牛肉汤粉", "方便面", 2)
        self.assertFalse(self.engine.score(a, c).is_duplicate)

        groups, _ = group_duplicates([a, b, c], self.engine)
        self.assertEqual([[m.id for m in g.members] for g in groups], [["A", "B"]])

        groups, _ = group_duplicates([b, a, c], self.engine)
        self.assertEqual(
            [[m.id for m in g.members] for g in groups], [["A", "B", "C"]],
        )

    def test_empty(self) -> None:
        self.assertEqual(group_duplicates([], self.engine), ([], 0))


class TestBatchRun(unittest.TestCase):
    """BatchDeduplicator.run dry runs and applied sweeps."""

    def test_dry_run_report(self) -> None:
        store = _store(_catalog())
        report = BatchDeduplicator(store).run(dry_run=True)
        self.assertTrue(report.dry_run)
        self.assertEqual(report.total_products, 5)
        self.assertEqual(report.processed, 3)
        self.assertEqual(report.duplicate_groups, 1)
        self.assertEqual(report.duplicates_found, 2)
        self.assertEqual(report.duplicates_removed, 0)
        self.assertEqual(report.estimated_reduction, 40.0)
        self.assertEqual(len(store.list_products()), 5)

    def test_dry_run_is_repeatable(self) -> None:
        store = _store(_catalog())
        dedup = BatchDeduplicator(store)
        first = dedup.run(dry_run=True)
        second = dedup.run(dry_run=True)
        self.assertEqual(first.to_dict(), second.to_dict())

    def test_apply_removes_duplicates_and_backs_up(self) -> None:
        store = _store(_catalog())
        store.insert_ingredients(
            IngredientRecord(product_id="r5", ingredients_list="小麦粉、棕榈油"),
        )
        report = BatchDeduplicator(store).run(dry_run=False)

        self.assertEqual(report.duplicates_removed, 2)
        self.assertEqual(
            sorted(p.id for p in store.list_products()), ["r1", "r2", "r4"],
        )
        self.assertIsNone(store.find_ingredients("r5"))
        self.assertEqual(
            [(op.duplicate_id, op.master_id) for op in report.operations],
            [("r3", "r1"), ("r5", "r1")],
        )

        assert report.backup is not None
        backup = Path(report.backup)
        self.assertEqual(backup.parent, Settings.BACKUPS_DIR)
        with open(backup, encoding="utf-8") as f:
            data = json.load(f)
        self.assertEqual(
            sorted(p["id"] for p in data["products"]), ["r3", "r5"],
        )
        self.assertEqual(len(data["ingredients"]), 1)

    def test_second_apply_finds_nothing(self) -> None:
        store = _store(_catalog())
        dedup = BatchDeduplicator(store)
        dedup.run(dry_run=False)
        again = dedup.run(dry_run=False)
        self.assertEqual(again.duplicates_found, 0)
        self.assertEqual(again.duplicates_removed, 0)

    def test_no_backup_when_disabled(self) -> None:
        store = _store(_catalog())
        report = BatchDeduplicator(store).run(dry_run=False, save_backup=False)
        self.assertIsNone(report.backup)
        self.assertEqual(report.duplicates_removed, 2)
        self.assertFalse(Settings.BACKUPS_DIR.exists())

    def test_backup_failure_aborts_removal(self) -> None:
        store = _store(_catalog())
        files = MagicMock(spec=FileManager)
        files.save_backup.side_effect = OSError("read-only filesystem")
        report = BatchDeduplicator(store, file_manager=files).run(dry_run=False)
        assert report.error is not None
        self.assertIn("read-only", report.error)
        self.assertEqual(report.duplicates_removed, 0)
        self.assertEqual(len(store.list_products()), 5)

    def test_failed_deletion_recorded_and_sweep_continues(self) -> None:
        store = _FailingDeleteStore("r3")
        for record in _catalog():
            store.insert_product(record)
        report = BatchDeduplicator(store).run(dry_run=False)

        self.assertEqual(report.duplicates_removed, 1)
        self.assertEqual(len(report.errors), 1)
        self.assertEqual(report.errors[0].product_id, "r3")
        self.assertIn("disk full", report.errors[0].error)
        self.assertIsNone(store.get_product("r5"))

    def test_threshold_override(self) -> None:
        store = _store([
            _rec("a", "乐事", "原味薯片", "膨化食品", 0),
            _rec("b", "品客", "原味薯片", "膨化食品", 1),
        ])
        dedup = BatchDeduplicator(store)
        self.assertEqual(dedup.run(dry_run=True).duplicates_found, 0)
        self.assertEqual(
            dedup.run(dry_run=True, threshold=0.55).duplicates_found, 1,
        )

    def test_grouping_ignores_stored_ingredients(self) -> None:
        """Matching ingredient lists cannot push a distinct pair over."""
        a = _rec("a", "乐事薯片厂", "超级薄切黄瓜口味薯片", "膨化食品", 0)
        b = _rec("b", "乐事薯片商", "超级薄切黄瓜风味薯片", "膨化食品", 1)
        engine = SimilarityEngine()
        self.assertFalse(engine.score(a, b).is_duplicate)

        store = _store([a, b])
        for pid in ("a", "b"):
            store.insert_ingredients(
                IngredientRecord(
                    product_id=pid, ingredients_list="马铃薯、植物油、黄瓜粉",
                ),
            )
        report = BatchDeduplicator(store, engine).run(dry_run=False)
        self.assertEqual(report.duplicates_found, 0)
        self.assertEqual(report.duplicates_removed, 0)
        self.assertEqual(
            [p.id for p in store.list_products()], ["a", "b"],
        )

        stats = BatchDeduplicator(store, engine).sample_stats()
        self.assertEqual(stats.potential_duplicates, 0)

    def test_max_processed_limits_scan(self) -> None:
        store = _store(_catalog())
        report = BatchDeduplicator(store).run(dry_run=True, max_processed=2)
        self.assertEqual(report.total_products, 5)
        self.assertEqual(report.processed, 2)
        self.assertEqual(report.duplicates_found, 0)

    def test_store_failure_sets_error(self) -> None:
        report = BatchDeduplicator(_BrokenStore()).run(dry_run=False)
        self.assertEqual(report.error, "connection lost")
        self.assertEqual(report.total_products, 0)
        self.assertEqual(report.duplicates_found, 0)

    def test_category_lookup_failure_sets_error(self) -> None:
        store = _store(_catalog())
        engine = SimilarityEngine(normalize_category=_failing_category)
        report = BatchDeduplicator(store, engine).run(dry_run=False)
        self.assertEqual(report.error, "category service down")
        self.assertEqual(report.total_products, 0)
        self.assertEqual(report.groups, [])
        self.assertEqual(report.duplicates_removed, 0)
        self.assertEqual(len(store.list_products()), 5)


class TestSampleStats(unittest.TestCase):
    """BatchDeduplicator.sample_stats read-only snapshot."""

    def test_counts_pairs(self) -> None:
        store = _store(_catalog())
        stats = BatchDeduplicator(store).sample_stats(sample_size=50, top_n=2)
        self.assertEqual(stats.total_products, 5)
        self.assertEqual(stats.sample_size, 5)
        self.assertEqual(stats.potential_duplicates, 3)
        self.assertEqual(stats.duplicate_groups, 3)
        self.assertEqual(stats.estimated_reduction, 60.0)
        self.assertEqual(len(stats.top_duplicates), 2)
        top = stats.top_duplicates[0]
        self.assertEqual((top.first.id, top.second.id), ("r1", "r5"))
        self.assertEqual(len(store.list_products()), 5)

    def test_sample_prefix_only(self) -> None:
        stats = BatchDeduplicator(_store(_catalog())).sample_stats(sample_size=2)
        self.assertEqual(stats.sample_size, 2)
        self.assertEqual(stats.potential_duplicates, 0)

    def test_category_breakdown(self) -> None:
        stats = BatchDeduplicator(_store(_catalog())).sample_stats()
        self.assertEqual(
            stats.categories, {"方便面": 3, "饮料": 1, "膨化食品": 1},
        )

    def test_store_failure(self) -> None:
        stats = BatchDeduplicator(_BrokenStore()).sample_stats()
        self.assertEqual(stats.error, "connection lost")
        self.assertEqual(stats.potential_duplicates, 0)

    def test_category_lookup_failure(self) -> None:
        engine = SimilarityEngine(normalize_category=_failing_category)
        stats = BatchDeduplicator(_store(_catalog()), engine).sample_stats()
        self.assertEqual(stats.error, "category service down")
        self.assertEqual(stats.potential_duplicates, 0)
        self.assertEqual(stats.categories, {})


if __name__ == "__main__":
    unittest.main()
