# catalog_dedup/storage/file_manager.py

"""Backups, sweep reports and JSON record import."""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, cast

from catalog_dedup.config.settings import Settings
from catalog_dedup.models.dedup import DeduplicationReport
from catalog_dedup.models.product import IngredientRecord, ProductRecord
from catalog_dedup.storage.catalog_store import CatalogStore

logger = logging.getLogger("catalog_dedup.storage")

_INGREDIENT_KEYS = ("ingredients_list", "ingredients", "health_score")


class FileManager:
    """Writes backup and report files and loads JSON exports."""

    def __init__(
        self,
        backups_dir: Path | None = None,
        reports_dir: Path | None = None,
    ) -> None:
        self.backups_dir: Path = backups_dir or Settings.BACKUPS_DIR
        self.reports_dir: Path = reports_dir or Settings.REPORTS_DIR
        logger.debug(
            "FileManager initialised, backups_dir=%s reports_dir=%s",
            self.backups_dir,
            self.reports_dir,
        )

    def save_backup(
        self,
        products: list[ProductRecord],
        ingredients: list[IngredientRecord],
    ) -> Path:
        """Snapshot records about to be deleted into a timestamped file."""
        self.backups_dir.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
        filepath = self.backups_dir / f"dedup_backup_{timestamp}.json"

        data = {
            "created_at": datetime.now().isoformat(),
            "products": [p.to_dict() for p in products],
            "ingredients": [i.to_dict() for i in ingredients],
        }
        with open(filepath, "w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False, indent=2)

        logger.info(
            "Backed up %d products and %d ingredient records to %s",
            len(products),
            len(ingredients),
            filepath,
        )
        return filepath

    def save_report(self, report: DeduplicationReport) -> Path:
        """Write a sweep report as JSON."""
        self.reports_dir.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
        mode = "dryrun" if report.dry_run else "applied"
        filepath = self.reports_dir / f"dedup_{mode}_{timestamp}.json"

        with open(filepath, "w", encoding="utf-8") as f:
            json.dump(report.to_dict(), f, ensure_ascii=False, indent=2)

        logger.info("Saved deduplication report to %s", filepath)
        return filepath

    @staticmethod
    def load_records(
        filepath: Path,
    ) -> list[tuple[ProductRecord, IngredientRecord | None]]:
        """Parse a JSON array of flat product objects.

        Each object carries product fields and, optionally,
        ``ingredients_list`` / ``ingredients`` / health fields.
        Non-object entries are skipped.
        """
        with open(filepath, encoding="utf-8") as f:
            data = json.load(f)

        if not isinstance(data, list):
            raise ValueError(f"{filepath.name}: expected a JSON array")

        items: list[object] = cast(list[object], data)
        rows: list[dict[str, Any]] = [
            r for r in items if isinstance(r, dict)
        ]
        records: list[tuple[ProductRecord, IngredientRecord | None]] = []
        for row in rows:
            product = ProductRecord.from_dict(row)
            ingredients = (
                IngredientRecord.from_dict({**row, "id": ""})
                if any(row.get(k) for k in _INGREDIENT_KEYS)
                else None
            )
            records.append((product, ingredients))
        return records

    def import_records(self, store: CatalogStore, filepath: Path) -> int:
        """Insert every record of a JSON export into *store*.

        Returns the number of products inserted.
        """
        count = 0
        for product, ingredients in self.load_records(filepath):
            stored = store.insert_product(product)
            if ingredients is not None:
                ingredients.product_id = stored.id
                store.insert_ingredients(ingredients)
            count += 1

        logger.info("Imported %d products from %s", count, filepath)
        return count
