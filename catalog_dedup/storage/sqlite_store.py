# catalog_dedup/storage/sqlite_store.py

"""SQLite-backed durable catalog store."""

import json
import logging
import sqlite3
import uuid
from datetime import datetime
from pathlib import Path
from typing import Any

from catalog_dedup.config.settings import Settings
from catalog_dedup.models.product import (
    IngredientItem,
    IngredientRecord,
    ProductRecord,
)
from catalog_dedup.storage.catalog_store import (
    INGREDIENT_FIELDS,
    PRODUCT_FIELDS,
    CatalogStore,
    RecordNotFoundError,
    check_patch,
)

logger = logging.getLogger("catalog_dedup.store")

_SCHEMA = """\
CREATE TABLE IF NOT EXISTS products (
    id         TEXT PRIMARY KEY,
    brand      TEXT NOT NULL DEFAULT '',
    name       TEXT NOT NULL DEFAULT '',
    category   TEXT NOT NULL DEFAULT '',
    image_url  TEXT NOT NULL DEFAULT '',
    created_at TEXT NOT NULL,
    updated_at TEXT
);

CREATE TABLE IF NOT EXISTS ingredients (
    id               TEXT PRIMARY KEY,
    product_id       TEXT NOT NULL
                     REFERENCES products(id) ON DELETE CASCADE,
    ingredients_list TEXT NOT NULL DEFAULT '',
    items            TEXT NOT NULL DEFAULT '[]',
    health_score     REAL,
    health_level     TEXT NOT NULL DEFAULT '',
    health_analysis  TEXT NOT NULL DEFAULT '',
    created_at       TEXT NOT NULL,
    updated_at       TEXT
);

CREATE INDEX IF NOT EXISTS idx_ingredients_product
    ON ingredients(product_id);
"""

_PRODUCT_COLUMNS = "id, brand, name, category, image_url, created_at, updated_at"

_INGREDIENT_COLUMNS = (
    "id, product_id, ingredients_list, items, health_score, "
    "health_level, health_analysis, created_at, updated_at"
)


def _ts(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _items_to_json(items: list[IngredientItem]) -> str:
    return json.dumps(
        [
            {
                "name": i.name,
                "is_harmful": i.is_harmful,
                "harmful_level": i.harmful_level,
            }
            for i in items
        ],
        ensure_ascii=False,
    )


def _row_to_product(row: tuple[Any, ...]) -> ProductRecord:
    return ProductRecord(
        id=row[0],
        brand=row[1],
        name=row[2],
        category=row[3],
        image_url=row[4],
        created_at=datetime.fromisoformat(row[5]),
        updated_at=datetime.fromisoformat(row[6]) if row[6] else None,
    )


def _row_to_ingredients(row: tuple[Any, ...]) -> IngredientRecord:
    items = [
        IngredientItem(
            name=str(i.get("name", "")),
            is_harmful=bool(i.get("is_harmful", False)),
            harmful_level=int(i.get("harmful_level", 0)),
        )
        for i in json.loads(row[3] or "[]")
    ]
    return IngredientRecord(
        id=row[0],
        product_id=row[1],
        ingredients_list=row[2],
        ingredients=items,
        health_score=row[4],
        health_level=row[5],
        health_analysis=row[6],
        created_at=datetime.fromisoformat(row[7]),
        updated_at=datetime.fromisoformat(row[8]) if row[8] else None,
    )


def _patch_columns(patch: dict[str, Any]) -> dict[str, Any]:
    """Translate a dataclass-field patch into column values."""
    columns: dict[str, Any] = {}
    for key, value in patch.items():
        if key == "ingredients":
            columns["items"] = _items_to_json(value)
        elif key == "updated_at":
            columns["updated_at"] = _ts(value)
        else:
            columns[key] = value
    return columns


class SqliteCatalogStore(CatalogStore):
    """SQLite-backed store for products and their ingredient records."""

    backend = "sqlite"

    def __init__(
        self, db_path: Path | None = None,
    ) -> None:
        path = db_path or Settings.CATALOG_DB_PATH
        path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(
            str(path), check_same_thread=False,
        )
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.execute("PRAGMA foreign_keys=ON")
        self._conn.executescript(_SCHEMA)
        self.path = path
        logger.debug("SqliteCatalogStore opened at %s", path)

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()

    # ── Reading ──────────────────────────────────────────

    def list_products(self) -> list[ProductRecord]:
        rows = self._conn.execute(
            f"SELECT {_PRODUCT_COLUMNS} FROM products ORDER BY rowid",
        ).fetchall()
        return [_row_to_product(r) for r in rows]

    def list_ingredients(self) -> list[IngredientRecord]:
        rows = self._conn.execute(
            f"SELECT {_INGREDIENT_COLUMNS} FROM ingredients ORDER BY rowid",
        ).fetchall()
        return [_row_to_ingredients(r) for r in rows]

    def get_product(self, product_id: str) -> ProductRecord | None:
        row = self._conn.execute(
            f"SELECT {_PRODUCT_COLUMNS} FROM products WHERE id = ?",
            (product_id,),
        ).fetchone()
        return _row_to_product(row) if row else None

    def find_ingredients(self, product_id: str) -> IngredientRecord | None:
        row = self._conn.execute(
            f"SELECT {_INGREDIENT_COLUMNS} FROM ingredients "
            "WHERE product_id = ? ORDER BY rowid LIMIT 1",
            (product_id,),
        ).fetchone()
        return _row_to_ingredients(row) if row else None

    # ── Writing ──────────────────────────────────────────

    def insert_product(self, record: ProductRecord) -> ProductRecord:
        product_id = record.id or uuid.uuid4().hex
        self._conn.execute(
            f"INSERT INTO products ({_PRODUCT_COLUMNS}) "
            "VALUES (?, ?, ?, ?, ?, ?, ?)",
            (
                product_id,
                record.brand,
                record.name,
                record.category,
                record.image_url,
                record.created_at.isoformat(),
                _ts(record.updated_at),
            ),
        )
        self._conn.commit()
        logger.debug("Inserted product %s (%r)", product_id, record.name)
        stored = self.get_product(product_id)
        assert stored is not None
        return stored

    def insert_ingredients(self, record: IngredientRecord) -> IngredientRecord:
        ingredients_id = record.id or uuid.uuid4().hex
        self._conn.execute(
            f"INSERT INTO ingredients ({_INGREDIENT_COLUMNS}) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (
                ingredients_id,
                record.product_id,
                record.ingredients_list,
                _items_to_json(record.ingredients),
                record.health_score,
                record.health_level,
                record.health_analysis,
                record.created_at.isoformat(),
                _ts(record.updated_at),
            ),
        )
        self._conn.commit()
        row = self._conn.execute(
            f"SELECT {_INGREDIENT_COLUMNS} FROM ingredients WHERE id = ?",
            (ingredients_id,),
        ).fetchone()
        return _row_to_ingredients(row)

    def _update(
        self, table: str, record_id: str, columns: dict[str, Any],
    ) -> None:
        if not columns:
            return
        assignments = ", ".join(f"{c} = ?" for c in columns)
        cur = self._conn.execute(
            f"UPDATE {table} SET {assignments} WHERE id = ?",
            (*columns.values(), record_id),
        )
        self._conn.commit()
        if cur.rowcount == 0:
            raise RecordNotFoundError(f"{table} row {record_id} not found")

    def update_product(
        self, product_id: str, patch: dict[str, Any],
    ) -> ProductRecord:
        check_patch(patch, PRODUCT_FIELDS)
        if self.get_product(product_id) is None:
            raise RecordNotFoundError(f"Product {product_id} not found")
        self._update("products", product_id, _patch_columns(patch))
        updated = self.get_product(product_id)
        assert updated is not None
        return updated

    def update_ingredients(
        self, ingredients_id: str, patch: dict[str, Any],
    ) -> IngredientRecord:
        check_patch(patch, INGREDIENT_FIELDS)
        row = self._conn.execute(
            "SELECT 1 FROM ingredients WHERE id = ?", (ingredients_id,),
        ).fetchone()
        if row is None:
            raise RecordNotFoundError(
                f"Ingredient record {ingredients_id} not found"
            )
        self._update("ingredients", ingredients_id, _patch_columns(patch))
        updated = self._conn.execute(
            f"SELECT {_INGREDIENT_COLUMNS} FROM ingredients WHERE id = ?",
            (ingredients_id,),
        ).fetchone()
        return _row_to_ingredients(updated)

    def delete_product(self, product_id: str) -> None:
        cur = self._conn.execute(
            "DELETE FROM products WHERE id = ?", (product_id,),
        )
        self._conn.commit()
        if cur.rowcount == 0:
            raise RecordNotFoundError(f"Product {product_id} not found")

    def delete_ingredients_by_product(self, product_id: str) -> int:
        cur = self._conn.execute(
            "DELETE FROM ingredients WHERE product_id = ?", (product_id,),
        )
        self._conn.commit()
        return cur.rowcount
