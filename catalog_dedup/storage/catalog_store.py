# catalog_dedup/storage/catalog_store.py

"""Storage interface for catalog records and its in-memory backend."""

import copy
import logging
import uuid
from abc import ABC, abstractmethod
from dataclasses import replace
from typing import Any

from catalog_dedup.models.product import IngredientRecord, ProductRecord

logger = logging.getLogger("catalog_dedup.store")

PRODUCT_FIELDS: frozenset[str] = frozenset({
    "brand", "name", "category", "image_url", "updated_at",
})

INGREDIENT_FIELDS: frozenset[str] = frozenset({
    "ingredients_list", "ingredients", "health_score",
    "health_level", "health_analysis", "updated_at",
})


class CatalogStoreError(Exception):
    """Base error raised by catalog stores."""


class RecordNotFoundError(CatalogStoreError):
    """The requested record does not exist."""


def check_patch(patch: dict[str, Any], allowed: frozenset[str]) -> None:
    unknown = set(patch) - allowed
    if unknown:
        raise ValueError(f"Unknown field(s) in patch: {sorted(unknown)}")


class CatalogStore(ABC):
    """Array-like record source used by the deduplication engine.

    Listing returns records in insertion order.  The engine only reads
    snapshots and asks for updates/deletes through this interface; it
    does no locking, so writers against one store must be serialised
    by the caller.
    """

    backend: str = "abstract"

    @abstractmethod
    def list_products(self) -> list[ProductRecord]:
        """Return every product, oldest insertion first."""

    @abstractmethod
    def list_ingredients(self) -> list[IngredientRecord]:
        """Return every ingredient record."""

    @abstractmethod
    def get_product(self, product_id: str) -> ProductRecord | None:
        """Return one product or ``None``."""

    @abstractmethod
    def find_ingredients(self, product_id: str) -> IngredientRecord | None:
        """Return the ingredient record attached to a product, if any."""

    @abstractmethod
    def insert_product(self, record: ProductRecord) -> ProductRecord:
        """Store a product; assigns an id when it has none."""

    @abstractmethod
    def insert_ingredients(self, record: IngredientRecord) -> IngredientRecord:
        """Store an ingredient record; assigns an id when it has none."""

    @abstractmethod
    def update_product(
        self, product_id: str, patch: dict[str, Any],
    ) -> ProductRecord:
        """Apply *patch* to a product and return the updated record."""

    @abstractmethod
    def update_ingredients(
        self, ingredients_id: str, patch: dict[str, Any],
    ) -> IngredientRecord:
        """Apply *patch* to an ingredient record and return it."""

    @abstractmethod
    def delete_product(self, product_id: str) -> None:
        """Delete a product; raises :class:`RecordNotFoundError`."""

    @abstractmethod
    def delete_ingredients_by_product(self, product_id: str) -> int:
        """Delete all ingredient records of a product; returns the count."""

    def close(self) -> None:
        """Release backend resources."""


class InMemoryCatalogStore(CatalogStore):
    """Dict-backed store, used as fallback and for deterministic tests."""

    backend = "memory"

    def __init__(self) -> None:
        self._products: dict[str, ProductRecord] = {}
        self._ingredients: dict[str, IngredientRecord] = {}

    def list_products(self) -> list[ProductRecord]:
        return [replace(p) for p in self._products.values()]

    def list_ingredients(self) -> list[IngredientRecord]:
        return [copy.deepcopy(i) for i in self._ingredients.values()]

    def get_product(self, product_id: str) -> ProductRecord | None:
        record = self._products.get(product_id)
        return replace(record) if record else None

    def find_ingredients(self, product_id: str) -> IngredientRecord | None:
        for record in self._ingredients.values():
            if record.product_id == product_id:
                return copy.deepcopy(record)
        return None

    def insert_product(self, record: ProductRecord) -> ProductRecord:
        stored = replace(record, id=record.id or uuid.uuid4().hex)
        self._products[stored.id] = stored
        logger.debug("Inserted product %s (%r)", stored.id, stored.name)
        return replace(stored)

    def insert_ingredients(self, record: IngredientRecord) -> IngredientRecord:
        stored = copy.deepcopy(record)
        stored.id = stored.id or uuid.uuid4().hex
        self._ingredients[stored.id] = stored
        return copy.deepcopy(stored)

    def update_product(
        self, product_id: str, patch: dict[str, Any],
    ) -> ProductRecord:
        check_patch(patch, PRODUCT_FIELDS)
        if product_id not in self._products:
            raise RecordNotFoundError(f"Product {product_id} not found")
        updated = replace(self._products[product_id], **patch)
        self._products[product_id] = updated
        return replace(updated)

    def update_ingredients(
        self, ingredients_id: str, patch: dict[str, Any],
    ) -> IngredientRecord:
        check_patch(patch, INGREDIENT_FIELDS)
        if ingredients_id not in self._ingredients:
            raise RecordNotFoundError(
                f"Ingredient record {ingredients_id} not found"
            )
        updated = replace(
            self._ingredients[ingredients_id], **copy.deepcopy(patch)
        )
        self._ingredients[ingredients_id] = updated
        return copy.deepcopy(updated)

    def delete_product(self, product_id: str) -> None:
        if self._products.pop(product_id, None) is None:
            raise RecordNotFoundError(f"Product {product_id} not found")

    def delete_ingredients_by_product(self, product_id: str) -> int:
        doomed = [
            key
            for key, record in self._ingredients.items()
            if record.product_id == product_id
        ]
        for key in doomed:
            del self._ingredients[key]
        return len(doomed)
