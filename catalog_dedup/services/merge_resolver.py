# catalog_dedup/services/merge_resolver.py

"""Field-by-field reconciliation of two records judged duplicates."""

import copy
import logging
from dataclasses import replace
from datetime import datetime

from catalog_dedup.config.settings import Settings
from catalog_dedup.filters.categories import simplify_category
from catalog_dedup.models.dedup import MergeResult
from catalog_dedup.models.product import IngredientRecord, ProductRecord
from catalog_dedup.services.similarity_engine import CategoryNormalizer

logger = logging.getLogger("catalog_dedup.merge")


def _is_placeholder_brand(brand: str) -> bool:
    return not brand.strip() or brand.strip().lower() in Settings.UNKNOWN_BRANDS


def _is_placeholder_image(url: str) -> bool:
    return not url or Settings.IMAGE_PLACEHOLDER_MARKER in url


def _merge_ingredients(
    merged: IngredientRecord,
    incoming: IngredientRecord,
    changes: list[str],
) -> None:
    if len(incoming.ingredients_list) > len(merged.ingredients_list):
        merged.ingredients_list = incoming.ingredients_list
        changes.append("Ingredient list replaced with the more detailed text")

    known = {item.name for item in merged.ingredients}
    added = [
        copy.copy(item)
        for item in incoming.ingredients
        if item.name not in known
    ]
    if added:
        merged.ingredients.extend(added)
        changes.append(f"Added {len(added)} new ingredient item(s)")

    # Score, level and analysis travel together
    if incoming.health_score is not None and (
        merged.health_score is None
        or incoming.health_score > merged.health_score
    ):
        merged.health_score = incoming.health_score
        merged.health_level = incoming.health_level
        merged.health_analysis = incoming.health_analysis
        changes.append(f"Health score updated to {incoming.health_score:g}")


def merge_records(
    original: ProductRecord,
    incoming: ProductRecord,
    original_ingredients: IngredientRecord | None = None,
    incoming_ingredients: IngredientRecord | None = None,
    normalize_category: CategoryNormalizer = simplify_category,
) -> MergeResult:
    """Fold the more complete fields of *incoming* into *original*.

    Neither input is modified.  An empty ``changes`` list means the
    incoming record adds nothing.
    """
    record = replace(original)
    ingredients = (
        copy.deepcopy(original_ingredients)
        if original_ingredients is not None
        else None
    )
    changes: list[str] = []

    if _is_placeholder_brand(original.brand) and not _is_placeholder_brand(
        incoming.brand
    ):
        record.brand = incoming.brand
        changes.append(f"Brand: {original.brand!r} -> {incoming.brand!r}")

    if len(incoming.name) > len(original.name):
        record.name = incoming.name
        changes.append(f"Name: {original.name!r} -> {incoming.name!r}")

    other = Settings.OTHER_CATEGORY
    if (
        normalize_category(original.category) == other
        and normalize_category(incoming.category) != other
    ):
        record.category = incoming.category
        changes.append(
            f"Category: {original.category!r} -> {incoming.category!r}"
        )

    if _is_placeholder_image(original.image_url) and not _is_placeholder_image(
        incoming.image_url
    ):
        record.image_url = incoming.image_url
        changes.append("Image replaced")

    if incoming_ingredients is not None:
        if ingredients is None:
            ingredients = copy.deepcopy(incoming_ingredients)
            ingredients.id = ""
            ingredients.product_id = original.id
            changes.append("Ingredient record added")
        else:
            _merge_ingredients(ingredients, incoming_ingredients, changes)

    if changes:
        now = datetime.now()
        record.updated_at = now
        if ingredients is not None:
            ingredients.updated_at = now

    logger.info(
        "Merged %r into %r: %d change(s)",
        incoming.name,
        original.name,
        len(changes),
    )
    return MergeResult(record=record, ingredients=ingredients, changes=changes)
