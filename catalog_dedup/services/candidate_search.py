# catalog_dedup/services/candidate_search.py

"""Linear duplicate-candidate scan over a catalog snapshot."""

import logging
from collections.abc import Iterable, Sequence

from catalog_dedup.filters.string_similarity import similarity_details
from catalog_dedup.models.dedup import DuplicateCandidate
from catalog_dedup.models.product import IngredientRecord, ProductRecord
from catalog_dedup.services.similarity_engine import (
    SimilarityConfig,
    SimilarityEngine,
)

logger = logging.getLogger("catalog_dedup.search")


def index_ingredients(
    ingredients: Iterable[IngredientRecord],
) -> dict[str, IngredientRecord]:
    """Map product id to its ingredient record (first one wins)."""
    index: dict[str, IngredientRecord] = {}
    for record in ingredients:
        index.setdefault(record.product_id, record)
    return index


def find_candidates(
    query: ProductRecord,
    query_ingredients: IngredientRecord | None,
    corpus: Sequence[ProductRecord],
    ingredients_by_product: dict[str, IngredientRecord],
    engine: SimilarityEngine,
    cap: int | None = None,
    config: SimilarityConfig | None = None,
) -> list[DuplicateCandidate]:
    """Return corpus records judged duplicates of *query*, best first.

    Only the first *cap* corpus entries are examined, so duplicates
    further down the collection are not found.  The query itself is
    skipped when it is already stored (update in place).
    """
    limit = cap if cap is not None else engine.config.max_candidates
    window = corpus[:max(0, limit)]
    logger.info(
        "Searching duplicates of %r across %d/%d records",
        query.name,
        len(window),
        len(corpus),
    )

    candidates: list[DuplicateCandidate] = []
    for existing in window:
        if query.id and existing.id == query.id:
            continue

        existing_ingredients = ingredients_by_product.get(existing.id)
        result = engine.score(
            query,
            existing,
            query_ingredients,
            existing_ingredients,
            config=config,
        )
        if not result.is_duplicate:
            continue

        candidates.append(
            DuplicateCandidate(
                record=existing,
                ingredients=existing_ingredients,
                similarity=result,
            )
        )
        if logger.isEnabledFor(logging.DEBUG):
            similarity_details(query.name, existing.name, kind="name")

    # Stable sort keeps corpus order among equal scores
    candidates.sort(
        key=lambda c: c.similarity.overall_similarity, reverse=True,
    )
    logger.info(
        "Found %d duplicate candidate(s) for %r",
        len(candidates),
        query.name,
    )
    return candidates
