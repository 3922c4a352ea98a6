# catalog_dedup/services/resolution.py

"""Turn ranked duplicate candidates into a skip/merge/proceed decision."""

from collections.abc import Sequence

from catalog_dedup.models.dedup import (
    RECOMMEND_MERGE,
    RECOMMEND_PROCEED,
    RECOMMEND_SKIP,
    TIER_EXACT,
    TIER_HIGH,
    TIER_MEDIUM,
    DuplicateCandidate,
    Resolution,
)

RECOMMENDATIONS: dict[str, str] = {
    TIER_EXACT: RECOMMEND_SKIP,
    TIER_HIGH: RECOMMEND_SKIP,
    TIER_MEDIUM: RECOMMEND_MERGE,
}


def decide(candidates: Sequence[DuplicateCandidate]) -> Resolution:
    """Pick a recommendation from the best (first) candidate's tier."""
    if not candidates:
        return Resolution(
            is_duplicate=False,
            recommendation=RECOMMEND_PROCEED,
            message="No duplicate found, safe to add",
        )

    best = candidates[0]
    tier = best.similarity.confidence
    recommendation = RECOMMENDATIONS.get(tier, RECOMMEND_PROCEED)

    if recommendation == RECOMMEND_SKIP:
        message = (
            f'Highly similar product "{best.record.name}" already '
            "exists, skipping"
        )
    elif recommendation == RECOMMEND_MERGE:
        message = (
            f'Similar product "{best.record.name}" found, '
            "merging details"
        )
    else:
        message = "Weakly similar products found, adding as new"

    return Resolution(
        is_duplicate=True,
        recommendation=recommendation,
        message=message,
        best_match=best,
        all_matches=list(candidates),
    )
