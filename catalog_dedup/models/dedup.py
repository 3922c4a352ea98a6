# catalog_dedup/models/dedup.py

"""Result containers produced by the deduplication engine.

None of these are persisted; they are returned to callers (CLI,
dashboard, ingestion code) so every decision can be audited.
"""

from dataclasses import dataclass, field
from typing import Any

from catalog_dedup.models.product import IngredientRecord, ProductRecord

# Confidence tiers, weakest first
TIER_NONE = "none"
TIER_LOW = "low"
TIER_MEDIUM = "medium"
TIER_HIGH = "high"
TIER_EXACT = "exact"

TIER_RANK: dict[str, int] = {
    TIER_NONE: 0,
    TIER_LOW: 1,
    TIER_MEDIUM: 2,
    TIER_HIGH: 3,
    TIER_EXACT: 4,
}

RECOMMEND_SKIP = "skip"
RECOMMEND_MERGE = "merge"
RECOMMEND_PROCEED = "proceed"


@dataclass(frozen=True)
class WeightedScore:
    """Decision taken from the weighted composite alone."""

    tier: str


@dataclass(frozen=True)
class EscalatedByBrandName:
    """Decision raised by brand+name agreement under the same category."""

    tier: str
    weighted_tier: str
    brand_name_similarity: float


Decision = WeightedScore | EscalatedByBrandName


@dataclass
class SimilarityResult:
    """Per-field scores plus the composite verdict for one record pair."""

    brand_similarity: float = 0.0
    name_similarity: float = 0.0
    category_match: float = 0.0
    ingredients_similarity: float = 0.0
    overall_similarity: float = 0.0
    is_duplicate: bool = False
    decision: Decision = field(
        default_factory=lambda: WeightedScore(tier=TIER_NONE)
    )
    details: dict[str, Any] = field(
        default_factory=lambda: dict[str, Any]()
    )

    @property
    def confidence(self) -> str:
        return self.decision.tier

    @property
    def escalated(self) -> bool:
        return isinstance(self.decision, EscalatedByBrandName)


@dataclass
class DuplicateCandidate:
    """An existing record judged a duplicate of a query record."""

    record: ProductRecord
    ingredients: IngredientRecord | None
    similarity: SimilarityResult


@dataclass
class Resolution:
    """Outcome of a duplicate check for an incoming record."""

    is_duplicate: bool = False
    recommendation: str = RECOMMEND_PROCEED
    message: str = ""
    best_match: DuplicateCandidate | None = None
    all_matches: list[DuplicateCandidate] = field(
        default_factory=lambda: list[DuplicateCandidate]()
    )
    error: str | None = None

    @property
    def duplicate_count(self) -> int:
        return len(self.all_matches)

    def to_dict(self) -> dict[str, Any]:
        best = self.best_match
        return {
            "is_duplicate": self.is_duplicate,
            "duplicate_count": self.duplicate_count,
            "recommendation": self.recommendation,
            "message": self.message,
            "error": self.error,
            "best_match": (
                {
                    "id": best.record.id,
                    "brand": best.record.brand,
                    "name": best.record.name,
                    "category": best.record.category,
                    "overall_similarity": round(
                        best.similarity.overall_similarity, 4
                    ),
                    "confidence": best.similarity.confidence,
                    "escalated": best.similarity.escalated,
                }
                if best
                else None
            ),
        }


@dataclass
class MergeResult:
    """Reconciled record plus the human-readable change log."""

    record: ProductRecord
    ingredients: IngredientRecord | None
    changes: list[str] = field(default_factory=lambda: list[str]())

    @property
    def changed(self) -> bool:
        return bool(self.changes)


@dataclass
class IngestResult:
    """What ``ingest`` did with an incoming record, and why."""

    action: str
    record: ProductRecord
    resolution: Resolution
    changes: list[str] = field(default_factory=lambda: list[str]())


@dataclass
class DuplicateGroup:
    """A canonical record and the later records judged duplicates of it."""

    canonical: ProductRecord
    duplicates: list[ProductRecord] = field(
        default_factory=lambda: list[ProductRecord]()
    )

    @property
    def members(self) -> list[ProductRecord]:
        return [self.canonical, *self.duplicates]


@dataclass
class DedupOperation:
    """One executed removal, kept for the audit trail."""

    type: str
    duplicate_id: str
    duplicate_name: str
    master_id: str
    master_name: str


@dataclass
class DedupError:
    """A per-item failure recorded during a sweep."""

    product_id: str
    product_name: str
    error: str


@dataclass
class DeduplicationReport:
    """Audit trail of one batch sweep."""

    dry_run: bool = True
    total_products: int = 0
    processed: int = 0
    duplicates_found: int = 0
    duplicates_removed: int = 0
    groups: list[DuplicateGroup] = field(
        default_factory=lambda: list[DuplicateGroup]()
    )
    operations: list[DedupOperation] = field(
        default_factory=lambda: list[DedupOperation]()
    )
    errors: list[DedupError] = field(
        default_factory=lambda: list[DedupError]()
    )
    backup: str | None = None
    error: str | None = None

    @property
    def duplicate_groups(self) -> int:
        return len(self.groups)

    @property
    def estimated_reduction(self) -> float:
        """Percentage of the whole catalog judged redundant."""
        if not self.total_products:
            return 0.0
        return round(
            self.duplicates_found / self.total_products * 100, 1
        )

    @property
    def summary(self) -> dict[str, Any]:
        return {
            "total_products": self.total_products,
            "processed_products": self.processed,
            "duplicate_groups": self.duplicate_groups,
            "duplicates_found": self.duplicates_found,
            "duplicates_removed": self.duplicates_removed,
            "errors": len(self.errors),
            "estimated_reduction": self.estimated_reduction,
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            "dry_run": self.dry_run,
            "summary": self.summary,
            "groups": [
                {
                    "canonical_id": g.canonical.id,
                    "canonical_name": g.canonical.name,
                    "duplicate_ids": [d.id for d in g.duplicates],
                }
                for g in self.groups
            ],
            "operations": [vars(op) for op in self.operations],
            "errors": [vars(e) for e in self.errors],
            "backup": self.backup,
            "error": self.error,
        }


@dataclass
class DuplicatePair:
    """A duplicate pair surfaced by the statistics sample."""

    first: ProductRecord
    second: ProductRecord
    similarity: float


@dataclass
class DedupStats:
    """Cheap, read-only snapshot of duplication in a catalog prefix."""

    total_products: int = 0
    sample_size: int = 0
    potential_duplicates: int = 0
    top_duplicates: list[DuplicatePair] = field(
        default_factory=lambda: list[DuplicatePair]()
    )
    # Canonical category -> product count over the whole catalog
    categories: dict[str, int] = field(
        default_factory=lambda: dict[str, int]()
    )
    error: str | None = None

    @property
    def duplicate_groups(self) -> int:
        # Each sampled pair is counted as its own group
        return self.potential_duplicates

    @property
    def estimated_reduction(self) -> float:
        if not self.total_products:
            return 0.0
        return round(
            self.potential_duplicates / self.total_products * 100, 1
        )
