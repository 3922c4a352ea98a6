# catalog_dedup/models/product.py

"""Catalog record models shared by the engine and the stores."""

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any


def _parse_timestamp(value: Any) -> datetime:
    """Accept a datetime or an ISO-8601 string; fall back to now."""
    if isinstance(value, datetime):
        return value
    if isinstance(value, str) and value:
        try:
            return datetime.fromisoformat(value)
        except ValueError:
            pass
    return datetime.now()


@dataclass
class ProductRecord:
    """A scanned product entry as stored in the catalog."""

    id: str = ""
    brand: str = ""
    name: str = ""
    category: str = ""
    image_url: str = ""
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["created_at"] = self.created_at.isoformat()
        data["updated_at"] = (
            self.updated_at.isoformat() if self.updated_at else None
        )
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ProductRecord":
        updated = data.get("updated_at")
        return cls(
            id=str(data.get("id", "") or ""),
            brand=str(data.get("brand", "") or ""),
            name=str(data.get("name", "") or ""),
            category=str(
                data.get("category", data.get("product_type", "")) or ""
            ),
            image_url=str(data.get("image_url", "") or ""),
            created_at=_parse_timestamp(data.get("created_at")),
            updated_at=_parse_timestamp(updated) if updated else None,
        )


@dataclass
class IngredientItem:
    """One parsed ingredient with its harmfulness annotation."""

    name: str
    is_harmful: bool = False
    harmful_level: int = 0


@dataclass
class IngredientRecord:
    """Ingredient data attached to a product by ``product_id``.

    The health fields are produced elsewhere and are carried through
    untouched, except when two records are merged.
    """

    product_id: str
    ingredients_list: str = ""
    ingredients: list[IngredientItem] = field(
        default_factory=lambda: list[IngredientItem]()
    )
    health_score: float | None = None
    health_level: str = ""
    health_analysis: str = ""
    id: str = ""
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["created_at"] = self.created_at.isoformat()
        data["updated_at"] = (
            self.updated_at.isoformat() if self.updated_at else None
        )
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "IngredientRecord":
        raw_items: list[Any] = list(data.get("ingredients") or [])
        items = [
            IngredientItem(
                name=str(item.get("name", "")),
                is_harmful=bool(item.get("is_harmful", False)),
                harmful_level=int(item.get("harmful_level", 0) or 0),
            )
            for item in raw_items
            if isinstance(item, dict) and item.get("name")
        ]
        score = data.get("health_score")
        updated = data.get("updated_at")
        return cls(
            product_id=str(data.get("product_id", "") or ""),
            ingredients_list=str(data.get("ingredients_list", "") or ""),
            ingredients=items,
            health_score=float(score) if score is not None else None,
            health_level=str(data.get("health_level", "") or ""),
            health_analysis=str(data.get("health_analysis", "") or ""),
            id=str(data.get("id", "") or ""),
            created_at=_parse_timestamp(data.get("created_at")),
            updated_at=_parse_timestamp(updated) if updated else None,
        )
