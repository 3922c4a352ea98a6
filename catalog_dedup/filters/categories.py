# catalog_dedup/filters/categories.py

"""Map raw extracted category labels onto a small canonical set.

Resolution order: exact table lookup, then substring match against the
table keys (in table order), then the keyword fallback rules.  New
categories are added by extending the data below.
"""

import logging
from collections import Counter
from collections.abc import Callable, Iterable

from catalog_dedup.config.settings import Settings
from catalog_dedup.models.product import ProductRecord

logger = logging.getLogger("catalog_dedup.categories")

OTHER = Settings.OTHER_CATEGORY

CATEGORY_TABLE: dict[str, str] = {
    # Biscuits / pastry
    "烘烤类糕点": "饼干",
    "糕点/饼干": "饼干",
    "烘焙食品": "饼干",
    "糕点": "饼干",
    "饼干": "饼干",
    # Instant noodles
    "热风干燥方便食品": "方便面",
    "方便面": "方便面",
    "油炸型方便面": "方便面",
    "非油炸方便面": "方便面",
    "冷面": "方便面",
    # Frozen
    "速冻水饺": "速冻饺子",
    "速冻包子": "速冻饺子",
    "速冻馄饨": "速冻饺子",
    "速冻食品": "速冻饺子",
    "冷冻食品": "速冻饺子",
    # Condiments
    "高盐稀态发酵酱油": "酱油",
    "生抽": "酱油",
    "老抽": "酱油",
    "酱油": "酱油",
    "食醋": "醋",
    "陈醋": "醋",
    "白醋": "醋",
    "米醋": "醋",
    "醋": "醋",
    "调味品": "调味品",
    "调料": "调味品",
    # Puffed snacks
    "膨化食品": "膨化食品",
    "薯片": "膨化食品",
    "爆米花": "膨化食品",
    "虾条": "膨化食品",
    # Beverages
    "饮料": "饮料",
    "碳酸饮料": "饮料",
    "果汁饮料": "饮料",
    "茶饮料": "饮料",
    "咖啡饮料": "饮料",
    "功能饮料": "饮料",
    "运动饮料": "饮料",
    # Soy
    "(Ⅱ类·其他型)速溶豆粉": "豆制品",
    "豆浆粉": "豆制品",
    "豆腐": "豆制品",
    "豆干": "豆制品",
    "豆制品": "豆制品",
    # Dairy
    "牛奶": "奶制品",
    "酸奶": "奶制品",
    "奶粉": "奶制品",
    "乳制品": "奶制品",
    "奶制品": "奶制品",
    # Meat
    "火腿肠": "肉制品",
    "香肠": "肉制品",
    "培根": "肉制品",
    "肉类制品": "肉制品",
    "肉制品": "肉制品",
    # Nuts
    "坚果": "坚果",
    "花生": "坚果",
    "瓜子": "坚果",
    "核桃": "坚果",
    "杏仁": "坚果",
    # Candy
    "糖果": "糖果",
    "巧克力": "糖果",
    "口香糖": "糖果",
    "软糖": "糖果",
    "硬糖": "糖果",
    # Canned
    "罐头": "罐头",
    "水果罐头": "罐头",
    "肉类罐头": "罐头",
    "蔬菜罐头": "罐头",
    # Catch-all
    "未知类型": OTHER,
    OTHER: OTHER,
}

# (any of these keywords, canonical value), checked in order
FALLBACK_RULES: tuple[tuple[tuple[str, ...], str], ...] = (
    (("饼干", "糕点", "烘焙"), "饼干"),
    (("方便面", "面条", "拉面"), "方便面"),
    (("饮料", "汽水", "果汁"), "饮料"),
    (("酱油",), "酱油"),
    (("醋",), "醋"),
    (("调料",), "调味品"),
)


def simplify_category(raw: object) -> str:
    """Return the canonical category for a raw label."""
    if not isinstance(raw, str) or not raw.strip():
        return OTHER

    label = raw.strip()
    exact = CATEGORY_TABLE.get(label)
    if exact is not None:
        return exact

    for key, value in CATEGORY_TABLE.items():
        if key in label or label in key:
            logger.debug(
                "Category %r -> %r (substring of %r)", label, value, key,
            )
            return value

    lowered = label.lower()
    for keywords, value in FALLBACK_RULES:
        if any(k in lowered for k in keywords):
            return value

    logger.debug("Unmapped category %r -> %r", label, OTHER)
    return OTHER


def list_categories() -> list[str]:
    """All canonical categories, sorted."""
    return sorted(set(CATEGORY_TABLE.values()))


def category_stats(
    records: Iterable[ProductRecord],
    normalize: Callable[[str], str] = simplify_category,
) -> dict[str, dict[str, int]]:
    """Count raw and canonical categories across *records*."""
    raw_counts: Counter[str] = Counter()
    canonical_counts: Counter[str] = Counter()
    for record in records:
        if not record.category:
            continue
        raw_counts[record.category] += 1
        canonical_counts[normalize(record.category)] += 1
    return {
        "raw": dict(raw_counts),
        "canonical": dict(canonical_counts),
    }
