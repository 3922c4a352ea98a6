# catalog_dedup/filters/ingredient_matcher.py

"""Dominant-ingredient extraction and ingredient-list similarity."""

import re
from typing import Any

from catalog_dedup.config.settings import Settings
from catalog_dedup.filters.string_similarity import similarity

# Commas, semicolons, enumeration comma, middle dots, pipes, spaces
_DELIMITER_RE = re.compile(r"[,，;；、·|｜\s]")

_EXCLUDE_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"^\d+(\.\d+)?[%％]?$"),
    re.compile(r"^[<>≤≥]+"),
    re.compile(r"生产日期|保质期|净含量|规格|生产许可证|许可证编号|执行标准"),
    re.compile(r"^[()（）\[\]【】]+$"),
)

_QUALIFIER_RES: tuple[re.Pattern[str], ...] = (
    re.compile(r"\([^)]*\)"),
    re.compile(r"（[^）]*）"),
    re.compile(r"\[[^\]]*\]"),
    re.compile(r"【[^】]*】"),
)

_TRAILING_LIMIT_RE = re.compile(r"[<>≤≥]+\d+.*$")


def _is_noise(token: str) -> bool:
    return any(p.search(token) for p in _EXCLUDE_PATTERNS)


def _strip_qualifiers(token: str) -> str:
    for pattern in _QUALIFIER_RES:
        token = pattern.sub("", token)
    return _TRAILING_LIMIT_RE.sub("", token).strip()


def extract_main_ingredients(
    raw_list: Any, top_n: int = Settings.INGREDIENT_TOP_N,
) -> list[str]:
    """Return the first *top_n* real ingredients of a label text.

    Numbers, percentages, comparison fragments, production metadata
    and bare brackets are dropped; bracketed qualifiers are removed
    from what survives.  Order is preserved.
    """
    if not isinstance(raw_list, str) or not raw_list:
        return []

    main: list[str] = []
    for token in _DELIMITER_RE.split(raw_list):
        token = token.strip()
        if not token or _is_noise(token):
            continue
        cleaned = _strip_qualifiers(token)
        if not cleaned:
            continue
        main.append(cleaned)
        if len(main) >= top_n:
            break
    return main


def ingredients_similarity(
    list_a: Any,
    list_b: Any,
    top_n: int = Settings.INGREDIENT_TOP_N,
    match_threshold: float = Settings.INGREDIENT_MATCH_THRESHOLD,
) -> float:
    """Share of dominant ingredients two label texts have in common."""
    if not list_a and not list_b:
        return 1.0
    if not list_a or not list_b:
        return 0.0

    main_a = extract_main_ingredients(list_a, top_n)
    main_b = extract_main_ingredients(list_b, top_n)
    if not main_a and not main_b:
        return 1.0
    if not main_a or not main_b:
        return 0.0

    unmatched = list(main_b)
    matches = 0
    for ingredient in main_a:
        for idx, other in enumerate(unmatched):
            if similarity(ingredient, other) > match_threshold:
                matches += 1
                del unmatched[idx]
                break

    return matches / max(len(main_a), len(main_b))
