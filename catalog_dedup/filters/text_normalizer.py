# catalog_dedup/filters/text_normalizer.py

"""Canonicalise free-text catalog fields before comparison."""

import re
from typing import Any

# Whitespace plus ASCII and full-width separators/brackets
_PUNCT_RE = re.compile(
    r"[\s\-_./()\[\]【】（）·・．／－＿［］〔〕]"
)

# Marketing / packaging filler that the extraction step adds at random
FILLER_WORDS: tuple[str, ...] = (
    "新装", "升级版", "经典款", "限量版", "特惠装", "家庭装",
    "便携装", "迷你装", "大包装", "小包装", "原味", "经典",
    "新品", "热卖", "推荐", "精选", "优质", "健康",
    "天然", "有机", "绿色", "营养", "美味", "香浓",
)

# Longest first so "经典款" never degrades to "款"
_FILLER_RE = re.compile(
    "|".join(
        re.escape(w)
        for w in sorted(FILLER_WORDS, key=len, reverse=True)
    )
)

UNIT_MAPPINGS: tuple[tuple[str, str], ...] = (
    ("毫升", "ml"),
    ("千克", "kg"),
    ("升", "l"),
    ("克", "g"),
    ("斤", "kg"),
    ("两", "g"),
)


def normalize(text: Any) -> str:
    """Return the comparison form of *text*.

    Lower-cases, drops whitespace and bracket/separator characters,
    removes filler words and rewrites unit words to Latin
    abbreviations.  Non-string or empty input yields ``""``.
    The function is idempotent.
    """
    if not isinstance(text, str) or not text:
        return ""

    processed = _PUNCT_RE.sub("", text.lower())

    # Removing one word can expose another ("原原味味")
    while True:
        stripped = _FILLER_RE.sub("", processed)
        if stripped == processed:
            break
        processed = stripped

    for word, abbreviation in UNIT_MAPPINGS:
        processed = processed.replace(word, abbreviation)

    return processed.strip()
