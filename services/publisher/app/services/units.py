"""Unit / pack glossary matching for variant option values.

Option values like "500 g", "2 x 1L" or "Pack of 6" mean the variant is a
quantity-bearing bundle; such options must be linked to the variant
quantities metaobject so unit prices can be computed downstream.
"""

import re

GLOSSARY_TERMS = [
    "g", "gm", "gms", "gram", "grams",
    "kg", "kgs", "kilogram", "kilograms",
    "ml", "millilitre", "millilitres", "millilizer", "milliliter", "milliliters",
    "l", "ltr", "litre", "litres", "liter", "liters",
    "piece", "pieces", "pc", "pcs",
    "roll", "rolls", "sheet", "sheets",
    "pack", "packs", "pack-of", "pack of", "packof",
]

# Short units only count next to a number ("500g", "g 500"), never as bare letters.
SHORT_UNITS = ["g", "gm", "gms", "kg", "kgs", "ml", "l", "ltr"]

_PACK_PATTERNS = [
    re.compile(r"\bpack(?:[- ]?of)?\b"),
    re.compile(r"\bpackof\b"),
    re.compile(r"\bpacks?\b"),
]
_SHORT_PATTERNS = [
    (u, re.compile(rf"(?:^|\W)(?:\d+\s*{re.escape(u)}|{re.escape(u)}\s*\d+)(?:\W|$)", re.IGNORECASE))
    for u in SHORT_UNITS
]
_LONG_PATTERNS = [
    (t, re.compile(rf"\b{re.escape(t)}\b", re.IGNORECASE)) for t in GLOSSARY_TERMS if t not in SHORT_UNITS
]


def find_glossary_term(text: str | None) -> str | None:
    """Return the first unit/pack term found in `text`, or None."""
    if not text:
        return None
    s = str(text).lower()
    if any(p.search(s) for p in _PACK_PATTERNS):
        return "pack"
    for unit, pattern in _SHORT_PATTERNS:
        if pattern.search(s):
            return unit
    for term, pattern in _LONG_PATTERNS:
        if pattern.search(s):
            return term
    return None


def option_value_handle(value: str) -> str:
    """Metaobject handle for an option value: 'Pack Of 6' -> 'pack-of-6'."""
    return re.sub(r"\s+", "-", value.strip().lower())
