import math
import re
from decimal import Context, Decimal, ROUND_HALF_UP
from typing import Iterable, List

# Any run of characters outside [a-z0-9] becomes a single hyphen
_NON_ALNUM = re.compile(r"[^a-z0-9]+")

_CENTS = Decimal("0.01")
# Enough digits for any finite float to two decimals
_QUANTIZE = Context(prec=400)


def slugify(value: str) -> str:
    """Turn a title into a URL-safe identifier.

    >>> slugify("Citrus & Herb Chicken!")
    'citrus-herb-chicken'
    """
    if not value:
        return ""
    slug = _NON_ALNUM.sub("-", value.strip().lower())
    return slug.strip("-")


def format_quantity(value: float) -> str:
    """Round to two decimals (half up) and drop trailing zeros.

    Rounding runs on the shortest decimal representation of the float, so
    1.005 rounds to 1.01 the way a reader expects. Only finite values
    can be formatted.
    """
    if not math.isfinite(value):
        raise ValueError(f"Cannot format quantity {value!r}")
    rounded = Decimal(repr(float(value))).quantize(_CENTS, rounding=ROUND_HALF_UP, context=_QUANTIZE)
    text = f"{rounded:.2f}".rstrip("0").rstrip(".")
    return text or "0"


def normalize_name(name: str) -> str:
    """Key used to compare tag and category names."""
    if not name:
        return ""
    return name.strip().lower()


def unique_names(names: Iterable[str]) -> List[str]:
    """Trim names, drop blanks and collapse case-insensitive duplicates.

    The first occurrence fixes the position, the last occurrence wins the
    spelling.
    """
    unique = {}
    for name in names or []:
        trimmed = (name or "").strip()
        if not trimmed:
            continue
        unique[trimmed.lower()] = trimmed
    return list(unique.values())


def parse_optional_number(value):
    """Parse a typed number; blanks and garbage become None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        text = str(value).strip()
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    if not math.isfinite(number):
        return None
    return number
