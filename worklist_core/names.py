"""Loose staff-name matching between the task catalog and the roster."""

from __future__ import annotations

import re
import unicodedata
from typing import Iterable, TypeVar

T = TypeVar("T")

MIN_SUBSTRING_LEN = 3


def normalize_name(value: str | None) -> str:
    s = unicodedata.normalize("NFKD", str(value or ""))
    s = "".join(ch for ch in s if not unicodedata.combining(ch))
    return re.sub(r"[^a-z]", "", s.lower())


def names_match(a: str | None, b: str | None) -> bool:
    """True when one normalized name contains the other.

    Word order is ignored as well, so "Smith, Jane" matches "Jane Smith".
    This is an approximation: two staff sharing a long name fragment can
    collide. Names shorter than three letters must match exactly.
    """
    s1 = normalize_name(a)
    s2 = normalize_name(b)
    if not s1 or not s2:
        return False
    if len(s1) < MIN_SUBSTRING_LEN or len(s2) < MIN_SUBSTRING_LEN:
        return s1 == s2
    return s1 in s2 or s2 in s1 or _tokens_match(a, b)


def _name_tokens(value: str | None) -> set[str]:
    # single letters are middle initials
    tokens = (normalize_name(t) for t in re.split(r"[\s,.]+", str(value or "")))
    return {t for t in tokens if len(t) > 1}


def _tokens_match(a: str | None, b: str | None) -> bool:
    # "Smith, Jane" vs "Jane Smith", "Wood, William B" vs "William Wood"
    ta = _name_tokens(a)
    tb = _name_tokens(b)
    if not ta or not tb:
        return False
    return ta <= tb or tb <= ta


def find_staff_by_name(name: str, staff: Iterable[T], key=lambda s: s.name) -> T | None:
    for item in staff:
        if names_match(key(item), name):
            return item
    return None
