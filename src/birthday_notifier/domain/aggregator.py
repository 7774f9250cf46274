from __future__ import annotations

from typing import Iterable


def merge_birthday_names(calendar_names: Iterable[str], contact_names: Iterable[str]) -> list[str]:
    """Calendar names first, then contact names; exact duplicates keep their first position."""
    merged: list[str] = []
    seen: set[str] = set()
    for sequence in (calendar_names, contact_names):
        for name in sequence:
            if name in seen:
                continue
            seen.add(name)
            merged.append(name)
    return merged
