from __future__ import annotations

import unicodedata


def normalize(name: str | None) -> str:
    normalized = unicodedata.normalize("NFKC", str(name or "")).strip().lower()
    return " ".join(normalized.split())


def same_person(first: str | None, second: str | None) -> bool:
    return normalize(first) == normalize(second)
