"""Domain entity for the commission rules document."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone

from commission_calc.core.hashing import sha256_text


@dataclass(frozen=True, slots=True)
class RulesSnapshot:
    """Immutable copy of the rules document captured for one calculation."""

    text: str
    version: str
    captured_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def from_text(cls, text: str | None) -> "RulesSnapshot":
        cleaned = str(text or "").strip()
        return cls(text=cleaned, version=sha256_text(cleaned))

    @property
    def is_empty(self) -> bool:
        return not self.text
