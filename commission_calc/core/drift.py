"""Verify-or-replace guard for model-reported arithmetic.

The chat model is trusted to classify (pick a rule, pick a percentage) but
not to multiply.  Any number it reports that can be recomputed locally is
compared against the local value and replaced when the two disagree.
"""
from __future__ import annotations

from dataclasses import dataclass

DRIFT_TOLERANCE = 0.01


@dataclass(frozen=True, slots=True)
class DriftCheck:
    value: float
    reported: float
    expected: float
    drifted: bool

    @property
    def delta(self) -> float:
        return abs(self.reported - self.expected)


def verify_or_replace(reported: float, expected: float, *, tolerance: float = DRIFT_TOLERANCE) -> DriftCheck:
    """Return the reported value unless it deviates from ``expected`` by more than ``tolerance``."""

    drifted = abs(reported - expected) > tolerance
    return DriftCheck(
        value=expected if drifted else reported,
        reported=reported,
        expected=expected,
        drifted=drifted,
    )
