"""Domain layer definitions."""

from .rules import RulesSnapshot

__all__ = [
    "RulesSnapshot",
]
