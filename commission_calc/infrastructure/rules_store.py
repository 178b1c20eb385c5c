"""Single-slot persistence for the commission rules document."""
from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import Protocol

import structlog

from commission_calc.core.storage import ensure_data_root, rules_path
from commission_calc.domain import RulesSnapshot

logger = structlog.get_logger(__name__)


class RulesStore(Protocol):
    """Persistence contract for the rules document."""

    def read(self) -> str: ...

    def write(self, text: str) -> RulesSnapshot: ...

    def snapshot(self) -> RulesSnapshot: ...


class FileRulesStore:
    """Keeps the rules document in one UTF-8 text file.

    Writes go through a temporary file and ``os.replace`` so a concurrent
    reader sees either the previous or the new document, never a partial one.
    Concurrent writers are last-writer-wins.
    """

    def __init__(self, path: Path | None = None) -> None:
        self._path = path

    @property
    def path(self) -> Path:
        return self._path or rules_path()

    def read(self) -> str:
        try:
            return self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return ""

    def write(self, text: str) -> RulesSnapshot:
        target = self.path
        if self._path is None:
            ensure_data_root()
        target.parent.mkdir(parents=True, exist_ok=True)

        payload = str(text or "")
        fd, tmp_name = tempfile.mkstemp(dir=target.parent, prefix=".rules-", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fp:
                fp.write(payload)
            os.replace(tmp_name, target)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

        snapshot = RulesSnapshot.from_text(payload)
        logger.info("rules saved", path=str(target), version=snapshot.version[:12], length=len(payload))
        return snapshot

    def snapshot(self) -> RulesSnapshot:
        return RulesSnapshot.from_text(self.read())


class InMemoryRulesStore:
    """Rules store used in tests and embedded runs."""

    def __init__(self, text: str = "") -> None:
        self._text = text

    def read(self) -> str:
        return self._text

    def write(self, text: str) -> RulesSnapshot:
        self._text = str(text or "")
        return RulesSnapshot.from_text(self._text)

    def snapshot(self) -> RulesSnapshot:
        return RulesSnapshot.from_text(self._text)


_store: RulesStore = FileRulesStore()


def configure_rules_store(store: RulesStore) -> None:
    """Install the rules store used by the HTTP layer."""

    global _store
    _store = store


def get_rules_store() -> RulesStore:
    return _store
