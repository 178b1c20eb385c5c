from __future__ import annotations

import os
from pathlib import Path


RULES_FILENAME = "rules.txt"


def data_root() -> Path:
    env_root = os.getenv("COMMISSION_DATA_DIR")
    if env_root:
        return Path(env_root).expanduser().resolve()
    return Path(__file__).resolve().parents[2] / "data"


def ensure_data_root() -> Path:
    """Ensure the data directory exists and return it."""

    root = data_root()
    root.mkdir(parents=True, exist_ok=True)
    return root


def rules_path() -> Path:
    return data_root() / RULES_FILENAME
