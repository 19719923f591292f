"""Storage initialization, path helpers, and slug utilities."""

import re
import unicodedata
from pathlib import Path

_data_dir: Path | None = None


def slugify(name: str) -> str:
    """Convert a user id or name to a filesystem-safe slug.

    "Gamemaster Kim" → "gamemaster-kim"
    """
    text = unicodedata.normalize("NFKD", str(name))
    text = text.encode("ascii", "ignore").decode("ascii")
    text = text.lower()
    text = re.sub(r"['\"]", "", text)  # strip apostrophes/quotes before hyphenation
    text = re.sub(r"[^a-z0-9]+", "-", text)
    text = text.strip("-")
    return text or "anonymous"


def init_storage(data_dir: Path) -> None:
    global _data_dir
    from . import state as _state_mod

    _data_dir = data_dir
    _data_dir.mkdir(parents=True, exist_ok=True)
    state_dir().mkdir(exist_ok=True)
    _state_mod.reset_saver()


def data_dir() -> Path:
    assert _data_dir is not None, "Call init_storage() before using storage"
    return _data_dir


def state_dir() -> Path:
    return data_dir() / "state"
