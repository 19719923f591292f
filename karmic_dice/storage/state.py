"""Per-user karmic state persistence (history + streak per die).

One JSON file per user under state/<user-slug>-<hash>.json holding the exact
user id and the exported history state ({"user_id": ..., "dice": {...}}). The
hash of the raw id keeps ids that slug alike ("Kim" and "kim", or two all
non-ASCII ids) in separate files.

Saves triggered from inside a running event loop are debounced: rapid rolls
collapse into one write per user after SAVE_DELAY seconds. Outside an event
loop the write happens immediately.
"""

import asyncio
import hashlib
import json
import logging
from pathlib import Path
from typing import Any

from .core import slugify, state_dir

logger = logging.getLogger(__name__)

SAVE_DELAY = 0.75


def state_path(user_id: str) -> Path:
    digest = hashlib.sha1(user_id.encode("utf-8")).hexdigest()[:12]
    return state_dir() / f"{slugify(user_id)}-{digest}.json"


def _read(path: Path) -> dict[str, Any] | None:
    try:
        data = json.loads(path.read_text())
    except json.JSONDecodeError:
        logger.warning("Unreadable karmic state at %s", path)
        return None
    if not isinstance(data, dict) or not isinstance(data.get("dice"), dict):
        logger.warning("Malformed karmic state at %s", path)
        return None
    return data


def load_state(user_id: str) -> dict[str, Any]:
    """Load a user's saved state. Returns {"dice": {}} if none or unreadable."""
    path = state_path(user_id)
    if not path.is_file():
        return {"dice": {}}
    data = _read(path)
    if data is None:
        return {"dice": {}}
    if data.get("user_id", user_id) != user_id:
        logger.warning("State file %s belongs to user %r, not %r", path, data.get("user_id"), user_id)
        return {"dice": {}}
    return {"dice": data["dice"]}


def save_state(user_id: str, payload: dict[str, Any]) -> None:
    data = {"user_id": user_id, "dice": payload.get("dice", {})}
    state_path(user_id).write_text(json.dumps(data, indent=2))
    logger.info("Saved karmic state for user %s", user_id)


def delete_state(user_id: str) -> bool:
    path = state_path(user_id)
    if not path.is_file():
        return False
    path.unlink()
    return True


def list_state_users() -> list[str]:
    """User ids of every readable saved state, sorted."""
    users = []
    for path in state_dir().glob("*.json"):
        data = _read(path)
        if data is not None and isinstance(data.get("user_id"), str):
            users.append(data["user_id"])
    return sorted(users)


class StateSaver:
    """Debounced writer: the latest payload per user wins."""

    def __init__(self, delay: float = SAVE_DELAY) -> None:
        self._delay = delay
        self._pending: dict[str, dict[str, Any]] = {}
        self._handle: asyncio.TimerHandle | None = None

    @property
    def pending(self) -> list[str]:
        return sorted(self._pending)

    def schedule(self, user_id: str, payload: dict[str, Any]) -> None:
        self._pending[user_id] = payload
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self.flush()
            return
        if self._handle is not None:
            self._handle.cancel()
        self._handle = loop.call_later(self._delay, self.flush)

    def flush(self) -> None:
        """Write every pending payload now."""
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        pending, self._pending = self._pending, {}
        for user_id, payload in pending.items():
            try:
                save_state(user_id, payload)
            except OSError:
                logger.exception("Failed saving karmic state for user %s", user_id)


_saver = StateSaver()


def reset_saver() -> None:
    """Drop pending writes (called when the data directory changes)."""
    global _saver
    if _saver._handle is not None:
        _saver._handle.cancel()
    _saver = StateSaver()


def schedule_save(user_id: str, payload: dict[str, Any]) -> None:
    _saver.schedule(user_id, payload)


def flush_state() -> None:
    _saver.flush()


def pending_saves() -> list[str]:
    return _saver.pending
