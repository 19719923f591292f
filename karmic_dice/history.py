"""Rolling per-user history of final faces, plus the low-average streak.

State shape (also the persisted form):

    {"dice": {"a": {"history": [3, 1, 8, ...], "low_streak": 2}, ...}}

History per (user, die) is bounded by the configured window size; the oldest
entries are dropped first. The streak counts consecutive rolls of that die on
which the low-average condition fired.
"""

import logging
from dataclasses import dataclass, field
from typing import Any

from .dice import parse_denomination
from .models import Affinity, Denomination
from .ranking import RankingBuilder

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_SIZE = 50


@dataclass
class DieState:
    history: list[int] = field(default_factory=list)
    low_streak: int = 0


def _window(window_size: Any) -> int:
    try:
        size = int(window_size)
    except (TypeError, ValueError, OverflowError):
        return DEFAULT_WINDOW_SIZE
    return size if size >= 1 else DEFAULT_WINDOW_SIZE


class HistoryStore:
    """History and streaks for every user of one engine.

    Each user's state is private to that user; `average01` and friends only
    ever look at the requested user's entries.
    """

    def __init__(self, rankings: RankingBuilder) -> None:
        self._rankings = rankings
        self._users: dict[str, dict[Denomination, DieState]] = {}

    def die_state(self, user_id: str, denomination: Denomination) -> DieState:
        dice = self._users.setdefault(user_id, {})
        state = dice.get(denomination)
        if state is None:
            state = dice[denomination] = DieState()
        return state

    def _peek(self, user_id: str, denomination: Denomination) -> DieState | None:
        """Read-only lookup; never creates state for unknown users."""
        return self._users.get(user_id, {}).get(denomination)

    def has_user(self, user_id: str) -> bool:
        return user_id in self._users

    def users(self) -> list[str]:
        return sorted(self._users)

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    def record(
        self,
        user_id: str,
        denomination: Denomination,
        face: int,
        window_size: int = DEFAULT_WINDOW_SIZE,
    ) -> None:
        self.extend(user_id, denomination, [face], window_size)

    def extend(
        self,
        user_id: str,
        denomination: Denomination,
        faces: list[int],
        window_size: int = DEFAULT_WINDOW_SIZE,
    ) -> None:
        """Append faces in order, then trim from the front to the window."""
        state = self.die_state(user_id, denomination)
        state.history.extend(faces)
        size = _window(window_size)
        if len(state.history) > size:
            del state.history[: len(state.history) - size]

    def history(self, user_id: str, denomination: Denomination) -> list[int]:
        state = self._peek(user_id, denomination)
        return list(state.history) if state else []

    def sample_count(self, user_id: str, denomination: Denomination) -> int:
        state = self._peek(user_id, denomination)
        return len(state.history) if state else 0

    def average01(
        self,
        user_id: str,
        denomination: Denomination,
        affinity: Affinity = Affinity.LIGHT,
    ) -> float | None:
        """Mean normalized utility of the recorded faces.

        None when there is no history or no ranking. Exactly 0 when every
        face of the die sits in a single tier. Faces missing from the ranking
        count as the worst tier.
        """
        state = self._peek(user_id, denomination)
        history = state.history if state else []
        if not history:
            return None
        ranking = self._rankings.build(denomination, affinity)
        if ranking is None:
            return None
        if ranking.max_tier <= 0:
            return 0.0
        total = sum(ranking.utility.get(face, 0) / ranking.max_tier for face in history)
        return total / len(history)

    # ------------------------------------------------------------------
    # Streak
    # ------------------------------------------------------------------

    def streak(self, user_id: str, denomination: Denomination) -> int:
        state = self._peek(user_id, denomination)
        return state.low_streak if state else 0

    def bump_streak(self, user_id: str, denomination: Denomination) -> int:
        state = self.die_state(user_id, denomination)
        state.low_streak += 1
        return state.low_streak

    def reset_streak(self, user_id: str, denomination: Denomination) -> None:
        self.die_state(user_id, denomination).low_streak = 0

    # ------------------------------------------------------------------
    # Export / import
    # ------------------------------------------------------------------

    def export_state(self, user_id: str) -> dict[str, Any]:
        dice = self._users.get(user_id, {})
        return {
            "dice": {
                denomination.value: {"history": list(state.history), "low_streak": state.low_streak}
                for denomination, state in dice.items()
            }
        }

    def import_state(self, user_id: str, payload: Any) -> None:
        """Replace a user's state from its exported form.

        Malformed parts are skipped: unknown dice, non-integer faces, and
        negative or non-integer streaks.
        """
        dice: dict[Denomination, DieState] = {}
        raw_dice = payload.get("dice") if isinstance(payload, dict) else None
        if not isinstance(raw_dice, dict):
            if payload:
                logger.warning("Ignoring malformed karmic state for user %s", user_id)
            raw_dice = {}

        for code, raw in raw_dice.items():
            denomination = parse_denomination(code)
            if denomination is None or not isinstance(raw, dict):
                continue
            history = raw.get("history")
            faces = [
                face for face in (history if isinstance(history, list) else [])
                if isinstance(face, int) and not isinstance(face, bool)
            ]
            streak = raw.get("low_streak", raw.get("lowStreak", 0))
            if not isinstance(streak, int) or isinstance(streak, bool) or streak < 0:
                streak = 0
            dice[denomination] = DieState(history=faces, low_streak=streak)

        self._users[user_id] = dice

    def forget(self, user_id: str) -> None:
        self._users.pop(user_id, None)
