"""Karmic engine: one session object owning rankings, history and roll contexts.

Host integration:

    engine = KarmicEngine(settings=storage.get_settings)
    with engine.roll_context(user_id, roll=roll_obj, actor_id=actor_id) as ctx:
        for each die face the host produced:
            result = engine.adjust_face(ctx, denomination, face, face_count)
            use result.final instead of the rolled face

or let the engine roll uniform dice itself with `roll_pool()`.

Faces of unknown dice pass through untouched and are not recorded. History and
streaks are only changed when a context closes (see batch.py).
"""

import logging
import random
from collections.abc import Callable, Iterable, Iterator, Mapping
from contextlib import contextmanager
from typing import Any

from .batch import CommitListener, RollBatcher, RollContext
from .bias import compute_bias, context_affinity
from .dice import FaceTables, FaceTableSource, parse_denomination
from .history import HistoryStore
from .models import Denomination, FaceResult, KarmicSettings
from .ranking import RankingBuilder
from .sampler import resample

logger = logging.getLogger(__name__)

SettingsProvider = Callable[[], KarmicSettings]
StateLoader = Callable[[str], Any]


class KarmicEngine:
    """Karmic adjustment for any number of users.

    Args:
        settings:     A KarmicSettings, or a zero-argument callable returning
                      the current settings (read on every use).
        face_tables:  Face metadata source. Defaults to the standard dice.
        rng:          Random source for uniform rolls and resampling.
        state_loader: Called with a user id the first time that user is seen;
                      its return value is imported as the user's state.
        state_users:  Returns the ids of every user with saved state, so
                      `users()` also lists players not seen since a restart.
    """

    def __init__(
        self,
        settings: KarmicSettings | SettingsProvider | None = None,
        face_tables: FaceTableSource | None = None,
        rng: random.Random | None = None,
        state_loader: StateLoader | None = None,
        state_users: Callable[[], Iterable[str]] | None = None,
    ) -> None:
        if settings is None:
            settings = KarmicSettings()
        if isinstance(settings, KarmicSettings):
            fixed = settings
            self._settings: SettingsProvider = lambda: fixed
        else:
            self._settings = settings
        self.face_tables = face_tables if face_tables is not None else FaceTables()
        self.rankings = RankingBuilder(self.face_tables)
        self.history = HistoryStore(self.rankings)
        self.batches = RollBatcher(self.history, window_size=lambda: self.settings.window_size)
        self.rng = rng or random.Random()
        self._state_loader = state_loader
        self._state_users = state_users
        self._known_users: set[str] = set()

    @property
    def settings(self) -> KarmicSettings:
        return self._settings()

    def add_commit_listener(self, listener: CommitListener) -> None:
        self.batches.add_listener(listener)

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    def ensure_user(self, user_id: str, create: bool = True) -> bool:
        """Load a user's persisted state the first time they are seen.

        With create=False a user with neither in-memory nor saved state is
        left unregistered, so read-only lookups do not grow the user list.
        Returns whether the user is known afterwards.
        """
        if user_id in self._known_users:
            return True
        if self._state_loader is not None and not self.history.has_user(user_id):
            payload = self._state_loader(user_id)
            if isinstance(payload, dict) and payload.get("dice"):
                self.history.import_state(user_id, payload)
                logger.info("Loaded karmic state for user %s", user_id)
        if not create and not self.history.has_user(user_id):
            return False
        self._known_users.add(user_id)
        return True

    def users(self) -> list[str]:
        """Users seen by this engine plus every user with saved state."""
        saved = set(self._state_users()) if self._state_users is not None else set()
        return sorted(self._known_users | set(self.history.users()) | saved)

    def export_state(self, user_id: str) -> dict[str, Any]:
        return self.history.export_state(user_id)

    def import_state(self, user_id: str, payload: Any) -> None:
        self._known_users.add(user_id)
        self.history.import_state(user_id, payload)

    # ------------------------------------------------------------------
    # Rolling
    # ------------------------------------------------------------------

    @contextmanager
    def roll_context(self, user_id: str, roll: Any = None, actor_id: str | None = None) -> Iterator[RollContext]:
        self.ensure_user(user_id)
        with self.batches.open(user_id, roll=roll, actor_id=actor_id) as ctx:
            yield ctx

    def adjust_face(
        self,
        ctx: RollContext,
        denomination: Any,
        original_face: int,
        face_count: int | None = None,
    ) -> FaceResult | None:
        """Possibly replace one rolled face and record the final face on `ctx`.

        Returns None for dice the engine does not know. When `face_count`
        disagrees with the face table the face is recorded but not adjusted.
        """
        die = parse_denomination(denomination)
        if die is None:
            return None
        return self._adjust(ctx, die, original_face, face_count)

    def _adjust(
        self,
        ctx: RollContext,
        die: Denomination,
        original_face: int,
        face_count: int | None,
    ) -> FaceResult:
        settings = self.settings
        bias = 0.0
        final = original_face
        if face_count is not None and 0 < self.die_face_count(die) != face_count:
            logger.warning(
                "Die %s rolled with %s faces but its table has %d; not adjusting",
                die.value, face_count, self.die_face_count(die),
            )
        elif die is not Denomination.FORCE or settings.force_karma_enabled:
            bias = compute_bias(ctx, die, settings, self.history)
            final = resample(
                self.rankings,
                die,
                context_affinity(settings, ctx, die),
                original_face,
                bias,
                settings.max_delta_ranks,
                self.rng,
            )

        ctx.add_face(die, final)
        logger.debug("die=%s face=%s -> %s bias=%.2f", die.value, original_face, final, bias)
        return FaceResult(denomination=die, original=original_face, final=final, bias=bias)

    def die_face_count(self, denomination: Denomination) -> int:
        table = self.face_tables.get_face_table(denomination)
        return len(table) if table else 0

    def roll_die(self, ctx: RollContext, denomination: Any) -> FaceResult:
        """Roll one uniform die from its face table, then adjust it."""
        die = parse_denomination(denomination)
        if die is None:
            raise ValueError(f"Unknown die: {denomination!r}")
        table = self.face_tables.get_face_table(die)
        if not table:
            raise ValueError(f"No face table for die: {die.value}")
        face = self.rng.choice(sorted(table))
        return self._adjust(ctx, die, face, None)

    def roll_pool(
        self,
        user_id: str,
        pool: Mapping[Any, int],
        actor_id: str | None = None,
        roll: Any = None,
    ) -> list[FaceResult]:
        """Roll a whole dice pool ({"a": 2, "d": 1}) as one logical roll."""
        dice = []
        for key, count in pool.items():
            die = parse_denomination(key)
            if die is None:
                raise ValueError(f"Unknown die: {key!r}")
            dice.extend([die] * max(0, int(count)))

        results: list[FaceResult] = []
        with self.roll_context(user_id, roll=roll if roll is not None else object(), actor_id=actor_id) as ctx:
            for die in dice:
                results.append(self.roll_die(ctx, die))
        return results
