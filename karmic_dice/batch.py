"""Roll batching: one context per logical roll.

A context is opened when a roll starts, collects every final face the roll
produces (grouped by die) and the set of dice whose low-average condition
fired, and is closed when the roll finishes, also when it raises. Closing
commits the collected faces to history and updates each touched die's streak
exactly once: +1 if the die triggered during the roll, otherwise reset to 0.

Contexts form a stack. Re-entering for the same roll object reuses the open
context; a different roll (e.g. one evaluated from inside another) pushes a
new one.
"""

import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any

from .history import DEFAULT_WINDOW_SIZE, HistoryStore
from .models import Denomination

logger = logging.getLogger(__name__)

CommitListener = Callable[["RollContext"], None]


@dataclass(eq=False)
class RollContext:
    user_id: str
    roll: Any = None
    actor_id: str | None = None
    faces: dict[Denomination, list[int]] = field(default_factory=dict)
    triggered: set[Denomination] = field(default_factory=set)
    closed: bool = False

    def add_face(self, denomination: Denomination, face: int) -> None:
        self.faces.setdefault(denomination, []).append(face)

    def mark_triggered(self, denomination: Denomination) -> None:
        self.triggered.add(denomination)


class RollBatcher:
    """Explicit context stack plus commit-on-close into a HistoryStore."""

    def __init__(
        self,
        history: HistoryStore,
        window_size: Callable[[], int] = lambda: DEFAULT_WINDOW_SIZE,
    ) -> None:
        self._history = history
        self._window_size = window_size
        self._stack: list[RollContext] = []
        self._listeners: list[CommitListener] = []

    def add_listener(self, listener: CommitListener) -> None:
        """Call `listener(ctx)` after each context has been committed."""
        self._listeners.append(listener)

    def current(self) -> RollContext | None:
        return self._stack[-1] if self._stack else None

    @property
    def depth(self) -> int:
        return len(self._stack)

    def begin(self, user_id: str, roll: Any = None, actor_id: str | None = None) -> RollContext:
        ctx = RollContext(user_id=user_id, roll=roll, actor_id=actor_id)
        self._stack.append(ctx)
        logger.debug("ctx begin user=%s actor=%s depth=%d", user_id, actor_id or "?", len(self._stack))
        return ctx

    def end(self, ctx: RollContext) -> None:
        """Pop the context (wherever it sits in the stack) and commit it once."""
        if ctx.closed:
            return
        if self._stack and self._stack[-1] is ctx:
            self._stack.pop()
        else:
            for i in range(len(self._stack) - 1, -1, -1):
                if self._stack[i] is ctx:
                    del self._stack[i]
                    break
        ctx.closed = True

        window_size = self._window_size()
        for denomination, faces in ctx.faces.items():
            self._history.extend(ctx.user_id, denomination, faces, window_size)
            if denomination in ctx.triggered:
                self._history.bump_streak(ctx.user_id, denomination)
            else:
                self._history.reset_streak(ctx.user_id, denomination)

        logger.debug(
            "ctx end user=%s dice=[%s] triggered=[%s]",
            ctx.user_id,
            ",".join(d.value for d in ctx.faces),
            ",".join(sorted(d.value for d in ctx.triggered)),
        )
        for listener in self._listeners:
            try:
                listener(ctx)
            except Exception:
                logger.exception("Roll commit listener failed for user %s", ctx.user_id)

    @contextmanager
    def open(self, user_id: str, roll: Any = None, actor_id: str | None = None) -> Iterator[RollContext]:
        """Yield the context for `roll`, opening (and later closing) one if needed."""
        existing = self.current()
        if existing is not None and roll is not None and existing.roll is roll:
            yield existing
            return

        ctx = self.begin(user_id, roll, actor_id)
        try:
            yield ctx
        finally:
            self.end(ctx)
