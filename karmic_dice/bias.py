"""Bias calculation from rolling average and low-average streak.

Checks, in order, each returning 0 (no adjustment):
  1. karma disabled globally
  2. force die while force karma is disabled
  3. fewer than `min_samples` recorded faces for the die
  4. no average available (empty history or no ranking)
  5. average at or above `low_threshold`

Otherwise the die is marked as triggered on the roll context and the bias is
min(max_bias, base_bias + streak * streak_ramp), where streak is the count of
consecutive triggered rolls before this one.
"""

from .batch import RollContext
from .history import HistoryStore
from .models import Affinity, Denomination, KarmicSettings


def resolve_affinity(settings: KarmicSettings, user_id: str | None, actor_id: str | None) -> Affinity:
    """Actor override, then legacy per-user override, then the configured default."""
    overrides = settings.affinity_map
    if actor_id and actor_id in overrides:
        return overrides[actor_id]
    if user_id and user_id in overrides:
        return overrides[user_id]
    return settings.default_affinity


def context_affinity(settings: KarmicSettings, ctx: RollContext, denomination: Denomination) -> Affinity:
    if denomination is not Denomination.FORCE:
        return Affinity.LIGHT
    return resolve_affinity(settings, ctx.user_id, ctx.actor_id)


def ramp(settings: KarmicSettings, streak: int) -> float:
    return min(settings.max_bias, settings.base_bias + streak * settings.streak_ramp)


def compute_bias(
    ctx: RollContext,
    denomination: Denomination,
    settings: KarmicSettings,
    history: HistoryStore,
) -> float:
    if not settings.enabled:
        return 0.0
    if denomination is Denomination.FORCE and not settings.force_karma_enabled:
        return 0.0

    affinity = context_affinity(settings, ctx, denomination)

    if history.sample_count(ctx.user_id, denomination) < settings.min_samples:
        return 0.0

    average = history.average01(ctx.user_id, denomination, affinity)
    if average is None:
        return 0.0
    if average >= settings.low_threshold:
        return 0.0

    ctx.mark_triggered(denomination)
    return ramp(settings, history.streak(ctx.user_id, denomination))
