"""Weighted resampling of a rolled face within a local rank window.

bias > 0 prefers better faces and never returns a face ranked below the
original; bias < 0 mirrors that toward worse faces. The candidate window is
at most `max_delta_ranks` rank positions either side of the original.

Within the window each candidate gets

    weight = exp(bias * (u - 0.5) - distance * decay)
    decay  = DISTANCE_DECAY / (DECAY_OFFSET + |bias|)

where u is the candidate's tier normalized across the window and distance is
its rank distance from the original. Stronger bias flattens the distance
penalty so it reaches further. Both constants are empirical.
"""

import math
import random
from collections.abc import Sequence

from .models import Affinity, Denomination
from .ranking import RankingBuilder

DISTANCE_DECAY = 1.5
DECAY_OFFSET = 0.5


def distance_decay(bias: float) -> float:
    return DISTANCE_DECAY / (DECAY_OFFSET + abs(bias))


def weighted_choice(candidates: Sequence[tuple[int, float]], rng: random.Random | None = None) -> int | None:
    """Pick a face with probability proportional to its weight.

    A non-positive total picks the first candidate.
    """
    if not candidates:
        return None
    total = sum(weight for _, weight in candidates)
    if total <= 0:
        return candidates[0][0]

    r = (rng or random).random() * total
    for face, weight in candidates:
        r -= weight
        if r <= 0:
            return face
    return candidates[-1][0]


def candidate_weights(
    window: Sequence[int],
    utility: dict[int, int],
    rank_index: dict[int, int],
    origin: int,
    bias: float,
) -> list[tuple[int, float]]:
    utils = [utility.get(face, 0) for face in window]
    low = min(utils)
    span = max(1, max(utils) - low)
    decay = distance_decay(bias)

    weighted = []
    for face, u in zip(window, utils):
        u_norm = (u - low) / span
        dist = abs(rank_index.get(face, origin) - origin)
        weighted.append((face, math.exp(bias * (u_norm - 0.5) - dist * decay)))
    return weighted


def resample(
    rankings: RankingBuilder,
    denomination: Denomination,
    affinity: Affinity,
    original_face: int,
    bias: float,
    max_delta_ranks: int,
    rng: random.Random | None = None,
) -> int:
    """Return a face near `original_face`, nudged in the direction of `bias`.

    Returns the original face unchanged when bias is 0 (without consulting
    the ranking), when no ranking exists, when the face is not in the
    ranking, or when the window holds a single face.
    """
    if not bias:
        return original_face

    ranking = rankings.build(denomination, affinity)
    if ranking is None:
        return original_face

    idx = ranking.rank_index.get(original_face)
    if idx is None:
        return original_face

    steps = max(0, int(max_delta_ranks))
    lo = max(0, idx - steps)
    hi = min(len(ranking.worst_to_best) - 1, idx + steps)
    if bias > 0:
        lo = idx
    else:
        hi = idx

    window = ranking.worst_to_best[lo: hi + 1]
    if len(window) <= 1:
        return original_face

    weighted = candidate_weights(window, ranking.utility, ranking.rank_index, idx, bias)
    choice = weighted_choice(weighted, rng)
    return original_face if choice is None else choice


def preview_step_weights(bias: float, steps: int) -> list[float]:
    """Probabilities of moving 0..steps rank steps for evenly spaced tiers.

    Used for the settings preview; assumes every step is one tier better.
    """
    b = max(0.0, bias)
    if steps <= 0:
        return [1.0]
    decay = distance_decay(b)
    weights = [math.exp(b * (i / steps - 0.5) - i * decay) for i in range(steps + 1)]
    total = sum(weights) or 1.0
    return [w / total for w in weights]
