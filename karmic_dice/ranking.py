"""Face ranking: worst-to-best order and tier utility per die.

Ordering keys are compared lexicographically (tuple comparison), ascending,
so the first face in the ranking is the worst:

  positive (b/a/p)  (success + triumph, triumph, advantage)
  negative (s/d/c)  (-despair, -(failure + despair), -threat)
  force (f)         (good side, -bad side), light/dark chosen by affinity

Faces with equal keys share a tier. A face's utility is its tier index,
so utilities never decrease along the ranking and tier 0 is the worst tier.

Rankings depend only on (denomination, affinity, face metadata) and are cached
for the lifetime of the builder. Affinity only matters for the force die; all
other dice are cached under the light affinity.
"""

import logging

from .dice import FaceTableSource, denomination_class, parse_face_label
from .models import Affinity, Denomination, Ranking, SymbolCounts

logger = logging.getLogger(__name__)


def ordering_key(denomination: Denomination, counts: SymbolCounts, affinity: Affinity) -> tuple[int, ...]:
    """Comparison key for one face; smaller sorts as worse."""
    kind = denomination_class(denomination)
    if kind == "positive":
        return (counts.success + counts.triumph, counts.triumph, counts.advantage)
    if kind == "negative":
        return (-counts.despair, -(counts.failure + counts.despair), -counts.threat)
    if kind == "force":
        if affinity is Affinity.DARK:
            good, bad = counts.dark, counts.light
        else:
            good, bad = counts.light, counts.dark
        return (good, -bad)
    return (0,)


def effective_affinity(denomination: Denomination, affinity: Affinity) -> Affinity:
    return affinity if denomination is Denomination.FORCE else Affinity.LIGHT


class RankingBuilder:
    """Builds and memoizes face rankings from a face metadata source."""

    def __init__(self, source: FaceTableSource) -> None:
        self._source = source
        self._cache: dict[tuple[Denomination, Affinity], Ranking] = {}

    def build(self, denomination: Denomination, affinity: Affinity = Affinity.LIGHT) -> Ranking | None:
        """Return the ranking, or None when no face table exists for the die."""
        affinity = effective_affinity(denomination, affinity)
        key = (denomination, affinity)
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        table = self._source.get_face_table(denomination)
        if not table:
            logger.warning("No face table for die %s; karmic adjustment unavailable", denomination.value)
            return None

        faces = sorted(table)
        keyed = [
            (ordering_key(denomination, parse_face_label(table[face].get("label")), affinity), face)
            for face in faces
        ]
        # stable: equal keys keep ascending face order
        keyed.sort(key=lambda item: item[0])

        rank_index: dict[int, int] = {}
        utility: dict[int, int] = {}
        tier = -1
        last_key: tuple[int, ...] | None = None
        for position, (face_key, face) in enumerate(keyed):
            if face_key != last_key:
                tier += 1
                last_key = face_key
            rank_index[face] = position
            utility[face] = tier

        ranking = Ranking(
            denomination=denomination,
            affinity=affinity,
            faces=tuple(faces),
            worst_to_best=tuple(face for _, face in keyed),
            rank_index=rank_index,
            utility=utility,
            max_tier=tier,
        )
        logger.debug(
            "Built ranking die=%s affinity=%s order=%s tiers=%d",
            denomination.value, affinity.value, ranking.worst_to_best, tier + 1,
        )
        self._cache[key] = ranking
        return ranking

    def clear(self) -> None:
        self._cache.clear()
