"""Tests for local-window weighted resampling."""

import math
import random

import pytest

from karmic_dice.dice import FaceTables
from karmic_dice.models import Affinity, Denomination
from karmic_dice.ranking import RankingBuilder
from karmic_dice.sampler import (
    candidate_weights,
    distance_decay,
    preview_step_weights,
    resample,
    weighted_choice,
)

A = Denomination.ABILITY
LIGHT = Affinity.LIGHT


@pytest.fixture
def rankings() -> RankingBuilder:
    return RankingBuilder(FaceTables())


class ExplodingRankings:
    def build(self, *args, **kwargs):
        raise AssertionError("ranking should not be consulted")


# ── resample: pass-through cases ────────────────────────────


def test_zero_bias_skips_ranking():
    assert resample(ExplodingRankings(), A, LIGHT, 3, 0.0, 2) == 3


def test_no_ranking_returns_original():
    rankings = RankingBuilder(FaceTables({}))
    assert resample(rankings, A, LIGHT, 3, 2.0, 2) == 3


def test_unknown_face_returns_original(rankings):
    assert resample(rankings, A, LIGHT, 99, 2.0, 2) == 99


def test_zero_delta_returns_original(rankings):
    for seed in range(50):
        assert resample(rankings, A, LIGHT, 1, 6.0, 0, random.Random(seed)) == 1


def test_best_face_with_positive_bias_unchanged(rankings):
    for seed in range(50):
        assert resample(rankings, A, LIGHT, 4, 6.0, 2, random.Random(seed)) == 4


def test_worst_face_with_negative_bias_unchanged(rankings):
    for seed in range(50):
        assert resample(rankings, A, LIGHT, 1, -6.0, 2, random.Random(seed)) == 1


# ── resample: window bounds ─────────────────────────────────


def test_positive_bias_never_worse_and_within_window(rankings):
    # ability order: 1, 5, 6, 8, 2, 3, 7, 4 ; face 8 sits at rank 3
    seen = set()
    for seed in range(300):
        seen.add(resample(rankings, A, LIGHT, 8, 3.0, 2, random.Random(seed)))
    assert seen <= {8, 2, 3}
    assert len(seen) > 1


def test_negative_bias_never_better_and_within_window(rankings):
    seen = set()
    for seed in range(300):
        seen.add(resample(rankings, A, LIGHT, 8, -3.0, 2, random.Random(seed)))
    assert seen <= {5, 6, 8}
    assert len(seen) > 1


@pytest.mark.parametrize("denomination", list(Denomination))
def test_floor_holds_for_every_face(rankings, denomination):
    ranking = rankings.build(denomination, LIGHT)
    rng = random.Random(7)
    for face in ranking.faces:
        for _ in range(20):
            out = resample(rankings, denomination, LIGHT, face, 2.5, 3, rng)
            assert ranking.rank_index[face] <= ranking.rank_index[out] <= ranking.rank_index[face] + 3


def test_strong_bias_rarely_keeps_original(rankings):
    rng = random.Random(42)
    kept = sum(resample(rankings, A, LIGHT, 1, 6.0, 2, rng) == 1 for _ in range(1000))
    assert kept < 50


# ── weights ─────────────────────────────────────────────────


def test_distance_decay():
    assert distance_decay(0) == pytest.approx(3.0)
    assert distance_decay(1.0) == pytest.approx(1.0)
    assert distance_decay(-1.0) == pytest.approx(1.0)


def test_candidate_weights_values():
    weights = candidate_weights(
        window=[8, 2, 3],
        utility={8: 2, 2: 3, 3: 3},
        rank_index={8: 3, 2: 4, 3: 5},
        origin=3,
        bias=1.0,
    )
    assert [face for face, _ in weights] == [8, 2, 3]
    assert weights[0][1] == pytest.approx(math.exp(-0.5))
    assert weights[1][1] == pytest.approx(math.exp(-0.5))
    assert weights[2][1] == pytest.approx(math.exp(-1.5))


def test_candidate_weights_flat_utilities():
    weights = candidate_weights([5, 6], {5: 1, 6: 1}, {5: 1, 6: 2}, 1, 1.0)
    assert weights[0][1] > weights[1][1]


def test_weighted_choice_empty():
    assert weighted_choice([]) is None


def test_weighted_choice_zero_total_picks_first():
    assert weighted_choice([(3, 0.0), (5, 0.0)]) == 3


def test_weighted_choice_respects_weights():
    rng = random.Random(1)
    picks = [weighted_choice([(3, 0.0), (5, 1.0)], rng) for _ in range(100)]
    assert set(picks) == {5}


# ── preview ─────────────────────────────────────────────────


def test_preview_weights_sum_to_one():
    for bias in (0.0, 1.2, 6.0):
        weights = preview_step_weights(bias, 4)
        assert len(weights) == 5
        assert sum(weights) == pytest.approx(1.0)


def test_preview_zero_steps():
    assert preview_step_weights(3.0, 0) == [1.0]


def test_preview_stronger_bias_moves_further():
    weak = preview_step_weights(0.5, 3)
    strong = preview_step_weights(6.0, 3)
    assert strong[0] < weak[0]
    assert strong[3] > weak[3]
