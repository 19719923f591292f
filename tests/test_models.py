"""Tests for karmic_dice.models — settings validation and result models."""

import pytest
from pydantic import ValidationError

from karmic_dice.models import (
    Affinity,
    AveragesReport,
    Denomination,
    FaceResult,
    KarmicSettings,
    SymbolCounts,
)


class TestKarmicSettingsDefaults:
    def test_defaults(self) -> None:
        s = KarmicSettings()
        assert s.enabled is True
        assert s.force_karma_enabled is True
        assert s.window_size == 50
        assert s.min_samples == 10
        assert s.low_threshold == 0.35
        assert s.base_bias == 1.2
        assert s.streak_ramp == 0.6
        assert s.max_bias == 6.0
        assert s.max_delta_ranks == 2
        assert s.default_affinity is Affinity.LIGHT
        assert s.affinity_map == {}

    def test_unknown_keys_ignored(self) -> None:
        s = KarmicSettings.model_validate({"window_size": 20, "colour": "blue"})
        assert s.window_size == 20

    def test_non_mapping_gives_defaults(self) -> None:
        assert KarmicSettings.model_validate("nonsense") == KarmicSettings()
        assert KarmicSettings.model_validate(None) == KarmicSettings()


class TestKarmicSettingsFallback:
    @pytest.mark.parametrize("value", [0, -3, "abc", None, float("nan"), float("inf"), True])
    def test_bad_window_size_falls_back(self, value) -> None:
        assert KarmicSettings.model_validate({"window_size": value}).window_size == 50

    def test_zero_min_samples_kept(self) -> None:
        assert KarmicSettings.model_validate({"min_samples": 0}).min_samples == 0

    def test_negative_min_samples_falls_back(self) -> None:
        assert KarmicSettings.model_validate({"min_samples": -1}).min_samples == 10

    def test_zero_max_delta_kept(self) -> None:
        assert KarmicSettings.model_validate({"max_delta_ranks": 0}).max_delta_ranks == 0

    def test_fractional_max_delta_floored(self) -> None:
        assert KarmicSettings.model_validate({"max_delta_ranks": 3.7}).max_delta_ranks == 3

    def test_numeric_strings_accepted(self) -> None:
        s = KarmicSettings.model_validate({"base_bias": "2.5", "window_size": "30"})
        assert s.base_bias == 2.5
        assert s.window_size == 30

    @pytest.mark.parametrize("name,default", [("base_bias", 1.2), ("streak_ramp", 0.6), ("max_bias", 6.0)])
    def test_negative_strengths_fall_back(self, name, default) -> None:
        assert getattr(KarmicSettings.model_validate({name: -0.1}), name) == default

    def test_threshold_clamped(self) -> None:
        assert KarmicSettings.model_validate({"low_threshold": 1.7}).low_threshold == 1.0
        assert KarmicSettings.model_validate({"low_threshold": -2}).low_threshold == 0.0

    def test_threshold_non_finite_falls_back(self) -> None:
        assert KarmicSettings.model_validate({"low_threshold": float("nan")}).low_threshold == 0.35

    def test_boolean_strings(self) -> None:
        s = KarmicSettings.model_validate({"enabled": "false", "force_karma_enabled": "yes"})
        assert s.enabled is False
        assert s.force_karma_enabled is True

    def test_bad_boolean_falls_back(self) -> None:
        assert KarmicSettings.model_validate({"enabled": "maybe"}).enabled is True

    def test_default_affinity(self) -> None:
        assert KarmicSettings.model_validate({"default_affinity": "dark"}).default_affinity is Affinity.DARK
        assert KarmicSettings.model_validate({"default_affinity": "grey"}).default_affinity is Affinity.LIGHT

    def test_affinity_map_filters_invalid_entries(self) -> None:
        s = KarmicSettings.model_validate({
            "affinity_map": {"actor1": "dark", "actor2": "default", "actor3": 7, "actor4": "light"},
        })
        assert s.affinity_map == {"actor1": Affinity.DARK, "actor4": Affinity.LIGHT}

    def test_affinity_map_not_a_dict(self) -> None:
        assert KarmicSettings.model_validate({"affinity_map": ["dark"]}).affinity_map == {}


class TestSymbolCounts:
    def test_blank_is_zero(self) -> None:
        c = SymbolCounts()
        assert c.success == 0 and c.dark == 0

    def test_negative_rejected(self) -> None:
        with pytest.raises(ValidationError):
            SymbolCounts(success=-1)


class TestFaceResult:
    def test_adjusted_flag(self) -> None:
        assert FaceResult(denomination=Denomination.ABILITY, original=1, final=2).adjusted
        assert not FaceResult(denomination=Denomination.ABILITY, original=3, final=3).adjusted


class TestAveragesReport:
    def test_default_payload(self) -> None:
        dumped = AveragesReport().model_dump()
        assert dumped["a"] == {"n": 0, "avg": None}
        assert dumped["f"] == {"n": 0, "light": None, "dark": None}
        assert set(dumped) == {"b", "a", "p", "s", "d", "c", "f"}
