"""Unit tests for roverdeck.models.config -- defaults, total decoding, patches."""

from __future__ import annotations

import math

import pytest
from pydantic import ValidationError as PydanticValidationError

from roverdeck.exceptions import ConfigValidationError
from roverdeck.models.config import (
    DEFAULT_NAV,
    DEFAULT_SDR,
    GainMode,
    NavConfig,
    SdrConfig,
    SdrDirection,
    decode_nav_config,
    decode_sdr_config,
    patch_nav_config,
    patch_sdr_config,
    to_record,
)


class TestDefaults:
    def test_nav_defaults(self):
        assert DEFAULT_NAV == NavConfig(
            base_speed=0.6, turn_speed=1.0, position_epsilon=2, heading_tolerance=20,
        )

    def test_sdr_defaults(self):
        assert DEFAULT_SDR.frequency == 2400
        assert DEFAULT_SDR.bandwidth == 5
        assert DEFAULT_SDR.sample_rate == 5
        assert DEFAULT_SDR.gain_mode is GainMode.AUTO
        assert DEFAULT_SDR.gain_value == 40
        assert DEFAULT_SDR.direction is SdrDirection.RX
        assert DEFAULT_SDR.channel == "A"

    def test_configs_are_frozen(self):
        with pytest.raises(PydanticValidationError):
            DEFAULT_NAV.base_speed = 1.5


class TestDecodeNav:
    @pytest.mark.parametrize("raw", [None, {}, [], "nav", 42, {"unrelated": 1}])
    def test_unusable_input_yields_defaults(self, raw):
        assert decode_nav_config(raw) == DEFAULT_NAV

    def test_partial_record_keeps_present_fields(self):
        nav = decode_nav_config({"baseSpeed": 1.4})
        assert nav.base_speed == 1.4
        assert nav.turn_speed == DEFAULT_NAV.turn_speed
        assert nav.position_epsilon == DEFAULT_NAV.position_epsilon
        assert nav.heading_tolerance == DEFAULT_NAV.heading_tolerance

    def test_full_record(self):
        raw = {"baseSpeed": 1.0, "turnSpeed": 2.5, "positionEpsilon": 0.5, "headingTolerance": 90}
        nav = decode_nav_config(raw)
        assert to_record(nav) == raw

    def test_invalid_field_falls_back_without_touching_others(self):
        nav = decode_nav_config({"baseSpeed": "fast", "turnSpeed": 2.0})
        assert nav.base_speed == DEFAULT_NAV.base_speed
        assert nav.turn_speed == 2.0

    @pytest.mark.parametrize("value", [None, True, math.nan, math.inf, -1, 5, "1.2"])
    def test_rejected_base_speed_values(self, value):
        assert decode_nav_config({"baseSpeed": value}).base_speed == DEFAULT_NAV.base_speed

    def test_snake_case_keys_accepted(self):
        assert decode_nav_config({"heading_tolerance": 45}).heading_tolerance == 45


class TestDecodeSdr:
    @pytest.mark.parametrize("raw", [None, {}, (), 3.5])
    def test_unusable_input_yields_defaults(self, raw):
        assert decode_sdr_config(raw) == DEFAULT_SDR

    def test_partial_record(self):
        sdr = decode_sdr_config({"frequency": 915, "gainMode": "manual", "channel": "B"})
        assert sdr.frequency == 915
        assert sdr.gain_mode is GainMode.MANUAL
        assert sdr.channel == "B"
        assert sdr.bandwidth == DEFAULT_SDR.bandwidth
        assert sdr.direction is DEFAULT_SDR.direction

    def test_bad_enum_values_fall_back(self):
        sdr = decode_sdr_config({"gainMode": "turbo", "direction": "sideways", "gainValue": 12})
        assert sdr.gain_mode is GainMode.AUTO
        assert sdr.direction is SdrDirection.RX
        assert sdr.gain_value == 12

    def test_non_string_channel_falls_back(self):
        assert decode_sdr_config({"channel": 7}).channel == "A"

    def test_decoded_shape_is_complete(self):
        record = to_record(decode_sdr_config({"sampleRate": 10}))
        assert set(record) == {
            "frequency", "bandwidth", "sampleRate", "gainMode", "gainValue", "direction", "channel",
        }
        assert record["sampleRate"] == 10
        assert record["gainMode"] == "auto"


class TestPatches:
    def test_patch_nav_by_alias_and_name(self):
        nav = patch_nav_config(DEFAULT_NAV, {"baseSpeed": 1.2, "turn_speed": 0.4})
        assert nav.base_speed == 1.2
        assert nav.turn_speed == 0.4
        assert DEFAULT_NAV.base_speed == 0.6

    def test_patch_nav_out_of_range(self):
        with pytest.raises(ConfigValidationError):
            patch_nav_config(DEFAULT_NAV, {"headingTolerance": 270})

    def test_patch_nav_unknown_field(self):
        with pytest.raises(ConfigValidationError, match="Unknown"):
            patch_nav_config(DEFAULT_NAV, {"maxSpeed": 3})

    def test_patch_nav_rejects_non_numbers(self):
        with pytest.raises(ConfigValidationError):
            patch_nav_config(DEFAULT_NAV, {"baseSpeed": "1"})

    def test_patch_sdr(self):
        sdr = patch_sdr_config(DEFAULT_SDR, {"gainMode": "manual", "gainValue": 55})
        assert sdr.gain_mode is GainMode.MANUAL
        assert sdr.gain_value == 55

    def test_patch_sdr_bad_direction(self):
        with pytest.raises(ConfigValidationError):
            patch_sdr_config(DEFAULT_SDR, {"direction": "up"})

    def test_sdr_config_round_trips_through_record(self):
        sdr = SdrConfig(frequency=433, direction=SdrDirection.TX)
        assert decode_sdr_config(to_record(sdr)) == sdr
