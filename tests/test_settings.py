"""Tests for core/settings.py."""
import math

import pytest

from core.settings import AudioSettings, InteractionSettings, Settings, clamp_tempo


class TestClampTempo:
    @pytest.mark.parametrize("value,expected", [
        (120, 120.0),
        ("90", 90.0),
        (0, 120.0),
        (-5, 120.0),
        (None, 120.0),
        ("fast", 120.0),
        (math.nan, 120.0),
        (math.inf, 120.0),
        (10, 20.0),
        (1000, 300.0),
    ])
    def test_values(self, value, expected):
        assert clamp_tempo(value) == expected


class TestSettings:
    def test_defaults(self):
        settings = Settings()
        assert settings.playback.tempo == 120.0
        assert settings.playback.block_beats == 4
        assert settings.interaction.long_press_ms == 400
        assert settings.interaction.long_press_seconds == 0.4
        assert settings.audio.base_octave == 4

    def test_partial_merge(self):
        settings = Settings.from_dict({
            "playback": {"tempo": 90, "loop": True},
            "audio": {"master_volume": 0.5},
        })
        assert settings.playback.tempo == 90.0
        assert settings.playback.loop is True
        assert settings.playback.block_beats == 4
        assert settings.audio.master_volume == 0.5
        assert settings.audio.chord_gain == AudioSettings().chord_gain

    def test_unknown_keys_ignored(self):
        settings = Settings.from_dict({"playback": {"swing": 0.3}, "theme": {"dark": True}})
        assert settings == Settings()

    def test_empty_mapping(self):
        assert Settings.from_dict(None) == Settings()
        assert Settings.from_dict({}) == Settings()

    def test_out_of_range_values_clamped(self):
        settings = Settings.from_dict({
            "audio": {"master_volume": 3.0, "chord_duration": -1},
            "playback": {"tempo": 0, "block_beats": -2},
        })
        assert settings.audio.master_volume == 1.0
        assert settings.audio.chord_duration == 0.8
        assert settings.playback.tempo == 120.0
        assert settings.playback.block_beats == 4

    def test_invalid_long_press(self):
        assert InteractionSettings(long_press_ms=0).long_press_ms == 400

    def test_dict_conversion(self):
        settings = Settings.from_dict({"playback": {"tempo": 72}})
        assert Settings.from_dict(settings.to_dict()) == settings
        assert settings.to_dict()["playback"]["tempo"] == 72.0
