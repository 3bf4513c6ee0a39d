"""Tests for the canonical state shape and its freeze/thaw helpers."""

from types import MappingProxyType

import pytest

from kestrel.contracts import KNOWN_KEYS, default_state, freeze, thaw, unknown_keys


class TestDefaultState:
    def test_every_top_level_key_is_known(self):
        assert set(default_state()) == KNOWN_KEYS

    def test_each_call_returns_a_fresh_copy(self):
        first = default_state()
        first["sleep"]["hrv"] = 50
        assert default_state()["sleep"]["hrv"] is None

    def test_measurements_start_unknown(self):
        state = default_state()
        assert state["sleep"]["hrv"] is None
        assert state["mindspace"]["stress"] is None
        assert state["physical_load"]["acwr"] is None


class TestUnknownKeys:
    def test_reports_unknown_keys_in_input_order(self):
        assert unknown_keys(["sleep", "zeta", "fuel", "alpha"]) == ["zeta", "alpha"]

    def test_known_keys_pass(self):
        assert unknown_keys(default_state()) == []


class TestFreeze:
    def test_nested_mappings_become_read_only(self):
        frozen = freeze({"sleep": {"hrv": 60}, "timeline": {"sessions": [{"id": "a"}]}})

        assert isinstance(frozen, MappingProxyType)
        with pytest.raises(TypeError):
            frozen["sleep"]["hrv"] = 10  # type: ignore[index]
        with pytest.raises(TypeError):
            frozen["timeline"]["sessions"][0]["id"] = "b"  # type: ignore[index]

    def test_lists_become_tuples(self):
        frozen = freeze({"notifications": [1, 2]})
        assert frozen["notifications"] == (1, 2)

    def test_freeze_copies_its_input(self):
        source = {"sleep": {"hrv": 60}}
        frozen = freeze(source)
        source["sleep"]["hrv"] = 1
        assert frozen["sleep"]["hrv"] == 60

    def test_thaw_round_trips_to_plain_data(self):
        state = default_state()
        state["timeline"]["sessions"] = [{"id": "a", "tags": ["x"]}]
        assert thaw(freeze(state)) == state
        assert isinstance(thaw(freeze(state))["timeline"]["sessions"], list)
