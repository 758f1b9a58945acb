"""Tests for effect registry."""

import pytest

from effects.registry import get, list_all, register, require


def test_registry_contains_pipeline_effects():
    for effect_id in ("fx.tone", "fx.pattern_dither", "fx.median", "fx.invert"):
        info = get(effect_id)
        assert info is not None, effect_id
        assert callable(info["fn"])


def test_invert_metadata():
    info = get("fx.invert")
    assert info["name"] == "Invert"
    assert info["category"] == "fx"


def test_list_all_has_correct_shape():
    effects = list_all()
    assert len(effects) >= 4
    for effect in effects:
        assert set(effect) == {"id", "name", "category", "params"}


def test_param_schemas_have_bounds():
    for effect in list_all():
        for key, pdef in effect["params"].items():
            if pdef["type"] in ("int", "float"):
                assert pdef["min"] <= pdef["default"] <= pdef["max"], (effect["id"], key)


def test_get_nonexistent_returns_none():
    assert get("fx.nonexistent") is None


def test_require_unknown_raises():
    with pytest.raises(ValueError, match="unknown effect: fx.nope"):
        require("fx.nope")
    assert require("fx.median") is get("fx.median")


def test_list_all_by_category():
    assert [e["id"] for e in list_all("dither")] == ["fx.pattern_dither"]
    assert list_all("audio") == []


def test_duplicate_registration_rejected():
    with pytest.raises(ValueError, match="already registered"):
        register("fx.invert", lambda frame, params, *, pattern=None: frame, {}, "X", "fx")
    assert get("fx.invert")["name"] == "Invert"
