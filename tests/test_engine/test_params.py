"""Tests for engine.params — parameter bag and contract validation."""

import math

import pytest

from engine.params import MAX_MEDIAN_RADIUS, EffectParameters, validate_params

pytestmark = pytest.mark.smoke


def test_from_dict_camel_case():
    params = EffectParameters.from_dict(
        {
            "contrast": 1.2,
            "exposure": -0.3,
            "invertImage": True,
            "medianEnabled": True,
            "medianRadius": 2,
        }
    )
    assert params == EffectParameters(1.2, -0.3, True, True, 2)
    assert params.to_dict()["medianRadius"] == 2


def test_missing_tone_keys_are_absent():
    params = EffectParameters.from_dict({"contrast": 1.5})
    assert params.exposure is None
    assert not params.has_tone


def test_frozen():
    params = EffectParameters()
    with pytest.raises(AttributeError):
        params.contrast = 2.0


def test_defaults_valid():
    assert validate_params(EffectParameters()) == []


@pytest.mark.parametrize(
    "kwargs,fragment",
    [
        ({"contrast": -0.1}, "contrast"),
        ({"contrast": 2.5}, "contrast"),
        ({"contrast": math.nan}, "contrast"),
        ({"exposure": 1.5}, "exposure"),
        ({"exposure": "bright"}, "exposure"),
        ({"median_radius": -1}, "medianRadius"),
        ({"median_radius": 1.5}, "medianRadius"),
        ({"median_radius": MAX_MEDIAN_RADIUS + 1}, "medianRadius"),
        ({"invert_image": "yes"}, "invertImage"),
    ],
)
def test_out_of_range_reported_not_clamped(kwargs, fragment):
    params = EffectParameters(**kwargs)
    errors = validate_params(params)
    assert any(fragment in e for e in errors)
    # The value itself is left untouched
    assert getattr(params, next(iter(kwargs))) is next(iter(kwargs.values()))


def test_absent_tone_not_validated():
    assert validate_params(EffectParameters(contrast=None, exposure=None)) == []


def test_multiple_errors_collected():
    errors = validate_params(EffectParameters(contrast=9.0, exposure=9.0, median_radius=-2))
    assert len(errors) == 3
