"""Effect registry — the buffer-pipeline stages, looked up by effect id.

Stage functions share one signature: ``apply(frame, params, *, pattern=None)``
returning an RGBA uint8 frame of the same shape.
"""

from typing import Callable

import numpy as np

EffectFn = Callable[..., np.ndarray]

_REGISTRY: dict[str, dict] = {}


def register(effect_id: str, fn: EffectFn, params: dict, name: str, category: str):
    if effect_id in _REGISTRY:
        raise ValueError(f"Effect already registered: {effect_id}")
    _REGISTRY[effect_id] = {
        "fn": fn,
        "params": params,
        "name": name,
        "category": category,
    }


def get(effect_id: str) -> dict | None:
    """Get effect info by ID."""
    return _REGISTRY.get(effect_id)


def require(effect_id: str) -> dict:
    """Like ``get``, but an unknown id is a caller error."""
    info = _REGISTRY.get(effect_id)
    if info is None:
        raise ValueError(f"unknown effect: {effect_id}")
    return info


def list_all(category: str | None = None) -> list[dict]:
    """Registered effects with metadata, optionally for one category."""
    return [
        {
            "id": eid,
            "name": info["name"],
            "category": info["category"],
            "params": info["params"],
        }
        for eid, info in _REGISTRY.items()
        if category is None or info["category"] == category
    ]


def _auto_register():
    from effects.fx import invert, median, pattern_dither, tone

    for mod in (tone, pattern_dither, median, invert):
        register(
            mod.EFFECT_ID, mod.apply, mod.PARAMS, mod.EFFECT_NAME, mod.EFFECT_CATEGORY
        )


_auto_register()
