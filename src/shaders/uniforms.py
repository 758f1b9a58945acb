"""Uniform sets for the fragment passes.

Uniforms are immutable; ``merge_params`` returns a new set with only the
recognised keys that are present in ``params`` changed (``setParams``
semantics). Keys use the camelCase names callers send.
"""

import math
from dataclasses import dataclass, fields, replace

SHAPES = {"circle": 0.0, "square": 1.0, "diamond": 2.0}


@dataclass(frozen=True)
class DitherUniforms:
    patternSize: float = 8.0
    threshold: float = 1.0
    contrast: float = 1.0
    exposure: float = 0.0
    invert: bool = False
    greyscale: bool = False
    blending: float = 1.0
    disable: bool = False
    usePatternTexture: bool = False


@dataclass(frozen=True)
class HalftoneUniforms:
    pixelSize: float = 6.0
    shape: float = 1.0  # 0 = circle, 1 = square, 2 = diamond
    rotationAngle: float = 0.785398  # 45 degrees in radians
    greyscale: bool = False
    blending: float = 1.0
    disable: bool = False


def _coerce_shape(value) -> float:
    if isinstance(value, str):
        try:
            return SHAPES[value.lower()]
        except KeyError:
            raise ValueError(
                f"Unknown shape '{value}'. Allowed: {sorted(SHAPES)}"
            ) from None
    return float(value)


def merge_params(uniforms, params: dict):
    """Return ``uniforms`` with the recognised keys of ``params`` applied.

    Unknown keys and ``None`` values are ignored.
    """
    names = {f.name for f in fields(uniforms)}
    changes = {k: v for k, v in params.items() if k in names and v is not None}
    if "shape" in changes:
        changes["shape"] = _coerce_shape(changes["shape"])
    return replace(uniforms, **changes)


def _positive(errors: list[str], name: str, value):
    if not math.isfinite(value) or value <= 0:
        errors.append(f"'{name}' must be > 0, got {value}")


def _unit(errors: list[str], name: str, value):
    if not math.isfinite(value) or not 0.0 <= value <= 1.0:
        errors.append(f"'{name}' {value} outside [0, 1]")


def validate_uniforms(uniforms) -> list[str]:
    """Validate a uniform set. Returns list of errors (empty = valid)."""
    errors: list[str] = []
    if isinstance(uniforms, DitherUniforms):
        _positive(errors, "patternSize", uniforms.patternSize)
        _unit(errors, "threshold", uniforms.threshold)
        _unit(errors, "blending", uniforms.blending)
        if not 0.0 <= uniforms.contrast <= 2.0:
            errors.append(f"'contrast' {uniforms.contrast} outside [0, 2]")
        if not -1.0 <= uniforms.exposure <= 1.0:
            errors.append(f"'exposure' {uniforms.exposure} outside [-1, 1]")
    elif isinstance(uniforms, HalftoneUniforms):
        _positive(errors, "pixelSize", uniforms.pixelSize)
        _unit(errors, "blending", uniforms.blending)
        if not math.isfinite(uniforms.rotationAngle):
            errors.append("'rotationAngle' must be finite")
    else:
        raise TypeError(f"Unknown uniform set: {type(uniforms).__name__}")
    return errors
