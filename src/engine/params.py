"""Buffer-pipeline effect parameters and their validation."""

import math
from dataclasses import dataclass

MAX_MEDIAN_RADIUS = 15

CONTRAST_RANGE = (0.0, 2.0)
EXPOSURE_RANGE = (-1.0, 1.0)


@dataclass(frozen=True)
class EffectParameters:
    """Per-invocation options for the buffer pipeline.

    ``contrast`` and ``exposure`` may be ``None`` (absent); tone adjustment
    only runs when both are present.
    """

    contrast: float | None = 1.0
    exposure: float | None = 0.0
    invert_image: bool = False
    median_enabled: bool = False
    median_radius: int = 1

    @classmethod
    def from_dict(cls, params: dict) -> "EffectParameters":
        """Build from the camelCase option names used by callers."""
        return cls(
            contrast=params.get("contrast"),
            exposure=params.get("exposure"),
            invert_image=params.get("invertImage", False),
            median_enabled=params.get("medianEnabled", False),
            median_radius=params.get("medianRadius", 1),
        )

    def to_dict(self) -> dict:
        return {
            "contrast": self.contrast,
            "exposure": self.exposure,
            "invertImage": self.invert_image,
            "medianEnabled": self.median_enabled,
            "medianRadius": self.median_radius,
        }

    @property
    def has_tone(self) -> bool:
        return self.contrast is not None and self.exposure is not None


def _check_range(errors: list[str], name: str, value, bounds: tuple[float, float]):
    lo, hi = bounds
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        errors.append(f"'{name}' must be a number, got {type(value).__name__}")
    elif not math.isfinite(value) or not lo <= value <= hi:
        errors.append(f"'{name}' {value} outside [{lo}, {hi}]")


def validate_params(params: EffectParameters) -> list[str]:
    """Validate parameters. Returns list of errors (empty = valid).

    Out-of-range values are reported, never clamped.
    """
    errors: list[str] = []

    if params.contrast is not None:
        _check_range(errors, "contrast", params.contrast, CONTRAST_RANGE)
    if params.exposure is not None:
        _check_range(errors, "exposure", params.exposure, EXPOSURE_RANGE)

    for name, value in (
        ("invertImage", params.invert_image),
        ("medianEnabled", params.median_enabled),
    ):
        if not isinstance(value, bool):
            errors.append(f"'{name}' must be a bool, got {type(value).__name__}")

    radius = params.median_radius
    if isinstance(radius, bool) or not isinstance(radius, int):
        errors.append(f"'medianRadius' must be an int, got {type(radius).__name__}")
    elif radius < 0:
        errors.append(f"'medianRadius' {radius} must be >= 0")
    elif radius > MAX_MEDIAN_RADIUS:
        errors.append(f"'medianRadius' {radius} exceeds maximum {MAX_MEDIAN_RADIUS}")

    return errors
