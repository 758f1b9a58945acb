"""Image pipeline — fit, tone, dither, median, invert in a fixed order.

The order is fixed and each stage is gated by parameters:

    fit/crop → tone (if contrast and exposure given) → pattern dither
    → median (if medianEnabled) → invert (if invertImage)

The export variant runs the same chain at EXPORT_SCALE times the preview size
with a nearest-upscaled pattern, so exported output has the same pattern
density as the preview.
"""

import logging
import time
from collections import defaultdict, deque

import numpy as np
import sentry_sdk

from effects import registry
from engine.canvas import draw_fitted
from engine.container import EffectContainer
from engine.params import EffectParameters, validate_params
from engine.patterns import PatternLoader, PatternLoadError, PatternSource

logger = logging.getLogger(__name__)

EXPORT_SCALE = 2

# Per-effect timing threshold (milliseconds)
EFFECT_WARN_MS = 100

# Rolling timing stats per effect
_effect_timing: dict[str, deque] = defaultdict(lambda: deque(maxlen=100))

_default_loader: PatternLoader | None = None


def get_default_loader() -> PatternLoader:
    """Process-wide pattern loader (patterns are loaded once and shared)."""
    global _default_loader
    if _default_loader is None:
        _default_loader = PatternLoader()
    return _default_loader


def record_timing(effect_id: str, elapsed_ms: float):
    """Record a timing sample for an effect."""
    _effect_timing[effect_id].append(elapsed_ms)


def get_effect_stats() -> dict[str, dict]:
    """Return p50/max/sample count per effect."""
    result = {}
    for eid, samples in _effect_timing.items():
        s = sorted(samples)
        result[eid] = {
            "p50": s[len(s) // 2] if s else 0,
            "max": max(s) if s else 0,
            "samples": len(s),
        }
    return result


def flush_timing():
    """Clear all timing stats."""
    _effect_timing.clear()


def build_chain(params: EffectParameters) -> list[dict]:
    """Translate parameters into the ordered, gated effect chain."""
    chain: list[dict] = []
    if params.has_tone:
        chain.append(
            {
                "effect_id": "fx.tone",
                "params": {"contrast": params.contrast, "exposure": params.exposure},
            }
        )
    # Dither always runs
    chain.append({"effect_id": "fx.pattern_dither", "params": {}})
    if params.median_enabled:
        chain.append({"effect_id": "fx.median", "params": {"radius": params.median_radius}})
    if params.invert_image:
        chain.append({"effect_id": "fx.invert", "params": {}})
    return chain


def apply_chain(
    frame: np.ndarray,
    chain: list[dict],
    *,
    pattern: PatternSource | None,
) -> np.ndarray:
    """Apply an ordered chain of effects to a frame, strictly in sequence.

    Args:
        frame:   Working RGBA frame (H, W, 4) uint8. Ownership passes to the
                 chain; in-place effects may modify it.
        chain:   List of effect instances, each {"effect_id": str, "params": dict}.
        pattern: Threshold pattern for the dither stage.

    Returns:
        The output frame.

    Raises:
        ValueError: If the chain contains an unknown effect or a NaN/Inf
            parameter.
        EffectError: If any effect fails (no partial output is returned).
    """
    output = frame
    for i, effect_instance in enumerate(chain):
        effect_id = effect_instance.get("effect_id")
        params = dict(effect_instance.get("params", {}))

        effect_info = registry.require(effect_id)

        sentry_sdk.add_breadcrumb(
            category="effect",
            message=f"Processing {effect_id}",
            data={"chain_position": i, "frame_shape": list(output.shape)},
            level="debug",
        )

        container = EffectContainer(effect_info["fn"], effect_id)
        t0 = time.monotonic()
        output = container.process(output, params, pattern=pattern)
        elapsed_ms = (time.monotonic() - t0) * 1000

        record_timing(effect_id, elapsed_ms)
        if elapsed_ms > EFFECT_WARN_MS:
            logger.warning(
                "Effect %s took %.0fms (>%dms warn threshold) on %dx%d frame",
                effect_id,
                elapsed_ms,
                EFFECT_WARN_MS,
                output.shape[1],
                output.shape[0],
                extra={"effect_id": effect_id, "elapsed_ms": round(elapsed_ms, 1)},
            )

    return output


def _coerce_params(params: EffectParameters | dict) -> EffectParameters:
    if isinstance(params, dict):
        params = EffectParameters.from_dict(params)
    errors = validate_params(params)
    if errors:
        raise ValueError("Invalid effect parameters: " + "; ".join(errors))
    return params


def render_frame(
    image,
    dest_width: int,
    dest_height: int,
    params: EffectParameters | dict,
    pattern: PatternSource,
    *,
    smoothing: bool = True,
) -> np.ndarray:
    """Synchronous core: draw the fitted image and run the effect chain."""
    params = _coerce_params(params)
    frame = draw_fitted(image, dest_width, dest_height, smoothing=smoothing)
    return apply_chain(frame, build_chain(params), pattern=pattern)


async def _resolve_pattern(
    pattern: PatternSource | None,
    loader: PatternLoader | None,
    scale: int,
) -> PatternSource:
    if pattern is not None:
        return pattern.upscaled(scale)
    loader = loader or get_default_loader()
    try:
        return await loader.get(scale=scale)
    except PatternLoadError:
        logger.error("Pattern load failed; aborting render")
        raise


async def process_image(
    image,
    dest_width: int,
    dest_height: int,
    params: EffectParameters | dict,
    *,
    pattern: PatternSource | None = None,
    loader: PatternLoader | None = None,
) -> np.ndarray | None:
    """Render the preview-resolution stylized image.

    Returns None when there is no source image (nothing to render).

    Raises:
        ValueError: On invalid parameters (including InvalidGeometryError).
        PatternLoadError: If the pattern cannot be loaded.
        EffectError: If any stage fails.
    """
    if image is None:
        logger.debug("No source image; nothing to render")
        return None
    params = _coerce_params(params)
    resolved = await _resolve_pattern(pattern, loader, 1)
    return render_frame(image, dest_width, dest_height, params, resolved)


async def process_image_for_export(
    image,
    dest_width: int,
    dest_height: int,
    params: EffectParameters | dict,
    *,
    pattern: PatternSource | None = None,
    loader: PatternLoader | None = None,
    scale: int = EXPORT_SCALE,
) -> np.ndarray | None:
    """Render at ``scale`` times the preview size with a ``scale``x pattern.

    ``pattern``, when given, is the native-resolution pattern; it is upscaled
    here. Smoothing is disabled when drawing the source.
    """
    if image is None:
        logger.debug("No source image; nothing to export")
        return None
    params = _coerce_params(params)
    resolved = await _resolve_pattern(pattern, loader, scale)
    logger.info(
        "Exporting %dx%d (scale %d)",
        dest_width * scale,
        dest_height * scale,
        scale,
        extra={"width": dest_width * scale, "height": dest_height * scale, "scale": scale},
    )
    return render_frame(
        image,
        dest_width * scale,
        dest_height * scale,
        params,
        resolved,
        smoothing=False,
    )
