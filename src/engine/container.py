"""Effect container — runs one pipeline stage strictly.

A stage either returns a valid RGBA uint8 frame of the input's shape or the
whole render fails with ``EffectError``. There is no fallback to the input
frame: a half-stylized image is never handed back.
"""

import logging
import math

import numpy as np
import sentry_sdk

logger = logging.getLogger(__name__)


class EffectError(RuntimeError):
    """A stage raised or produced an invalid frame."""

    def __init__(self, effect_id: str, message: str):
        super().__init__(f"{effect_id}: {message}")
        self.effect_id = effect_id


def _capture_with_context(e: Exception, effect_id: str, extra: dict):
    """Capture exception to Sentry with effect-level context and fingerprint dedup."""
    with sentry_sdk.new_scope() as scope:
        scope.set_tag("effect_id", effect_id)
        scope.fingerprint = ["effect-crash", effect_id, type(e).__name__]
        scope.set_context("effect", extra)
        sentry_sdk.capture_exception(e, scope=scope)


def _non_finite_keys(params: dict) -> list[str]:
    return [k for k, v in params.items() if isinstance(v, float) and not math.isfinite(v)]


def _check_output(output, frame: np.ndarray) -> np.ndarray:
    if not isinstance(output, np.ndarray):
        raise TypeError(f"Effect returned {type(output).__name__}, expected ndarray")
    if output.shape != frame.shape:
        raise ValueError(f"Effect returned shape {output.shape}, expected {frame.shape}")
    if output.dtype != np.uint8:
        output = np.clip(output, 0, 255).astype(np.uint8)
    return output


class EffectContainer:
    """Wraps a stage's ``apply(frame, params, *, pattern=None)``.

    check params → run stage → check output. Non-finite float params raise
    ``ValueError`` before the stage runs. Stage failures are reported to
    Sentry and logged before being raised as ``EffectError``.
    """

    def __init__(self, effect_fn, effect_id: str):
        self.effect_fn = effect_fn
        self.effect_id = effect_id

    def _fail(self, e: Exception, what: str, ctx: dict) -> EffectError:
        _capture_with_context(e, self.effect_id, ctx)
        logger.error(
            "Effect %s %s: %s",
            self.effect_id,
            what,
            type(e).__name__,
            extra={"effect_id": self.effect_id},
        )
        logger.debug("Effect %s detail: %s", self.effect_id, e)
        return EffectError(self.effect_id, str(e))

    def process(self, frame: np.ndarray, params: dict, *, pattern=None) -> np.ndarray:
        bad = _non_finite_keys(params)
        if bad:
            logger.error(
                "Effect %s rejected non-finite params: %s",
                self.effect_id,
                ", ".join(bad),
                extra={"effect_id": self.effect_id},
            )
            raise ValueError(f"{self.effect_id}: non-finite parameter(s): {', '.join(bad)}")
        effect_params = dict(params)

        # Sentry context carries keys and shapes only, no values
        ctx = {
            "param_keys": list(effect_params),
            "frame_shape": list(frame.shape),
            "pattern_shape": None if pattern is None else list(pattern.thresholds.shape),
        }

        try:
            output = self.effect_fn(frame, effect_params, pattern=pattern)
        except Exception as e:
            raise self._fail(e, "failed", ctx) from e

        try:
            return _check_output(output, frame)
        except (TypeError, ValueError) as e:
            raise self._fail(e, "produced invalid output", ctx) from e
