"""Command-line entry point — stylize an image file and write a PNG."""

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path

import numpy as np
import sentry_sdk
from PIL import Image

from _version import __version__
from diagnostics import init_diagnostics
from engine.canvas import draw_fitted
from engine.params import EffectParameters
from engine.patterns import PatternLoader
from engine.pipeline import EXPORT_SCALE, process_image, process_image_for_export
from engine.strategies import ShaderDither
from security import (
    strip_pii,
    validate_image_path,
    validate_output_path,
    validate_render_size,
)
from shaders.passes import HalftonePass, RenderTarget

logger = logging.getLogger(__name__)

MODES = ("pipeline", "shader-dither", "halftone")


def _init_sentry():
    """Consent-gated Sentry init."""
    consent_path = os.path.expanduser("~/.halftone/telemetry_consent")
    dsn = ""
    if os.path.exists(consent_path) and Path(consent_path).read_text().strip() == "yes":
        dsn = os.environ.get("HALFTONE_SENTRY_DSN", "")

    sentry_sdk.init(
        dsn=dsn,
        release=f"halftone@{__version__}",
        environment=os.environ.get("SENTRY_ENV", "development"),
        before_send=strip_pii,
        max_breadcrumbs=50,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="halftone",
        description="Render an image through the halftone dither pipeline.",
    )
    parser.add_argument("input", help="Source image")
    parser.add_argument("output", help="Output PNG (absolute path)")
    parser.add_argument("--width", type=int, required=True)
    parser.add_argument("--height", type=int, required=True)
    parser.add_argument("--mode", choices=MODES, default="pipeline")
    parser.add_argument("--contrast", type=float, default=1.0)
    parser.add_argument("--exposure", type=float, default=0.0)
    parser.add_argument("--invert", action="store_true", help="Invert final colors")
    parser.add_argument(
        "--median-radius",
        type=int,
        default=None,
        help="Enable median smoothing with this radius",
    )
    parser.add_argument("--pattern", default=None, help="Pattern bitmap path")
    parser.add_argument(
        "--export",
        action="store_true",
        help=f"Render at {EXPORT_SCALE}x with a {EXPORT_SCALE}x pattern",
    )
    # Fragment-pass options
    parser.add_argument("--pattern-size", type=float, default=8.0)
    parser.add_argument("--threshold", type=float, default=1.0)
    parser.add_argument("--blending", type=float, default=1.0)
    parser.add_argument("--greyscale", action="store_true")
    parser.add_argument("--pixel-size", type=float, default=6.0)
    parser.add_argument("--shape", choices=["circle", "square", "diamond"], default="square")
    parser.add_argument("--rotation", type=float, default=0.785398, help="Radians")
    parser.add_argument("--log-dir", default=None)
    return parser


async def _render(args: argparse.Namespace) -> np.ndarray | None:
    with Image.open(args.input) as im:
        image = im.convert("RGBA")

    scale = EXPORT_SCALE if args.export else 1
    loader = PatternLoader(args.pattern)

    if args.mode == "pipeline":
        params = EffectParameters(
            contrast=args.contrast,
            exposure=args.exposure,
            invert_image=args.invert,
            median_enabled=args.median_radius is not None,
            median_radius=args.median_radius if args.median_radius is not None else 1,
        )
        if args.export:
            return await process_image_for_export(
                image, args.width, args.height, params, loader=loader
            )
        return await process_image(image, args.width, args.height, params, loader=loader)

    frame = draw_fitted(image, args.width * scale, args.height * scale, smoothing=not args.export)

    if args.mode == "shader-dither":
        pattern = await loader.get() if args.pattern else None
        strategy = ShaderDither(
            {
                "patternSize": args.pattern_size,
                "threshold": args.threshold,
                "contrast": args.contrast,
                "exposure": args.exposure,
                "invert": args.invert,
                "greyscale": args.greyscale,
                "blending": args.blending,
            },
            pattern,
            pixel_ratio=scale,
        )
        try:
            return strategy.render(frame)
        finally:
            strategy.close()

    halftone = HalftonePass(
        args.width * scale,
        args.height * scale,
        {
            "pixelSize": args.pixel_size,
            "shape": args.shape,
            "rotationAngle": args.rotation,
            "greyscale": args.greyscale,
            "blending": args.blending,
        },
        pixel_ratio=scale,
    )
    try:
        return halftone.render_into(RenderTarget(read=frame))
    finally:
        halftone.release()


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    init_diagnostics(args.log_dir)
    _init_sentry()

    errors = validate_image_path(args.input)
    if args.pattern:
        errors += validate_image_path(args.pattern)
    errors += validate_output_path(args.output)
    errors += validate_render_size(
        args.width, args.height, EXPORT_SCALE if args.export else 1
    )
    if errors:
        for e in errors:
            print(f"error: {e}", file=sys.stderr)
        return 2

    try:
        result = asyncio.run(_render(args))
    except Exception as e:
        sentry_sdk.capture_exception(e)
        logger.exception("Render failed")
        print(f"error: render failed: {e}", file=sys.stderr)
        return 1

    if result is None:
        print("error: nothing to render", file=sys.stderr)
        return 1

    Image.fromarray(result).save(args.output)
    logger.info("Wrote %s (%dx%d)", Path(args.output).name, result.shape[1], result.shape[0])
    return 0


if __name__ == "__main__":
    sys.exit(main())
