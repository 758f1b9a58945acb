"""Validation gates for CLI inputs, and PII scrubbing for Sentry events.

Validators return a list of error strings (empty = valid) so the CLI can
report every problem at once.
"""

import os
import re
from pathlib import Path

# Source image / pattern bitmap validation
MAX_UPLOAD_SIZE = 100 * 1024 * 1024  # 100 MB
ALLOWED_EXTENSIONS = {".png", ".jpg", ".jpeg", ".webp", ".bmp", ".gif", ".tif", ".tiff"}

# Export validation
ALLOWED_OUTPUT_EXTENSIONS = {".png"}
MAX_OUTPUT_DIMENSION = 16384
BLOCKED_OUTPUT_PREFIXES = (
    "/System",
    "/Library",
    "/usr",
    "/bin",
    "/sbin",
    "/etc",
    "/private/var",
    "/private/etc",
)


def _unsafe_name(name: str) -> bool:
    return any(part in name for part in ("..", "/", "\\", "\x00"))


def _check_extension(errors: list[str], p: Path, allowed: set[str], label: str):
    ext = p.suffix.lower()
    if ext not in allowed:
        errors.append(f"{label} extension '{ext}' not allowed. Allowed: {sorted(allowed)}")


def validate_image_path(path: str) -> list[str]:
    """Validate a source image or pattern bitmap path.

    Must exist, not be a symlink, carry an image extension, be at most
    MAX_UPLOAD_SIZE bytes and have a safe filename.
    """
    p = Path(path)
    if not p.exists():
        return [f"File not found: {path}"]
    if p.is_symlink():
        return ["Symlinks are not allowed"]

    errors: list[str] = []
    _check_extension(errors, p, ALLOWED_EXTENSIONS, "Image")

    size = p.stat().st_size
    if size > MAX_UPLOAD_SIZE:
        errors.append(
            f"File too large: {size / (1024 * 1024):.1f} MB "
            f"(max {MAX_UPLOAD_SIZE // (1024 * 1024)} MB)"
        )
    if _unsafe_name(p.name):
        errors.append(f"Unsafe filename: {p.name}")
    return errors


def validate_output_path(path: str) -> list[str]:
    """Validate a PNG export path: absolute, outside system dirs, writable parent."""
    p = Path(path)
    if not p.is_absolute():
        return ["Output path must be absolute"]

    resolved = str(p.resolve())
    blocked = next((b for b in BLOCKED_OUTPUT_PREFIXES if resolved.startswith(b)), None)
    if blocked:
        return [f"Cannot write to system directory: {blocked}"]

    errors: list[str] = []
    _check_extension(errors, p, ALLOWED_OUTPUT_EXTENSIONS, "Output")

    if not p.parent.exists():
        errors.append(f"Output directory does not exist: {p.parent}")
    elif not os.access(p.parent, os.W_OK):
        errors.append(f"Output directory is not writable: {p.parent}")

    if _unsafe_name(p.name):
        errors.append(f"Unsafe output filename: {p.name}")
    return errors


def validate_render_size(width: int, height: int, scale: int = 1) -> list[str]:
    """Cap the rendered buffer, export scale included."""
    errors: list[str] = []
    for name, value in (("width", width), ("height", height)):
        if value <= 0:
            errors.append(f"{name} must be > 0, got {value}")
        elif value * scale > MAX_OUTPUT_DIMENSION:
            errors.append(
                f"{name} {value} x{scale} exceeds maximum {MAX_OUTPUT_DIMENSION}px"
            )
    return errors


# --- PII stripping for Sentry ---

_HOME = os.path.expanduser("~")
_USERNAME = os.path.basename(_HOME)
_PATH_PATTERN = re.compile(r"/Users/[^/\s]+|/home/[^/\s]+|C:\\Users\\[^\\\s]+")
_SENSITIVE_KEYS = {"token", "auth", "key", "secret", "password", "dsn"}


def _scrub_text(text: str) -> str:
    text = text.replace(_HOME, "<HOME>")
    if _USERNAME:
        text = text.replace(_USERNAME, "<USER>")
    return _PATH_PATTERN.sub("<REDACTED_PATH>", text)


def _scrub(value):
    if isinstance(value, str):
        return _scrub_text(value)
    if isinstance(value, dict):
        return {
            k: "<REDACTED>"
            if isinstance(k, str) and any(s in k.lower() for s in _SENSITIVE_KEYS)
            else _scrub(v)
            for k, v in value.items()
        }
    if isinstance(value, (list, tuple)):
        return [_scrub(v) for v in value]
    return value


def strip_pii(event: dict, hint: dict) -> dict:
    """Sentry before_send hook. Strips home paths and credential-like values."""
    return _scrub(event)
