"""Diagnostics — structured JSON logs and C-level crash tracebacks.

Logs go to ``~/.halftone/logs`` (or ``HALFTONE_LOG_DIR``, which must stay
under ``~/.halftone``). Native crashes inside numpy/OpenCV are dumped by
faulthandler to a separate file.
"""

import datetime
import faulthandler
import json
import logging
import logging.handlers
import os
import sys
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

APP_DIR = "~/.halftone"
LOG_FILENAME = "halftone.log"
FAULT_FILENAME = "halftone_fault.log"
HANDLER_NAME = "halftone-json"

# Maximum log age in days
MAX_LOG_AGE_DAYS = 7

# Render context passed through ``extra=`` and kept in the JSON entry
CONTEXT_FIELDS = ("effect_id", "elapsed_ms", "width", "height", "scale")


def _validate_log_dir(env_dir: str) -> str:
    """Validate a log dir override is under ~/.halftone. Returns safe path."""
    default = os.path.expanduser(f"{APP_DIR}/logs")
    if not env_dir:
        return default
    resolved = Path(os.path.realpath(env_dir))
    allowed = Path(os.path.realpath(os.path.expanduser(APP_DIR)))
    if resolved != allowed and allowed not in resolved.parents:
        logger.warning("HALFTONE_LOG_DIR outside allowed prefix, using default")
        return default
    return str(resolved)


@dataclass(frozen=True)
class LogSettings:
    log_dir: str
    level: int = logging.INFO
    max_bytes: int = 10_000_000
    backup_count: int = 7

    @classmethod
    def from_env(cls, log_dir: str | None = None) -> "LogSettings":
        level_name = os.environ.get("HALFTONE_LOG_LEVEL", "INFO").upper()
        return cls(
            log_dir=_validate_log_dir(log_dir or os.environ.get("HALFTONE_LOG_DIR", "")),
            level=getattr(logging, level_name, logging.INFO),
        )


class JSONFormatter(logging.Formatter):
    """One JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.datetime.fromtimestamp(
                record.created, tz=datetime.timezone.utc
            ).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for name in CONTEXT_FIELDS:
            if hasattr(record, name):
                entry[name] = getattr(record, name)
        if record.exc_info and record.exc_info[1] is not None:
            entry["exception"] = {
                "type": type(record.exc_info[1]).__name__,
                "traceback": self.formatException(record.exc_info),
            }
        return json.dumps(entry, default=str)


def _cleanup_old_logs(log_dir: str):
    """Delete rotated logs older than MAX_LOG_AGE_DAYS."""
    cutoff = datetime.datetime.now().timestamp() - MAX_LOG_AGE_DAYS * 86400
    try:
        for f in Path(log_dir).glob(f"{LOG_FILENAME}*"):
            if f.stat().st_mtime < cutoff:
                f.unlink(missing_ok=True)
    except OSError as e:
        logger.debug("Log cleanup skipped: %s", e)


def setup_structured_logging(log_dir: str | None = None) -> str:
    """Attach the rotating JSON handler to the root logger.

    Calling again replaces the previous handler instead of stacking a second
    one. Returns the directory logs are written to.
    """
    settings = LogSettings.from_env(log_dir)
    os.makedirs(settings.log_dir, mode=0o700, exist_ok=True)

    root = logging.getLogger()
    for h in [h for h in root.handlers if h.get_name() == HANDLER_NAME]:
        root.removeHandler(h)
        h.close()

    handler = logging.handlers.RotatingFileHandler(
        os.path.join(settings.log_dir, LOG_FILENAME),
        maxBytes=settings.max_bytes,
        backupCount=settings.backup_count,
    )
    handler.set_name(HANDLER_NAME)
    handler.setFormatter(JSONFormatter())
    root.addHandler(handler)
    root.setLevel(settings.level)

    _cleanup_old_logs(settings.log_dir)
    return settings.log_dir


def setup_faulthandler(log_dir: str):
    """Enable faulthandler on its own file.

    RotatingFileHandler would invalidate the faulthandler descriptor on
    rotation, so the two never share a file.
    """
    fault_path = os.path.join(log_dir, FAULT_FILENAME)
    try:
        fault_file = open(fault_path, "a", buffering=1)  # noqa: SIM115
        os.chmod(fault_path, 0o600)
        faulthandler.enable(file=fault_file, all_threads=True)
    except OSError as e:
        print(f"WARNING: Could not enable faulthandler: {e}", file=sys.stderr)


def init_diagnostics(log_dir: str | None = None) -> str:
    """Initialize logging and faulthandler. Called once from main."""
    resolved_dir = setup_structured_logging(log_dir)
    setup_faulthandler(resolved_dir)
    logger.info("Diagnostics initialized: logging=%s, faulthandler=enabled", resolved_dir)
    return resolved_dir
