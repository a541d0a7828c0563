"""Runtime settings and console logging for latex-publish.

Settings are read from ``LATEX_PUBLISH_*`` environment variables at import
time and can be overridden in memory with :func:`set_config`.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

_LEVELS = {"DEBUG": 10, "INFO": 20, "WARNING": 30, "ERROR": 40, "CRITICAL": 50}
_LOG_LEVEL_NAME = os.environ.get("LATEX_PUBLISH_LOG_LEVEL", "INFO").upper()
LOG_LEVEL = _LEVELS.get(_LOG_LEVEL_NAME, 20)
LOG_JSON = os.environ.get("LATEX_PUBLISH_LOG_JSON", "0") == "1"
LOG_FILE = os.environ.get("LATEX_PUBLISH_LOG_FILE")
COLOR = "NO_COLOR" not in os.environ
SELFTEST_TIMEOUT = int(os.environ.get("LATEX_PUBLISH_SELFTEST_TIMEOUT", "0"))

RED = "\033[0;31m"
GREEN = "\033[0;32m"
YELLOW = "\033[1;33m"
NC = "\033[0m"

_TAG_COLORS = {
    "[INFO ]": GREEN,
    "[WARN ]": YELLOW,
    "[ERROR]": RED,
    "[CRASH]": RED,
}


def set_config(
    *,
    log_level: str | None = None,
    log_json: bool | None = None,
    log_file: str | None = None,
    color: bool | None = None,
    selftest_timeout: int | None = None,
) -> None:
    """Override runtime settings in memory.

    Parameters mirror the ``LATEX_PUBLISH_*`` environment variables.
    """
    global LOG_LEVEL, LOG_JSON, LOG_FILE, COLOR, SELFTEST_TIMEOUT
    if log_level is not None:
        lvl = _LEVELS.get(str(log_level).upper())
        if lvl is not None:
            LOG_LEVEL = lvl
    if log_json is not None:
        LOG_JSON = bool(log_json)
    if log_file is not None:
        LOG_FILE = log_file
    if color is not None:
        COLOR = bool(color)
    if selftest_timeout is not None:
        SELFTEST_TIMEOUT = int(selftest_timeout)


def _maybe_rotate_log_file(path: Path, max_bytes: int = 1_000_000) -> None:
    try:
        if path.exists() and path.stat().st_size > max_bytes:
            backup = path.with_suffix(path.suffix + ".1")
            backup.unlink(missing_ok=True)
            path.replace(backup)
    except OSError:
        pass


def _colorize(msg: str) -> str:
    if not COLOR or not sys.stdout.isatty():
        return msg
    for tag, code in _TAG_COLORS.items():
        if msg.startswith(tag):
            return f"{code}{tag}{NC}{msg[len(tag):]}"
    return msg


def log(msg: str, level: str = "INFO") -> None:
    """Print a single-line message at a given level if above threshold.

    Emits plain text by default; when LOG_JSON is enabled, emits a JSON line.
    Output is mirrored to LOG_FILE when configured (never colored).
    """
    lv = _LEVELS.get(str(level).upper(), 20)
    if lv < LOG_LEVEL:
        return
    out = msg
    if LOG_JSON:
        import json as _json
        from datetime import datetime, timezone

        out = _json.dumps(
            {
                "ts": datetime.now(timezone.utc).isoformat(),
                "level": level.upper(),
                "message": msg,
            },
            ensure_ascii=False,
        )
        print(out, flush=True)
    else:
        print(_colorize(out), flush=True)
    if LOG_FILE:
        p = Path(LOG_FILE)
        _maybe_rotate_log_file(p)
        try:
            with p.open("a", encoding="utf-8") as fh:
                fh.write(out + "\n")
        except OSError:
            pass
