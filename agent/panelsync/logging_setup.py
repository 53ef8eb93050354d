from __future__ import annotations

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from .redact import redact_log_text

_LOG_SETUP_DONE = False
_ACTIVE_LOG_FILE: Optional[Path] = None
_HANDLER_TAG = "_panelsync_handler"


def _env_int(name: str, default: int, lo: int, hi: int) -> int:
    raw = str(os.getenv(name, str(default)) or "").strip()
    try:
        v = int(float(raw))
    except ValueError:
        v = int(default)
    return max(int(lo), min(int(hi), v))


def _log_level() -> int:
    raw = str(os.getenv("PANELSYNC_LOG_LEVEL", "INFO") or "INFO").strip().upper()
    level = getattr(logging, raw, logging.INFO)
    return level if isinstance(level, int) else logging.INFO


def _log_file() -> Path:
    raw = str(os.getenv("PANELSYNC_LOG_FILE", "/var/log/panelsync/agent.log") or "").strip()
    if not raw:
        raw = "/var/log/panelsync/agent.log"
    return Path(raw)


def _fallback_path(path: Path) -> Path:
    return Path("/tmp/panelsync") / path.name


def _select_writable_path(primary: Path) -> Optional[Path]:
    for candidate in (primary, _fallback_path(primary)):
        try:
            candidate.parent.mkdir(parents=True, exist_ok=True)
        except OSError:
            continue
        if os.access(candidate.parent, os.W_OK):
            return candidate
    return None


class RedactingFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        return redact_log_text(super().format(record))


def _runtime_formatter() -> logging.Formatter:
    return RedactingFormatter("%(asctime)s %(levelname)s %(process)d %(threadName)s %(name)s | %(message)s")


def configure_runtime_logging() -> Optional[Path]:
    """Log to stdout (when nothing else is configured) and to a rotating file.

    Safe to call more than once. Returns the active log file, if any.
    """
    global _LOG_SETUP_DONE
    global _ACTIVE_LOG_FILE
    if _LOG_SETUP_DONE:
        return _ACTIVE_LOG_FILE

    level = _log_level()
    root = logging.getLogger()
    root.setLevel(level)
    fmt = _runtime_formatter()

    if not root.handlers:
        sh = logging.StreamHandler(sys.stdout)
        sh.setLevel(level)
        sh.setFormatter(fmt)
        setattr(sh, _HANDLER_TAG, "stdout")
        root.addHandler(sh)

    selected = _select_writable_path(_log_file())
    if selected is None:
        logging.getLogger(__name__).warning("no writable log directory, file logging disabled")
    else:
        max_bytes = _env_int("PANELSYNC_LOG_MAX_BYTES", 5 * 1024 * 1024, 256 * 1024, 512 * 1024 * 1024)
        backups = _env_int("PANELSYNC_LOG_BACKUP_COUNT", 5, 1, 50)
        target = os.path.abspath(str(selected))
        already = any(
            getattr(h, _HANDLER_TAG, "") == "file" and getattr(h, "baseFilename", "") == target
            for h in root.handlers
        )
        try:
            if not already:
                fh = RotatingFileHandler(
                    target,
                    maxBytes=int(max_bytes),
                    backupCount=int(backups),
                    encoding="utf-8",
                )
                fh.setLevel(level)
                fh.setFormatter(fmt)
                setattr(fh, _HANDLER_TAG, "file")
                root.addHandler(fh)
            _ACTIVE_LOG_FILE = Path(target)
        except OSError:
            logging.getLogger(__name__).exception("failed to setup file logging")

    _LOG_SETUP_DONE = True
    logging.getLogger(__name__).info("runtime logging enabled")
    return _ACTIVE_LOG_FILE


def get_runtime_log_path() -> Optional[Path]:
    return _ACTIVE_LOG_FILE
