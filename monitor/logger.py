"""
Logging setup for the Magento client:
  - stderr: compact, ANSI-colored console lines
  - file (always): verbose debug log at logs/run_YYYYMMDD_HHMMSS.log
  - file (optional): single-line JSON (ndjson)

Every handler carries OAuthRedactFilter so signatures and secrets that end up in
a message (e.g. a logged Authorization header) are masked.
"""

from __future__ import annotations

import json
import logging
import os
import re
import sys
import time
from datetime import datetime, timezone


_RESET = "\033[0m"
_BOLD = "\033[1m"
_DIM = "\033[2m"
_RED = "\033[31m"
_YELLOW = "\033[33m"
_CYAN = "\033[36m"
_WHITE = "\033[37m"

_LEVEL_STYLES = {
    "DEBUG": (_DIM, "DBG"),
    "INFO": (_CYAN, "INF"),
    "WARNING": (_YELLOW, "WRN"),
    "ERROR": (_RED, "ERR"),
    "CRITICAL": (_RED + _BOLD, "CRT"),
}

_REDACTED = "***"
# oauth_signature=..., consumer_secret="...", access_token_secret: ...
_SECRET_PATTERN = re.compile(
    r"((?:oauth_signature|consumer_secret|access_token_secret|token_secret)\"?\s*[=:]\s*\"?)([^\s,&\"]+)"
)


def redact(text: str) -> str:
    """Mask OAuth signatures and secret values inside free text."""
    return _SECRET_PATTERN.sub(lambda m: m.group(1) + _REDACTED, text)


class OAuthRedactFilter(logging.Filter):
    """Rewrites the record's message with secrets masked. Never drops records."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        cleaned = redact(message)
        if cleaned != message:
            record.msg = cleaned
            record.args = None
        return True


class ConsoleFormatter(logging.Formatter):
    """HH:MM:SS TAG message, color-coded by level when stderr is a TTY."""

    def __init__(self, use_color: bool = True):
        super().__init__()
        self._use_color = use_color and _supports_color()

    def format(self, record: logging.LogRecord) -> str:
        ts = time.strftime("%H:%M:%S", time.localtime(record.created))
        color, tag = _LEVEL_STYLES.get(record.levelname, (_WHITE, "???"))
        msg = record.getMessage()

        if self._use_color:
            line = f"{_DIM}{ts}{_RESET} {color}{tag}{_RESET} {msg}"
        else:
            line = f"{ts} {tag} {msg}"

        if record.exc_info and record.exc_info[1]:
            exc = f"{type(record.exc_info[1]).__name__}: {record.exc_info[1]}"
            if self._use_color:
                line += f"\n{_RED}     {exc}{_RESET}"
            else:
                line += f"\n     {exc}"

        return line


class JSONFormatter(logging.Formatter):
    """One JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "ts": time.strftime("%Y-%m-%dT%H:%M:%S", time.gmtime(record.created)),
            "level": record.levelname,
            "logger": record.name,
            "module": record.module,
            "msg": record.getMessage(),
        }
        if record.exc_info and record.exc_info[1]:
            entry["exception"] = str(record.exc_info[1])
            entry["exception_type"] = type(record.exc_info[1]).__name__
        return json.dumps(entry, separators=(",", ":"))


def setup_logging(
    level: str = "INFO",
    json_log_file: str | None = None,
    log_dir: str | None = None,
) -> str:
    """
    Configure the root logger.
      - console handler on stderr at ``level``
      - verbose DEBUG file in ``log_dir`` (default: ./logs next to the project)
      - optional ndjson handler at ``json_log_file``

    Returns the path to the verbose log file.
    """
    root = logging.getLogger()
    # Root stays at DEBUG so the verbose file sees everything
    root.setLevel(logging.DEBUG)

    for handler in root.handlers[:]:
        root.removeHandler(handler)

    redact_filter = OAuthRedactFilter()

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(getattr(logging, level.upper(), logging.INFO))
    console.setFormatter(ConsoleFormatter())
    console.addFilter(redact_filter)
    root.addHandler(console)

    if log_dir is None:
        log_dir = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "logs")
    os.makedirs(log_dir, exist_ok=True)
    timestamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
    log_path = os.path.join(log_dir, f"run_{timestamp}.log")

    verbose_fmt = logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)-8s %(name)s:%(lineno)d - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    verbose_handler = logging.FileHandler(log_path, mode="a")
    verbose_handler.setLevel(logging.DEBUG)
    verbose_handler.setFormatter(verbose_fmt)
    verbose_handler.addFilter(redact_filter)
    root.addHandler(verbose_handler)

    if json_log_file:
        fh = logging.FileHandler(json_log_file, mode="a")
        fh.setFormatter(JSONFormatter())
        fh.addFilter(redact_filter)
        root.addHandler(fh)

    # httpx logs every request line at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    return log_path


def _supports_color() -> bool:
    """Check if stderr supports ANSI color."""
    if os.environ.get("NO_COLOR"):
        return False
    if os.environ.get("FORCE_COLOR"):
        return True
    return hasattr(sys.stderr, "isatty") and sys.stderr.isatty()
