# classifieds/config/logging_config.py

"""Logging for one command invocation of the classifieds client.

Every run writes ``<LOGS_DIR>/run_YYYYMMDD_HHMMSS.log`` at DEBUG level,
so the retry attempts, fallbacks and rejected mutations of a single
command can be read back in order.  Stderr only shows records at
``Settings.LOG_LEVEL`` and above, since stdout carries command output.

Because the CLI runs once per command, old run logs are pruned down to
``Settings.LOG_RETENTION`` files.

Both handlers pass records through :class:`CredentialMaskFilter`.
Transport log lines carry only method, path and status, and the filter
also masks any bearer token or ``token`` field that slips into a
message, for example inside a logged response body.
"""

import logging
import re
import sys
from datetime import datetime
from pathlib import Path

from classifieds.config.settings import Settings

_FILE_FORMAT = (
    "%(asctime)s | %(levelname)-8s | %(name)s | "
    "%(funcName)s:%(lineno)d | %(message)s"
)
_STDERR_FORMAT = "%(levelname)s: %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

MASK = "***"

_CREDENTIAL_PATTERNS = (
    re.compile(r"(Bearer\s+)[^\s'\",}]+", re.IGNORECASE),
    re.compile(r"""(['"]token['"]\s*:\s*['"])[^'"]*""", re.IGNORECASE),
)


def mask_credentials(text: str) -> str:
    """Replace bearer tokens and ``token`` values in ``text``."""
    for pattern in _CREDENTIAL_PATTERNS:
        text = pattern.sub(rf"\g<1>{MASK}", text)
    return text


class CredentialMaskFilter(logging.Filter):
    """Rewrites each record's message with credentials masked."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        masked = mask_credentials(message)
        if masked != message:
            record.msg = masked
            record.args = None
        return True


def _prune_run_logs(logs_dir: Path, keep: int) -> None:
    """Delete the oldest ``run_*.log`` files beyond ``keep``."""
    run_logs = sorted(logs_dir.glob("run_*.log"))
    for stale in run_logs[: max(len(run_logs) - keep, 0)]:
        stale.unlink(missing_ok=True)


def setup_logging(console_level: str | None = None) -> Path:
    """Attach the run-file and stderr handlers to the ``classifieds`` logger.

    Args:
        console_level: Level name for stderr; defaults to
            ``Settings.LOG_LEVEL``.

    Returns:
        Path of this run's log file.
    """
    logs_dir: Path = Settings.LOGS_DIR
    logs_dir.mkdir(parents=True, exist_ok=True)
    log_file = logs_dir / f"run_{datetime.now():%Y%m%d_%H%M%S}.log"

    root_logger = logging.getLogger("classifieds")
    root_logger.setLevel(logging.DEBUG)
    if root_logger.handlers:
        return log_file

    _prune_run_logs(logs_dir, max(Settings.LOG_RETENTION - 1, 0))

    mask = CredentialMaskFilter()

    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(
        logging.Formatter(_FILE_FORMAT, datefmt=_DATE_FORMAT)
    )
    file_handler.addFilter(mask)

    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setLevel(
        logging.getLevelName((console_level or Settings.LOG_LEVEL).upper())
    )
    stderr_handler.setFormatter(logging.Formatter(_STDERR_FORMAT))
    stderr_handler.addFilter(mask)

    root_logger.addHandler(file_handler)
    root_logger.addHandler(stderr_handler)

    root_logger.info("Run log: %s", log_file)
    return log_file
