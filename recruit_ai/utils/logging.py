# recruit_ai/utils/logging.py
"""
Logging Utilities — Root-Handler Configuration + Request Correlation

Intent
- One configuration entrypoint shared by the generation service, the model runner
  and the streaming helpers.
- Correlate every log line of one generation request via `request_id`: a per-request
  LoggerAdapter stamps it on each record; the shared module loggers stay untouched.
- Keep google-genai / httpx request traces out of INFO logs when asked to.

What this module guarantees
- **Idempotent root configuration:** `configure_logging()` never duplicates handlers.
- **Stable format:** timestamp | level | logger | request_id ("-" when none) | message.
- **Client silencing:** INFO/DEBUG from noisy namespaces is dropped by a filter on every
  root handler; WARNING+ always passes.

Primary API
- `configure_logging(level="INFO", log_file=None, silence_client_lv_logs=False) -> None`
- `configure_logging_from_params(params) -> None`
- `get_logger(name) -> logging.Logger`
- `get_request_logger(name, request_id) -> logging.LoggerAdapter`

External dependencies
- Python stdlib: `logging`, `pathlib`
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Optional

_DEFAULT_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(request_id)s | %(message)s"
NO_REQUEST_ID = "-"
_DEFAULT_DATEFMT = "%Y-%m-%d %H:%M:%S"

_CONFIGURED = False
_SILENCE_CLIENT_LV_LOGS: Optional[bool] = None

# Only namespaces that emit one INFO line per HTTP request.
_NOISY_PREFIXES = [
    "httpx",
    "httpcore",
    "google_genai",
    "google.auth",
    "urllib3",
]


def _is_noisy(name: str) -> bool:
    return any(name == p or name.startswith(p + ".") for p in _NOISY_PREFIXES)


class RequestIdFilter(logging.Filter):
    """
    Handler filter: give records logged outside a request a placeholder `request_id`,
    so the format string always renders. Records that carry an id keep it.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        if getattr(record, "request_id", None) is None:
            record.request_id = NO_REQUEST_ID
        return True


class NoisyLibFilter(logging.Filter):
    """
    Drop INFO/DEBUG records coming from HTTP / SDK namespaces.

    - enabled=False: pass everything
    - enabled=True : pass WARNING+, drop lower levels for noisy names
    """

    def __init__(self, *, enabled: bool, min_level: int = logging.WARNING) -> None:
        super().__init__()
        self.enabled = enabled
        self.min_level = min_level

    def filter(self, record: logging.LogRecord) -> bool:
        if not self.enabled or record.levelno >= self.min_level:
            return True
        return not _is_noisy(record.name or "")


def _refresh_handler_filters(enabled: bool) -> None:
    root = logging.getLogger()
    for h in root.handlers:
        for f in list(h.filters):
            if isinstance(f, NoisyLibFilter):
                h.removeFilter(f)
        h.addFilter(NoisyLibFilter(enabled=enabled))
        if not any(isinstance(f, RequestIdFilter) for f in h.filters):
            h.addFilter(RequestIdFilter())

    level = logging.WARNING if enabled else logging.NOTSET
    for name in _NOISY_PREFIXES:
        logging.getLogger(name).setLevel(level)


def configure_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    *,
    silence_client_lv_logs: bool = False,
) -> None:
    """
    Configure root logging.

    - Adds one StreamHandler (and one FileHandler per distinct path) at most.
    - Re-installs the NoisyLibFilter on every call so newly added handlers are covered.
    """
    global _CONFIGURED, _SILENCE_CLIENT_LV_LOGS

    root = logging.getLogger()
    root_level = getattr(logging, str(level).upper(), None)
    if not isinstance(root_level, int):
        raise ValueError(f"Invalid log level: {level}")
    root.setLevel(root_level)

    formatter = logging.Formatter(fmt=_DEFAULT_FORMAT, datefmt=_DEFAULT_DATEFMT)

    has_stream = any(
        isinstance(h, logging.StreamHandler) and not isinstance(h, logging.FileHandler)
        for h in root.handlers
    )
    if not has_stream:
        sh = logging.StreamHandler()
        sh.setFormatter(formatter)
        root.addHandler(sh)

    if log_file:
        target = Path(log_file).resolve()
        target.parent.mkdir(parents=True, exist_ok=True)
        has_file = any(
            isinstance(h, logging.FileHandler) and Path(h.baseFilename).resolve() == target
            for h in root.handlers
        )
        if not has_file:
            fh = logging.FileHandler(str(target), encoding="utf-8")
            fh.setFormatter(formatter)
            root.addHandler(fh)

    _refresh_handler_filters(silence_client_lv_logs)
    _SILENCE_CLIENT_LV_LOGS = silence_client_lv_logs
    _CONFIGURED = True


def configure_logging_from_params(params: Any) -> None:
    """Apply the `logging` group of a loaded ParametersConfig."""
    cfg = getattr(params, "logging", None)
    if cfg is None:
        configure_logging()
        return
    configure_logging(
        level=cfg.level,
        log_file=cfg.log_file,
        silence_client_lv_logs=cfg.silence_client_lv_logs,
    )


def get_logger(name: str) -> logging.Logger:
    """
    Module logger; configures logging lazily (INFO) on first use.
    Handlers live on root; nothing is attached to the returned logger.
    """
    if not _CONFIGURED:
        configure_logging()

    return logging.getLogger(name)


def get_request_logger(name: str, request_id: Optional[str]) -> logging.LoggerAdapter:
    """
    Adapter over the module logger that stamps `request_id` on its own records only.
    One adapter per request; concurrent requests never see each other's id.
    """
    return logging.LoggerAdapter(get_logger(name), {"request_id": request_id or NO_REQUEST_ID})


__all__ = [
    "NO_REQUEST_ID",
    "configure_logging",
    "configure_logging_from_params",
    "get_logger",
    "get_request_logger",
    "RequestIdFilter",
    "NoisyLibFilter",
]
