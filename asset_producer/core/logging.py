"""
Structured logging configuration for the asset producer.

Every log record carries ``action``, ``site``, ``scan`` and ``asset`` fields
so that a line can be traced back to the notification, the scanned site and
the asset it concerns.

Usage::

    from asset_producer.core.logging import configure_logging, get_logger

    configure_logging()                # call once at startup
    logger = get_logger(__name__)
    logger.info("fetch started", extra={"action": "fetch_start", "site": "42"})

    log = scan_logger(logger, site_id="42", scan_id="7")
    log.warning("asset rejected", extra={"action": "asset_validate_fail", "asset": 9})
"""

from __future__ import annotations

import logging
import sys
from typing import Any, MutableMapping, Optional

from asset_producer.config import get_settings

# ── Constants ────────────────────────────────────────────────────────────────

_LOG_FORMAT: str = (
    "%(asctime)s | %(levelname)-8s | %(name)s | "
    "action=%(action)s | site=%(site)s | scan=%(scan)s | asset=%(asset)s | %(message)s"
)
_DATE_FORMAT: str = "%Y-%m-%dT%H:%M:%S%z"
_ROOT_LOGGER_NAME: str = "asset_producer"


# ── Custom Formatter ─────────────────────────────────────────────────────────

class StructuredFormatter(logging.Formatter):
    """Formatter that injects default values for structured fields.

    Missing structured fields are rendered as a dash (``-``) so the format
    string never raises a ``KeyError``.
    """

    _DEFAULTS: dict[str, str] = {
        "action": "-",
        "site": "-",
        "scan": "-",
        "asset": "-",
    }

    def format(self, record: logging.LogRecord) -> str:
        for key, default in self._DEFAULTS.items():
            if not hasattr(record, key):
                setattr(record, key, default)
        return super().format(record)


# ── Public API ───────────────────────────────────────────────────────────────

def configure_logging(level: Optional[str] = None) -> None:
    """Initialise the service-wide logging configuration.

    This should be called exactly once during application startup.

    Args:
        level: Override the log level.  When ``None``, ``settings.LOG_LEVEL``
            is used if set, otherwise ``DEBUG`` if ``settings.DEBUG`` is
            truthy and ``INFO`` otherwise.
    """
    settings = get_settings()

    if level is None:
        level = settings.LOG_LEVEL or ("DEBUG" if settings.DEBUG else "INFO")
    level = level.upper()

    root_logger: logging.Logger = logging.getLogger(_ROOT_LOGGER_NAME)
    root_logger.setLevel(level)

    # Avoid adding duplicate handlers on repeated calls (e.g. in tests).
    if not root_logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setLevel(level)
        handler.setFormatter(StructuredFormatter(_LOG_FORMAT, datefmt=_DATE_FORMAT))
        root_logger.addHandler(handler)

    # httpx logs every request at INFO.
    for noisy_logger in ("httpx", "httpcore", "uvicorn.access"):
        logging.getLogger(noisy_logger).setLevel(logging.WARNING)

    root_logger.info(
        "Logging configured at %s level",
        level,
        extra={"action": "logging_init"},
    )


def get_logger(name: str) -> logging.Logger:
    """Return a child logger under the ``asset_producer`` namespace.

    Names that already start with the package name (the usual ``__name__``
    of a module inside the package) are used as-is.

    Args:
        name: Typically ``__name__`` of the calling module.

    Returns:
        A :class:`logging.Logger` instance.
    """
    if name == _ROOT_LOGGER_NAME or name.startswith(f"{_ROOT_LOGGER_NAME}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{_ROOT_LOGGER_NAME}.{name}")


class ScanLoggerAdapter(logging.LoggerAdapter):
    """Stamps every record with the site and scan of one notification.

    Per-call ``extra`` values (``action``, ``asset``) are merged over the
    bound fields rather than replacing them.
    """

    def process(
        self, msg: Any, kwargs: MutableMapping[str, Any]
    ) -> tuple[Any, MutableMapping[str, Any]]:
        kwargs["extra"] = {**self.extra, **kwargs.get("extra", {})}
        return msg, kwargs


def scan_logger(logger: logging.Logger, site_id: str, scan_id: str) -> ScanLoggerAdapter:
    """Bind *site_id* and *scan_id* to *logger* for the duration of one run."""
    return ScanLoggerAdapter(logger, {"site": site_id, "scan": scan_id})
