from __future__ import annotations

import logging
from typing import Any, Dict

import structlog

LOGGER_NAME = "rollup_wallet"

_service = "rollup-wallet"

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


def _add_service(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    event_dict.setdefault("service", _service)
    return event_dict


def setup_logging(level: str = "info", service: str = "rollup-wallet") -> None:
    """Configure structured JSON logging for the wallet logger."""
    global _service
    _service = service

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            _add_service,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(sort_keys=True),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    stdlib_logger = logging.getLogger(LOGGER_NAME)
    if not stdlib_logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(message)s"))
        stdlib_logger.addHandler(handler)
        stdlib_logger.propagate = False
    stdlib_logger.setLevel(_LEVELS.get(level.strip().lower(), logging.INFO))


def build_log_context(**fields: Any) -> Dict[str, Any]:
    """
    Static fields attached to every event emitted with this context.
    """
    return {k: v for k, v in fields.items() if v is not None}


def log_event(
    event: str,
    *,
    ctx: Dict[str, Any] | None = None,
    data: Dict[str, Any] | None = None,
    level: str = "info",
) -> None:
    """
    Emit one JSON line per event. Never pass key material or signatures in ``data``.
    """
    if not structlog.is_configured():
        setup_logging()
    logger = structlog.get_logger(LOGGER_NAME).bind(**(ctx or {}))
    kw: Dict[str, Any] = {"data": data} if data else {}
    logger.log(_LEVELS.get(level, logging.INFO), event, **kw)
