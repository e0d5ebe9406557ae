"""Log setup for the market metrics tracker.

Events from the ingestion cycle, the store and the HTTP API all flow through
one root handler. Every per-symbol fetch in a cycle runs as its own task and
binds ``symbol`` via structlog.contextvars, so a line such as
``sample_stored`` or ``symbol_fetch_failed`` names the symbol it belongs to
without passing it explicitly. aiosqlite, ccxt, uvicorn access and httpx are
kept at WARNING so cycle summaries stay readable.
"""

import logging
import os

import structlog

# Third-party loggers that are chatty at INFO/DEBUG
_NOISY_LOGGERS = ("aiosqlite", "ccxt", "uvicorn.access", "httpx")

_RENDERERS = {
    "json": structlog.processors.JSONRenderer,
    "console": structlog.dev.ConsoleRenderer,
}


def _pre_chain() -> list[structlog.types.Processor]:
    # Applied to structlog events and to records from plain stdlib loggers alike
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]


def _build_handler(log_format: str) -> logging.Handler:
    renderer_cls = _RENDERERS.get(log_format, structlog.dev.ConsoleRenderer)
    handler = logging.StreamHandler()
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=_pre_chain(),
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                renderer_cls(),
            ],
        )
    )
    return handler


def setup_logging(log_level: str = "INFO", log_format: str | None = None) -> None:
    """Route structlog and stdlib logging through a single stream handler.

    ``log_format`` is "json" or "console"; when omitted the LOG_FORMAT
    environment variable decides, defaulting to console output. Calling it
    again replaces the previous handler.
    """
    log_format = (log_format or os.environ.get("LOG_FORMAT", "console")).lower()

    structlog.configure(
        processors=[*_pre_chain(), structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(_build_handler(log_format))
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
