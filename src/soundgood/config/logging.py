"""structlog setup for soundgood.

All log output goes to stderr so it never mixes with rendered results or
the console prompt. Stdlib loggers (``logging.getLogger(__name__)`` in
every module, plus SQLAlchemy's) are formatted by the same structlog
processor chain, as colored lines or, with ``--log-json``, JSON lines.
"""

from __future__ import annotations

import logging
import sys

import structlog

# Library loggers kept at WARNING regardless of -v; SQL echo has its own switch.
_LIBRARY_LEVELS: dict[str, int] = {
    "sqlalchemy": logging.WARNING,
}


def _pre_chain() -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]


def _renderer(log_json: bool) -> structlog.types.Processor:
    if log_json:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())


def configure_logging(*, verbose: bool = False, log_json: bool = False) -> None:
    """Install one stderr handler on the root logger and configure structlog.

    Safe to call repeatedly (each CLI invocation does); the previous
    handler is replaced.

    Args:
        verbose: Log ``soundgood.*`` at DEBUG instead of WARNING.
        log_json: Emit JSON lines instead of console lines.
    """
    pre_chain = _pre_chain()

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=pre_chain,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                _renderer(log_json),
            ],
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(logging.WARNING)

    logging.getLogger("soundgood").setLevel(logging.DEBUG if verbose else logging.WARNING)
    for name, level in _LIBRARY_LEVELS.items():
        logging.getLogger(name).setLevel(level)
