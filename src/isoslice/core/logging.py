"""
Structured logging for isoslice runs.

Slicer and pipeline events are structlog key/value events (``slicing_started``,
``perimeter_skipped``, ``pipeline_step_complete`` ...). The geometry modules
log through plain ``logging`` and end up in the same stream, rendered the same
way. Every line of a run carries the model and output paths bound by
:func:`bind_run_context`.

Usage::

    from isoslice.core.logging import configure_logging, get_logger

    configure_logging(level="DEBUG")  # once, from the CLI
    logger = get_logger(__name__)
    logger.info("layer_sliced", layer=3, paths=2)
"""

import logging
import sys
from typing import Any, Optional

import structlog

# Third-party loggers that are chatty at DEBUG and never useful below WARNING.
QUIET_LOGGERS = ("trimesh", "PIL", "matplotlib")


def configure_logging(
    level: str = "INFO",
    json_output: bool = False,
    log_file: Optional[str] = None,
) -> None:
    """
    Route structlog events and stdlib records through one renderer.

    Args:
        level: Minimum level for isoslice events (DEBUG, INFO, WARNING, ERROR).
        json_output: One JSON object per line instead of the console renderer.
        log_file: Also append the rendered lines to this file.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    logging.basicConfig(format="%(message)s", level=log_level, handlers=handlers, force=True)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # foreign_pre_chain stamps level, name and run context onto the plain
    # ``logging`` records from meshing, contour and diagnostics.
    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            _renderer(json_output),
        ],
    )
    for handler in logging.root.handlers:
        handler.setFormatter(formatter)


def _renderer(json_output: bool) -> structlog.types.Processor:
    if json_output:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer()


def bind_run_context(**values: Any) -> None:
    """Replace the per-run context (model file, output path) on later lines."""
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(**values)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
