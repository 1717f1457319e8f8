"""
src/orchestrator/observability.py

structlog setup shared by the app and the orchestrator.
"""


import logging
import sys

import structlog

from config import LOG_FORMAT, LOG_LEVEL


def setup_logging(
    log_level: str = LOG_LEVEL,
    log_format: str = LOG_FORMAT,
    service_name: str = "hospital-coordinator"
) -> None:
    """Setup structured logging configuration"""

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper(), logging.INFO)
    )

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if log_format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    structlog.contextvars.bind_contextvars(service=service_name)

def bind_turn(conversation_id: str, turn_index: int) -> None:
    """Attach the conversation/turn ids to every log line emitted by this thread."""

    structlog.contextvars.bind_contextvars(conversation_id=conversation_id, turn=turn_index)

def unbind_turn() -> None:

    structlog.contextvars.unbind_contextvars("conversation_id", "turn")
