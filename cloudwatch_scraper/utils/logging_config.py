# Copyright (c) 2025-2026 OptimNow. All Rights Reserved.
# Licensed under the Apache License, Version 2.0.
# See LICENSE file in the project root for full license information.

"""Logging configuration and context-scoped loggers.

Scrape units log through a ContextLogger that carries the unit's identity
(job, region, role, account) as key/value fields. Each nesting level gets a
new adapter with the extra fields appended; the parent is never modified, so
concurrent units never see each other's context.
"""

import logging
import sys
from typing import Any, MutableMapping

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(log_level: str) -> None:
    """
    Configure logging for the application.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
    """
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)

    logging.basicConfig(
        level=numeric_level,
        format=LOG_FORMAT,
        handlers=[
            logging.StreamHandler(sys.stdout),
        ],
    )

    # botocore is chatty at DEBUG
    logging.getLogger("botocore").setLevel(max(numeric_level, logging.INFO))
    logging.getLogger("urllib3").setLevel(max(numeric_level, logging.INFO))


class ContextLogger(logging.LoggerAdapter):
    """
    Logger adapter carrying an ordered, immutable set of key/value fields.

    Fields are rendered as ``key=value`` after the message and passed to
    handlers as ``record.context`` for structured formatters.
    """

    def __init__(self, logger: logging.Logger, fields: tuple[tuple[str, Any], ...] = ()):
        super().__init__(logger, {})
        self.fields = fields

    def with_fields(self, **fields: Any) -> "ContextLogger":
        """Return a new logger with ``fields`` appended to this logger's fields."""
        return ContextLogger(self.logger, self.fields + tuple(fields.items()))

    @property
    def context(self) -> dict[str, Any]:
        return dict(self.fields)

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> tuple[Any, MutableMapping[str, Any]]:
        if not self.fields:
            return msg, kwargs
        extra = dict(kwargs.get("extra") or {})
        extra.setdefault("context", self.context)
        kwargs["extra"] = extra
        rendered = " ".join(f"{key}={value}" for key, value in self.fields)
        return f"{msg} [{rendered}]", kwargs


def get_context_logger(name: str, **fields: Any) -> ContextLogger:
    """Create a ContextLogger for the named module logger."""
    return ContextLogger(logging.getLogger(name), tuple(fields.items()))
