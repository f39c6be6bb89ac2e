from __future__ import annotations

import logging
from typing import Optional

from recallrai.core.config import get_settings
from recallrai.core.security import redact_secrets


class RedactionFilter(logging.Filter):
    """Log filter that redacts API keys before output."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.msg = redact_secrets(str(record.msg))
        if record.args:
            record.args = tuple(redact_secrets(str(arg)) for arg in record.args)
        return True


def setup_logging(level: Optional[str] = None) -> None:
    """Configure SDK logging with secret redaction.

    ``level`` defaults to ``RECALLRAI_LOG_LEVEL``.
    """

    level = level or get_settings().log_level
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    # Logger filters do not apply to propagated records; attach to handlers.
    for handler in logging.getLogger().handlers:
        if not any(isinstance(item, RedactionFilter) for item in handler.filters):
            handler.addFilter(RedactionFilter())
