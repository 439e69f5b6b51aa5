"""Structured Logging: JSON formatter and setup for production observability.

Invariants:
    - All logs include timestamp, level, logger name, and message
    - Extra fields (account, chain_id, source, tx_hash, error_code, state) surfaced when present
    - JSON format in production, human-readable in development

Design Decisions:
    - Wallet and ledger context travels as logging `extra` keys, so one flat JSON object
      per line carries account, chain and tx hash without a structured-logging library
    - Mirror service calls setup_logging from its lifespan; client code leaves handlers to the host
"""

import json
import logging
from datetime import datetime, timezone

_EXTRA_FIELDS = (
    "account", "chain_id", "status", "state", "source", "tx_hash",
    "error_code", "attempt", "count", "path",
)


class JSONFormatter(logging.Formatter):
    """Format logs as JSON for structured logging in production."""

    def format(self, record: logging.LogRecord) -> str:
        log = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in _EXTRA_FIELDS:
            val = record.__dict__.get(key)
            if val is not None:
                log[key] = val
        if record.exc_info:
            log["exception"] = self.formatException(record.exc_info)
        return json.dumps(log, ensure_ascii=False, default=str)


def setup_logging(level: str = "INFO", fmt: str = "json"):
    """Configure logging for the application."""
    handler = logging.StreamHandler()
    if fmt == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s: %(message)s",
        ))
    logging.root.addHandler(handler)
    logging.root.setLevel(getattr(logging, level.upper(), logging.INFO))
