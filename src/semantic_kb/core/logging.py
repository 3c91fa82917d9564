"""
Logging utilities for the semantic knowledge base.

Provides JSON-structured and human-readable formatters that carry the
operation context (source, store path, record counts, timings) attached to
log records through the ``extra`` parameter.
"""

import json
import logging
import sys
from datetime import datetime, timezone


PACKAGE_LOGGER = "semantic_kb"

CONTEXT_FIELDS = ("operation", "source", "store_path", "record_count", "duration_ms")


class StructuredFormatter(logging.Formatter):
    """
    Formatter that outputs JSON-structured log lines.
    
    Each log line includes:
    - Standard log fields (timestamp, level, message, logger)
    - Context fields if present (operation, source, store_path, ...)
    - Exception text if the record carries exc_info
    """
    
    def __init__(self, include_timestamp: bool = True):
        super().__init__()
        self.include_timestamp = include_timestamp
    
    def format(self, record: logging.LogRecord) -> str:
        """Format the log record as JSON."""
        log_entry = {
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        
        if self.include_timestamp:
            log_entry["timestamp"] = datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat()
        
        for field in CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                log_entry[field] = value
        
        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)
        
        return json.dumps(log_entry, default=str)


class HumanReadableFormatter(logging.Formatter):
    """
    Formatter that outputs human-readable log lines with context.
    
    Format: TIMESTAMP - LOGGER - LEVEL - MESSAGE [operation=X source=Y]
    """
    
    def __init__(self, include_timestamp: bool = True):
        if include_timestamp:
            fmt = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        else:
            fmt = "%(name)s - %(levelname)s - %(message)s"
        super().__init__(fmt)
    
    def format(self, record: logging.LogRecord) -> str:
        """Format the log record with a context suffix."""
        base = super().format(record)
        
        context_parts = []
        for field in CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                context_parts.append(f"{field}={value}")
        
        if context_parts:
            return f"{base} [{' '.join(context_parts)}]"
        return base


def configure_logging(
    level: int = logging.INFO,
    include_timestamp: bool = True,
    structured: bool = False,
) -> logging.Logger:
    """
    Configure the package logger.
    
    Attaches a single stderr handler to the ``semantic_kb`` logger. Calling
    this again only adjusts the level; handlers are never duplicated.
    
    Args:
        level: Logging level (default: INFO)
        include_timestamp: Whether to include timestamp in log messages
        structured: If True, output JSON lines; if False, human-readable
        
    Returns:
        The configured package logger
    """
    kb_logger = logging.getLogger(PACKAGE_LOGGER)
    kb_logger.setLevel(level)
    
    if not kb_logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setLevel(level)
        
        if structured:
            formatter = StructuredFormatter(include_timestamp=include_timestamp)
        else:
            formatter = HumanReadableFormatter(include_timestamp=include_timestamp)
        
        handler.setFormatter(formatter)
        kb_logger.addHandler(handler)
    else:
        for handler in kb_logger.handlers:
            handler.setLevel(level)
    
    return kb_logger
