"""
Centralized logging configuration for the ingestion module.

Suppresses per-request chatter from the HTTP and SQLite client libraries
that would otherwise flood logs during bulk indexing.

Import triggers configuration - no function call needed.
"""
import logging

_QUIET_LOGGERS = [
    'httpx',
    'httpcore',
    'aiosqlite',
]

for _logger_name in _QUIET_LOGGERS:
    logging.getLogger(_logger_name).setLevel(logging.WARNING)
