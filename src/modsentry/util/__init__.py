"""
Utility functions and helpers for ModSentry.

This package provides reusable utilities:

- **logger.py**: Centralized logging configuration with colored console output
  and rotating file handlers. Uses prompt_toolkit for non-blocking console I/O.

- **discord_utils.py**: Py-cord adapter that turns Discord messages into
  pipeline inputs and answers permission and role-position queries.

- **retry.py**: Exponential backoff policy for platform calls.

- **seen_messages.py**: Bounded window of processed message ids.

- **format_utils.py**: User-facing notice text and log sanitization.
"""
