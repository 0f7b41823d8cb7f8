"""
User interface components for ModSentry.

- **console.py**: Interactive operator console for live bot management.
  Supports status and health checks, rule reloads, detection dry runs and
  audit log cleanup. Uses prompt_toolkit for non-blocking I/O.
"""
