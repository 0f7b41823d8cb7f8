"""
Configuration management for ModSentry.

- **app_configuration.py**: YAML loader for process-wide settings such as
  the rule file location, audit log directory and retry tuning.

- **rule_store.py**: Loads, validates and hot-reloads the moderation rule
  document. Invalid or missing documents fall back to built-in defaults.
"""
