"""
ModSentry - Word-Filter Moderation Bot for Discord

ModSentry scans guild messages against configured word lists and responds with
escalating enforcement, recording every outcome in an audit log.

Core Components:

- **Rule Store**: Loads and validates the YAML rule document, falling back to
  built-in defaults when the file is missing or invalid
- **Word Detection**: Case-insensitive matching of rule words, picking the
  highest-severity rule that hits
- **Moderation Actions**: Warnings, message deletion and timeouts with
  permission pre-checks, retries and administrator escalation
- **Audit Logging**: Append-only JSON lines with size-based rotation
- **Interactive Console**: Live reload, health checks and log cleanup

Usage:
    from modsentry.main import main
    main()  # Starts the bot with console interface
"""
