"""
Append-only audit log of moderation outcomes.

Each processed message that reaches a terminal outcome is written as one
JSON line to ``moderation-YYYY-MM-DD.log`` in the log directory. When the
current file reaches the configured size it is renamed to a timestamped
archive and a fresh file is started. Audit failures are reported on the
application log and never propagate to the caller.
"""

from __future__ import annotations

import asyncio
import json
import os
import uuid
from datetime import datetime, timedelta
from pathlib import Path

from modsentry.datatypes.moderation_datatypes import AuditRecord
from modsentry.util.format_utils import sanitize_content
from modsentry.util.logger import get_logger

logger = get_logger("audit_logger")

LOG_FILE_PREFIX = "moderation-"
LOG_FILE_SUFFIX = ".log"
DEFAULT_MAX_LOG_FILE_BYTES = 10 * 1024 * 1024


def generate_log_file_name(now: datetime | None = None) -> str:
    """Name of the current (date-based) log file."""
    now = now or datetime.now()
    return f"{LOG_FILE_PREFIX}{now.strftime('%Y-%m-%d')}{LOG_FILE_SUFFIX}"


def generate_archive_file_name(now: datetime | None = None) -> str:
    """Timestamped name for a rotated log file."""
    now = now or datetime.now()
    return f"{LOG_FILE_PREFIX}{now.strftime('%Y-%m-%d_%H-%M-%S-%f')}{LOG_FILE_SUFFIX}"


class AuditLogger:
    """Writer for the rotating moderation audit log.

    All appends, rotations and purges are serialized on one asyncio lock;
    the blocking file operations run in a worker thread.
    """

    def __init__(self, log_directory: Path, max_log_file_bytes: int = DEFAULT_MAX_LOG_FILE_BYTES) -> None:
        self.log_directory = self._ensure_log_directory(log_directory)
        self.max_log_file_bytes = max_log_file_bytes
        self.current_log_file = generate_log_file_name()
        self._lock = asyncio.Lock()

    @staticmethod
    def _ensure_log_directory(log_directory: Path) -> Path:
        try:
            log_directory.mkdir(parents=True, exist_ok=True)
            return log_directory
        except OSError as exc:
            fallback = Path.cwd()
            logger.error(
                "[AUDIT LOGGER] Cannot create log directory %s (%s); writing to %s instead",
                log_directory,
                exc,
                fallback,
            )
            return fallback

    @property
    def current_log_path(self) -> Path:
        return self.log_directory / self.current_log_file

    def set_max_log_file_bytes(self, max_bytes: int) -> None:
        if max_bytes > 0:
            self.max_log_file_bytes = max_bytes

    def is_writable(self) -> bool:
        return self.log_directory.is_dir() and os.access(self.log_directory, os.W_OK)

    # --------------------------
    # Recording
    # --------------------------
    async def record(self, entry: AuditRecord) -> None:
        """Append ``entry`` to the current log file.

        Never raises; on failure a compact summary goes to the application
        log instead.
        """
        try:
            payload = entry.to_dict()
            payload["messageText"] = sanitize_content(entry.message_text)
            line = json.dumps(payload, ensure_ascii=False) + "\n"

            async with self._lock:
                await asyncio.to_thread(self._rotate_if_needed)
                await asyncio.to_thread(self._append, self.current_log_path, line)
        except Exception as exc:
            logger.error("[AUDIT LOGGER] Failed to write audit record (%s): %s", exc, self._summarize(entry))

    @staticmethod
    def _summarize(entry: AuditRecord) -> str:
        """Compact one-line summary that tolerates malformed entries."""
        action = getattr(entry, "action", None)
        return json.dumps(
            {
                "timestamp": getattr(entry, "timestamp", None),
                "authorId": getattr(entry, "author_id", None),
                "authorDisplay": getattr(entry, "author_display", None),
                "action": getattr(action, "value", action),
                "level": getattr(entry, "level", None),
                "success": getattr(entry, "success", None),
            },
            ensure_ascii=False,
            default=str,
        )

    @staticmethod
    def _append(path: Path, line: str) -> None:
        with path.open("a", encoding="utf-8") as f:
            f.write(line)

    # --------------------------
    # Rotation
    # --------------------------
    def _rotate_if_needed(self) -> bool:
        """Archive the current file if it has reached the size limit.

        Returns True when a rotation (or fallback switch) happened.
        """
        current = self.current_log_path
        try:
            if not current.exists() or current.stat().st_size < self.max_log_file_bytes:
                return False
        except OSError as exc:
            logger.warning("[AUDIT LOGGER] Could not stat %s: %s", current, exc)
            return False

        archive = self.log_directory / generate_archive_file_name()
        try:
            current.rename(archive)
            self.current_log_file = generate_log_file_name()
            logger.info("[AUDIT LOGGER] Rotated %s to %s", current.name, archive.name)
        except OSError as exc:
            self.current_log_file = self._unique_log_file_name()
            logger.error(
                "[AUDIT LOGGER] Rotation of %s failed (%s); continuing in %s",
                current.name,
                exc,
                self.current_log_file,
            )
        return True

    @staticmethod
    def _unique_log_file_name() -> str:
        stamp = datetime.now().strftime("%Y-%m-%d_%H-%M-%S")
        return f"{LOG_FILE_PREFIX}{stamp}-{uuid.uuid4().hex[:8]}{LOG_FILE_SUFFIX}"

    async def rotate_log_file(self) -> bool:
        """Rotate now if the current file is at or over the size limit."""
        async with self._lock:
            return await asyncio.to_thread(self._rotate_if_needed)

    # --------------------------
    # Retention
    # --------------------------
    def _purge(self, cutoff: datetime) -> int:
        deleted = 0
        cutoff_ts = cutoff.timestamp()
        for path in self.log_directory.glob(f"{LOG_FILE_PREFIX}*{LOG_FILE_SUFFIX}"):
            if path.name == self.current_log_file:
                continue
            try:
                if path.stat().st_mtime < cutoff_ts:
                    path.unlink()
                    deleted += 1
            except OSError as exc:
                logger.warning("[AUDIT LOGGER] Could not delete old log %s: %s", path.name, exc)
        return deleted

    async def purge_older_than(self, days: int) -> int:
        """Delete archived log files last modified more than ``days`` ago.

        Individual failures are logged and skipped. Returns the number of
        files deleted.
        """
        cutoff = datetime.now() - timedelta(days=days)
        async with self._lock:
            deleted = await asyncio.to_thread(self._purge, cutoff)
        logger.info("[AUDIT LOGGER] Purged %d log files older than %d days", deleted, days)
        return deleted
