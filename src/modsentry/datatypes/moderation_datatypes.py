"""
Moderation data structures shared across the pipeline.

This module defines the ActionType enum, the immutable rule snapshot types
(Rule, Settings, RuleSet), the per-message DetectionResult, and the
append-only AuditRecord written by the audit logger.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Tuple


class ActionType(Enum):
    """Enumeration of supported enforcement actions, mildest first."""

    WARN = "warn"
    DELETE = "delete"
    RESTRICT = "restrict"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True, slots=True)
class Rule:
    """A severity level, its trigger words and the action to take on a hit.

    Attributes:
        level: Severity; higher is stricter.
        words: Trigger terms, matched case-insensitively.
        action: Action executed when any word matches.
        restrict_duration_ms: Restriction length; required for RESTRICT rules.
    """

    level: int
    words: Tuple[str, ...]
    action: ActionType
    restrict_duration_ms: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Rule":
        duration = data.get("restrict_duration_ms")
        return cls(
            level=int(data["level"]),
            words=tuple(str(word) for word in data["words"]),
            action=ActionType(data["action"]),
            restrict_duration_ms=int(duration) if duration is not None else None,
        )


@dataclass(frozen=True, slots=True)
class Settings:
    """Global moderation settings loaded alongside the rules."""

    max_log_file_bytes: int = 10 * 1024 * 1024
    exempt_role_ids: frozenset[str] = frozenset()
    exempt_channel_ids: frozenset[str] = frozenset()
    default_restrict_duration_ms: int = 600_000
    admin_notify_channel_id: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Settings":
        channel_id = data.get("admin_notify_channel_id")
        return cls(
            max_log_file_bytes=int(data["max_log_file_bytes"]),
            exempt_role_ids=frozenset(str(role_id) for role_id in data["exempt_role_ids"]),
            exempt_channel_ids=frozenset(str(channel) for channel in data["exempt_channel_ids"]),
            default_restrict_duration_ms=int(data["default_restrict_duration_ms"]),
            admin_notify_channel_id=str(channel_id) if channel_id is not None else None,
        )


@dataclass(frozen=True, slots=True)
class RuleSet:
    """Immutable snapshot of the active rules and settings.

    ``rules`` is sorted by descending level once, at construction time; the
    sort is stable so rules sharing a level keep their document order.
    """

    rules: Tuple[Rule, ...]
    settings: Settings = field(default_factory=Settings)
    default_rules: Tuple[Rule, ...] = ()
    from_defaults: bool = False

    @classmethod
    def from_document(cls, document: Dict[str, Any], *, from_defaults: bool = False) -> "RuleSet":
        rules = [Rule.from_dict(rule) for rule in document.get("rules", [])]
        rules.sort(key=lambda rule: rule.level, reverse=True)
        settings_data = document.get("settings")
        return cls(
            rules=tuple(rules),
            settings=Settings.from_dict(settings_data) if settings_data else Settings(),
            default_rules=tuple(Rule.from_dict(rule) for rule in document.get("default_rules", [])),
            from_defaults=from_defaults,
        )

    def is_empty(self) -> bool:
        return not self.rules


@dataclass(frozen=True, slots=True)
class DetectionResult:
    """Outcome of matching one message against the rule snapshot."""

    level: int
    matched_words: Tuple[str, ...]
    action: ActionType
    restrict_duration_ms: Optional[int] = None


@dataclass(slots=True)
class AuditRecord:
    """Outcome record for one processed message.

    The pipeline builds the record with ``success=False`` before acting and
    fills in the outcome afterwards; once handed to the audit logger it is
    never touched again.
    """

    author_id: str
    author_display: str
    message_text: str
    matched_words: Tuple[str, ...]
    action: ActionType
    level: int
    success: bool = False
    error: Optional[str] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        """Return the JSON-ready mapping written to the audit log.

        ``message_text`` is written as given; the audit logger sanitizes it
        before calling this.
        """
        payload: Dict[str, Any] = {
            "timestamp": self.timestamp.isoformat(),
            "authorId": self.author_id,
            "authorDisplay": self.author_display,
            "messageText": self.message_text,
            "matchedWords": list(self.matched_words),
            "action": self.action.value,
            "level": self.level,
            "success": self.success,
        }
        if self.error:
            payload["error"] = self.error
        return payload


@dataclass(frozen=True, slots=True)
class ActionContext:
    """Details passed along with an administrator escalation."""

    user_id: str
    message_id: str
    action: ActionType
    error: str


class HealthStatus(Enum):
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"

    def __str__(self) -> str:
        return self.value


@dataclass(slots=True)
class HealthReport:
    status: HealthStatus
    components: Dict[str, bool]
    details: Optional[str] = None
