"""
Per-message moderation flow.

Flow for each inbound message:
1. Skip automated authors (including the bot itself)
2. Skip duplicate deliveries using the seen-message window
3. Skip exempt roles and exempt channels
4. Detect rule hits; no hit ends processing without an audit record
5. Execute the rule's action and record the outcome, success or failure

Unexpected errors anywhere in the flow become a processing-error audit
record instead of propagating to the event loop.
"""

from __future__ import annotations

from typing import Dict, Optional

from modsentry.configuration.rule_store import RuleStore
from modsentry.datatypes.message_datatypes import InboundMessage
from modsentry.datatypes.moderation_datatypes import (
    ActionType,
    AuditRecord,
    DetectionResult,
    HealthReport,
    HealthStatus,
    RuleSet,
)
from modsentry.moderation.action_executor import ActionExecutor
from modsentry.moderation.audit_logger import AuditLogger
from modsentry.moderation.word_detector import WordDetector
from modsentry.util.logger import get_logger
from modsentry.util.seen_messages import SeenMessageWindow

logger = get_logger("moderation_pipeline")

DEFAULT_LOG_RETENTION_DAYS = 30


class ModerationPipeline:
    """
    Orchestrates detection, enforcement and auditing for inbound messages.

    All collaborators are injected so tests can substitute fakes.

    Attributes:
        rule_store: Owner of the rule/settings snapshot.
        detector: Word detector reading from ``rule_store``.
        executor: Runs enforcement actions.
        audit_logger: Receives one record per terminal outcome.
    """

    def __init__(
        self,
        rule_store: RuleStore,
        detector: WordDetector,
        executor: ActionExecutor,
        audit_logger: AuditLogger,
        seen_window: Optional[SeenMessageWindow] = None,
    ) -> None:
        self.rule_store = rule_store
        self.detector = detector
        self.executor = executor
        self.audit_logger = audit_logger
        self._seen = seen_window or SeenMessageWindow()

    # --------------------------
    # Lifecycle
    # --------------------------
    def initialize(self) -> RuleSet:
        """Load the rule set and push its settings into the collaborators."""
        rule_set = self.rule_store.load()
        self._apply_settings(rule_set)
        return rule_set

    def _apply_settings(self, rule_set: RuleSet) -> None:
        settings = rule_set.settings
        self.executor.set_admin_channel(settings.admin_notify_channel_id)
        self.audit_logger.set_max_log_file_bytes(settings.max_log_file_bytes)

    def _current_rule_set(self) -> RuleSet:
        snapshot = self.rule_store.snapshot
        return snapshot if snapshot is not None else self.initialize()

    # --------------------------
    # Message processing
    # --------------------------
    def _is_exempt(self, message: InboundMessage, rule_set: RuleSet) -> bool:
        settings = rule_set.settings
        if message.channel_id in settings.exempt_channel_ids:
            logger.debug("[PIPELINE] Skipping message %s: exempt channel %s", message.message_id, message.channel_id)
            return True
        if settings.exempt_role_ids and message.author_role_ids & settings.exempt_role_ids:
            logger.debug("[PIPELINE] Skipping message %s: author holds an exempt role", message.message_id)
            return True
        return False

    async def _dispatch(self, message: InboundMessage, detection: DetectionResult, rule_set: RuleSet) -> None:
        words = list(detection.matched_words)
        if detection.action is ActionType.WARN:
            await self.executor.execute_warn(message, words)
        elif detection.action is ActionType.DELETE:
            await self.executor.execute_delete(message, words)
        elif detection.action is ActionType.RESTRICT:
            duration = detection.restrict_duration_ms or rule_set.settings.default_restrict_duration_ms
            await self.executor.execute_restrict(message, words, duration)
        else:
            raise ValueError(f"Unsupported action: {detection.action}")

    async def process(self, message: InboundMessage) -> None:
        """Run one inbound message through the moderation flow. Never raises."""
        try:
            await self._process(message)
        except Exception as exc:
            logger.exception("[PIPELINE] Processing error for message %s: %s", message.message_id, exc)
            await self.audit_logger.record(
                AuditRecord(
                    author_id=message.author_id,
                    author_display=message.author_display,
                    message_text=message.content,
                    matched_words=(),
                    action=ActionType.WARN,
                    level=0,
                    success=False,
                    error=str(exc) or type(exc).__name__,
                )
            )

    async def _process(self, message: InboundMessage) -> None:
        if message.author_is_bot:
            return

        if not await self._seen.check_and_add(message.message_id):
            logger.debug("[PIPELINE] Skipping duplicate delivery of message %s", message.message_id)
            return

        rule_set = self._current_rule_set()
        if self._is_exempt(message, rule_set):
            return

        detection = self.detector.detect(message.content)
        if detection is None:
            return

        logger.info(
            "[PIPELINE] Level %d %s triggered by user %s in channel %s",
            detection.level,
            detection.action.value,
            message.author_id,
            message.channel_id,
        )

        record = AuditRecord(
            author_id=message.author_id,
            author_display=message.author_display,
            message_text=message.content,
            matched_words=detection.matched_words,
            action=detection.action,
            level=detection.level,
            success=False,
        )

        try:
            await self._dispatch(message, detection, rule_set)
            record.success = True
        except Exception as exc:
            record.error = str(exc) or type(exc).__name__
            logger.warning(
                "[PIPELINE] %s failed for message %s: %s",
                detection.action.value,
                message.message_id,
                record.error,
            )

        await self.audit_logger.record(record)

    # --------------------------
    # Administrative surface
    # --------------------------
    def reload_configuration(self) -> RuleSet:
        """Reload rules and settings. Errors propagate to the operator."""
        rule_set = self.rule_store.reload()
        self._apply_settings(rule_set)
        logger.info("[PIPELINE] Configuration reloaded: %d rules active", len(rule_set.rules))
        return rule_set

    async def cleanup_logs(self, days_to_keep: int = DEFAULT_LOG_RETENTION_DAYS) -> int:
        """Purge old audit logs. Never raises; returns -1 on failure."""
        try:
            return await self.audit_logger.purge_older_than(days_to_keep)
        except Exception as exc:
            logger.error("[PIPELINE] Log cleanup failed: %s", exc)
            return -1

    def health_check(self) -> HealthReport:
        """Summarize component readiness without touching the platform."""
        try:
            components = {
                "rule_store": self.rule_store.snapshot is not None,
                "word_detector": self.detector.rule_count() > 0,
                "action_executor": True,
                "audit_logger": self.audit_logger.is_writable(),
            }
        except Exception as exc:
            logger.error("[PIPELINE] Health check failed: %s", exc)
            return HealthReport(
                status=HealthStatus.UNHEALTHY,
                components={
                    "rule_store": False,
                    "word_detector": False,
                    "action_executor": False,
                    "audit_logger": False,
                },
                details=str(exc),
            )

        unhealthy = [name for name, healthy in components.items() if not healthy]
        if not unhealthy:
            status = HealthStatus.HEALTHY
        elif len(unhealthy) <= 2:
            status = HealthStatus.DEGRADED
        else:
            status = HealthStatus.UNHEALTHY

        details = f"Unhealthy components: {', '.join(unhealthy)}" if unhealthy else None
        return HealthReport(status=status, components=components, details=details)

    def service_stats(self) -> Dict[str, object]:
        snapshot = self.rule_store.snapshot
        return {
            "rules_loaded": self.detector.rule_count(),
            "settings_configured": snapshot is not None and not snapshot.from_defaults,
            "exempt_channels": len(snapshot.settings.exempt_channel_ids) if snapshot else 0,
            "exempt_roles": len(snapshot.settings.exempt_role_ids) if snapshot else 0,
            "seen_messages": len(self._seen),
        }

    def test_detection(self, text: str) -> Dict[str, object]:
        """Run detection on ``text`` without acting or recording anything."""
        return {
            "detection": self.detector.detect(text),
            "details": self.detector.detection_details(text),
        }
