"""
Rule-based word detection.

Matching is literal and case-insensitive. By default a rule word matches
anywhere inside the message, including inside longer words ("ass" matches
"class"). ``MatchMode.WORD_BOUNDARY`` restricts hits to whole words for
servers that want the stricter behavior.
"""

from __future__ import annotations

import re
from enum import Enum
from typing import Dict, List, Optional, Sequence

from modsentry.configuration.rule_store import RuleStore
from modsentry.datatypes.moderation_datatypes import DetectionResult, Rule, RuleSet
from modsentry.util.logger import get_logger

logger = get_logger("word_detector")


class MatchMode(Enum):
    SUBSTRING = "substring"
    WORD_BOUNDARY = "word_boundary"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def parse(cls, value: str) -> "MatchMode":
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            logger.warning("[WORD DETECTOR] Unknown match mode %r; using substring matching", value)
            return cls.SUBSTRING


class WordDetector:
    """Evaluate message text against the rule store's current snapshot.

    The detector holds no rules of its own: every call reads the snapshot
    from the store, so a reload takes effect on the next message.
    """

    def __init__(self, rule_store: RuleStore, match_mode: MatchMode = MatchMode.SUBSTRING) -> None:
        self._rule_store = rule_store
        self.match_mode = match_mode

    def _current_rules(self) -> RuleSet:
        snapshot = self._rule_store.snapshot
        return snapshot if snapshot is not None else self._rule_store.load()

    def _contains(self, normalized_text: str, word: str) -> bool:
        if self.match_mode is MatchMode.WORD_BOUNDARY:
            return re.search(rf"(?<!\w){re.escape(word)}(?!\w)", normalized_text) is not None
        return word in normalized_text

    def _matched_words(self, normalized_text: str, words: Sequence[str]) -> List[str]:
        matched = []
        for word in words:
            normalized_word = word.casefold().strip()
            if normalized_word and self._contains(normalized_text, normalized_word):
                matched.append(word)
        return matched

    def detect(self, text: object) -> Optional[DetectionResult]:
        """Return the highest-level rule hit for ``text``, or None.

        Rules are visited in descending level order; among rules sharing the
        top level, the first one visited wins.
        """
        if not isinstance(text, str) or not text:
            return None

        normalized_text = text.casefold()
        best: Optional[DetectionResult] = None

        for rule in self._current_rules().rules:
            matched = self._matched_words(normalized_text, rule.words)
            if not matched:
                continue
            if best is None or rule.level > best.level:
                best = DetectionResult(
                    level=rule.level,
                    matched_words=tuple(matched),
                    action=rule.action,
                    restrict_duration_ms=rule.restrict_duration_ms,
                )

        if best is not None:
            logger.debug(
                "[WORD DETECTOR] Level %d hit (%s) on words %s",
                best.level,
                best.action.value,
                list(best.matched_words),
            )
        return best

    def rule_count(self) -> int:
        snapshot = self._rule_store.snapshot
        return len(snapshot.rules) if snapshot is not None else 0

    def rules_by_level(self, level: int) -> List[Rule]:
        return [rule for rule in self._current_rules().rules if rule.level == level]

    def detection_details(self, text: str) -> Dict[str, object]:
        """Per-level breakdown of every rule hit, for operator diagnostics."""
        normalized_text = text.casefold()
        rules = self._current_rules().rules
        by_level: Dict[int, List[str]] = {}
        for rule in rules:
            matched = self._matched_words(normalized_text, rule.words)
            if matched:
                by_level.setdefault(rule.level, []).extend(matched)
        return {
            "original_text": text,
            "normalized_text": normalized_text,
            "rules_checked": len(rules),
            "match_mode": self.match_mode.value,
            "detections_by_level": by_level,
        }
