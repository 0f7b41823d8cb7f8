"""
Loading, validation and caching of the moderation rule document.

The rule document is a YAML (or JSON) mapping::

    rules:
      - level: 1
        words: [spam]
        action: warn
      - level: 3
        words: [scam]
        action: restrict
        restrict_duration_ms: 600000
    settings:
      max_log_file_bytes: 10485760
      exempt_role_ids: []
      exempt_channel_ids: []
      default_restrict_duration_ms: 600000
      admin_notify_channel_id: null
    default_rules: [...]

Any problem reading or validating it degrades to the built-in defaults; the
pipeline always has a rule set to work with.
"""

from __future__ import annotations

import copy
from pathlib import Path
from typing import Any, Dict, Optional

import jsonschema
import yaml
from jsonschema import ValidationError

from modsentry.datatypes.moderation_datatypes import ActionType, RuleSet
from modsentry.util.logger import get_logger

logger = get_logger("rule_store")

MIN_RULE_LEVEL = 1
MAX_RULE_LEVEL = 3

_RULE_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "required": ["level", "words", "action"],
    "properties": {
        "level": {"type": "integer", "minimum": MIN_RULE_LEVEL, "maximum": MAX_RULE_LEVEL},
        "words": {
            "type": "array",
            "minItems": 1,
            "items": {"type": "string", "minLength": 1, "pattern": r"\S"},
        },
        "action": {"enum": [action.value for action in ActionType]},
        "restrict_duration_ms": {"type": ["integer", "null"]},
    },
    "if": {"properties": {"action": {"const": ActionType.RESTRICT.value}}},
    "then": {
        "required": ["restrict_duration_ms"],
        "properties": {"restrict_duration_ms": {"type": "integer", "exclusiveMinimum": 0}},
    },
}

_SETTINGS_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "required": [
        "max_log_file_bytes",
        "exempt_role_ids",
        "exempt_channel_ids",
        "default_restrict_duration_ms",
    ],
    "properties": {
        "max_log_file_bytes": {"type": "integer", "exclusiveMinimum": 0},
        "exempt_role_ids": {"type": "array", "items": {"type": ["string", "integer"]}},
        "exempt_channel_ids": {"type": "array", "items": {"type": ["string", "integer"]}},
        "default_restrict_duration_ms": {"type": "integer", "exclusiveMinimum": 0},
        "admin_notify_channel_id": {"type": ["string", "integer", "null"]},
    },
}

CONFIG_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "required": ["rules"],
    "properties": {
        "rules": {"type": "array", "items": _RULE_SCHEMA},
        "settings": _SETTINGS_SCHEMA,
        "default_rules": {"type": "array", "items": _RULE_SCHEMA},
    },
}

_DEFAULT_RULE: Dict[str, Any] = {"level": 1, "words": ["spam", "test"], "action": ActionType.WARN.value}

_DEFAULT_CONFIG: Dict[str, Any] = {
    "rules": [_DEFAULT_RULE],
    "settings": {
        "max_log_file_bytes": 10 * 1024 * 1024,
        "exempt_role_ids": [],
        "exempt_channel_ids": [],
        "default_restrict_duration_ms": 600_000,
        "admin_notify_channel_id": None,
    },
    "default_rules": [_DEFAULT_RULE],
}


def load_default_config() -> Dict[str, Any]:
    """Return a fresh copy of the built-in rule document."""
    return copy.deepcopy(_DEFAULT_CONFIG)


def _contains_bool(value: Any) -> bool:
    """True if a bool appears anywhere in the document.

    The rule document has no boolean fields, and a bool in a numeric field
    must not pass as 0 or 1.
    """
    if isinstance(value, bool):
        return True
    if isinstance(value, dict):
        return any(_contains_bool(item) for item in value.values())
    if isinstance(value, list):
        return any(_contains_bool(item) for item in value)
    return False


def validate_config(document: Any) -> bool:
    """Return True when ``document`` is a complete, well-typed rule document."""
    try:
        jsonschema.validate(instance=document, schema=CONFIG_SCHEMA)
    except ValidationError as exc:
        logger.error("[RULE STORE] Rule document failed validation: %s", exc.message)
        return False

    if _contains_bool(document):
        logger.error("[RULE STORE] Rule document contains a boolean value")
        return False
    return True


class RuleStore:
    """Owner of the active RuleSet snapshot.

    ``load`` caches a snapshot and ``reload`` replaces it. Replacement is a
    single reference assignment: callers holding an older snapshot keep a
    consistent, immutable view.
    """

    def __init__(self, config_path: Path) -> None:
        self.config_path = config_path
        self._snapshot: Optional[RuleSet] = None

    @property
    def snapshot(self) -> Optional[RuleSet]:
        """The cached rule set, or None before the first load."""
        return self._snapshot

    def load(self) -> RuleSet:
        """Return the cached rule set, reading the rule document if needed."""
        snapshot = self._snapshot
        if snapshot is not None:
            return snapshot

        return self._replace_snapshot()

    def reload(self) -> RuleSet:
        """Read the rule document again and swap in the new snapshot.

        The previous snapshot stays cached until the new one is built, so
        readers never observe an empty store mid-reload.
        """
        logger.info("[RULE STORE] Reloading rules from %s", self.config_path)
        return self._replace_snapshot()

    def _replace_snapshot(self) -> RuleSet:
        snapshot = self._read_rule_set()
        self._snapshot = snapshot
        logger.info(
            "[RULE STORE] Loaded %d rules from %s",
            len(snapshot.rules),
            "built-in defaults" if snapshot.from_defaults else self.config_path,
        )
        return snapshot

    def _read_rule_set(self) -> RuleSet:
        document = self._read_document()
        if document is None or not validate_config(document):
            return RuleSet.from_document(load_default_config(), from_defaults=True)
        return RuleSet.from_document(document)

    def _read_document(self) -> Optional[Any]:
        try:
            with self.config_path.open("r", encoding="utf-8") as f:
                return yaml.safe_load(f)
        except FileNotFoundError:
            logger.warning("[RULE STORE] Rule file %s not found; using built-in defaults.", self.config_path)
        except yaml.YAMLError as exc:
            logger.error("[RULE STORE] Failed to parse rule file %s: %s", self.config_path, exc)
        except (OSError, UnicodeDecodeError) as exc:
            logger.error("[RULE STORE] Failed to read rule file %s: %s", self.config_path, exc)
        return None
