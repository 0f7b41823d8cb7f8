from __future__ import annotations
from pathlib import Path
import fcntl
from typing import Any, Dict
import yaml

from modsentry.util.logger import get_logger

logger = get_logger("app_configuration")


CONFIG_PATH = Path("./config/app_config.yml").resolve()

DEFAULT_RULES_PATH = "./config/moderation_rules.yml"
DEFAULT_LOG_DIRECTORY = "./logs/moderation"


class AppConfig:
    """File-lock based accessor around the YAML application configuration.

    The class caches the contents of ``./config/app_config.yml`` and exposes
    typed shortcuts for the ``moderation`` section. Missing keys fall back to
    defaults so a missing or broken file never stops the bot from starting.
    """

    def __init__(self, config_path: Path) -> None:
        self.config_path = config_path
        self._data: Dict[str, Any] = {}
        self.reload()

    # --------------------------
    # Private helpers
    # --------------------------
    def load_from_disk(self) -> Dict[str, Any]:
        try:
            with self.config_path.open("r", encoding="utf-8") as f:
                # Shared lock while reading
                fcntl.flock(f.fileno(), fcntl.LOCK_SH)
                data = yaml.safe_load(f)
                fcntl.flock(f.fileno(), fcntl.LOCK_UN)
                if not isinstance(data, dict):
                    logger.error("[APP CONFIGURATION] Config %s is not a mapping; ignoring it.", self.config_path)
                    return {}
                return data
        except FileNotFoundError:
            logger.error("[APP CONFIGURATION] Config file %s not found.", self.config_path)
        except Exception as exc:
            logger.error("[APP CONFIGURATION] Failed to load config %s: %s", self.config_path, exc)
        return {}

    def _moderation_section(self) -> Dict[str, Any]:
        section = self._data.get("moderation", {})
        return section if isinstance(section, dict) else {}

    def _retry_section(self) -> Dict[str, Any]:
        section = self._moderation_section().get("retry", {})
        return section if isinstance(section, dict) else {}

    # --------------------------
    # Public API
    # --------------------------
    def reload(self) -> Dict[str, Any]:
        """Reload configuration from disk and return the loaded mapping.

        Returns the raw mapping that was loaded (an empty dict on error).
        """
        self._data = self.load_from_disk()
        return self._data

    @property
    def data(self) -> Dict[str, Any]:
        """Return the current cached configuration mapping.

        Callers should not mutate it; use get(...) or the typed properties.
        """
        return self._data

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    # --------------------------
    # High-level shortcuts
    # --------------------------
    @property
    def rules_path(self) -> Path:
        """Path of the moderation rule document."""
        return Path(str(self._moderation_section().get("rules_path") or DEFAULT_RULES_PATH)).resolve()

    @property
    def log_directory(self) -> Path:
        """Directory holding the audit log files."""
        return Path(str(self._moderation_section().get("log_directory") or DEFAULT_LOG_DIRECTORY)).resolve()

    @property
    def match_mode(self) -> str:
        """Word matching policy: ``substring`` (default) or ``word_boundary``."""
        return str(self._moderation_section().get("match_mode") or "substring")

    @property
    def retry_attempts(self) -> int:
        try:
            return int(self._retry_section().get("attempts", 3))
        except (TypeError, ValueError):
            return 3

    @property
    def retry_base_delay_ms(self) -> int:
        try:
            return int(self._retry_section().get("base_delay_ms", 1000))
        except (TypeError, ValueError):
            return 1000

    @property
    def log_retention_days(self) -> int:
        """Days of audit logs kept by the cleanup command. Default is 30."""
        try:
            return int(self._moderation_section().get("log_retention_days", 30))
        except (TypeError, ValueError):
            return 30
