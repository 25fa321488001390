import json
import logging
from dataclasses import asdict, dataclass
from pathlib import Path

from echoclip.config import DEFAULT_HOTKEY_KEY_CODE, DEFAULT_HOTKEY_MODIFIERS, DEFAULT_RETENTION_DAYS, SETTINGS_PATH
from echoclip.hotkey import HotKeyConfig
from echoclip.retention import normalize_retention_days

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AppSettings:
    retention_days: int = DEFAULT_RETENTION_DAYS
    hotkey_key_code: int = DEFAULT_HOTKEY_KEY_CODE
    hotkey_modifiers: int = DEFAULT_HOTKEY_MODIFIERS

    @property
    def hotkey(self) -> HotKeyConfig:
        return HotKeyConfig(self.hotkey_key_code, self.hotkey_modifiers)


def _int_or(value, default: int) -> int:
    if isinstance(value, bool):
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def load_settings(path: str | Path | None = None) -> AppSettings:
    path = Path(path) if path else SETTINGS_PATH
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        data = {}
    except (OSError, ValueError):
        logger.warning("Ignoring unreadable settings file %s", path, exc_info=True)
        data = {}
    if not isinstance(data, dict):
        data = {}

    key_code = _int_or(data.get("hotkey_key_code"), DEFAULT_HOTKEY_KEY_CODE)
    if key_code < 0:
        key_code = DEFAULT_HOTKEY_KEY_CODE
    modifiers = _int_or(data.get("hotkey_modifiers"), DEFAULT_HOTKEY_MODIFIERS)
    if modifiers < 0:
        modifiers = DEFAULT_HOTKEY_MODIFIERS

    return AppSettings(
        retention_days=normalize_retention_days(data.get("retention_days")),
        hotkey_key_code=key_code,
        hotkey_modifiers=modifiers,
    )


def save_settings(settings: AppSettings, path: str | Path | None = None) -> bool:
    path = Path(path) if path else SETTINGS_PATH
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(asdict(settings), indent=2), encoding="utf-8")
    except OSError:
        logger.exception("Error saving settings to %s", path)
        return False
    return True
