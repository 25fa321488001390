import os
from pathlib import Path

DATA_DIR = Path(os.environ.get("ECHOCLIP_DATA_DIR", Path.home() / "Library" / "Application Support" / "Echo"))
HISTORY_PATH = DATA_DIR / "clipboard_history.json"
IMAGE_DIR = DATA_DIR / "clipboard_images"
THUMBNAIL_DIR = DATA_DIR / "thumbnails"
SETTINGS_PATH = DATA_DIR / "settings.json"
LOG_PATH = DATA_DIR / "echoclip.log"

POLL_INTERVAL = 0.5  # seconds between clipboard checks
MAX_TEXT_SIZE = 1_000_000  # 1MB text limit
MAX_IMAGE_SIZE = 10_000_000  # 10MB image limit
PREVIEW_LENGTH = 60  # characters shown in menu item


def _parse_menu_display_count() -> int:
    raw = os.environ.get("ECHOCLIP_MENU_DISPLAY_COUNT")
    if raw is None:
        return 10
    try:
        value = int(raw)
    except ValueError:
        return 10
    return max(5, min(50, value))


MENU_DISPLAY_COUNT = _parse_menu_display_count()
THUMBNAIL_SIZE = (32, 32)  # pixels, for menu icon display
ICON_SIZE = (16, 16)

IMAGE_CACHE_COUNT = 50
IMAGE_CACHE_BYTES = 100 * 1024 * 1024
ICON_CACHE_COUNT = 100

DEFAULT_RETENTION_DAYS = 30
RETENTION_FOREVER = -1
# Longer windows are treated as forever
MAX_RETENTION_DAYS = 365 * 1000
RETENTION_CHOICES = [
    (1, "1 Day"),
    (7, "7 Days"),
    (30, "30 Days"),
    (90, "3 Months"),
    (365, "1 Year"),
    (RETENTION_FOREVER, "Forever"),
]

# Carbon virtual key code and modifier mask
DEFAULT_HOTKEY_KEY_CODE = 8  # kVK_ANSI_C
DEFAULT_HOTKEY_MODIFIERS = 256 | 512  # cmdKey | shiftKey
