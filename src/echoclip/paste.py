import ctypes
import ctypes.util
import logging
import subprocess
import threading
from collections.abc import Callable

logger = logging.getLogger(__name__)

V_KEY_CODE = 0x09
ACCESSIBILITY_SETTINGS_URL = "x-apple.systempreferences:com.apple.preference.security?Privacy_Accessibility"


def has_accessibility_permission() -> bool:
    try:
        app_services = ctypes.cdll.LoadLibrary(ctypes.util.find_library("ApplicationServices"))
        is_trusted = app_services.AXIsProcessTrusted
        is_trusted.restype = ctypes.c_bool
        is_trusted.argtypes = []
        return bool(is_trusted())
    except (OSError, AttributeError, TypeError):
        return False


def open_accessibility_settings() -> None:
    subprocess.run(["open", ACCESSIBILITY_SETTINGS_URL], check=False)


def send_cmd_v() -> None:
    import Quartz

    source = Quartz.CGEventSourceCreate(Quartz.kCGEventSourceStateHIDSystemState)
    down = Quartz.CGEventCreateKeyboardEvent(source, V_KEY_CODE, True)
    up = Quartz.CGEventCreateKeyboardEvent(source, V_KEY_CODE, False)
    Quartz.CGEventSetFlags(down, Quartz.kCGEventFlagMaskCommand)
    Quartz.CGEventSetFlags(up, Quartz.kCGEventFlagMaskCommand)
    Quartz.CGEventPost(Quartz.kCGHIDEventTap, down)
    Quartz.CGEventPost(Quartz.kCGHIDEventTap, up)


class PasteService:
    """Synthesizes Cmd+V once focus has gone back to the previous app."""

    def __init__(self, delay: float = 0.1, sender: Callable[[], None] = send_cmd_v):
        self._delay = delay
        self._sender = sender

    def paste(self) -> threading.Timer:
        timer = threading.Timer(self._delay, self._send)
        timer.daemon = True
        timer.start()
        return timer

    def _send(self) -> None:
        try:
            self._sender()
        except Exception:
            logger.exception("Error posting paste keystroke")
