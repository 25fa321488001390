"""Global shortcut handling via a Quartz event tap.

Shortcuts are stored as a Carbon virtual key code plus a Carbon modifier mask
(``cmdKey``, ``shiftKey``...), the same values macOS shortcut recorders use.
Event tap callbacks report CGEvent flags instead, so matching translates
between the two.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass

logger = logging.getLogger(__name__)

# Carbon modifier mask bits
CMD_KEY = 1 << 8
SHIFT_KEY = 1 << 9
OPTION_KEY = 1 << 11
CONTROL_KEY = 1 << 12

# CGEventFlags bits
CG_FLAG_SHIFT = 0x00020000
CG_FLAG_CONTROL = 0x00040000
CG_FLAG_ALTERNATE = 0x00080000
CG_FLAG_COMMAND = 0x00100000

_MODIFIER_FLAGS = (
    (CONTROL_KEY, CG_FLAG_CONTROL, "⌃"),
    (OPTION_KEY, CG_FLAG_ALTERNATE, "⌥"),
    (SHIFT_KEY, CG_FLAG_SHIFT, "⇧"),
    (CMD_KEY, CG_FLAG_COMMAND, "⌘"),
)
_CG_MODIFIER_MASK = CG_FLAG_SHIFT | CG_FLAG_CONTROL | CG_FLAG_ALTERNATE | CG_FLAG_COMMAND

# ANSI-layout virtual key codes
KEY_NAMES = {
    0x00: "A", 0x0B: "B", 0x08: "C", 0x02: "D", 0x0E: "E", 0x03: "F", 0x05: "G",
    0x04: "H", 0x22: "I", 0x26: "J", 0x28: "K", 0x25: "L", 0x2E: "M", 0x2D: "N",
    0x1F: "O", 0x23: "P", 0x0C: "Q", 0x0F: "R", 0x01: "S", 0x11: "T", 0x20: "U",
    0x09: "V", 0x0D: "W", 0x07: "X", 0x10: "Y", 0x06: "Z",
    0x1D: "0", 0x12: "1", 0x13: "2", 0x14: "3", 0x15: "4", 0x17: "5", 0x16: "6",
    0x1A: "7", 0x1C: "8", 0x19: "9",
}
SPECIAL_KEY_NAMES = {
    0x31: "Space", 0x24: "Return", 0x30: "Tab", 0x33: "Delete", 0x75: "Del",
    0x35: "Esc", 0x37: "Cmd", 0x38: "Shift", 0x39: "Caps", 0x3A: "Option",
    0x3B: "Ctrl", 0x3F: "Fn",
    0x7A: "F1", 0x78: "F2", 0x63: "F3", 0x76: "F4", 0x60: "F5", 0x61: "F6",
    0x62: "F7", 0x64: "F8", 0x65: "F9", 0x6D: "F10", 0x67: "F11", 0x6F: "F12",
}


@dataclass(frozen=True)
class HotKeyConfig:
    key_code: int
    modifiers: int


def describe_shortcut(config: HotKeyConfig) -> str:
    prefix = "".join(symbol for carbon, _, symbol in _MODIFIER_FLAGS if config.modifiers & carbon)
    key = SPECIAL_KEY_NAMES.get(config.key_code) or KEY_NAMES.get(config.key_code, "?")
    return prefix + key


def carbon_to_event_flags(modifiers: int) -> int:
    flags = 0
    for carbon, cg_flag, _ in _MODIFIER_FLAGS:
        if modifiers & carbon:
            flags |= cg_flag
    return flags


def matches_event(config: HotKeyConfig, key_code: int, event_flags: int) -> bool:
    """True when a key-down event is exactly the configured shortcut."""
    if key_code != config.key_code:
        return False
    return (event_flags & _CG_MODIFIER_MASK) == carbon_to_event_flags(config.modifiers)


class HotKeyService:
    """Single global shortcut, delivered through a session event tap.

    The tap is attached to the run loop of the thread calling ``register``,
    which for the app is the main thread, so callbacks run there too.
    Creating the tap requires Accessibility or Input Monitoring access.
    """

    def __init__(self):
        self._config: HotKeyConfig | None = None
        self._callback: Callable[[], None] | None = None
        self._tap = None
        self._source = None

    @property
    def config(self) -> HotKeyConfig | None:
        return self._config

    @property
    def active(self) -> bool:
        return self._tap is not None

    def register(self, config: HotKeyConfig, callback: Callable[[], None]) -> bool:
        self._config = config
        self._callback = callback
        if self._tap is not None:
            return True

        import Quartz

        self._tap = Quartz.CGEventTapCreate(
            Quartz.kCGSessionEventTap,
            Quartz.kCGHeadInsertEventTap,
            Quartz.kCGEventTapOptionDefault,
            Quartz.CGEventMaskBit(Quartz.kCGEventKeyDown),
            self._handle_event,
            None,
        )
        if not self._tap:
            logger.warning("Failed to create event tap for %s; is Accessibility access granted?", describe_shortcut(config))
            return False

        self._source = Quartz.CFMachPortCreateRunLoopSource(None, self._tap, 0)
        Quartz.CFRunLoopAddSource(Quartz.CFRunLoopGetCurrent(), self._source, Quartz.kCFRunLoopCommonModes)
        Quartz.CGEventTapEnable(self._tap, True)
        logger.info("Registered global shortcut %s", describe_shortcut(config))
        return True

    def update(self, config: HotKeyConfig) -> None:
        if self._tap is None and self._callback is not None:
            # Registration failed earlier, e.g. before Accessibility was granted
            self.register(config, self._callback)
            return
        self._config = config
        logger.info("Global shortcut changed to %s", describe_shortcut(config))

    def unregister(self) -> None:
        if self._tap is None:
            return

        import Quartz

        Quartz.CGEventTapEnable(self._tap, False)
        if self._source is not None:
            Quartz.CFRunLoopRemoveSource(Quartz.CFRunLoopGetCurrent(), self._source, Quartz.kCFRunLoopCommonModes)
        self._tap = None
        self._source = None

    def _handle_event(self, proxy, event_type, event, refcon):
        import Quartz

        if event_type in (Quartz.kCGEventTapDisabledByTimeout, Quartz.kCGEventTapDisabledByUserInput):
            if self._tap is not None:
                Quartz.CGEventTapEnable(self._tap, True)
            return event

        if event_type != Quartz.kCGEventKeyDown or self._config is None:
            return event

        key_code = Quartz.CGEventGetIntegerValueField(event, Quartz.kCGKeyboardEventKeycode)
        flags = Quartz.CGEventGetFlags(event)
        if not matches_event(self._config, key_code, flags):
            return event

        try:
            if self._callback:
                self._callback()
        except Exception:
            logger.exception("Error handling global shortcut")
        # Swallow the shortcut so the frontmost app does not beep
        return None
