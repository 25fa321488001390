import logging
from dataclasses import replace

import rumps

from echoclip.cache import AppIconProvider, ThumbnailProvider
from echoclip.config import HISTORY_PATH, IMAGE_DIR, POLL_INTERVAL, SETTINGS_PATH, THUMBNAIL_DIR
from echoclip.history import HistoryStore
from echoclip.hotkey import HotKeyService, describe_shortcut
from echoclip.menu import MenuBuilder, MenuItemSpec
from echoclip.monitor import ClipboardMonitor
from echoclip.paste import PasteService, has_accessibility_permission, open_accessibility_settings
from echoclip.pasteboard import PasteboardSource
from echoclip.settings import load_settings, save_settings
from echoclip.storage import HistoryStorage
from echoclip.utils import ensure_dirs

logger = logging.getLogger(__name__)


class EchoApp(rumps.App):
    def __init__(self):
        super().__init__("Echo", title="📋", quit_button=None)
        self._init_app()

    def _init_app(self) -> None:
        """Initialize app components. Separated for testability."""
        ensure_dirs()
        self._settings = load_settings(SETTINGS_PATH)
        self._storage = HistoryStorage(HISTORY_PATH, IMAGE_DIR, background=True)
        self._store = HistoryStore(self._storage)
        self._store.prune_expired(self._settings.retention_days)

        self._pasteboard = PasteboardSource()
        self._monitor = ClipboardMonitor(self._store, self._pasteboard)
        self._paster = PasteService()
        self._hotkeys = HotKeyService()
        self._thumbnails = ThumbnailProvider(self._storage, THUMBNAIL_DIR)
        self._menu_builder = MenuBuilder(self, self._thumbnails, AppIconProvider(THUMBNAIL_DIR))
        self._search_text = ""

        self._store.add_listener(self._refresh_menu)
        self._hotkeys.register(self._settings.hotkey, self._on_hotkey)
        self._build_menu()

    def _build_menu(self) -> None:
        """Build the menu from computed specifications."""
        self.menu.clear()
        items = self._store.items
        self._thumbnails.retain(i.image_path for i in items if i.image_path)
        specs = self._menu_builder.build(
            items,
            search_text=self._search_text,
            retention_days=self._settings.retention_days,
            shortcut=describe_shortcut(self._settings.hotkey),
            accessibility_granted=has_accessibility_permission(),
        )
        self._render_menu_specs(specs)

    def _render_menu_specs(self, specs: list[MenuItemSpec | None]) -> None:
        """Render menu item specifications to actual rumps MenuItems."""
        self.menu = [self._render_single_spec(spec) for spec in specs]

    def _render_single_spec(self, spec: MenuItemSpec | None) -> rumps.MenuItem | None:
        """Render a single menu item specification."""
        if spec is None:
            return None

        kwargs = {}
        if spec.callback and not spec.is_submenu:
            kwargs["callback"] = spec.callback
        if spec.icon:
            kwargs["icon"] = spec.icon
        if spec.dimensions:
            kwargs["dimensions"] = spec.dimensions
        if spec.template is not None:
            kwargs["template"] = spec.template

        item = rumps.MenuItem(spec.title, **kwargs)
        if spec.value is not None:
            item._echo_value = spec.value
        if spec.state is not None:
            item.state = spec.state

        if spec.is_submenu and spec.children:
            for child in spec.children:
                item.add(self._render_single_spec(child))
        return item

    def _refresh_menu(self) -> None:
        self._build_menu()

    @rumps.timer(POLL_INTERVAL)
    def _poll_clipboard(self, _sender) -> None:
        self._monitor.check_clipboard()

    def _on_hotkey(self) -> None:
        # Open the status item menu as if it had been clicked
        status_item = getattr(getattr(self, "_nsapp", None), "nsstatusitem", None)
        if status_item is None:
            return
        self._search_text = ""
        self._build_menu()
        status_item.button().performClick_(None)

    def _item_for(self, sender):
        item_id = getattr(sender, "_echo_value", None)
        if item_id is None:
            return None
        return self._store.get_item(item_id)

    def _copy_to_pasteboard(self, sender) -> bool:
        entry = self._item_for(sender)
        if entry is None:
            return False
        try:
            copied = self._pasteboard.write_item(entry, self._store.image_path(entry))
        except Exception:
            logger.exception("Error copying entry to clipboard")
            return False
        # Our own write is not a new capture
        self._monitor.sync_change_count()
        return copied

    def on_paste(self, sender) -> None:
        if self._copy_to_pasteboard(sender):
            self._paster.paste()

    def on_copy(self, sender) -> None:
        if self._copy_to_pasteboard(sender):
            rumps.notification("Echo", "", "Copied to clipboard", sound=False)

    def on_toggle_pin(self, sender) -> None:
        entry = self._item_for(sender)
        if entry is None:
            return
        pinned = self._store.toggle_pin(entry.id)
        rumps.notification("Echo", "", "Pinned" if pinned else "Unpinned", sound=False)

    def on_delete(self, sender) -> None:
        entry = self._item_for(sender)
        if entry is not None:
            self._store.delete_item(entry.id)

    def on_search(self, _sender) -> None:
        response = rumps.Window(
            message="Search clipboard history:",
            title="Echo Search",
            default_text="",
            ok="Search",
            cancel="Cancel",
            dimensions=(300, 24),
        ).run()

        if response.clicked and response.text.strip():
            self._search_text = response.text.strip()
            self._build_menu()

    def on_show_all(self, _sender) -> None:
        self._search_text = ""
        self._build_menu()

    def on_set_retention(self, sender) -> None:
        days = getattr(sender, "_echo_value", None)
        if days is None or days == self._settings.retention_days:
            return
        self._apply_settings(replace(self._settings, retention_days=days))
        save_settings(self._settings, SETTINGS_PATH)

    def on_reload_settings(self, _sender) -> None:
        self._apply_settings(load_settings(SETTINGS_PATH))

    def _apply_settings(self, settings) -> None:
        previous = self._settings
        self._settings = settings
        if settings.hotkey != previous.hotkey or not self._hotkeys.active:
            self._hotkeys.update(settings.hotkey)
        if settings.retention_days != previous.retention_days:
            self._store.prune_expired(settings.retention_days)
        self._build_menu()

    def on_open_accessibility(self, _sender) -> None:
        open_accessibility_settings()

    def on_clear_unpinned(self, _sender) -> None:
        if rumps.alert("Echo", "Clear all unpinned clipboard history?", ok="Clear", cancel="Cancel"):
            self._store.clear_unpinned()

    def on_quit(self, _sender) -> None:
        self._hotkeys.unregister()
        self._store.remove_listener(self._refresh_menu)
        self._storage.close()
        rumps.quit_application()
