"""Tests for app.py handlers.

EchoApp inherits from rumps.App, which needs the macOS GUI frameworks, so the
app is created without running ``__init__`` and its collaborators are mocked.
"""

from unittest.mock import MagicMock, patch

import pytest

pytest.importorskip("rumps")
pytest.importorskip("AppKit")

from echoclip.app import EchoApp  # noqa: E402
from echoclip.hotkey import HotKeyConfig  # noqa: E402
from echoclip.settings import AppSettings  # noqa: E402


@pytest.fixture
def app(store):
    instance = EchoApp.__new__(EchoApp)
    instance._settings = AppSettings()
    instance._store = store
    instance._storage = MagicMock()
    instance._pasteboard = MagicMock()
    instance._monitor = MagicMock()
    instance._paster = MagicMock()
    instance._hotkeys = MagicMock()
    instance._search_text = ""
    instance._build_menu = MagicMock()
    return instance


def _sender(value):
    sender = MagicMock()
    sender._echo_value = value
    return sender


class TestCopyAndPaste:
    def test_paste_writes_and_sends_keystroke(self, app, store):
        item = store.add_text("hello")
        app._pasteboard.write_item.return_value = True

        app.on_paste(_sender(item.id))

        app._pasteboard.write_item.assert_called_once_with(item, None)
        app._monitor.sync_change_count.assert_called_once()
        app._paster.paste.assert_called_once()

    def test_paste_unknown_item(self, app):
        app.on_paste(_sender("missing"))
        app._pasteboard.write_item.assert_not_called()
        app._paster.paste.assert_not_called()

    def test_sender_without_value(self, app):
        app.on_paste(MagicMock(spec=[]))
        app._pasteboard.write_item.assert_not_called()

    def test_failed_write_does_not_paste(self, app, store):
        item = store.add_text("hello")
        app._pasteboard.write_item.return_value = False
        app.on_paste(_sender(item.id))
        app._paster.paste.assert_not_called()

    def test_write_error_handled(self, app, store):
        item = store.add_text("hello")
        app._pasteboard.write_item.side_effect = RuntimeError("pasteboard busy")
        app.on_paste(_sender(item.id))
        app._paster.paste.assert_not_called()

    @patch("echoclip.app.rumps.notification")
    def test_copy_image_uses_payload_path(self, mock_notify, app, store):
        item = store.add_image(b"\x89PNG")
        app._pasteboard.write_item.return_value = True

        app.on_copy(_sender(item.id))

        app._pasteboard.write_item.assert_called_once_with(item, store.image_path(item))
        mock_notify.assert_called_once()


class TestHistoryActions:
    @patch("echoclip.app.rumps.notification")
    def test_toggle_pin(self, _mock_notify, app, store):
        item = store.add_text("pin me")
        app.on_toggle_pin(_sender(item.id))
        assert store.get_item(item.id).pinned is True

    def test_delete(self, app, store):
        item = store.add_text("bye")
        app.on_delete(_sender(item.id))
        assert len(store) == 0

    @patch("echoclip.app.rumps.alert", return_value=1)
    def test_clear_confirmed(self, _mock_alert, app, store):
        keep = store.add_text("keep")
        store.toggle_pin(keep.id)
        store.add_text("drop")
        app.on_clear_unpinned(None)
        assert store.items == [keep]

    @patch("echoclip.app.rumps.alert", return_value=0)
    def test_clear_cancelled(self, _mock_alert, app, store):
        store.add_text("stay")
        app.on_clear_unpinned(None)
        assert len(store) == 1


class TestSearch:
    @patch("echoclip.app.rumps.Window")
    def test_search_sets_filter(self, mock_window, app):
        mock_window.return_value.run.return_value = MagicMock(clicked=1, text="  needle ")
        app.on_search(None)
        assert app._search_text == "needle"
        app._build_menu.assert_called_once()

    @patch("echoclip.app.rumps.Window")
    def test_search_cancelled(self, mock_window, app):
        mock_window.return_value.run.return_value = MagicMock(clicked=0, text="needle")
        app.on_search(None)
        assert app._search_text == ""

    def test_show_all_clears_filter(self, app):
        app._search_text = "needle"
        app.on_show_all(None)
        assert app._search_text == ""


class TestSettings:
    @patch("echoclip.app.save_settings")
    def test_set_retention_prunes_and_saves(self, mock_save, app, store, clock):
        clock.now = clock.now.replace(year=2000)
        store.add_text("ancient")
        clock.now = clock.now.replace(year=2024)

        app.on_set_retention(_sender(7))

        assert app._settings.retention_days == 7
        mock_save.assert_called_once()
        assert len(store) == 0

    @patch("echoclip.app.save_settings")
    def test_same_retention_ignored(self, mock_save, app):
        app.on_set_retention(_sender(app._settings.retention_days))
        mock_save.assert_not_called()

    @patch("echoclip.app.load_settings")
    def test_reload_updates_hotkey(self, mock_load, app):
        mock_load.return_value = AppSettings(hotkey_key_code=9, hotkey_modifiers=2304)
        app.on_reload_settings(None)
        app._hotkeys.update.assert_called_once_with(HotKeyConfig(9, 2304))

    @patch("echoclip.app.load_settings")
    def test_reload_unchanged_hotkey(self, mock_load, app):
        mock_load.return_value = AppSettings()
        app.on_reload_settings(None)
        app._hotkeys.update.assert_not_called()

    @patch("echoclip.app.load_settings")
    def test_reload_retries_inactive_hotkey(self, mock_load, app):
        app._hotkeys.active = False
        mock_load.return_value = AppSettings()
        app.on_reload_settings(None)
        app._hotkeys.update.assert_called_once_with(AppSettings().hotkey)


class TestQuit:
    @patch("echoclip.app.rumps.quit_application")
    def test_quit_releases_resources(self, mock_quit, app):
        app.on_quit(None)
        app._hotkeys.unregister.assert_called_once()
        app._storage.close.assert_called_once()
        mock_quit.assert_called_once()
