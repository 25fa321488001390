import os
from unittest.mock import patch

from echoclip.config import _parse_menu_display_count


class TestParseMenuDisplayCount:
    def test_default_when_not_set(self):
        env = os.environ.copy()
        env.pop("ECHOCLIP_MENU_DISPLAY_COUNT", None)
        with patch.dict("os.environ", env, clear=True):
            assert _parse_menu_display_count() == 10

    def test_valid_value(self):
        with patch.dict("os.environ", {"ECHOCLIP_MENU_DISPLAY_COUNT": "20"}):
            assert _parse_menu_display_count() == 20

    def test_clamped_below_minimum(self):
        with patch.dict("os.environ", {"ECHOCLIP_MENU_DISPLAY_COUNT": "2"}):
            assert _parse_menu_display_count() == 5

    def test_clamped_above_maximum(self):
        with patch.dict("os.environ", {"ECHOCLIP_MENU_DISPLAY_COUNT": "100"}):
            assert _parse_menu_display_count() == 50

    def test_invalid_non_integer(self):
        with patch.dict("os.environ", {"ECHOCLIP_MENU_DISPLAY_COUNT": "abc"}):
            assert _parse_menu_display_count() == 10

    def test_boundary_minimum(self):
        with patch.dict("os.environ", {"ECHOCLIP_MENU_DISPLAY_COUNT": "5"}):
            assert _parse_menu_display_count() == 5

    def test_boundary_maximum(self):
        with patch.dict("os.environ", {"ECHOCLIP_MENU_DISPLAY_COUNT": "50"}):
            assert _parse_menu_display_count() == 50


class TestRetentionChoices:
    def test_default_is_offered(self):
        from echoclip.config import DEFAULT_RETENTION_DAYS, RETENTION_CHOICES

        assert DEFAULT_RETENTION_DAYS in [days for days, _ in RETENTION_CHOICES]

    def test_forever_is_last(self):
        from echoclip.config import RETENTION_CHOICES, RETENTION_FOREVER

        assert RETENTION_CHOICES[-1] == (RETENTION_FOREVER, "Forever")


class TestDataLayout:
    def test_history_files_share_data_dir(self):
        from echoclip.config import DATA_DIR, HISTORY_PATH, IMAGE_DIR

        assert HISTORY_PATH == DATA_DIR / "clipboard_history.json"
        assert IMAGE_DIR == DATA_DIR / "clipboard_images"
