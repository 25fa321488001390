import logging
import weakref
from typing import Protocol

from echoclip.config import MAX_IMAGE_SIZE, MAX_TEXT_SIZE
from echoclip.history import HistoryStore

logger = logging.getLogger(__name__)


class ClipboardSource(Protocol):
    def change_count(self) -> int: ...

    def read_text(self) -> str | None: ...

    def read_image_bytes(self) -> bytes | None: ...

    def frontmost_app(self) -> tuple[str | None, str | None]: ...


class ClipboardMonitor:
    """Turns clipboard changes into history items, one item per change.

    Holds only a weak reference to the store; once the store is gone every
    check is a no-op.
    """

    def __init__(self, store: HistoryStore, source: ClipboardSource):
        self._store_ref = weakref.ref(store)
        self._source = source
        self._last_change_count = source.change_count()
        self._checking = False

    def check_clipboard(self) -> bool:
        if self._checking:
            return False

        current_count = self._source.change_count()
        if current_count == self._last_change_count:
            return False

        self._last_change_count = current_count

        store = self._store_ref()
        if store is None:
            return False

        self._checking = True
        try:
            return self._capture(store)
        except Exception:
            logger.exception("Error reading clipboard")
            return False
        finally:
            self._checking = False

    def sync_change_count(self) -> None:
        self._last_change_count = self._source.change_count()

    def _capture(self, store: HistoryStore) -> bool:
        # The frontmost app at detection time is assumed to be the copy source
        app_name, bundle_id = self._source.frontmost_app()

        text = self._source.read_text()
        if text is not None:
            if not text.strip():
                return False
            if len(text.encode("utf-8")) > MAX_TEXT_SIZE:
                logger.warning("Text too large (%d chars), skipping", len(text))
                return False
            return store.add_text(text, app_name, bundle_id) is not None

        image = self._source.read_image_bytes()
        if not image:
            return False
        if len(image) > MAX_IMAGE_SIZE:
            logger.warning("Image too large (%d bytes), skipping", len(image))
            return False
        return store.add_image(image, app_name, bundle_id) is not None
