import logging
from collections.abc import Callable
from datetime import datetime
from pathlib import Path

from echoclip.models import ClipboardItem, ContentType
from echoclip.retention import partition_expired
from echoclip.storage import HistoryStorage
from echoclip.utils import new_item_id, utc_now

logger = logging.getLogger(__name__)


class HistoryStore:
    """In-memory clipboard history, saved in full after every mutation.

    The in-memory list is authoritative for the running process. Persistence
    failures are logged by the storage layer and never raised here.
    Listeners registered with ``add_listener`` are called after each change.
    """

    def __init__(self, storage: HistoryStorage, clock: Callable[[], datetime] | None = None):
        self._storage = storage
        self._clock = clock or utc_now
        self._items: list[ClipboardItem] = storage.load()
        self._listeners: list[Callable[[], None]] = []
        self._version = 0

    @property
    def items(self) -> list[ClipboardItem]:
        return list(self._items)

    @property
    def version(self) -> int:
        return self._version

    def __len__(self) -> int:
        return len(self._items)

    def get_item(self, item_id: str) -> ClipboardItem | None:
        for item in self._items:
            if item.id == item_id:
                return item
        return None

    def image_path(self, item: ClipboardItem) -> Path | None:
        if not item.image_path:
            return None
        return self._storage.payload_path(item.image_path)

    def add_listener(self, listener: Callable[[], None]) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: Callable[[], None]) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def add_text(self, text: str, source_app: str | None = None, bundle_id: str | None = None) -> ClipboardItem | None:
        if not text or not text.strip():
            return None
        try:
            text.encode("utf-8")
        except UnicodeEncodeError:
            logger.warning("Dropping clipboard text that is not valid Unicode")
            return None

        pinned = False
        pinned_at = None
        for index, existing in enumerate(self._items):
            if existing.content_type == ContentType.TEXT and existing.text_content == text:
                # Recapture: surface as newest under a fresh id, keep the pin
                del self._items[index]
                pinned = existing.pinned
                pinned_at = existing.pinned_at
                break

        item = ClipboardItem(
            id=new_item_id(),
            content_type=ContentType.TEXT,
            text_content=text,
            image_path=None,
            created_at=self._clock(),
            pinned=pinned,
            pinned_at=pinned_at,
            source_app=source_app,
            bundle_id=bundle_id,
        )
        self._items.insert(0, item)
        self._commit()
        return item

    def add_image(self, data: bytes, source_app: str | None = None, bundle_id: str | None = None) -> ClipboardItem | None:
        if not data:
            return None

        filename = self._storage.write_payload(data)
        if filename is None:
            logger.warning("Image payload could not be saved, dropping clipboard image")
            return None

        item = ClipboardItem(
            id=new_item_id(),
            content_type=ContentType.IMAGE,
            text_content=None,
            image_path=filename,
            created_at=self._clock(),
            source_app=source_app,
            bundle_id=bundle_id,
        )
        self._items.insert(0, item)
        self._commit()
        return item

    def toggle_pin(self, item_id: str) -> bool:
        item = self.get_item(item_id)
        if item is None:
            return False
        item.pinned = not item.pinned
        item.pinned_at = self._clock() if item.pinned else None
        self._commit()
        return item.pinned

    def delete_item(self, item_id: str) -> bool:
        item = self.get_item(item_id)
        if item is None:
            return False
        self._delete_payload(item)
        self._items.remove(item)
        self._commit()
        return True

    def clear_unpinned(self) -> int:
        removed = [i for i in self._items if not i.pinned]
        for item in removed:
            self._delete_payload(item)
        self._items = [i for i in self._items if i.pinned]
        self._commit()
        return len(removed)

    def prune_expired(self, retention_days: int, now: datetime | None = None) -> int:
        keep, removed = partition_expired(self._items, retention_days, now or self._clock())
        if not removed:
            return 0
        for item in removed:
            self._delete_payload(item)
        self._items = keep
        self._commit()
        logger.info("Pruned %d expired clipboard items", len(removed))
        return len(removed)

    def _delete_payload(self, item: ClipboardItem) -> None:
        if item.image_path:
            self._storage.delete_payload(item.image_path)

    def _commit(self) -> None:
        self._version += 1
        self._storage.save(self._items)
        for listener in list(self._listeners):
            listener()
