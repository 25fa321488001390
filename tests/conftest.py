from datetime import datetime, timedelta, timezone

import pytest

from echoclip.history import HistoryStore
from echoclip.models import ClipboardItem, ContentType
from echoclip.storage import HistoryStorage
from echoclip.utils import new_item_id

T0 = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """Deterministic clock; each call returns the current time without advancing."""

    def __init__(self, start: datetime = T0):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def storage(tmp_path):
    mgr = HistoryStorage(tmp_path / "clipboard_history.json", tmp_path / "clipboard_images")
    yield mgr
    mgr.close()


@pytest.fixture
def store(storage, clock):
    return HistoryStore(storage, clock=clock)


@pytest.fixture
def make_item():
    """Factory fixture to create ClipboardItem instances for testing."""

    def _make_item(
        text: str | None = "hello world",
        content_type: ContentType = ContentType.TEXT,
        created_at: datetime = T0,
        pinned: bool = False,
        image_path: str | None = None,
        source_app: str | None = None,
        bundle_id: str | None = None,
        item_id: str | None = None,
    ) -> ClipboardItem:
        if content_type == ContentType.IMAGE:
            return ClipboardItem(
                id=item_id or new_item_id(),
                content_type=content_type,
                text_content=None,
                image_path=image_path or f"{new_item_id()}.png",
                created_at=created_at,
                pinned=pinned,
                source_app=source_app,
                bundle_id=bundle_id,
            )
        return ClipboardItem(
            id=item_id or new_item_id(),
            content_type=content_type,
            text_content=text,
            image_path=None,
            created_at=created_at,
            pinned=pinned,
            source_app=source_app,
            bundle_id=bundle_id,
        )

    return _make_item
