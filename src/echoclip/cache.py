import logging
from collections import OrderedDict
from collections.abc import Callable, Iterable
from pathlib import Path

from echoclip.config import ICON_CACHE_COUNT, ICON_SIZE, IMAGE_CACHE_BYTES, IMAGE_CACHE_COUNT, THUMBNAIL_SIZE
from echoclip.storage import HistoryStorage
from echoclip.utils import create_thumbnail, write_png

logger = logging.getLogger(__name__)


class BoundedCache:
    """Small LRU cache limited by entry count and, optionally, total cost."""

    def __init__(
        self,
        count_limit: int,
        cost_limit: int | None = None,
        on_evict: Callable[[str, object], None] | None = None,
    ):
        if count_limit <= 0:
            raise ValueError("count_limit must be positive")
        self._count_limit = count_limit
        self._cost_limit = cost_limit
        self._on_evict = on_evict
        self._entries: OrderedDict[str, tuple[object, int]] = OrderedDict()
        self._total_cost = 0

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    @property
    def total_cost(self) -> int:
        return self._total_cost

    def keys(self) -> list[str]:
        return list(self._entries)

    def get(self, key: str, default=None):
        if key not in self._entries:
            return default
        self._entries.move_to_end(key)
        return self._entries[key][0]

    def put(self, key: str, value, cost: int = 0) -> None:
        if key in self._entries:
            self._discard(key, notify=False)
        self._entries[key] = (value, cost)
        self._total_cost += cost
        self._trim()

    def pop(self, key: str) -> None:
        if key in self._entries:
            self._discard(key, notify=True)

    def clear(self) -> None:
        for key in list(self._entries):
            self._discard(key, notify=True)

    def _trim(self) -> None:
        while len(self._entries) > self._count_limit:
            self._discard(next(iter(self._entries)), notify=True)
        if self._cost_limit is None:
            return
        # The newest entry stays even if it alone exceeds the cost limit
        while self._total_cost > self._cost_limit and len(self._entries) > 1:
            self._discard(next(iter(self._entries)), notify=True)

    def _discard(self, key: str, notify: bool) -> None:
        value, cost = self._entries.pop(key)
        self._total_cost -= cost
        if notify and self._on_evict:
            self._on_evict(key, value)


def _remove_file(_key: str, path) -> None:
    try:
        Path(path).unlink(missing_ok=True)
    except OSError:
        logger.warning("Could not remove cached file %s", path)


class ThumbnailProvider:
    """Menu-sized PNG thumbnails for image payloads, kept in a disposable directory."""

    def __init__(self, storage: HistoryStorage, cache_dir: Path, size: tuple[int, int] = THUMBNAIL_SIZE):
        self._storage = storage
        self._cache_dir = Path(cache_dir)
        self._size = size
        self._cache = BoundedCache(IMAGE_CACHE_COUNT, IMAGE_CACHE_BYTES, on_evict=_remove_file)

    def thumbnail_for(self, ref: str) -> str | None:
        cached = self._cache.get(ref)
        if cached is not None and Path(cached).exists():
            return cached

        source = self._storage.payload_path(ref)
        if not source.exists():
            return None

        thumb_path = self._cache_dir / f"{Path(ref).stem}_thumb.png"
        self._cache_dir.mkdir(parents=True, exist_ok=True)
        if not thumb_path.exists() and not create_thumbnail(str(source), str(thumb_path), self._size):
            return None

        self._cache.put(ref, str(thumb_path), cost=thumb_path.stat().st_size)
        return str(thumb_path)

    def retain(self, refs: Iterable[str]) -> None:
        """Drop thumbnails whose payloads are no longer in the history."""
        live = set(refs)
        for ref in self._cache.keys():
            if ref not in live:
                self._cache.pop(ref)


class AppIconProvider:
    """Application icons by bundle identifier, written out as small PNGs."""

    def __init__(self, cache_dir: Path, size: tuple[int, int] = ICON_SIZE):
        self._cache_dir = Path(cache_dir)
        self._size = size
        self._cache = BoundedCache(ICON_CACHE_COUNT)

    def icon_for(self, bundle_id: str | None) -> str | None:
        if not bundle_id:
            return None

        cached = self._cache.get(bundle_id)
        if cached is not None:
            return cached or None

        icon_path = self._cache_dir / f"app_{bundle_id}.png"
        if not icon_path.exists() and not self._write_icon(bundle_id, icon_path):
            # Remember misses so uninstalled apps are not looked up on every refresh
            self._cache.put(bundle_id, "")
            return None

        self._cache.put(bundle_id, str(icon_path))
        return str(icon_path)

    def _write_icon(self, bundle_id: str, icon_path: Path) -> bool:
        try:
            from AppKit import NSWorkspace

            workspace = NSWorkspace.sharedWorkspace()
            url = workspace.URLForApplicationWithBundleIdentifier_(bundle_id)
            if url is None:
                return False
            icon = workspace.iconForFile_(url.path())
            self._cache_dir.mkdir(parents=True, exist_ok=True)
            return write_png(icon, str(icon_path), self._size)
        except Exception:
            logger.exception("Error loading icon for %s", bundle_id)
            return False
