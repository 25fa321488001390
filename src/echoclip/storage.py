import contextlib
import json
import logging
import os
import uuid
from collections.abc import Iterable
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path

from echoclip.config import HISTORY_PATH, IMAGE_DIR
from echoclip.models import ClipboardItem, ContentType
from echoclip.utils import format_timestamp, parse_timestamp

logger = logging.getLogger(__name__)

PAYLOAD_SUFFIX = ".png"


class StorageError(Exception):
    """Base class for history persistence failures."""


class PersistenceReadError(StorageError):
    pass


class PersistenceWriteError(StorageError):
    pass


class PayloadWriteError(StorageError):
    pass


def item_to_record(item: ClipboardItem) -> dict:
    return {
        "id": item.id,
        "textContent": item.text_content,
        "imagePath": item.image_path,
        "type": item.content_type.value,
        "dateCreated": format_timestamp(item.created_at),
        "isPinned": item.pinned,
        "pinnedDate": format_timestamp(item.pinned_at) if item.pinned_at else None,
        "applicationName": item.source_app,
        "bundleIdentifier": item.bundle_id,
    }


def record_to_item(record: dict) -> ClipboardItem:
    """Decode one history record, raising ValueError on anything malformed."""
    if not isinstance(record, dict):
        raise ValueError(f"expected an object, got {type(record).__name__}")

    item_id = record["id"]
    if not isinstance(item_id, str) or not item_id:
        raise ValueError("record id must be a non-empty string")

    content_type = ContentType(record["type"])
    text_content = record.get("textContent")
    image_path = record.get("imagePath")
    if content_type == ContentType.TEXT:
        if not isinstance(text_content, str):
            raise ValueError(f"text record {item_id} has no textContent")
        image_path = None
    else:
        if not isinstance(image_path, str) or not image_path:
            raise ValueError(f"image record {item_id} has no imagePath")
        text_content = None

    pinned_date = record.get("pinnedDate")
    return ClipboardItem(
        id=item_id,
        content_type=content_type,
        text_content=text_content,
        image_path=image_path,
        created_at=parse_timestamp(record["dateCreated"]),
        pinned=bool(record.get("isPinned", False)),
        pinned_at=parse_timestamp(pinned_date) if pinned_date else None,
        source_app=record.get("applicationName"),
        bundle_id=record.get("bundleIdentifier"),
    )


class HistoryStorage:
    """JSON history file plus a directory of PNG payloads.

    With ``background=True`` the history file is written by a single worker
    thread. Snapshots are serialized on the calling thread and written in
    submission order, so two writes of the file never overlap.
    """

    def __init__(self, history_path: str | Path | None = None, image_dir: str | Path | None = None, background: bool = False):
        self._history_path = Path(history_path) if history_path else HISTORY_PATH
        self._image_dir = Path(image_dir) if image_dir else IMAGE_DIR
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="echoclip-writer") if background else None
        self._pending: Future | None = None

    @property
    def history_path(self) -> Path:
        return self._history_path

    @property
    def image_dir(self) -> Path:
        return self._image_dir

    def load(self) -> list[ClipboardItem]:
        if not self._history_path.exists():
            return []
        try:
            items = self._read_items()
        except PersistenceReadError:
            logger.warning("Ignoring unreadable history file %s", self._history_path, exc_info=True)
            return []

        unique: list[ClipboardItem] = []
        seen: set[str] = set()
        for item in items:
            if item.id in seen:
                logger.warning("Dropping duplicate history record %s", item.id)
                continue
            seen.add(item.id)
            unique.append(item)

        unique.sort(key=lambda i: i.created_at, reverse=True)
        return unique

    def _read_items(self) -> list[ClipboardItem]:
        try:
            records = json.loads(self._history_path.read_text(encoding="utf-8"))
            if not isinstance(records, list):
                raise ValueError("history file must contain a JSON array")
            return [record_to_item(r) for r in records]
        except (OSError, ValueError, KeyError, TypeError, AttributeError) as exc:
            raise PersistenceReadError(str(self._history_path)) from exc

    def save(self, items: Iterable[ClipboardItem]) -> bool:
        data = json.dumps([item_to_record(i) for i in items], ensure_ascii=False, indent=2)
        if self._executor is None:
            return self._write_history(data)
        self._pending = self._executor.submit(self._write_history, data)
        return True

    def _write_history(self, data: str) -> bool:
        try:
            self._atomic_write(self._history_path, self._encode_history(data), PersistenceWriteError)
        except PersistenceWriteError:
            logger.exception("Error saving history to %s", self._history_path)
            return False
        return True

    def _encode_history(self, data: str) -> bytes:
        try:
            return data.encode("utf-8")
        except UnicodeEncodeError as exc:
            raise PersistenceWriteError(str(self._history_path)) from exc

    def flush(self) -> None:
        """Block until the most recent background save has finished."""
        if self._pending is not None:
            self._pending.result()
            self._pending = None

    def write_payload(self, data: bytes) -> str | None:
        filename = str(uuid.uuid4()).upper() + PAYLOAD_SUFFIX
        try:
            self._atomic_write(self._image_dir / filename, data, PayloadWriteError)
        except PayloadWriteError:
            logger.exception("Error saving image payload %s", filename)
            return None
        return filename

    def delete_payload(self, ref: str) -> None:
        if Path(ref).name != ref:
            logger.warning("Refusing to delete payload outside image directory: %r", ref)
            return
        try:
            self.payload_path(ref).unlink(missing_ok=True)
        except OSError:
            logger.exception("Error deleting image payload %s", ref)

    def payload_path(self, ref: str) -> Path:
        return self._image_dir / ref

    @staticmethod
    def _atomic_write(path: Path, data: bytes, error: type[StorageError]) -> None:
        tmp_path = path.with_name(path.name + ".tmp")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_bytes(data)
            os.replace(tmp_path, path)
        except OSError as exc:
            with contextlib.suppress(OSError):
                tmp_path.unlink(missing_ok=True)
            raise error(str(path)) from exc

    def close(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None
            self._pending = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
