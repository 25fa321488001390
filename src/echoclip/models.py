from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class ContentType(str, Enum):
    TEXT = "text"
    IMAGE = "image"


@dataclass
class ClipboardItem:
    id: str
    content_type: ContentType
    text_content: str | None
    image_path: str | None  # payload filename, relative to the image directory
    created_at: datetime
    pinned: bool = False
    pinned_at: datetime | None = None
    source_app: str | None = None
    bundle_id: str | None = None

    @property
    def is_image(self) -> bool:
        return self.content_type == ContentType.IMAGE
