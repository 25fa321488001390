import logging
from pathlib import Path

from AppKit import (
    NSBitmapImageFileTypePNG,
    NSBitmapImageRep,
    NSImage,
    NSPasteboard,
    NSPasteboardTypeString,
    NSWorkspace,
)

from echoclip.models import ClipboardItem, ContentType

logger = logging.getLogger(__name__)


class PasteboardSource:
    """Clipboard source backed by the general NSPasteboard."""

    def __init__(self):
        self._pasteboard = NSPasteboard.generalPasteboard()

    def change_count(self) -> int:
        return self._pasteboard.changeCount()

    def read_text(self) -> str | None:
        text = self._pasteboard.stringForType_(NSPasteboardTypeString)
        return str(text) if text is not None else None

    def read_image_bytes(self) -> bytes | None:
        if not NSImage.canInitWithPasteboard_(self._pasteboard):
            return None

        # Normalize whatever image flavor was copied to PNG
        image = NSImage.alloc().initWithPasteboard_(self._pasteboard)
        if image is None:
            return None
        tiff_data = image.TIFFRepresentation()
        if not tiff_data:
            return None
        bitmap_rep = NSBitmapImageRep.imageRepWithData_(tiff_data)
        if not bitmap_rep:
            return None
        png_data = bitmap_rep.representationUsingType_properties_(NSBitmapImageFileTypePNG, None)
        if not png_data:
            return None
        return bytes(png_data)

    def frontmost_app(self) -> tuple[str | None, str | None]:
        app = NSWorkspace.sharedWorkspace().frontmostApplication()
        if app is None:
            return None, None
        name = app.localizedName()
        bundle_id = app.bundleIdentifier()
        return (str(name) if name else None, str(bundle_id) if bundle_id else None)

    def write_item(self, item: ClipboardItem, image_path: Path | None = None) -> bool:
        """Put a history item back on the pasteboard."""
        if item.content_type == ContentType.TEXT and item.text_content:
            self._pasteboard.clearContents()
            return bool(self._pasteboard.setString_forType_(item.text_content, NSPasteboardTypeString))

        if item.content_type == ContentType.IMAGE and image_path is not None:
            image = NSImage.alloc().initWithContentsOfFile_(str(image_path))
            if image is None:
                logger.warning("Image payload %s could not be loaded", image_path)
                return False
            self._pasteboard.clearContents()
            return bool(self._pasteboard.writeObjects_([image]))

        return False
