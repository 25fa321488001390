import struct
import uuid
from datetime import datetime, timezone

from echoclip.config import DATA_DIR, IMAGE_DIR, THUMBNAIL_DIR


def new_item_id() -> str:
    return str(uuid.uuid4()).upper()


def utc_now() -> datetime:
    # History timestamps are stored with second precision
    return datetime.now(timezone.utc).replace(microsecond=0)


def format_timestamp(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def parse_timestamp(value: str) -> datetime:
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def truncate_text(text: str, max_len: int) -> str:
    single_line = " ".join(text.split())
    if len(single_line) <= max_len:
        return single_line
    return single_line[: max_len - 3] + "..."


def ensure_dirs() -> None:
    DATA_DIR.mkdir(parents=True, exist_ok=True)
    IMAGE_DIR.mkdir(parents=True, exist_ok=True)
    THUMBNAIL_DIR.mkdir(parents=True, exist_ok=True)


def get_image_dimensions(png_bytes: bytes) -> tuple[int, int]:
    if len(png_bytes) < 24 or png_bytes[:8] != b"\x89PNG\r\n\x1a\n":
        return (0, 0)
    width = struct.unpack(">I", png_bytes[16:20])[0]
    height = struct.unpack(">I", png_bytes[20:24])[0]
    return (width, height)


def write_png(image, dest_path: str, size: tuple[int, int]) -> bool:
    """Draw an NSImage scaled to ``size`` and save it as PNG.

    Returns:
        True if the file was written, False otherwise
    """
    from AppKit import NSBitmapImageFileTypePNG, NSBitmapImageRep, NSGraphicsContext, NSImage

    resized = NSImage.alloc().initWithSize_(size)
    resized.lockFocus()
    NSGraphicsContext.currentContext().setImageInterpolation_(3)  # High quality
    image.drawInRect_(((0, 0), size))
    resized.unlockFocus()

    tiff_data = resized.TIFFRepresentation()
    if not tiff_data:
        return False

    bitmap_rep = NSBitmapImageRep.imageRepWithData_(tiff_data)
    if not bitmap_rep:
        return False

    png_data = bitmap_rep.representationUsingType_properties_(NSBitmapImageFileTypePNG, None)
    if not png_data:
        return False

    return bool(png_data.writeToFile_atomically_(dest_path, True))


def create_thumbnail(image_path: str, thumb_path: str, size: tuple[int, int] = (32, 32)) -> bool:
    """Create a thumbnail from an image file using native NSImage.

    Args:
        image_path: Path to the source image
        thumb_path: Path to save the thumbnail
        size: Target size in pixels (width, height)

    Returns:
        True if thumbnail was created successfully, False otherwise
    """
    try:
        from AppKit import NSImage

        original = NSImage.alloc().initWithContentsOfFile_(image_path)
        if not original:
            return False
        return write_png(original, thumb_path, size)
    except Exception:
        return False
