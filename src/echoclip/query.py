from collections.abc import Iterable

from echoclip.models import ClipboardItem


def matches(item: ClipboardItem, search_text: str) -> bool:
    needle = search_text.casefold()
    if item.text_content and needle in item.text_content.casefold():
        return True
    return bool(item.source_app and needle in item.source_app.casefold())


def sort_for_display(items: Iterable[ClipboardItem]) -> list[ClipboardItem]:
    # Pinned first, newest first within each group; ties keep their order
    return sorted(items, key=lambda i: (i.pinned, i.created_at), reverse=True)


def project(items: Iterable[ClipboardItem], search_text: str = "") -> list[ClipboardItem]:
    if search_text:
        items = [i for i in items if matches(i, search_text)]
    return sort_for_display(items)
