"""Status-bar menu layout, computed without touching rumps.

``MenuBuilder`` turns the current history into ``MenuItemSpec`` trees; the app
renders them. Callbacks come from an ``actions`` object (the app) so the layout
can be tested with a mock.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Callable

from echoclip import __version__
from echoclip.cache import AppIconProvider, ThumbnailProvider
from echoclip.config import DEFAULT_RETENTION_DAYS, MENU_DISPLAY_COUNT, PREVIEW_LENGTH, RETENTION_CHOICES
from echoclip.models import ClipboardItem, ContentType
from echoclip.query import project
from echoclip.utils import truncate_text

NO_HISTORY_TITLE = "(No clipboard history)"
PINNED_TITLE = "📌 Pinned"
RETENTION_TITLE = "Keep History For"


@dataclass
class MenuItemSpec:
    """Specification for a menu item, separating logic from rumps rendering."""

    title: str
    callback: Callable | None = None
    icon: str | None = None
    dimensions: tuple[int, int] | None = None
    template: bool | None = None
    value: str | int | None = None  # item id or retention days handed to the callback
    state: int | None = None
    is_submenu: bool = False
    children: list["MenuItemSpec | None"] | None = None


def entry_title(item: ClipboardItem, max_len: int = PREVIEW_LENGTH) -> str:
    if item.content_type == ContentType.IMAGE:
        return f"[Image {item.created_at.astimezone().strftime('%H:%M')}]"
    return truncate_text(item.text_content or "", max_len)


def _unique_title(title: str, seen: set[str]) -> str:
    # rumps keys menu items by title; pad collisions with zero-width spaces
    unique = title
    while unique in seen:
        unique += "\u200b"
    seen.add(unique)
    return unique


class MenuBuilder:
    def __init__(
        self,
        actions,
        thumbnails: ThumbnailProvider | None = None,
        icons: AppIconProvider | None = None,
        display_count: int = MENU_DISPLAY_COUNT,
        preview_length: int = PREVIEW_LENGTH,
    ):
        self._actions = actions
        self._thumbnails = thumbnails
        self._icons = icons
        self._display_count = display_count
        self._preview_length = preview_length

    def build(
        self,
        items: Iterable[ClipboardItem],
        search_text: str = "",
        retention_days: int = DEFAULT_RETENTION_DAYS,
        shortcut: str = "",
        accessibility_granted: bool = True,
    ) -> list[MenuItemSpec | None]:
        specs: list[MenuItemSpec | None] = [
            MenuItemSpec(f"Echo v{__version__} - Clipboard History"),
            None,  # separator
        ]

        if search_text:
            results = project(items, search_text)
            specs.extend([
                MenuItemSpec(f'Search: "{search_text}" ({len(results)} results)'),
                MenuItemSpec("Show All", callback=self._actions.on_show_all),
                None,
            ])
            specs.extend(self.entry_specs(results[: self._display_count]))
        else:
            specs.extend(self._history_specs(project(items)))

        specs.extend([None, self.retention_spec(retention_days)])
        if shortcut:
            specs.append(MenuItemSpec(f"Shortcut: {shortcut}"))
        specs.extend([
            self._accessibility_spec(accessibility_granted),
            MenuItemSpec("Reload Settings", callback=self._actions.on_reload_settings),
            None,
            MenuItemSpec("Clear Unpinned History", callback=self._actions.on_clear_unpinned),
            None,
            MenuItemSpec("Quit Echo", callback=self._actions.on_quit),
        ])
        return specs

    def _history_specs(self, ordered: list[ClipboardItem]) -> list[MenuItemSpec | None]:
        specs: list[MenuItemSpec | None] = [
            MenuItemSpec("Search...", callback=self._actions.on_search),
            None,
        ]

        pinned = [i for i in ordered if i.pinned]
        recent = [i for i in ordered if not i.pinned][: self._display_count]

        if pinned:
            specs.append(MenuItemSpec(PINNED_TITLE, is_submenu=True, children=self.entry_specs(pinned)))
            specs.append(None)

        if not pinned and not recent:
            specs.append(MenuItemSpec(NO_HISTORY_TITLE))
        else:
            specs.extend(self.entry_specs(recent))
        return specs

    def entry_specs(self, items: Iterable[ClipboardItem]) -> list[MenuItemSpec | None]:
        seen: set[str] = set()
        return [self._entry_spec(item, seen) for item in items]

    def _entry_spec(self, item: ClipboardItem, seen: set[str]) -> MenuItemSpec:
        actions = self._actions
        spec = MenuItemSpec(
            title=_unique_title(entry_title(item, self._preview_length), seen),
            value=item.id,
            is_submenu=True,
            children=[
                MenuItemSpec("Paste", callback=actions.on_paste, value=item.id),
                MenuItemSpec("Copy", callback=actions.on_copy, value=item.id),
                MenuItemSpec("Unpin" if item.pinned else "Pin", callback=actions.on_toggle_pin, value=item.id),
                None,
                MenuItemSpec("Delete", callback=actions.on_delete, value=item.id),
            ],
        )

        if item.content_type == ContentType.IMAGE and item.image_path and self._thumbnails:
            thumb_path = self._thumbnails.thumbnail_for(item.image_path)
            if thumb_path:
                spec.icon = thumb_path
                spec.dimensions = (32, 32)
                spec.template = False
        elif self._icons:
            icon_path = self._icons.icon_for(item.bundle_id)
            if icon_path:
                spec.icon = icon_path
                spec.dimensions = (16, 16)
                spec.template = False

        if item.source_app:
            spec.children.insert(0, MenuItemSpec(f"From {item.source_app}"))
        return spec

    def retention_spec(self, retention_days: int) -> MenuItemSpec:
        children: list[MenuItemSpec | None] = [
            MenuItemSpec(
                label,
                callback=self._actions.on_set_retention,
                value=days,
                state=1 if days == retention_days else 0,
            )
            for days, label in RETENTION_CHOICES
        ]
        return MenuItemSpec(RETENTION_TITLE, is_submenu=True, children=children)

    def _accessibility_spec(self, granted: bool) -> MenuItemSpec:
        if granted:
            return MenuItemSpec("Accessibility Access: Granted")
        return MenuItemSpec(
            "Accessibility Access: Not Granted (Open Settings)",
            callback=self._actions.on_open_accessibility,
        )
