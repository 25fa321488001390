from datetime import datetime, timedelta, timezone

from echoclip.models import ContentType
from echoclip.query import matches, project, sort_for_display

T = datetime(2024, 1, 1, tzinfo=timezone.utc)


def at(seconds: int) -> datetime:
    return T + timedelta(seconds=seconds)


class TestProjectionOrdering:
    def test_pinned_first_then_recency(self, make_item):
        a = make_item("A", created_at=at(1), pinned=True)
        b = make_item("B", created_at=at(5))
        c = make_item("C", created_at=at(3), pinned=True)
        assert project([a, b, c], "") == [c, a, b]

    def test_unpinned_newest_first(self, make_item):
        items = [make_item(str(i), created_at=at(i)) for i in range(4)]
        assert [i.text_content for i in project(items)] == ["3", "2", "1", "0"]

    def test_ties_keep_input_order(self, make_item):
        first = make_item("first", created_at=at(0))
        second = make_item("second", created_at=at(0))
        assert sort_for_display([first, second]) == [first, second]

    def test_does_not_mutate_input(self, make_item):
        items = [make_item("old", created_at=at(0)), make_item("new", created_at=at(9))]
        snapshot = list(items)
        project(items)
        assert items == snapshot


class TestSearch:
    def test_empty_search_returns_all(self, make_item):
        items = [make_item("one"), make_item(content_type=ContentType.IMAGE)]
        assert len(project(items, "")) == 2

    def test_text_case_insensitive(self, make_item):
        hit = make_item("Hello World")
        miss = make_item("goodbye")
        assert project([hit, miss], "WORLD") == [hit]

    def test_matches_app_name(self, make_item):
        item = make_item("unrelated content", source_app="Notes")
        assert project([item], "not") == [item]

    def test_image_matched_only_by_app(self, make_item):
        image = make_item(content_type=ContentType.IMAGE, source_app="Preview")
        assert matches(image, "prev") is True
        assert matches(image, "png") is False

    def test_no_match(self, make_item):
        assert project([make_item("abc", source_app="Xcode")], "zzz") == []

    def test_results_sorted(self, make_item):
        old_pin = make_item("match old", created_at=at(0), pinned=True)
        new = make_item("match new", created_at=at(10))
        skip = make_item("nothing", created_at=at(20))
        assert project([new, skip, old_pin], "match") == [old_pin, new]
