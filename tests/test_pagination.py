"""
Tests for pagination splitting and navigation.
"""
from pageforge.models import NavDirection
from pageforge.pagination import build_navigation, split_segments, unit_id_for

from tests.conftest import make_item


def is_break(entry):
    return entry == "|"


class TestSplitSegments:
    """Tests for split_segments()."""

    def test_three_pages(self):
        """Two markers produce three units with chained navigation."""
        segments = split_segments(["a", "|", "b", "|", "c"], is_break, "survey")

        assert [s.unit_id for s in segments] == ["survey", "survey_p2", "survey_p3"]
        assert [s.items for s in segments] == [("a",), ("b",), ("c",)]

        first, middle, last = (s.navigation for s in segments)
        assert first.directions == (NavDirection.NEXT,)
        assert first.next_unit == "survey_p2"
        assert middle.directions == (NavDirection.PREVIOUS, NavDirection.NEXT)
        assert middle.previous_unit == "survey"
        assert last.directions == (NavDirection.PREVIOUS,)
        assert last.next_unit is None

    def test_no_markers(self):
        """Without markers there is one segment and no navigation."""
        segments = split_segments(["a", "b"], is_break, "index")
        assert len(segments) == 1
        assert segments[0].unit_id == "index"
        assert segments[0].navigation is None
        assert segments[0].pagination_after is None

    def test_consecutive_and_trailing_markers(self):
        """Adjacent and trailing markers open empty segments."""
        segments = split_segments(["a", "|", "|", "b", "|"], is_break, "index")
        assert [s.items for s in segments] == [("a",), (), ("b",), ()]
        assert [s.is_empty for s in segments] == [False, True, False, True]
        assert all(s.page_count == 4 for s in segments)

    def test_empty_input(self):
        """An empty sequence is one empty page."""
        segments = split_segments([], is_break, "index")
        assert len(segments) == 1
        assert segments[0].is_empty

    def test_concatenation_reproduces_input(self):
        """Joining segment items gives back the input minus markers."""
        entries = ["a", "b", "|", "c", "|", "|", "d", "e"]
        segments = split_segments(entries, is_break, "index")
        joined = [item for segment in segments for item in segment.items]
        assert joined == [e for e in entries if not is_break(e)]

    def test_marker_is_kept_on_closed_segment(self):
        """Each segment remembers the marker that closed it."""
        marker = make_item(2, viz_type=None)
        segments = split_segments(["a", marker, "b"], lambda e: e is marker, "index")
        assert segments[0].pagination_after is marker
        assert segments[1].pagination_after is None

    def test_marker_separator_applies_to_closed_page(self):
        """A marker's separator labels the page before it."""
        entries = ["a", ("|", "von"), "b"]
        segments = split_segments(
            entries,
            lambda e: isinstance(e, tuple),
            "index",
            separator_of=lambda marker: marker[1],
        )
        assert segments[0].navigation.indicator == "1 von 2"
        assert segments[1].navigation.indicator == "2 of 2"


class TestNavigation:
    """Tests for Navigation helpers."""

    def test_unit_ids(self):
        """Page one is the base name; later pages are suffixed."""
        assert unit_id_for("index", 1) == "index"
        assert unit_id_for("index", 4) == "index_p4"

    def test_page_units_and_dict(self):
        """Navigation lists every unit and serializes its links."""
        nav = build_navigation(2, 3, "survey", separator="/")
        assert nav.page_units == ["survey", "survey_p2", "survey_p3"]
        assert nav.indicator == "2 / 3"
        assert nav.to_dict()["previous"] == "survey"
        assert nav.to_dict()["next"] == "survey_p3"
