"""Tests for the word-level diff."""

from docuhub.services.diff_service import diff, diff_stats, tokenize


def _rebuild(segments, side):
    keep = {"unchanged", side}
    return "".join(s["text"] for s in segments if s["type"] in keep)


class TestDiff:

    def test_empty_inputs(self):
        assert diff("", "") == []

    def test_everything_added(self):
        assert diff("", "hello world") == [{"type": "added", "text": "hello world"}]

    def test_appended_word(self):
        assert diff("hello", "hello world") == [
            {"type": "unchanged", "text": "hello"},
            {"type": "added", "text": " world"},
        ]

    def test_replacement_lists_removed_before_added(self):
        segments = diff("the red fox", "the blue fox")
        types = [s["type"] for s in segments]
        assert types.index("removed") < types.index("added")

    def test_both_sides_rebuild(self):
        old = "Payments are settled\nevery night at  02:00 UTC."
        new = "Payments settle\nevery hour at 02:00 UTC, except Sundays."
        segments = diff(old, new)
        assert _rebuild(segments, "removed") == old
        assert _rebuild(segments, "added") == new

    def test_adjacent_segments_are_merged(self):
        segments = diff("a b c", "x y z")
        for left, right in zip(segments, segments[1:]):
            assert left["type"] != right["type"]

    def test_whitespace_change_is_visible(self):
        segments = diff("a b", "a  b")
        assert any(s["type"] != "unchanged" for s in segments)


class TestHelpers:

    def test_tokenize_alternates_runs(self):
        assert tokenize("a  b\nc") == ["a", "  ", "b", "\n", "c"]

    def test_stats_count_words(self):
        stats = diff_stats(diff("one two", "one two three four"))
        assert stats == {"added": 2, "removed": 0, "unchanged": 2}
