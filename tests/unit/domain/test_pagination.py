"""Tests for pagination of text onto message slots."""

import pytest

from blobmirror.domain.pagination import (
    OVERFLOW_SUFFIX,
    PLACEHOLDER,
    paginate,
    render_slot,
    required_pages,
    split_pages,
    truncate_utf8,
    utf8_len,
)

URL = "u"


def suffix_for(url: str) -> str:
    return OVERFLOW_SUFFIX.format(url=url)


class TestTruncateUtf8:
    """Tests for truncate_utf8 function."""

    def test_short_text_unchanged(self) -> None:
        assert truncate_utf8("hello", 10) == "hello"

    def test_ascii_cut(self) -> None:
        assert truncate_utf8("hello", 3) == "hel"

    def test_never_splits_code_point(self) -> None:
        """A cut inside a multi-byte character moves back to its start."""
        assert truncate_utf8("aé", 2) == "a"
        assert truncate_utf8("a€", 3) == "a"
        assert truncate_utf8("a€", 4) == "a€"

    def test_non_positive_limit(self) -> None:
        assert truncate_utf8("hello", 0) == ""
        assert truncate_utf8("hello", -5) == ""


class TestSplitPages:
    """Tests for split_pages function."""

    def test_empty_text(self) -> None:
        assert split_pages("", 10) == []

    def test_exact_multiple(self) -> None:
        assert split_pages("a" * 20, 10) == ["a" * 10, "a" * 10]

    def test_remainder_page(self) -> None:
        assert split_pages("a" * 25, 10) == ["a" * 10, "a" * 10, "a" * 5]

    def test_multi_byte_boundaries(self) -> None:
        """Slices end early rather than split a character."""
        pages = split_pages("é" * 3, 5)

        assert pages == ["éé", "é"]
        assert all(utf8_len(page) <= 5 for page in pages)

    def test_capacity_too_small(self) -> None:
        with pytest.raises(ValueError):
            split_pages("abc", 3)

    def test_required_pages(self) -> None:
        assert required_pages("a" * 5000, 2000) == 3
        assert required_pages("", 2000) == 0


class TestPaginate:
    """Tests for paginate function."""

    def test_short_content_pads_with_empty_slots(self) -> None:
        """Content shorter than one slot leaves the other slots empty."""
        pages = paginate("short", 2, 10, URL)

        assert pages == ["short", ""]
        assert [render_slot(page) for page in pages] == ["short", PLACEHOLDER]

    def test_fitting_content_is_reproduced(self) -> None:
        text = "x" * 35

        pages = paginate(text, 4, 10, URL)

        assert len(pages) == 4
        assert "".join(pages) == text

    def test_overflow_truncates_at_budget_minus_suffix(self) -> None:
        suffix = suffix_for(URL)
        capacity = utf8_len(suffix)
        text = "a" * (3 * capacity)

        pages = paginate(text, 2, capacity, URL)

        cut = 2 * capacity - utf8_len(suffix)
        assert len(pages) == 2
        assert "".join(pages) == text[:cut] + suffix

    def test_overflow_result_is_prefix_plus_suffix(self) -> None:
        suffix = suffix_for("https://example.com/file.txt")
        text = "".join(chr(ord("a") + i % 26) for i in range(500))

        pages = paginate(text, 3, 64, "https://example.com/file.txt")

        joined = "".join(pages)
        assert len(pages) == 3
        assert joined.endswith(suffix)
        assert text.startswith(joined[: -len(suffix)])
        assert all(utf8_len(page) <= 64 for page in pages)

    def test_overflow_with_multi_byte_text(self) -> None:
        """Slices ending early on character boundaries still fit the slots."""
        suffix = suffix_for(URL)

        pages = paginate("é" * 50, 2, 21, URL)

        assert len(pages) == 2
        assert all(utf8_len(page) <= 21 for page in pages)
        joined = "".join(pages)
        assert joined.endswith(suffix)
        assert joined[: -len(suffix)] == "é" * 10

    def test_ellipsis_is_not_split_across_slots(self) -> None:
        """Text is cut two bytes early rather than splitting the ellipsis."""
        url = "https://x.y/ab"
        suffix = suffix_for(url)
        assert 3 * 16 - utf8_len(suffix) == 15

        pages = paginate("a" * 100, 3, 16, url)

        assert pages[0] == "a" * 13 + "…"
        assert "".join(pages) == "a" * 13 + suffix
        assert all(utf8_len(page) <= 16 for page in pages)

    def test_suffix_longer_than_budget(self) -> None:
        pages = paginate("a" * 100, 1, 8, "https://example.com/long/url")

        assert len(pages) == 1
        assert utf8_len(pages[0]) <= 8

    def test_empty_text(self) -> None:
        assert paginate("", 2, 10, URL) == ["", ""]

    def test_zero_slots(self) -> None:
        assert paginate("hello", 0, 10, URL) == []


class TestRenderSlot:
    """Tests for render_slot function."""

    def test_non_empty_page(self) -> None:
        assert render_slot("content") == "content"

    def test_empty_page_uses_placeholder(self) -> None:
        assert render_slot("") == PLACEHOLDER
