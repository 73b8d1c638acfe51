"""Pagination of text onto a fixed number of message slots.

Lengths are measured in UTF-8 bytes. Slices never split a code point, so a
slice may be up to three bytes shorter than the capacity.
"""

PLACEHOLDER = "*(message reserved for expansion)*"
# The ellipsis is three bytes and is never split across slots. When it would
# straddle a slot boundary, the kept text ends up to two bytes short of
# ``slots * capacity - len(suffix)``.
OVERFLOW_SUFFIX = "…\nSee <{url}> for more"


def utf8_len(text: str) -> int:
    """Return the UTF-8 encoded length of ``text``."""
    return len(text.encode("utf-8"))


def truncate_utf8(text: str, limit: int) -> str:
    """Truncate ``text`` to at most ``limit`` UTF-8 bytes.

    The cut is moved back to the previous code point boundary.
    """
    if limit <= 0:
        return ""
    data = text.encode("utf-8")
    if len(data) <= limit:
        return text
    return data[:limit].decode("utf-8", errors="ignore")


def split_pages(text: str, capacity: int) -> list[str]:
    """Split ``text`` into consecutive slices of at most ``capacity`` bytes.

    Args:
        text: Text to split.
        capacity: Maximum UTF-8 length of a slice.

    Returns:
        The slices in order. Empty text gives an empty list.

    Raises:
        ValueError: If capacity is smaller than one code point.
    """
    if capacity < 4:
        raise ValueError("Capacity must be at least 4 bytes")

    pages: list[str] = []
    rest = text
    while rest:
        page = truncate_utf8(rest, capacity)
        pages.append(page)
        rest = rest[len(page) :]
    return pages


def required_pages(text: str, capacity: int) -> int:
    """Return the number of slots needed to hold ``text`` without truncation."""
    return len(split_pages(text, capacity))


def paginate(text: str, slots: int, capacity: int, url: str) -> list[str]:
    """Map ``text`` onto exactly ``slots`` slices.

    When the text does not fit, it is truncated and an overflow suffix
    pointing at ``url`` is appended so that the result fits.

    Args:
        text: Full file content.
        slots: Number of pre-allocated messages.
        capacity: Maximum UTF-8 length of one message.
        url: Authoritative content URL, referenced by the overflow suffix.

    Returns:
        ``slots`` slices; trailing slices are empty when the text is short.
    """
    if slots <= 0:
        return []

    pages = split_pages(text, capacity)
    if len(pages) > slots:
        suffix = OVERFLOW_SUFFIX.format(url=url)
        budget = slots * capacity
        while True:
            cut = budget - utf8_len(suffix)
            if cut < 0:
                candidate = truncate_utf8(suffix, budget)
            else:
                candidate = truncate_utf8(text, cut) + suffix
            pages = split_pages(candidate, capacity)
            if len(pages) <= slots:
                break
            # Slices ending early on code point boundaries lost some room.
            budget -= 1

    return pages + [""] * (slots - len(pages))


def render_slot(page: str) -> str:
    """Return the message body for a slice, using the placeholder when empty."""
    return page if page else PLACEHOLDER
