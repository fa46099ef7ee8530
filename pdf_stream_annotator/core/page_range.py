from typing import Optional, Tuple


def clamp_page(target: int, total_pages: int) -> int:
    """Clamp a navigation target into 1..total_pages.

    The navigation extractor has no page count, so "[LAST PAGE]" arrives as an
    out-of-range sentinel; this is where it becomes the real last page.
    """
    if total_pages <= 0:
        raise ValueError(f"Invalid page count: {total_pages}")
    return max(1, min(int(target), int(total_pages)))


def neighbour_pages(total_pages: int, current_page: int) -> Tuple[int, Optional[int], Optional[int]]:
    """Return one-based (current, previous, next) for a page window; missing neighbours are None."""
    current = clamp_page(current_page, total_pages)
    previous = current - 1 if current > 1 else None
    following = current + 1 if current < total_pages else None
    return current, previous, following
