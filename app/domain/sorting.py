"""Photo display order within a gallery."""

from __future__ import annotations


def next_sort_order(current_max: int | None) -> int:
    """
    Sort order for a photo appended to a gallery.

    ``current_max`` is the highest existing sort order, or None for an empty
    gallery. Deleting photos leaves gaps; they are never compacted.
    """
    if current_max is None:
        return 0
    return current_max + 1
