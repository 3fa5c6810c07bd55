"""Page-number window shown under catalog listings."""

from __future__ import annotations

ELLIPSIS = "..."


def page_window(current: int, total: int) -> list[int | str]:
    """Return the page buttons to render, with ``...`` marking gaps.

    Up to seven pages are listed in full; beyond that the first and last
    pages are always shown together with the neighbours of ``current``.
    """
    if total <= 0:
        return []
    if total <= 7:
        return list(range(1, total + 1))

    pages: list[int | str] = [1]
    if current > 3:
        pages.append(ELLIPSIS)
    start = max(2, current - 1)
    end = min(total - 1, current + 1)
    pages.extend(range(start, end + 1))
    if current < total - 2:
        pages.append(ELLIPSIS)
    pages.append(total)
    return pages
