from __future__ import annotations
from typing import Any, Dict, List, Sequence
from .config import ROWS_PER_PAGE
from .models import Page


def paginate(rows: Sequence[Dict[str, Any]], page_size: int = ROWS_PER_PAGE) -> List[Page]:
    """
    Consecutive chunks of at most page_size rows. Numbering continues across
    pages through starting_row_number; only the final chunk is the last page.
    No rows -> no pages.
    """
    if page_size <= 0:
        raise ValueError(f"page_size must be positive, got {page_size}")

    rows = list(rows)
    pages: List[Page] = []
    for start in range(0, len(rows), page_size):
        chunk = rows[start:start + page_size]
        pages.append(Page(
            rows=chunk,
            index=len(pages),
            starting_row_number=start,
            is_last_page=start + page_size >= len(rows),
        ))
    return pages
