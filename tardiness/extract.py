from __future__ import annotations
import re
import logging
from typing import List, Optional, Sequence
from .classify import classify_row, is_header_row
from .models import Student
from .utils import cell_text

logger = logging.getLogger(__name__)
# =========================

# 1) Tables: one candidate per row at most
# =========================
def extract_from_tables(tables: Sequence[Sequence[Sequence[str]]]) -> List[Student]:
    """
    Walks every row of every table in document order.
    - rows without any non-empty cell are skipped
    - header rows ("الاسم" / "Name" in any cell) are skipped
    - a candidate is emitted only when the row has a name
    Grade and class stay blank; rows do not inherit anything from previous rows.
    """
    out: List[Student] = []
    skipped_headers = 0

    for t_idx, table in enumerate(tables):
        for row in table:
            cells = [cell_text(c) for c in row]
            if not any(cells):
                continue
            if is_header_row(cells):
                skipped_headers += 1
                continue

            name, phone = classify_row(cells)
            if not name:
                continue
            out.append(Student.candidate(name=name, phone=phone))

    logger.debug("Table extraction: %d candidates from %d tables (%d header rows skipped)",
                 len(out), len(tables), skipped_headers)
    return out
# =========================

# 2) Free text fallback: name + phone in the same paragraph
# =========================
_NAME_RUN_RE = re.compile(r"[\u0600-\u06FF\s]{5,}")
_PHONE_RUN_RE = re.compile(r"[0-9]{8,}")


def _first_name_run(text: str) -> Optional[str]:
    # a run made only of whitespace is not a name
    for m in _NAME_RUN_RE.finditer(text):
        s = m.group(0).strip()
        if s:
            return s
    return None


def extract_from_paragraphs(paragraphs: Sequence[str]) -> List[Student]:
    """
    A paragraph yields a candidate only when it holds both an Arabic name run
    and a run of 8+ digits; paragraphs with just one of them are ignored.
    """
    out: List[Student] = []
    for p in paragraphs:
        text = cell_text(p)
        if not text:
            continue
        name = _first_name_run(text)
        phone = _PHONE_RUN_RE.search(text)
        if name and phone:
            out.append(Student.candidate(name=name, phone=phone.group(0)))

    logger.debug("Free-text extraction: %d candidates from %d paragraphs", len(out), len(paragraphs))
    return out
