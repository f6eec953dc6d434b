from __future__ import annotations
import re
from enum import Enum
from typing import Iterable, Tuple
from .utils import cell_text, digits_only

# digits / plus / whitespace / hyphen, anywhere in the token
PHONE_RE = re.compile(r"[0-9+\s-]{8,15}")
MIN_PHONE_DIGITS = 8

# whole token: Arabic-script letters and spaces, or Latin letters and spaces
ARABIC_NAME_RE = re.compile(r"[\u0600-\u06FF\s]{5,}")
LATIN_NAME_RE = re.compile(r"[a-zA-Z\s]{5,}")

# Keywords of a table header row ("name" in Arabic and English)
HEADER_KWS = ["الاسم", "Name"]


class FieldKind(str, Enum):
    NAME = "name"
    PHONE = "phone"
    # Reserved: no heuristic produces these yet, grade/class come from the import mode
    GRADE = "grade"
    CLASS = "class"
    UNKNOWN = "unknown"


def is_phone(token: str) -> bool:
    # at least MIN_PHONE_DIGITS digits once separators are removed
    if not PHONE_RE.search(token):
        return False
    return len(digits_only(token)) >= MIN_PHONE_DIGITS


def is_name(token: str) -> bool:
    return bool(ARABIC_NAME_RE.fullmatch(token) or LATIN_NAME_RE.fullmatch(token))


def classify_cell(token: str) -> FieldKind:
    """
    Phone first, then Name; a phone-like token is never reconsidered as a name.
    """
    t = cell_text(token)
    if not t:
        return FieldKind.UNKNOWN
    if is_phone(t):
        return FieldKind.PHONE
    if is_name(t):
        return FieldKind.NAME
    return FieldKind.UNKNOWN


def is_header_row(cells: Iterable[str]) -> bool:
    for c in cells:
        s = cell_text(c)
        if any(k in s for k in HEADER_KWS):
            return True
    return False


def classify_row(cells: Iterable[str]) -> Tuple[str, str]:
    """
    Returns (name, phone) for one table row, evaluated left to right.
    The first cell of each kind is kept, later matches are ignored.
    Phone is returned as digits only. Missing fields are "".
    """
    name = ""
    phone = ""
    for c in cells:
        t = cell_text(c)
        kind = classify_cell(t)
        if kind is FieldKind.PHONE:
            if not phone:
                phone = digits_only(t)
        elif kind is FieldKind.NAME:
            if not name:
                name = t
        if name and phone:
            break
    return name, phone
