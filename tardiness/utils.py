import os
import re
import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Optional
from dateutil import parser as dtparser

logger = logging.getLogger(__name__)

BASE_DIR = Path(__file__).resolve().parent.parent
DEFAULT_DATA_DIR = BASE_DIR / "data"

APPDATA = os.environ.get("APPDATA")
if os.environ.get("LATE_TRACKER_DATA_DIR"):
    USER_DATA_DIR = Path(os.environ["LATE_TRACKER_DATA_DIR"])
elif APPDATA:
    USER_DATA_DIR = Path(APPDATA) / "LateTracker" / "data"
else:
    USER_DATA_DIR = DEFAULT_DATA_DIR  # fallback

def load_json(path: Path, default: Any):
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except FileNotFoundError:
        return default
    except (OSError, ValueError) as e:
        logger.warning("Could not read %s: %s", path, e)
        return default

def save_json(path: Path, obj: Any):
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(obj, f, ensure_ascii=False, indent=2)

_DASH_CHARS_RE = re.compile(r"[\u2010\u2011\u2012\u2013\u2014\u2212]")
_NBSP_RE = re.compile(r"[\u00A0\u2007\u202F]")  # NBSP variants
_NON_DIGIT_RE = re.compile(r"[^0-9]")
_MONTH_RE = re.compile(r"^\s*(\d{4})[./-](\d{1,2})\s*$")


def cell_text(v: Any) -> str:
    """
    Text of one spreadsheet/document cell:
    - None / NaN -> ""
    - integral floats lose the ".0" Excel adds to numeric columns
    - BOM and non-breaking spaces removed, outer whitespace trimmed
    """
    if v is None:
        return ""
    if isinstance(v, float):
        if v != v:  # NaN
            return ""
        if v.is_integer():
            v = int(v)
    s = str(v)
    if s.lower() == "nan":
        return ""
    s = s.replace("\ufeff", "")
    s = _NBSP_RE.sub(" ", s)
    return s.strip()


def norm_text(s: Any) -> str:
    """
    Normalization used for comparisons (search, grouping keys):
    - cell_text
    - casefold
    - all dash variants -> '-'
    - collapsed whitespace
    """
    s = cell_text(s)
    if not s:
        return ""
    s = s.casefold()
    s = _DASH_CHARS_RE.sub("-", s)
    s = re.sub(r"\s+", " ", s).strip()
    return s


def digits_only(s: Any) -> str:
    return _NON_DIGIT_RE.sub("", cell_text(s))


def try_parse_date(s: Any) -> Optional[str]:
    # calendar date key YYYY-MM-DD from a date object or free text
    if s is None:
        return None

    # pandas.Timestamp / datetime.date / datetime.datetime
    if hasattr(s, "year") and hasattr(s, "month") and hasattr(s, "day"):
        try:
            return f"{int(s.year):04d}-{int(s.month):02d}-{int(s.day):02d}"
        except (TypeError, ValueError):
            pass

    txt = cell_text(s)
    if not txt:
        return None

    # yyyy-mm-dd
    if re.match(r"^\d{4}[./-]\d{1,2}[./-]\d{1,2}$", txt):
        try:
            return dtparser.parse(txt, dayfirst=False).strftime("%Y-%m-%d")
        except (ValueError, OverflowError):
            return None

    # dd.mm.yyyy / dd/mm/yyyy
    if re.match(r"^\d{1,2}[./-]\d{1,2}[./-]\d{2,4}$", txt):
        try:
            return dtparser.parse(txt, dayfirst=True).strftime("%Y-%m-%d")
        except (ValueError, OverflowError):
            return None

    return None


def try_parse_month(s: Any) -> Optional[str]:
    # month key YYYY-MM
    if s is None:
        return None
    if hasattr(s, "year") and hasattr(s, "month"):
        return f"{int(s.year):04d}-{int(s.month):02d}"
    txt = cell_text(s)
    m = _MONTH_RE.match(txt)
    if m:
        month = int(m.group(2))
        if 1 <= month <= 12:
            return f"{int(m.group(1)):04d}-{month:02d}"
        return None
    day = try_parse_date(txt)
    return day[:7] if day else None


def today_key(now: Optional[datetime] = None) -> str:
    return (now or datetime.now()).strftime("%Y-%m-%d")

def settings_path() -> Path:
    USER_DATA_DIR.mkdir(parents=True, exist_ok=True)
    return USER_DATA_DIR / "settings.json"

def exports_dir() -> Path:
    p = USER_DATA_DIR / "exports"
    p.mkdir(parents=True, exist_ok=True)
    return p

def share_cache_dir() -> Path:
    p = USER_DATA_DIR / "cache"
    p.mkdir(parents=True, exist_ok=True)
    return p
