from __future__ import annotations
import logging
from typing import Any, Dict, List, Sequence, Tuple
import pandas as pd
from .models import LateRecord, ReportKind, ReportSpec
from .utils import norm_text

logger = logging.getLogger(__name__)

RECORD_COLUMNS = [
    "record_id", "date", "student_name", "grade", "class_name", "phone",
    "arrival_time", "is_excused", "action", "notes", "timestamp",
]

GROUP_KEY = ["student_name", "grade", "class_name"]
PLACEMENT_ORDER = ["grade", "class_name", "student_name"]


def _records_frame(records: Sequence[LateRecord]) -> pd.DataFrame:
    rows = [{
        "record_id": r.id,
        "date": r.date_string,
        "student_name": r.student_name,
        "grade": r.grade,
        "class_name": r.class_name,
        "phone": r.phone,
        "arrival_time": r.arrival_time,
        "is_excused": bool(r.is_excused),
        "action": r.action_taken.label,
        "notes": r.notes,
        "timestamp": int(r.timestamp),
    } for r in records]
    return pd.DataFrame(rows, columns=RECORD_COLUMNS)


def _in_month(df: pd.DataFrame, month: str) -> pd.Series:
    return df["date"].str.startswith(month)


def _frequency(df: pd.DataFrame, min_count: int) -> pd.DataFrame:
    # groupby(sort=False) keeps first-seen order, the stable sort keeps it for ties
    g = df.groupby(GROUP_KEY, sort=False)
    grouped = g.size().rename("count").to_frame()
    grouped["phone"] = g["phone"].first()
    grouped["dates"] = g["date"].apply(lambda s: sorted(set(s)))
    grouped = grouped.reset_index()
    grouped = grouped[grouped["count"] >= min_count]
    grouped = grouped.sort_values("count", ascending=False, kind="stable")
    grouped["last_date"] = grouped["dates"].map(lambda d: d[-1] if d else "")
    return grouped


def aggregate(records: Sequence[LateRecord], spec: ReportSpec) -> List[Dict[str, Any]]:
    """
    Filters and orders records into report rows for one ReportSpec.

    daily      - date_string == spec.date
    monthly    - date_string starts with spec.month, no month -> no rows
    by_class   - grade / class when given (all when neither); spec.month narrows if set
    by_student - case-insensitive substring of the name, empty query -> no rows; newest first
    frequency  - every record grouped by (name, grade, class), count >= spec.min_count
    Records are not deduplicated.
    """
    df = _records_frame(records)
    if df.empty:
        return []

    kind = spec.kind
    if kind is ReportKind.FREQUENCY:
        out = _frequency(df, spec.min_count)
        logger.debug("Frequency report: %d of %d students reach %d", len(out), df.groupby(GROUP_KEY).ngroups, spec.min_count)
        return out[GROUP_KEY + ["phone", "count", "dates", "last_date"]].to_dict("records")

    if kind is ReportKind.DAILY:
        df = df[df["date"] == spec.date]
    elif kind is ReportKind.MONTHLY:
        if not spec.month:
            return []
        df = df[_in_month(df, spec.month)]
    elif kind is ReportKind.BY_CLASS:
        if spec.grade:
            df = df[df["grade"] == spec.grade]
        if spec.class_name:
            df = df[df["class_name"] == spec.class_name]
        if spec.month:
            df = df[_in_month(df, spec.month)]
    elif kind is ReportKind.BY_STUDENT:
        query = norm_text(spec.student_query)
        if not query:
            return []
        df = df[df["student_name"].map(lambda n: query in norm_text(n))]
        if spec.month:
            df = df[_in_month(df, spec.month)]
        df = df.sort_values("timestamp", ascending=False, kind="stable")
        return df.to_dict("records")
    else:
        raise ValueError(f"Unknown report kind: {kind!r}")

    df = df.sort_values(PLACEMENT_ORDER, kind="stable")
    return df.to_dict("records")
# =========================

# Presentation: titles and printed columns per report kind
# =========================
def report_title(spec: ReportSpec) -> str:
    kind = spec.kind
    if kind is ReportKind.DAILY:
        return f"سجل المتأخرين اليومي ({spec.date})"
    if kind is ReportKind.MONTHLY:
        return f"سجل المتأخرين الشهري ({spec.month})"
    if kind is ReportKind.BY_CLASS:
        place = " ".join(p for p in (spec.grade, spec.class_name) if p)
        title = "سجل المتأخرين حسب الصف"
        return f"{title} ({place})" if place else title
    if kind is ReportKind.BY_STUDENT:
        return f"سجل تأخر الطالب: {spec.student_query.strip()}"
    return f"الطلاب المتكرر تأخرهم ({spec.min_count} مرات فأكثر)"


_NAME = ("student_name", "الاسم الثلاثي")
_GRADE = ("grade", "الصف")
_CLASS = ("class_name", "الفصل")
_DATE = ("date", "التاريخ")
_ARRIVAL = ("arrival_time", "وقت الحضور")
_ACTION = ("action", "الإجراء")


def report_columns(kind: ReportKind) -> List[Tuple[str, str]]:
    # (row key, printed header); the row number column is added by the renderer
    if kind is ReportKind.DAILY:
        return [_NAME, _GRADE, _CLASS, _ARRIVAL, _ACTION]
    if kind is ReportKind.FREQUENCY:
        return [_NAME, _GRADE, _CLASS, ("count", "عدد مرات التأخر"), ("dates", "التواريخ")]
    return [_DATE, _NAME, _GRADE, _CLASS, _ARRIVAL, _ACTION]
