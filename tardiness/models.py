from __future__ import annotations
import uuid
import logging
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional
from .utils import cell_text, digits_only

logger = logging.getLogger(__name__)


def new_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex}"


class ActionTaken(str, Enum):
    """Disciplinary step recorded against a late arrival."""

    NONE = "NONE"
    WARNING = "WARNING"
    PLEDGE = "PLEDGE"
    CALL = "CALL"
    SUMMON = "SUMMON"
    COUNCIL = "COUNCIL"

    @property
    def label(self) -> str:
        return ACTION_LABELS[self]

    @classmethod
    def parse(cls, value: Any) -> "ActionTaken":
        if isinstance(value, cls):
            return value
        s = cell_text(value).upper()
        if not s:
            return cls.NONE
        return cls(s)


ACTION_LABELS = {
    ActionTaken.NONE: "",
    ActionTaken.WARNING: "تنبيه",
    ActionTaken.PLEDGE: "تعهد خطي",
    ActionTaken.CALL: "اتصال بولي الأمر",
    ActionTaken.SUMMON: "استدعاء ولي الأمر",
    ActionTaken.COUNCIL: "مجلس الانضباط",
}


class ReportKind(str, Enum):
    DAILY = "daily"
    MONTHLY = "monthly"
    BY_CLASS = "by_class"
    BY_STUDENT = "by_student"
    FREQUENCY = "frequency"


@dataclass(frozen=True)
class Student:
    id: str
    name: str
    grade: str = ""
    class_name: str = ""
    phone: str = ""

    @classmethod
    def candidate(cls, name: str, phone: str = "", grade: str = "", class_name: str = "") -> "Student":
        # new id once, at creation; never reassigned
        return cls(
            id=new_id("student"),
            name=cell_text(name),
            grade=cell_text(grade),
            class_name=cell_text(class_name),
            phone=digits_only(phone),
        )

    def with_placement(self, grade: str, class_name: str) -> "Student":
        return replace(self, grade=grade, class_name=class_name)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Student":
        return cls(
            id=str(d["id"]),
            name=cell_text(d.get("name")),
            grade=cell_text(d.get("grade")),
            class_name=cell_text(d.get("class_name", d.get("className"))),
            phone=digits_only(d.get("phone")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name, "grade": self.grade, "className": self.class_name, "phone": self.phone}


@dataclass(frozen=True)
class LateRecord:
    """
    One late arrival. student_name / grade / class_name / phone are snapshots
    taken when the record was created; reports read them, never the current
    Student. date_string is fixed at creation.
    """
    id: str
    student_id: str
    student_name: str
    grade: str
    class_name: str
    timestamp: int  # epoch milliseconds
    date_string: str  # YYYY-MM-DD
    arrival_time: str = ""  # HH:MM
    is_excused: bool = False
    action_taken: ActionTaken = ActionTaken.NONE
    notes: str = ""
    phone: str = ""

    @classmethod
    def create(cls, student: Student, now: Optional[datetime] = None, notes: str = "") -> "LateRecord":
        now = now or datetime.now()
        return cls(
            id=new_id("late"),
            student_id=student.id,
            student_name=student.name,
            grade=student.grade,
            class_name=student.class_name,
            timestamp=int(now.timestamp() * 1000),
            date_string=now.strftime("%Y-%m-%d"),
            arrival_time=now.strftime("%H:%M"),
            notes=notes,
            phone=student.phone,
        )

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "LateRecord":
        # accepts both snake_case and the camelCase keys of stored data
        def g(snake: str, camel: str, default: Any = "") -> Any:
            if snake in d:
                return d[snake]
            return d.get(camel, default)

        return cls(
            id=str(d["id"]),
            student_id=str(g("student_id", "studentId")),
            student_name=cell_text(g("student_name", "studentName")),
            grade=cell_text(d.get("grade")),
            class_name=cell_text(g("class_name", "className")),
            timestamp=int(d.get("timestamp") or 0),
            date_string=cell_text(g("date_string", "dateString")),
            arrival_time=cell_text(g("arrival_time", "arrivalTime")),
            is_excused=bool(g("is_excused", "isExcused", False)),
            action_taken=ActionTaken.parse(g("action_taken", "actionTaken", None)),
            notes=cell_text(d.get("notes")),
            phone=digits_only(d.get("phone")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "studentId": self.student_id,
            "studentName": self.student_name,
            "grade": self.grade,
            "className": self.class_name,
            "phone": self.phone,
            "timestamp": self.timestamp,
            "dateString": self.date_string,
            "arrivalTime": self.arrival_time,
            "isExcused": self.is_excused,
            "actionTaken": self.action_taken.value,
            "notes": self.notes,
        }


def records_from_dicts(items: Any) -> List[LateRecord]:
    """Stored records that can be read; unreadable entries are logged and skipped."""
    out: List[LateRecord] = []
    if not isinstance(items, list):
        return out
    for d in items:
        if not isinstance(d, dict) or not d.get("id"):
            continue
        try:
            out.append(LateRecord.from_dict(d))
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("Skipping stored record %s: %s", d.get("id"), e)
    return out


@dataclass(frozen=True)
class ReportSpec:
    kind: ReportKind
    date: str = ""  # YYYY-MM-DD, daily
    month: str = ""  # YYYY-MM, monthly (optional narrowing for by_class / by_student)
    grade: str = ""
    class_name: str = ""
    student_query: str = ""
    min_count: int = 3


@dataclass(frozen=True)
class SchoolMeta:
    school_name: str = ""
    manager_name: str = ""
    supervisor_name: str = ""
    logo_path: Optional[str] = None


@dataclass(frozen=True)
class Page:
    rows: List[Dict[str, Any]]
    index: int
    starting_row_number: int
    is_last_page: bool


@dataclass
class DocumentStructure:
    """Format-neutral view of an imported document: tables of rows of cell texts, plus text blocks."""
    tables: List[List[List[str]]] = field(default_factory=list)
    paragraphs: List[str] = field(default_factory=list)
