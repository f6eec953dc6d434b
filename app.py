from __future__ import annotations
import logging
from datetime import date, datetime
import pandas as pd
import streamlit as st
from tardiness.aggregate import aggregate, report_columns, report_title
from tardiness.config import load_settings, save_settings
from tardiness.errors import EmptyExtraction, MissingRequiredSelection, TardinessError, UnsupportedFormat
from tardiness.export import deliver, export_pdf, safe_file_name
from tardiness.ingest import ImportMethod, ImportMode, import_students, merge_students
from tardiness.models import LateRecord, ReportKind, ReportSpec, Student, records_from_dicts
from tardiness.paginate import paginate
from tardiness.utils import USER_DATA_DIR, load_json, save_json, today_key, try_parse_month

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger("app")

STUDENTS_FILE = USER_DATA_DIR / "students.json"
RECORDS_FILE = USER_DATA_DIR / "records.json"

st.set_page_config(page_title="سجل المتأخرين", layout="wide")
st.title("سجل متابعة تأخر الطلاب")
# =========================

# Storage (JSON files in the user data dir)
# =========================
def _load_students() -> list[Student]:
    return [Student.from_dict(d) for d in load_json(STUDENTS_FILE, []) if isinstance(d, dict) and d.get("id")]

def _save_students(students: list[Student]) -> None:
    save_json(STUDENTS_FILE, [s.to_dict() for s in students])

def _load_records() -> list[LateRecord]:
    return records_from_dicts(load_json(RECORDS_FILE, []))

def _save_records(records: list[LateRecord]) -> None:
    save_json(RECORDS_FILE, [r.to_dict() for r in records])

settings = load_settings()
students = _load_students()
records = _load_records()
# =========================

# Settings
# =========================
with st.sidebar:
    st.subheader("بيانات المدرسة")
    with st.form("settings_form"):
        school_name = st.text_input("اسم المدرسة", value=settings.school_name)
        supervisor_name = st.text_input("مشرف السجل", value=settings.supervisor_name)
        manager_name = st.text_input("مدير المدرسة", value=settings.manager_name)
        if st.form_submit_button("حفظ"):
            settings.school_name = school_name.strip()
            settings.supervisor_name = supervisor_name.strip()
            settings.manager_name = manager_name.strip()
            save_settings(settings)
            st.success("تم الحفظ")

tab_students, tab_register, tab_reports = st.tabs(["الطلاب", "تسجيل التأخر", "التقارير"])
# =========================

# Students: import from Excel / Word
# =========================
with tab_students:
    st.subheader(f"إدارة الطلاب ({len(students)})")

    with st.form("import_form", clear_on_submit=True):
        upload = st.file_uploader("ملف Excel أو Word", type=["xlsx", "xlsm", "csv", "docx"])
        mode = st.radio("الصف والفصل", [ImportMode.MANUAL, ImportMode.AUTO],
                        format_func=lambda m: "تحديد يدوي لكل الطلاب" if m is ImportMode.MANUAL else "من الملف",
                        horizontal=True)
        c1, c2 = st.columns(2)
        with c1:
            imp_grade = st.text_input("الصف")
        with c2:
            imp_class = st.text_input("الفصل")
        method = st.radio("طريقة الاستيراد", [ImportMethod.APPEND, ImportMethod.REPLACE],
                          format_func=lambda m: "إضافة" if m is ImportMethod.APPEND else "استبدال الكل",
                          horizontal=True)
        submitted = st.form_submit_button("استيراد")

    if submitted:
        if upload is None:
            st.error("يرجى اختيار ملف")
        else:
            try:
                imported = import_students(upload.getvalue(), upload.name, upload.type,
                                           mode=mode, grade=imp_grade, class_name=imp_class)
            except MissingRequiredSelection:
                st.error("يرجى اختيار الصف والفصل لتوزيع الطلاب عليهم.")
            except UnsupportedFormat:
                st.error("صيغة الملف غير مدعومة. يرجى استخدام Excel (.xlsx) أو Word (.docx)")
            except EmptyExtraction:
                st.warning("لم يتم العثور على بيانات. تأكد من أن الملف يحتوي على جدول أو قائمة بالأسماء.")
            except TardinessError as e:
                logger.warning("Import failed: %s", e)
                st.error("حدث خطأ أثناء قراءة الملف. تأكد من أن الملف ليس تالفاً.")
            else:
                students = merge_students(students, imported, method)
                _save_students(students)
                st.success(f"تمت إضافة {len(imported)} طالب بنجاح.")

    if students:
        st.dataframe(pd.DataFrame([s.to_dict() for s in students]).drop(columns=["id"]),
                     width="stretch", hide_index=True)
# =========================

# Register late arrivals for today
# =========================
with tab_register:
    today = today_key()
    already = {r.student_id for r in records if r.date_string == today}
    available = [s for s in students if s.id not in already]

    st.subheader(f"متأخرو اليوم ({len(already)})")
    picked = st.multiselect("الطلاب", available, format_func=lambda s: f"{s.name} ({s.grade} {s.class_name})")
    if st.button("تسجيل", disabled=not picked):
        now = datetime.now()
        records = records + [LateRecord.create(s, now=now) for s in picked]
        _save_records(records)
        st.rerun()
# =========================

# Reports
# =========================
KIND_LABELS = {
    ReportKind.DAILY: "يومي",
    ReportKind.MONTHLY: "شهري",
    ReportKind.BY_CLASS: "حسب الصف",
    ReportKind.BY_STUDENT: "حسب الطالب",
    ReportKind.FREQUENCY: "تكرار التأخر",
}

with tab_reports:
    kind = st.radio("نوع التقرير", list(KIND_LABELS), format_func=KIND_LABELS.get, horizontal=True)
    spec_kwargs: dict = {"kind": kind}

    if kind is ReportKind.DAILY:
        spec_kwargs["date"] = st.date_input("التاريخ", value=date.today()).strftime("%Y-%m-%d")
    elif kind is ReportKind.MONTHLY:
        month_text = st.text_input("الشهر (YYYY-MM)", value=date.today().strftime("%Y-%m"))
        spec_kwargs["month"] = try_parse_month(month_text) or month_text.strip()
    elif kind is ReportKind.BY_CLASS:
        c1, c2 = st.columns(2)
        with c1:
            spec_kwargs["grade"] = st.selectbox("الصف", [""] + sorted({r.grade for r in records}))
        with c2:
            spec_kwargs["class_name"] = st.selectbox("الفصل", [""] + sorted({r.class_name for r in records}))
    elif kind is ReportKind.BY_STUDENT:
        spec_kwargs["student_query"] = st.text_input("اسم الطالب")
    else:
        spec_kwargs["min_count"] = int(st.number_input("الحد الأدنى لمرات التأخر", min_value=1, value=3))

    spec = ReportSpec(**spec_kwargs)
    rows = aggregate(records, spec)
    title = report_title(spec)
    columns = report_columns(kind)

    st.markdown(f"### {title}")
    if not rows:
        st.info("لا توجد سجلات للعرض")
    else:
        view = pd.DataFrame([{label: r.get(key) for key, label in columns} for r in rows])
        view.index = range(1, len(view) + 1)
        st.dataframe(view, width="stretch")

        pages = paginate(rows, settings.rows_per_page)
        st.caption(f"عدد السجلات: {len(rows)} | عدد الصفحات: {len(pages)}")

        if st.button("إنشاء ملف PDF"):
            try:
                document = export_pdf(pages, title, settings.school, columns,
                                      width=settings.raster_width, font_path=settings.font_path)
            except TardinessError as e:
                logger.error("Export failed: %s", e)
                st.error("تعذر إنشاء التقرير. حاول مرة أخرى.")
            else:
                # a browser session has no native share sheet: keep a copy on disk and offer the download
                path = deliver(document, title, share_supported=False)
                st.download_button("تحميل التقرير", data=document, file_name=f"{safe_file_name(title)}.pdf",
                                   mime="application/pdf")
                st.caption(str(path))
