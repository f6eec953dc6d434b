from __future__ import annotations
import csv
import logging
from enum import Enum
from io import BytesIO, StringIO
from pathlib import PurePath
from typing import List, Dict, Any, Optional, Sequence
import pandas as pd
from docx import Document
from docx.table import Table, _Cell
from docx.text.paragraph import Paragraph
from openpyxl import load_workbook
from .errors import EmptyExtraction, MalformedDocument, MissingRequiredSelection, UnsupportedFormat
from .extract import extract_from_paragraphs, extract_from_tables
from .models import DocumentStructure, Student
from .utils import cell_text

logger = logging.getLogger(__name__)


class DocumentFormat(str, Enum):
    SPREADSHEET = "spreadsheet"
    WORD = "word"


class ImportMode(str, Enum):
    AUTO = "auto"  # keep grade/class as found in the file
    MANUAL = "manual"  # one grade/class for every imported student


class ImportMethod(str, Enum):
    APPEND = "append"
    REPLACE = "replace"


EXTENSIONS = {
    ".xlsx": DocumentFormat.SPREADSHEET,
    ".xlsm": DocumentFormat.SPREADSHEET,
    ".csv": DocumentFormat.SPREADSHEET,
    ".docx": DocumentFormat.WORD,
}

MIME_TYPES = {
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet": DocumentFormat.SPREADSHEET,
    "application/vnd.ms-excel.sheet.macroenabled.12": DocumentFormat.SPREADSHEET,
    "text/csv": DocumentFormat.SPREADSHEET,
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": DocumentFormat.WORD,
}

# Per field: header aliases in priority order (exact, case-sensitive)
HEADER_ALIASES: Dict[str, List[str]] = {
    "name": ["الاسم", "Name", "اسم الطالب"],
    "grade": ["الصف", "Grade", "المرحلة"],
    "class_name": ["الفصل", "Class", "الشعبة"],
    "phone": ["الهاتف", "رقم الهاتف", "الجوال", "Phone", "Mobile"],
}


def detect_format(file_name: str, mime_type: Optional[str] = None) -> DocumentFormat:
    ext = PurePath(file_name or "").suffix.lower()
    if ext in EXTENSIONS:
        return EXTENSIONS[ext]
    if mime_type and mime_type.lower() in MIME_TYPES:
        return MIME_TYPES[mime_type.lower()]
    raise UnsupportedFormat(f"Unsupported file type: {file_name!r} ({mime_type or 'no MIME type'})")
# =========================

# Excel: first sheet as a matrix, merged cells expanded
# =========================
def _sheet_to_matrix_with_merged(wb_bytes: bytes, max_rows: Optional[int] = None) -> List[List[Any]]:
    wb = load_workbook(BytesIO(wb_bytes), read_only=False, data_only=True)
    ws = wb.worksheets[0]
    merged_map = {}
    for r in ws.merged_cells.ranges:
        min_col, min_row, max_col, max_row = r.bounds
        top_val = ws.cell(min_row, min_col).value
        for rr in range(min_row, max_row + 1):
            for cc in range(min_col, max_col + 1):
                merged_map[(rr, cc)] = top_val

    rows = []
    max_r = ws.max_row
    max_c = ws.max_column
    if max_rows is not None:
        max_r = min(max_r, max_rows)

    for r in range(1, max_r + 1):
        row_vals = []
        for c in range(1, max_c + 1):
            v = ws.cell(r, c).value
            if (r, c) in merged_map and (v is None or str(v).strip() == ""):
                v = merged_map[(r, c)]
            row_vals.append(v)
        rows.append(row_vals)

    return rows
# =========================

# CSV: tolerant read from bytes (exports from other tools)
# =========================
def _guess_delimiter(sample_text: str) -> str:
    # ',' (en locales) or ';' (ar/fr locales), sometimes tabs
    try:
        dialect = csv.Sniffer().sniff(sample_text, delimiters=";,\t|")
        if dialect.delimiter:
            return dialect.delimiter
    except csv.Error:
        pass

    # fallback: delimiter count in the first lines
    candidates = [";", ",", "\t", "|"]
    lines = [ln for ln in sample_text.splitlines() if ln.strip()][:20]
    if not lines:
        return ","

    scores = {}
    for d in candidates:
        cnts = [ln.count(d) for ln in lines]
        scores[d] = sum(cnts) / max(1, len(cnts))

    best = max(scores.items(), key=lambda x: x[1])[0]
    return best if scores.get(best, 0) > 0 else ","


def _read_csv_bytes(data: bytes) -> pd.DataFrame:
    # header=None: the header row stays in the matrix; dtype=str keeps leading zeros of phones
    encodings = ["utf-8-sig", "cp1256"]
    last_err: Exception | None = None

    for enc in encodings:
        try:
            text = data.decode(enc)
        except UnicodeDecodeError as e:
            last_err = e
            continue
        delim = _guess_delimiter(text[:65536])
        try:
            return pd.read_csv(
                StringIO(text),
                header=None,
                sep=delim,
                engine="python",
                dtype=str,
                keep_default_na=False,
                skip_blank_lines=True,
            )
        except (pd.errors.ParserError, ValueError) as e:
            last_err = e

    raise MalformedDocument("CSV file could not be read") from last_err


def read_spreadsheet_matrix(data: bytes, file_name: str, mime_type: Optional[str] = None) -> pd.DataFrame:
    ext = PurePath(file_name or "").suffix.lower()
    if ext == ".csv" or (ext not in EXTENSIONS and (mime_type or "").lower() == "text/csv"):
        return _read_csv_bytes(data)
    try:
        matrix = _sheet_to_matrix_with_merged(data)
    except Exception as e:
        raise MalformedDocument(f"Spreadsheet {file_name!r} could not be opened") from e
    return pd.DataFrame(matrix)


def _alias_columns(headers: Sequence[str]) -> Dict[str, List[int]]:
    # field -> column positions, in alias priority order; duplicate headers: leftmost wins
    out: Dict[str, List[int]] = {}
    for field, aliases in HEADER_ALIASES.items():
        cols = []
        for alias in aliases:
            if alias in headers:
                cols.append(headers.index(alias))
        out[field] = cols
    return out


def students_from_matrix(df_raw: pd.DataFrame) -> List[Student]:
    """
    First row is the header row. For each data row and field, the first alias
    column holding a non-empty value wins. Rows without a name are dropped.
    """
    if df_raw.empty:
        return []

    # the header row is the first row holding anything
    filled = [i for i in range(len(df_raw)) if any(cell_text(v) for v in df_raw.iloc[i].tolist())]
    if not filled:
        return []
    df_raw = df_raw.iloc[filled[0]:]

    headers = ["" if pd.isna(v) else str(v) for v in df_raw.iloc[0].tolist()]
    cols = _alias_columns(headers)
    if not cols["name"]:
        logger.info("Spreadsheet header has no name column: %s", headers)
        return []

    out: List[Student] = []
    for values in df_raw.iloc[1:].itertuples(index=False, name=None):
        fields = {}
        for field, positions in cols.items():
            fields[field] = next((cell_text(values[p]) for p in positions if cell_text(values[p])), "")
        if not fields["name"]:
            continue
        out.append(Student.candidate(**fields))
    return out
# =========================

# Word: tables + paragraphs in document order
# =========================
def _own_cells(row, table: Table) -> List[_Cell]:
    # cells physically in this row: one per w:tc (horizontal merges count once),
    # continuations of a vertical merge belong to the row that starts it
    return [_Cell(tc, table) for tc in row._tr.tc_lst if tc.vMerge != "continue"]


def _walk_table(table: Table, structure: DocumentStructure) -> None:
    rows = []
    nested: List[Table] = []
    for row in table.rows:
        cells = _own_cells(row, table)
        rows.append([c.text for c in cells])
        for cell in cells:
            structure.paragraphs.extend(p.text for p in cell.paragraphs)
            nested.extend(cell.tables)
    structure.tables.append(rows)
    for t in nested:
        _walk_table(t, structure)


def read_word_structure(data: bytes) -> DocumentStructure:
    try:
        doc = Document(BytesIO(data))
    except Exception as e:
        raise MalformedDocument("Word document could not be opened") from e

    structure = DocumentStructure()
    for block in doc.iter_inner_content():
        if isinstance(block, Paragraph):
            structure.paragraphs.append(block.text)
        elif isinstance(block, Table):
            _walk_table(block, structure)
    return structure


def extract_students(structure: DocumentStructure) -> List[Student]:
    # tables first, paragraphs only when no table produced anything
    students = extract_from_tables(structure.tables)
    if students:
        return students
    logger.info("No candidates in %d tables, falling back to free text (%d paragraphs)",
                len(structure.tables), len(structure.paragraphs))
    return extract_from_paragraphs(structure.paragraphs)
# =========================

# Main: bytes -> students
# =========================
def apply_import_mode(students: List[Student], mode: ImportMode, grade: str = "", class_name: str = "") -> List[Student]:
    if mode is ImportMode.MANUAL:
        return [s.with_placement(grade, class_name) for s in students]
    return list(students)


def import_students(
    data: bytes,
    file_name: str,
    mime_type: Optional[str] = None,
    *,
    mode: ImportMode = ImportMode.AUTO,
    grade: str = "",
    class_name: str = "",
) -> List[Student]:
    """
    Returns the candidate students found in the file.

    Raises:
      UnsupportedFormat        - not a spreadsheet / word document
      MissingRequiredSelection - manual mode without grade and class
      MalformedDocument        - the file could not be parsed
      EmptyExtraction          - parsed, but no student found
    """
    fmt = detect_format(file_name, mime_type)
    grade = cell_text(grade)
    class_name = cell_text(class_name)
    if mode is ImportMode.MANUAL and (not grade or not class_name):
        raise MissingRequiredSelection("Manual import needs both a grade and a class")

    logger.info("Importing %s as %s (%d bytes, mode=%s)", file_name, fmt.value, len(data), mode.value)

    if fmt is DocumentFormat.SPREADSHEET:
        students = students_from_matrix(read_spreadsheet_matrix(data, file_name, mime_type))
    else:
        students = extract_students(read_word_structure(data))

    if not students:
        raise EmptyExtraction(f"No students found in {file_name!r}")

    logger.info("Imported %d students from %s", len(students), file_name)
    return apply_import_mode(students, mode, grade, class_name)


def merge_students(existing: Sequence[Student], imported: Sequence[Student], method: ImportMethod) -> List[Student]:
    if method is ImportMethod.REPLACE:
        return list(imported)
    return list(existing) + list(imported)
