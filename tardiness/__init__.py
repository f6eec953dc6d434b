"""
This package contains:
- import of student lists from spreadsheets (XLSX/CSV) and Word documents
- cell heuristics for names / phones, table and free-text extraction
- late-arrival report aggregation (daily, monthly, by class, by student, frequency)
- pagination of report rows onto print pages
- page rendering, rasterization and PDF export (download or share)
"""
from .errors import (TardinessError, UnsupportedFormat, MalformedDocument, EmptyExtraction,
                     MissingRequiredSelection, RasterizationFailure, AssemblyFailure)
from .models import Student, LateRecord, ActionTaken, ReportKind, ReportSpec, SchoolMeta, Page, DocumentStructure, records_from_dicts
from .classify import FieldKind, classify_cell, classify_row, is_header_row
from .extract import extract_from_tables, extract_from_paragraphs
from .ingest import ImportMode, ImportMethod, DocumentFormat, detect_format, import_students, merge_students
from .aggregate import aggregate, report_title, report_columns
from .paginate import paginate
from .export import export_pdf, deliver

__all__ = [
    "TardinessError",
    "UnsupportedFormat",
    "MalformedDocument",
    "EmptyExtraction",
    "MissingRequiredSelection",
    "RasterizationFailure",
    "AssemblyFailure",
    "Student",
    "LateRecord",
    "ActionTaken",
    "ReportKind",
    "ReportSpec",
    "SchoolMeta",
    "Page",
    "DocumentStructure",
    "records_from_dicts",
    "FieldKind",
    "classify_cell",
    "classify_row",
    "is_header_row",
    "extract_from_tables",
    "extract_from_paragraphs",
    "ImportMode",
    "ImportMethod",
    "DocumentFormat",
    "detect_format",
    "import_students",
    "merge_students",
    "aggregate",
    "report_title",
    "report_columns",
    "paginate",
    "export_pdf",
    "deliver",
]
