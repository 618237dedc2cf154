# utils/excel.py
"""Sheet reading and XLSX export helpers for attendance reports."""
from __future__ import annotations

import csv
import io
import os
from datetime import date, datetime, time, timedelta
from typing import Iterable, List, TYPE_CHECKING

import openpyxl
import pandas as pd
from openpyxl.utils.datetime import to_excel

if TYPE_CHECKING:  # pragma: no cover - imported only for typing
    from domain.models.attendee import AttendeeRecord

Matrix = List[List[object]]

XLSX_EXTENSIONS = {".xlsx", ".xlsm"}
CSV_EXTENSIONS = {".csv"}
ALLOWED_EXTENSIONS = XLSX_EXTENSIONS | CSV_EXTENSIONS
_ZIP_MAGIC = b"PK\x03\x04"

EXPORT_SHEET = "بيانات الحضور"
EXPORT_FILE_NAME = "webinar_attendees_cleaned.xlsx"
XLSX_MIMETYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

# Export column header -> record attribute, in sheet order
EXPORT_COLUMNS = {
    "حضر": "attended",
    "اسم المستخدم": "user_name",
    "الاسم الأول": "first_name",
    "اسم العائلة": "last_name",
    "البريد الإلكتروني": "email",
    "وقت التسجيل": "registration_time",
    "حالة الموافقة": "approval_status",
    "وقت الانضمام": "join_time",
    "وقت المغادرة": "leave_time",
    "المدة (دقيقة)": "session_duration",
    "هل ضيف": "is_guest",
    "البلد": "country",
    "رقم الهاتف": "phone_number",
}
_DURATION_HEADER = "المدة (دقيقة)"


# ─────────────────────────────────────────────────────────────────────────────
# Reading
# ─────────────────────────────────────────────────────────────────────────────
def _cell_value(value: object) -> object:
    """Date-formatted cells go back to Excel serial numbers for the decoder."""
    if isinstance(value, (datetime, date, time, timedelta)):
        return to_excel(value)
    return value


def read_xlsx_matrix(data: bytes) -> Matrix:
    """Return the first worksheet of an XLSX payload as a list of rows."""
    workbook = openpyxl.load_workbook(io.BytesIO(data), read_only=True, data_only=True)
    try:
        worksheet = workbook.worksheets[0]
        return [
            [_cell_value(value) for value in row]
            for row in worksheet.iter_rows(values_only=True)
        ]
    finally:
        workbook.close()


def _decode_text(data: bytes) -> str:
    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError:
        # Arabic Windows exports
        return data.decode("cp1256", errors="replace")


def read_csv_matrix(data: bytes) -> Matrix:
    """Parse a CSV payload into ragged rows; preamble rows may be short."""
    reader = csv.reader(io.StringIO(_decode_text(data), newline=""))
    return [list(row) for row in reader]


def read_sheet_matrix(data: bytes, file_name: str = "") -> Matrix:
    """
    Sheet reader used by the ingest: XLSX through openpyxl, CSV otherwise.

    Files with an unknown extension are sniffed (zip container -> XLSX).
    """
    _, ext = os.path.splitext((file_name or "").lower())
    if ext in XLSX_EXTENSIONS or (ext not in CSV_EXTENSIONS and data.startswith(_ZIP_MAGIC)):
        return read_xlsx_matrix(data)
    return read_csv_matrix(data)


# ─────────────────────────────────────────────────────────────────────────────
# Export
# ─────────────────────────────────────────────────────────────────────────────
def attendees_dataframe(records: Iterable["AttendeeRecord"]) -> pd.DataFrame:
    rows = [
        {header: getattr(record, attr) for header, attr in EXPORT_COLUMNS.items()}
        for record in records
    ]
    frame = pd.DataFrame(rows, columns=list(EXPORT_COLUMNS))
    # nullable ints: a missing duration must not turn 45 into 45.0
    frame[_DURATION_HEADER] = pd.array(list(frame[_DURATION_HEADER]), dtype="Int64")
    return frame


def build_attendee_workbook(records: Iterable["AttendeeRecord"]) -> bytes:
    """Render ``records`` into a one-sheet XLSX workbook and return its bytes."""
    frame = attendees_dataframe(records)
    stream = io.BytesIO()
    with pd.ExcelWriter(stream, engine="openpyxl") as writer:
        frame.to_excel(writer, sheet_name=EXPORT_SHEET, index=False)
    return stream.getvalue()
