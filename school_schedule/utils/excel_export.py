from __future__ import annotations
from typing import Dict, Iterable, List, Any
from io import BytesIO
from datetime import date, datetime

from openpyxl import Workbook
from openpyxl.utils import get_column_letter
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side

from school_schedule.models.schedule import Schedule

WEEKS = 5


def week_of_month(d: date) -> int:
    """
    day 1-7 -> 1, 8-14 -> 2, ... 29-31 -> 5
    """
    return min(max((d.day - 1) // 7 + 1, 1), WEEKS)


def aggregate_teaching_load(rows: Iterable[Schedule]) -> List[Dict[str, Any]]:
    """
    One dict per teacher, sorted by teacher_id:
    {teacher_id, teacher_name, classes: [..], weeks: [w1..w5], total}
    Every entry counts as one teaching period.
    """
    data: Dict[str, Dict[str, Any]] = {}
    for r in rows:
        ag = data.get(r.teacher_id)
        if ag is None:
            ag = data[r.teacher_id] = {
                "teacher_id": r.teacher_id,
                "teacher_name": r.teacher_name,
                "classes": set(),
                "weeks": [0] * WEEKS,
                "total": 0,
            }
        ag["classes"].add(r.class_code)
        ag["weeks"][week_of_month(r.date) - 1] += 1
        ag["total"] += 1

    out = []
    for teacher_id in sorted(data):
        ag = data[teacher_id]
        ag["classes"] = sorted(ag["classes"])
        out.append(ag)
    return out


def teaching_load_to_xlsx_bytes(loads: List[Dict[str, Any]], sheet_name: str = "RekapJP") -> bytes:
    wb = Workbook()
    ws = wb.active
    ws.title = sheet_name[:31]

    ws["A1"] = "No"
    ws["B1"] = "NIK"
    ws["C1"] = "Nama Pengajar"
    ws["D1"] = "Kelas yg Diajar"
    ws.merge_cells("E1:I1")
    ws["E1"] = "Total Jam Pelajaran Per Pekan"
    ws["J1"] = "Total JP"
    for i in range(WEEKS):
        ws.cell(row=2, column=5 + i, value=f"Pekan {i + 1}")

    # header style
    thin = Side(style="thin", color="000000")
    header_font = Font(bold=True)
    header_fill = PatternFill(fill_type="solid", start_color="FFFF00", end_color="FFFF00")
    header_border = Border(left=thin, right=thin, top=thin, bottom=thin)
    header_align = Alignment(horizontal="center", vertical="center", wrap_text=True)
    for row in ws.iter_rows(min_row=1, max_row=2, min_col=1, max_col=10):
        for cell in row:
            cell.font = header_font
            cell.fill = header_fill
            cell.border = header_border
            cell.alignment = header_align

    # data
    for no, ag in enumerate(loads, start=1):
        ws.append([
            no,
            ag["teacher_id"],
            ag["teacher_name"],
            ", ".join(ag["classes"]),
            *ag["weeks"],
            ag["total"],
        ])

    for col_idx in range(1, 11):
        ws.column_dimensions[get_column_letter(col_idx)].width = 18

    buf = BytesIO()
    wb.save(buf)
    return buf.getvalue()


def make_filename(prefix: str = "rekap_jp") -> str:
    ts = datetime.now().strftime("%Y%m%d_%H%M%S")
    return f"{prefix}_{ts}.xlsx"
