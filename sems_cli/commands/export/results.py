import os
import re
from datetime import datetime
from typing import Optional

import click
from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill
from openpyxl.utils import get_column_letter
from sqlalchemy.orm import Session

from sems_cli.models import Exam, Examinee, ExamRegistration, Result

# Characters Excel forbids in sheet titles, also unsafe in file names
UNSAFE_CHARS = re.compile(r"[\\/?*\[\]:]")

HEADERS = [
    "Hall Ticket",
    "Registration Number",
    "Examinee Name",
    "Marks Obtained",
    "Max Marks",
    "Percentage",
    "Grade",
    "Remarks",
]


def export_exam_results(
    db: Session, exam_id: int, output_dir: str = "exports"
) -> Optional[str]:
    """Export the results of one exam to an Excel workbook, best score first."""
    exam = db.query(Exam).filter(Exam.exam_id == exam_id).first()
    if not exam:
        click.secho(f"Exam {exam_id} not found", fg="red")
        return None

    rows = (
        db.query(ExamRegistration, Examinee, Result)
        .join(Examinee, ExamRegistration.examinee_id == Examinee.examinee_id)
        .join(Result, Result.registration_id == ExamRegistration.registration_id)
        .filter(ExamRegistration.exam_id == exam_id)
        .order_by(Result.percentage.desc(), Examinee.registration_number.asc())
        .all()
    )

    if not rows:
        click.secho(f"No results found for exam {exam.exam_code}.", fg="yellow")
        return None

    safe_code = UNSAFE_CHARS.sub("_", exam.exam_code)
    os.makedirs(output_dir, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    excel_path = os.path.join(output_dir, f"results_{safe_code}_{timestamp}.xlsx")

    wb = Workbook()
    ws = wb.active
    if ws is None:
        ws = wb.create_sheet()
    ws.title = safe_code[:31]

    header_font = Font(bold=True, color="FFFFFF")
    header_fill = PatternFill(
        start_color="366092", end_color="366092", fill_type="solid"
    )
    for col, header in enumerate(HEADERS, 1):
        cell = ws.cell(row=1, column=col)
        cell.value = header
        cell.font = header_font
        cell.fill = header_fill

    for row, (registration, examinee, result) in enumerate(rows, 2):
        ws.cell(row=row, column=1, value=registration.hall_ticket_number)
        ws.cell(row=row, column=2, value=examinee.registration_number)
        ws.cell(row=row, column=3, value=examinee.full_name)
        ws.cell(row=row, column=4, value=float(result.marks_obtained))
        ws.cell(row=row, column=5, value=float(result.max_marks))
        ws.cell(row=row, column=6, value=float(result.percentage))
        ws.cell(row=row, column=7, value=result.grade)
        ws.cell(row=row, column=8, value=result.remarks)

    for col in range(1, len(HEADERS) + 1):
        column_letter = get_column_letter(col)
        max_length = max(
            len(str(cell.value)) for cell in ws[column_letter] if cell.value is not None
        )
        ws.column_dimensions[column_letter].width = min(max_length + 2, 50)

    wb.save(excel_path)

    click.secho(f"Successfully exported results to: {excel_path}", fg="green")
    click.echo(f"- Exam: {exam.exam_name} ({exam.exam_code})")
    click.echo(f"- Results exported: {len(rows)}")
    return excel_path
