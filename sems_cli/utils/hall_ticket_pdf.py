import logging
import os
import re
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle
from reportlab.lib.units import inch
from reportlab.platypus import (
    HRFlowable,
    Paragraph,
    SimpleDocTemplate,
    Spacer,
    Table,
    TableStyle,
)

from sems_cli.models import Exam, Examinee, ExamRegistration

logger = logging.getLogger(__name__)

OUTPUT_DIR = Path("hall_tickets")
CENTER_NAME = "Smart Examinee Management System"
UNSAFE_FILENAME_CHARS = re.compile(r"[\\/?*\[\]:]")


class HallTicketPDFGenerator:
    """Class for generating printable hall tickets"""

    BRAND_PRIMARY = colors.HexColor("#212121")
    BRAND_GRAY = colors.HexColor("#333333")

    @staticmethod
    def generate_hall_ticket_pdf(
        registration: ExamRegistration,
        output_dir: Optional[Path] = None,
    ) -> Optional[str]:
        """Generate a hall ticket PDF for a registration

        Args:
            registration: The registration, with its exam and examinee loaded
            output_dir: Directory for the PDF, defaults to ``hall_tickets``

        Returns:
            str: Path to the generated PDF file, or None if generation failed
        """
        if registration.status == "cancelled":
            logger.error(
                f"Registration {registration.registration_id} is cancelled, no hall ticket issued"
            )
            return None

        exam = registration.exam
        examinee = registration.examinee

        try:
            target_dir = Path(output_dir or OUTPUT_DIR)
            target_dir.mkdir(parents=True, exist_ok=True)

            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            ticket = UNSAFE_FILENAME_CHARS.sub("_", registration.hall_ticket_number or "")
            pdf_filename = f"hall_ticket_{ticket}_{timestamp}.pdf"
            pdf_path = os.path.join(target_dir, pdf_filename)

            styles = HallTicketPDFGenerator._create_styles()

            doc = SimpleDocTemplate(
                pdf_path,
                pagesize=A4,
                rightMargin=0.75 * inch,
                leftMargin=0.75 * inch,
                topMargin=0.5 * inch,
                bottomMargin=0.5 * inch,
                title=f"Hall Ticket - {examinee.full_name}",
                author=CENTER_NAME,
            )

            elements: List[Any] = []
            elements.extend(HallTicketPDFGenerator._build_header(styles))
            elements.append(Paragraph("EXAM DETAILS", styles["section_header"]))
            elements.append(HallTicketPDFGenerator._build_exam_info(exam, styles))
            elements.append(Spacer(1, 0.3 * inch))
            elements.append(Paragraph("CANDIDATE DETAILS", styles["section_header"]))
            elements.append(
                HallTicketPDFGenerator._build_examinee_info(
                    registration, examinee, styles
                )
            )
            elements.append(Spacer(1, 0.5 * inch))
            elements.append(
                Paragraph(
                    "Bring this hall ticket and a valid photo ID to the venue. "
                    "Candidates arriving after the start time may be refused entry.",
                    styles["small"],
                )
            )

            doc.build(elements)

            logger.info(f"Generated hall ticket PDF: {pdf_path}")
            return pdf_path

        except OSError as e:
            logger.error(f"Failed to generate hall ticket PDF: {str(e)}")
            return None

    @staticmethod
    def _create_styles() -> Dict[str, ParagraphStyle]:
        return {
            "title": ParagraphStyle(
                "Title",
                fontSize=15,
                alignment=1,
                spaceAfter=8,
                fontName="Helvetica-Bold",
                textColor=HallTicketPDFGenerator.BRAND_PRIMARY,
                leading=17,
            ),
            "subtitle": ParagraphStyle(
                "Subtitle",
                fontSize=11,
                alignment=1,
                spaceAfter=6,
                fontName="Helvetica-Bold",
                textColor=HallTicketPDFGenerator.BRAND_GRAY,
                leading=13,
            ),
            "section_header": ParagraphStyle(
                "SectionHeader",
                fontSize=11,
                fontName="Helvetica-Bold",
                spaceAfter=8,
                textColor=HallTicketPDFGenerator.BRAND_PRIMARY,
                leading=13,
            ),
            "data_label": ParagraphStyle(
                "DataLabel",
                fontSize=9,
                fontName="Helvetica-Bold",
                textColor=HallTicketPDFGenerator.BRAND_GRAY,
            ),
            "data_value": ParagraphStyle(
                "DataValue",
                fontSize=9,
                fontName="Helvetica",
            ),
            "small": ParagraphStyle(
                "Small",
                fontSize=7,
                fontName="Helvetica",
                leading=9,
                textColor=HallTicketPDFGenerator.BRAND_GRAY,
            ),
        }

    @staticmethod
    def _build_header(styles: Dict[str, ParagraphStyle]) -> List[Any]:
        return [
            Paragraph(CENTER_NAME, styles["title"]),
            Paragraph("HALL TICKET", styles["subtitle"]),
            HRFlowable(
                width="100%",
                thickness=2,
                color=HallTicketPDFGenerator.BRAND_PRIMARY,
                spaceBefore=8,
                spaceAfter=16,
            ),
        ]

    @staticmethod
    def _details_table(
        rows: List[tuple[str, str]], styles: Dict[str, ParagraphStyle]
    ) -> Table:
        data = [
            [
                Paragraph(label, styles["data_label"]),
                Paragraph(escape(value), styles["data_value"]),
            ]
            for label, value in rows
        ]
        return Table(
            data,
            colWidths=[1.8 * inch, 4.7 * inch],
            style=TableStyle(
                [
                    ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
                    ("BOTTOMPADDING", (0, 0), (-1, -1), 6),
                    ("TOPPADDING", (0, 0), (-1, -1), 6),
                    ("LEFTPADDING", (0, 0), (-1, -1), 10),
                    ("GRID", (0, 0), (-1, -1), 0.5, colors.lightgrey),
                ]
            ),
        )

    @staticmethod
    def _build_exam_info(exam: Exam, styles: Dict[str, ParagraphStyle]) -> Table:
        exam_time = (
            f"{exam.start_time.strftime('%H:%M')} - {exam.end_time.strftime('%H:%M')}"
        )
        return HallTicketPDFGenerator._details_table(
            [
                ("Exam:", f"{exam.exam_name} ({exam.exam_code})"),
                ("Date:", exam.exam_date.strftime("%Y-%m-%d")),
                ("Time:", exam_time),
                ("Venue:", exam.venue or "N/A"),
            ],
            styles,
        )

    @staticmethod
    def _build_examinee_info(
        registration: ExamRegistration,
        examinee: Examinee,
        styles: Dict[str, ParagraphStyle],
    ) -> Table:
        return HallTicketPDFGenerator._details_table(
            [
                ("Hall Ticket No.:", registration.hall_ticket_number or "N/A"),
                ("Name:", examinee.full_name),
                ("Registration No.:", examinee.registration_number),
                ("Email:", examinee.email),
                ("Phone:", examinee.phone or "N/A"),
            ],
            styles,
        )
