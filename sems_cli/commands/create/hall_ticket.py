from pathlib import Path
from typing import Optional

import click
from sqlalchemy.orm import Session

from sems_cli.models import ExamRegistration
from sems_cli.utils.hall_ticket_pdf import HallTicketPDFGenerator


def create_hall_ticket(
    db: Session, registration_id: int, output_dir: Optional[Path] = None
) -> Optional[str]:
    """Create a hall ticket PDF for a registration that is not cancelled."""
    registration = (
        db.query(ExamRegistration)
        .filter(ExamRegistration.registration_id == registration_id)
        .first()
    )
    if not registration:
        click.secho(f"Registration {registration_id} not found", fg="red")
        return None

    if registration.status == "cancelled":
        click.secho(
            f"Registration {registration_id} is cancelled, no hall ticket issued",
            fg="yellow",
        )
        return None

    path = HallTicketPDFGenerator.generate_hall_ticket_pdf(registration, output_dir)
    if path:
        click.secho(f"Hall ticket generated: {path}", fg="green")
    else:
        click.secho("Failed to generate hall ticket", fg="red")
    return path
