from pathlib import Path

from sems_cli.commands.create.hall_ticket import create_hall_ticket
from sems_cli.commands.register.registrations import (
    cancel_registration,
    register_examinee,
)


class TestHallTicket:
    def test_generates_pdf(self, db, exam, examinee, tmp_path):
        _, registration = register_examinee(db, examinee.examinee_id, exam.exam_id)

        path = create_hall_ticket(db, registration.registration_id, tmp_path)

        assert path is not None
        pdf = Path(path)
        assert pdf.exists()
        assert pdf.name.startswith(f"hall_ticket_{registration.hall_ticket_number}_")
        assert pdf.read_bytes().startswith(b"%PDF")

    def test_cancelled_registration_gets_no_ticket(self, db, exam, examinee, tmp_path):
        _, registration = register_examinee(db, examinee.examinee_id, exam.exam_id)
        cancel_registration(db, registration.registration_id)

        assert create_hall_ticket(db, registration.registration_id, tmp_path) is None
        assert list(tmp_path.glob("*.pdf")) == []

    def test_unknown_registration(self, db, tmp_path):
        assert create_hall_ticket(db, 404, tmp_path) is None

    def test_custom_ticket_with_slashes_stays_in_output_dir(
        self, db, exam, examinee, tmp_path
    ):
        _, registration = register_examinee(
            db, examinee.examinee_id, exam.exam_id, hall_ticket_number="HT/2024/7"
        )

        path = create_hall_ticket(db, registration.registration_id, tmp_path)

        assert path is not None
        pdf = Path(path)
        assert pdf.parent == tmp_path
        assert pdf.name.startswith("hall_ticket_HT_2024_7_")
