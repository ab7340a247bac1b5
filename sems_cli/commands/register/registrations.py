import logging
from enum import Enum
from typing import Optional, Tuple

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from sems_cli.models import Exam, Examinee, ExamRegistration

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
    "registered": frozenset({"confirmed", "cancelled"}),
    "confirmed": frozenset({"cancelled"}),
    "cancelled": frozenset(),
}


class RegistrationOutcome(str, Enum):
    REGISTERED = "registered"
    DUPLICATE = "duplicate"
    CAPACITY_FULL = "capacity_full"
    NOT_FOUND = "not_found"
    FAILED = "failed"


def generate_hall_ticket_number(exam_id: int, examinee_id: int) -> str:
    return f"HT-{exam_id}-{examinee_id}"


def count_active_registrations(db: Session, exam_id: int) -> int:
    """Number of registrations for the exam that are not cancelled."""
    return (
        db.query(func.count(ExamRegistration.registration_id))
        .filter(
            ExamRegistration.exam_id == exam_id,
            ExamRegistration.status != "cancelled",
        )
        .scalar()
        or 0
    )


def _sync_exam_count(db: Session, exam: Exam) -> None:
    db.flush()
    exam.current_registrations = count_active_registrations(db, exam.exam_id)


def register_examinee(
    db: Session,
    examinee_id: int,
    exam_id: int,
    hall_ticket_number: Optional[str] = None,
    remarks: Optional[str] = None,
) -> Tuple[RegistrationOutcome, Optional[ExamRegistration]]:
    """
    Register an examinee for an exam.

    A hall ticket number of the form ``HT-{exam_id}-{examinee_id}`` is generated
    when none is given. The exam's ``current_registrations`` is brought in line
    with the active registration count in the same transaction.

    Args:
        db: Database session
        examinee_id: Examinee to register
        exam_id: Exam to register for
        hall_ticket_number: Custom hall ticket number, blank means generate one
        remarks: Optional free text stored with the registration

    Returns:
        Tuple of (outcome, registration). The registration is None unless the
        outcome is REGISTERED.
    """
    if examinee_id <= 0 or exam_id <= 0:
        logger.error(f"Invalid examinee id {examinee_id} or exam id {exam_id}")
        return RegistrationOutcome.FAILED, None

    if not hall_ticket_number or not hall_ticket_number.strip():
        hall_ticket_number = generate_hall_ticket_number(exam_id, examinee_id)
    else:
        hall_ticket_number = hall_ticket_number.strip()

    try:
        exam = db.query(Exam).filter(Exam.exam_id == exam_id).first()
        examinee = (
            db.query(Examinee).filter(Examinee.examinee_id == examinee_id).first()
        )
        if not exam or not examinee:
            logger.error(f"Examinee {examinee_id} or exam {exam_id} not found")
            return RegistrationOutcome.NOT_FOUND, None

        if count_active_registrations(db, exam_id) >= exam.max_capacity:
            logger.warning(
                f"Exam {exam.exam_code} is full ({exam.max_capacity} registrations)"
            )
            return RegistrationOutcome.CAPACITY_FULL, None

        registration = ExamRegistration(
            examinee_id=examinee_id,
            exam_id=exam_id,
            hall_ticket_number=hall_ticket_number,
            status="registered",
            remarks=remarks,
        )
        db.add(registration)
        _sync_exam_count(db, exam)
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.warning(
            f"Examinee {examinee_id} is already registered for exam {exam_id} "
            f"or hall ticket {hall_ticket_number} is taken"
        )
        return RegistrationOutcome.DUPLICATE, None
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(
            f"Error registering examinee {examinee_id} for exam {exam_id}: {str(e)}"
        )
        return RegistrationOutcome.FAILED, None

    logger.info(
        f"Examinee {examinee_id} registered for exam {exam_id} with hall ticket: {hall_ticket_number}"
    )
    return RegistrationOutcome.REGISTERED, registration


def _update_status(db: Session, registration_id: int, status: str) -> bool:
    registration = get_registration_by_id(db, registration_id)
    if not registration:
        logger.error(f"Registration {registration_id} not found")
        return False

    if status not in ALLOWED_TRANSITIONS[registration.status]:
        logger.warning(
            f"Registration {registration_id} cannot move from "
            f"{registration.status} to {status}"
        )
        return False

    try:
        registration.status = status
        if status == "cancelled":
            _sync_exam_count(db, registration.exam)
        db.commit()
        logger.info(f"Registration {registration_id} is now {status}")
        return True
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error updating registration {registration_id}: {str(e)}")
        return False


def confirm_registration(db: Session, registration_id: int) -> bool:
    return _update_status(db, registration_id, "confirmed")


def cancel_registration(db: Session, registration_id: int) -> bool:
    return _update_status(db, registration_id, "cancelled")


def get_registration_by_id(
    db: Session, registration_id: int
) -> Optional[ExamRegistration]:
    return (
        db.query(ExamRegistration)
        .filter(ExamRegistration.registration_id == registration_id)
        .first()
    )


def get_registration_by_hall_ticket(
    db: Session, hall_ticket_number: str
) -> Optional[ExamRegistration]:
    return (
        db.query(ExamRegistration)
        .filter(ExamRegistration.hall_ticket_number == hall_ticket_number)
        .first()
    )


def get_registrations_by_exam(db: Session, exam_id: int) -> list[ExamRegistration]:
    return (
        db.query(ExamRegistration)
        .filter(ExamRegistration.exam_id == exam_id)
        .order_by(
            ExamRegistration.registration_date.desc(),
            ExamRegistration.registration_id.desc(),
        )
        .all()
    )


def get_registrations_by_examinee(
    db: Session, examinee_id: int
) -> list[ExamRegistration]:
    return (
        db.query(ExamRegistration)
        .filter(ExamRegistration.examinee_id == examinee_id)
        .order_by(
            ExamRegistration.registration_date.desc(),
            ExamRegistration.registration_id.desc(),
        )
        .all()
    )


def sync_registration_counts(db: Session) -> int:
    """
    Reconcile ``current_registrations`` on every exam with its active count.

    Returns:
        Number of exams whose stored count was corrected
    """
    corrected = 0
    try:
        for exam in db.query(Exam).all():
            actual = count_active_registrations(db, exam.exam_id)
            if exam.current_registrations != actual:
                logger.info(
                    f"Exam {exam.exam_code}: current_registrations {exam.current_registrations} -> {actual}"
                )
                exam.current_registrations = actual
                corrected += 1
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error reconciling registration counts: {str(e)}")
        return 0
    return corrected
