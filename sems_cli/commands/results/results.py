import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from sems_cli.grade_definitions import (
    Number,
    calculate_percentage,
    get_grade_by_percentage,
    to_decimal,
)
from sems_cli.models import ExamRegistration, Result

logger = logging.getLogger(__name__)


def get_result_by_registration(db: Session, registration_id: int) -> Optional[Result]:
    return db.query(Result).filter(Result.registration_id == registration_id).first()


def get_results_by_exam(db: Session, exam_id: int) -> list[Result]:
    return (
        db.query(Result)
        .join(
            ExamRegistration,
            Result.registration_id == ExamRegistration.registration_id,
        )
        .filter(ExamRegistration.exam_id == exam_id)
        .order_by(Result.percentage.desc())
        .all()
    )


def get_results_by_examinee(db: Session, examinee_id: int) -> list[Result]:
    return (
        db.query(Result)
        .join(
            ExamRegistration,
            Result.registration_id == ExamRegistration.registration_id,
        )
        .filter(ExamRegistration.examinee_id == examinee_id)
        .order_by(Result.entered_at.desc(), Result.result_id.desc())
        .all()
    )


def save_result(
    db: Session,
    registration_id: int,
    marks_obtained: Number,
    max_marks: Number,
    entered_by: int,
    remarks: Optional[str] = None,
) -> Optional[Result]:
    """
    Insert or update the result for a registration.

    Percentage and grade are always derived from the marks. An existing result
    is updated in place and keeps the user who first entered it.

    Args:
        db: Database session
        registration_id: Registration the result belongs to
        marks_obtained: Marks scored, a finite number between 0 and max_marks
        max_marks: Maximum marks, a finite positive number
        entered_by: User id recorded on a newly inserted result
        remarks: Optional free text

    Returns:
        The saved Result, or None if the marks are invalid or the store fails
    """
    try:
        marks = to_decimal(marks_obtained)
        maximum = to_decimal(max_marks)
    except ValueError as e:
        logger.error(f"Invalid marks for registration {registration_id}: {str(e)}")
        return None
    if maximum <= 0:
        logger.error(f"Max marks must be positive for registration {registration_id}")
        return None
    if marks < 0 or marks > maximum:
        logger.error(
            f"Marks {marks} out of range 0-{maximum} for registration {registration_id}"
        )
        return None

    percentage = calculate_percentage(marks, maximum)
    grade = get_grade_by_percentage(percentage)

    try:
        registration = (
            db.query(ExamRegistration)
            .filter(ExamRegistration.registration_id == registration_id)
            .first()
        )
        if not registration:
            logger.error(f"Registration {registration_id} not found")
            return None

        result = get_result_by_registration(db, registration_id)
        if result:
            result.marks_obtained = marks
            result.max_marks = maximum
            result.percentage = percentage
            result.grade = grade
            result.remarks = remarks
            action = "Updated"
        else:
            result = Result(
                registration_id=registration_id,
                marks_obtained=marks,
                max_marks=maximum,
                percentage=percentage,
                grade=grade,
                remarks=remarks,
                entered_by=entered_by,
            )
            db.add(result)
            action = "Saved"
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error saving result for registration {registration_id}: {str(e)}")
        return None

    logger.info(
        f"{action} result for registration {registration_id}: {percentage}% ({grade})"
    )
    return result


def delete_result(db: Session, result_id: int) -> bool:
    result = db.query(Result).filter(Result.result_id == result_id).first()
    if not result:
        logger.error(f"Result {result_id} not found")
        return False
    try:
        db.delete(result)
        db.commit()
        logger.info(f"Deleted result {result_id}")
        return True
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error deleting result {result_id}: {str(e)}")
        return False
