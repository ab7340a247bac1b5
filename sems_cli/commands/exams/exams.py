import logging
from datetime import date, datetime, time
from typing import Any, Optional

from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from sems_cli.models import EXAM_STATUSES, Exam

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = (
    "exam_name",
    "exam_code",
    "description",
    "exam_date",
    "start_time",
    "end_time",
    "duration_minutes",
    "venue",
    "max_capacity",
    "current_registrations",
    "status",
)


def duration_between(start_time: time, end_time: time) -> int:
    """Minutes from start to end on the same day."""
    start = datetime.combine(date.min, start_time)
    end = datetime.combine(date.min, end_time)
    return int((end - start).total_seconds() // 60)


def _validate(exam: Exam) -> Optional[str]:
    if exam.end_time <= exam.start_time:
        return "End time must be after start time"
    if exam.max_capacity is not None and exam.max_capacity <= 0:
        return "Capacity must be a positive number"
    if exam.status not in EXAM_STATUSES:
        return f"Invalid exam status '{exam.status}'"
    return None


def get_all_exams(db: Session) -> list[Exam]:
    return db.query(Exam).order_by(Exam.exam_date.desc()).all()


def get_exam_by_id(db: Session, exam_id: int) -> Optional[Exam]:
    return db.query(Exam).filter(Exam.exam_id == exam_id).first()


def get_exam_by_code(db: Session, exam_code: str) -> Optional[Exam]:
    return db.query(Exam).filter(Exam.exam_code == exam_code).first()


def search_exams(db: Session, keyword: str) -> list[Exam]:
    """Case-insensitive search on exam name, code and venue."""
    pattern = f"%{keyword.strip().lower()}%"
    return (
        db.query(Exam)
        .filter(
            or_(
                func.lower(Exam.exam_name).like(pattern),
                func.lower(Exam.exam_code).like(pattern),
                func.lower(Exam.venue).like(pattern),
            )
        )
        .order_by(Exam.exam_date.desc())
        .all()
    )


def add_exam(
    db: Session,
    exam_name: str,
    exam_code: str,
    exam_date: date,
    start_time: time,
    end_time: time,
    created_by: int,
    description: Optional[str] = None,
    duration_minutes: Optional[int] = None,
    venue: Optional[str] = None,
    max_capacity: int = 100,
    status: str = "scheduled",
) -> Optional[Exam]:
    exam = Exam(
        exam_name=exam_name,
        exam_code=exam_code,
        description=description,
        exam_date=exam_date,
        start_time=start_time,
        end_time=end_time,
        duration_minutes=duration_minutes,
        venue=venue,
        max_capacity=max_capacity,
        current_registrations=0,
        status=status,
        created_by=created_by,
    )
    error = _validate(exam)
    if error:
        logger.error(f"Invalid exam {exam_code}: {error}")
        return None
    if exam.duration_minutes is None:
        exam.duration_minutes = duration_between(start_time, end_time)

    try:
        db.add(exam)
        db.commit()
        logger.info(f"Added exam {exam_code}")
        return exam
    except IntegrityError:
        db.rollback()
        logger.error(f"Exam with code {exam_code} already exists")
        return None
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error adding exam {exam_code}: {str(e)}")
        return None


def update_exam(db: Session, exam_id: int, **fields: Any) -> bool:
    unknown = set(fields) - set(EDITABLE_FIELDS)
    if unknown:
        logger.error(f"Unknown exam fields: {', '.join(sorted(unknown))}")
        return False

    exam = get_exam_by_id(db, exam_id)
    if not exam:
        logger.error(f"Exam {exam_id} not found")
        return False

    try:
        for name, value in fields.items():
            setattr(exam, name, value)
        error = _validate(exam)
        if error:
            db.rollback()
            logger.error(f"Invalid update for exam {exam_id}: {error}")
            return False
        if ("start_time" in fields or "end_time" in fields) and (
            "duration_minutes" not in fields
        ):
            exam.duration_minutes = duration_between(exam.start_time, exam.end_time)
        db.commit()
        logger.info(f"Updated exam {exam_id}")
        return True
    except IntegrityError:
        db.rollback()
        logger.error(f"Update of exam {exam_id} duplicates an existing exam code")
        return False
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error updating exam {exam_id}: {str(e)}")
        return False


def update_exam_status(db: Session, exam_id: int, status: str) -> bool:
    if status not in EXAM_STATUSES:
        logger.error(f"Invalid exam status '{status}'")
        return False
    return update_exam(db, exam_id, status=status)


def delete_exam(db: Session, exam_id: int) -> bool:
    """Delete an exam; its registrations and results go with it."""
    exam = get_exam_by_id(db, exam_id)
    if not exam:
        logger.error(f"Exam {exam_id} not found")
        return False
    try:
        db.delete(exam)
        db.commit()
        logger.info(f"Deleted exam {exam_id}")
        return True
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error deleting exam {exam_id}: {str(e)}")
        return False
