import logging
from datetime import date
from typing import Any, Optional

from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from sems_cli.models import Examinee

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = (
    "registration_number",
    "first_name",
    "last_name",
    "email",
    "phone",
    "date_of_birth",
    "address",
    "city",
    "state",
    "pincode",
)


def get_all_examinees(db: Session) -> list[Examinee]:
    return db.query(Examinee).order_by(Examinee.registration_number.asc()).all()


def get_examinee_by_id(db: Session, examinee_id: int) -> Optional[Examinee]:
    return db.query(Examinee).filter(Examinee.examinee_id == examinee_id).first()


def get_examinee_by_registration_number(
    db: Session, registration_number: str
) -> Optional[Examinee]:
    return (
        db.query(Examinee)
        .filter(Examinee.registration_number == registration_number)
        .first()
    )


def search_examinees(db: Session, keyword: str) -> list[Examinee]:
    """Case-insensitive search on names, email and registration number."""
    pattern = f"%{keyword.strip().lower()}%"
    return (
        db.query(Examinee)
        .filter(
            or_(
                func.lower(Examinee.first_name).like(pattern),
                func.lower(Examinee.last_name).like(pattern),
                func.lower(Examinee.email).like(pattern),
                func.lower(Examinee.registration_number).like(pattern),
            )
        )
        .order_by(Examinee.registration_number.asc())
        .all()
    )


def add_examinee(
    db: Session,
    registration_number: str,
    first_name: str,
    last_name: str,
    email: str,
    phone: Optional[str] = None,
    date_of_birth: Optional[date] = None,
    address: Optional[str] = None,
    city: Optional[str] = None,
    state: Optional[str] = None,
    pincode: Optional[str] = None,
) -> Optional[Examinee]:
    examinee = Examinee(
        registration_number=registration_number,
        first_name=first_name,
        last_name=last_name,
        email=email,
        phone=phone,
        date_of_birth=date_of_birth,
        address=address,
        city=city,
        state=state,
        pincode=pincode,
    )
    try:
        db.add(examinee)
        db.commit()
        logger.info(f"Added examinee {registration_number}")
        return examinee
    except IntegrityError:
        db.rollback()
        logger.error(
            f"Examinee with registration number {registration_number} or email {email} already exists"
        )
        return None
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error adding examinee {registration_number}: {str(e)}")
        return None


def update_examinee(db: Session, examinee_id: int, **fields: Any) -> bool:
    """
    Update an examinee row with the given field values.

    Unknown field names are rejected. Returns False when the examinee does not
    exist or the update breaks a uniqueness constraint.
    """
    unknown = set(fields) - set(EDITABLE_FIELDS)
    if unknown:
        logger.error(f"Unknown examinee fields: {', '.join(sorted(unknown))}")
        return False

    examinee = get_examinee_by_id(db, examinee_id)
    if not examinee:
        logger.error(f"Examinee {examinee_id} not found")
        return False

    try:
        for name, value in fields.items():
            setattr(examinee, name, value)
        db.commit()
        logger.info(f"Updated examinee {examinee_id}")
        return True
    except IntegrityError:
        db.rollback()
        logger.error(f"Update of examinee {examinee_id} duplicates an existing examinee")
        return False
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error updating examinee {examinee_id}: {str(e)}")
        return False


def delete_examinee(db: Session, examinee_id: int) -> bool:
    """Delete an examinee together with their registrations and results."""
    examinee = get_examinee_by_id(db, examinee_id)
    if not examinee:
        logger.error(f"Examinee {examinee_id} not found")
        return False
    try:
        db.delete(examinee)
        db.commit()
        logger.info(f"Deleted examinee {examinee_id}")
        return True
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error deleting examinee {examinee_id}: {str(e)}")
        return False
