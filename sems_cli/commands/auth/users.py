import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from sems_cli.models import USER_ROLES, User
from sems_cli.utils.security import hash_password, verify_password

logger = logging.getLogger(__name__)


def authenticate(db: Session, username: str, password: str) -> Optional[User]:
    """
    Authenticate an active user and stamp the last login time.

    Args:
        db: Database session
        username: Exact username to look up
        password: Plain password to check against the stored hash

    Returns:
        The User on success, None for unknown, inactive or wrong credentials
    """
    try:
        user = (
            db.query(User)
            .filter(User.username == username, User.is_active.is_(True))
            .first()
        )
        if not user or not verify_password(password, user.password):
            logger.warning(f"Failed login attempt for username '{username}'")
            return None

        user.last_login = datetime.now()
        db.commit()
        logger.info(f"User '{username}' logged in")
        return user
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error authenticating user '{username}': {str(e)}")
        return None


def create_user(
    db: Session,
    username: str,
    password: str,
    full_name: str,
    email: str,
    role: str = "staff",
    phone: Optional[str] = None,
) -> Optional[User]:
    if role not in USER_ROLES:
        logger.error(f"Invalid role '{role}' for user '{username}'")
        return None

    user = User(
        username=username,
        password=hash_password(password),
        role=role,
        full_name=full_name,
        email=email,
        phone=phone,
        is_active=True,
    )
    try:
        db.add(user)
        db.commit()
        logger.info(f"Created {role} user '{username}'")
        return user
    except IntegrityError:
        db.rollback()
        logger.error(f"User '{username}' or email '{email}' already exists")
        return None
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error creating user '{username}': {str(e)}")
        return None


def get_user_by_id(db: Session, user_id: int) -> Optional[User]:
    return db.query(User).filter(User.user_id == user_id).first()


def get_user_by_username(db: Session, username: str) -> Optional[User]:
    return db.query(User).filter(User.username == username).first()


def get_all_users(db: Session) -> list[User]:
    return db.query(User).order_by(User.username).all()


def set_user_active(db: Session, username: str, active: bool) -> bool:
    user = get_user_by_username(db, username)
    if not user:
        logger.error(f"User '{username}' not found")
        return False
    try:
        user.is_active = active
        db.commit()
        logger.info(f"User '{username}' {'activated' if active else 'deactivated'}")
        return True
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error updating user '{username}': {str(e)}")
        return False


def change_password(db: Session, username: str, new_password: str) -> bool:
    user = get_user_by_username(db, username)
    if not user:
        logger.error(f"User '{username}' not found")
        return False
    try:
        user.password = hash_password(new_password)
        db.commit()
        logger.info(f"Password changed for user '{username}'")
        return True
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error changing password for '{username}': {str(e)}")
        return False
