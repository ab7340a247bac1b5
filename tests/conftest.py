"""
SEMS - Test Configuration and Fixtures
"""
from datetime import date, time
from typing import Generator

import pytest
from click.testing import CliRunner
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session

from sems_cli.commands.auth.users import create_user
from sems_cli.commands.examinees.examinees import add_examinee
from sems_cli.commands.exams.exams import add_exam
from sems_cli.db.config import DatabaseConfig, get_engine, get_session_factory, init_db
from sems_cli.models import Exam, Examinee, User
from sems_cli.utils import logging_config, security

ADMIN_PASSWORD = "admin123"
STAFF_PASSWORD = "staff123"


@pytest.fixture(autouse=True)
def fast_hashing(monkeypatch):
    """Cheap bcrypt work factor so tests stay quick."""
    monkeypatch.setattr(security, "BCRYPT_ROUNDS", 4)


@pytest.fixture
def database_url(tmp_path) -> str:
    return f"sqlite:///{tmp_path / 'test.db'}"


@pytest.fixture
def engine(database_url: str) -> Generator[Engine, None, None]:
    engine = get_engine(DatabaseConfig(url=database_url))
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine: Engine) -> Generator[Session, None, None]:
    """Create a fresh database session for each test"""
    session = get_session_factory(engine)()
    yield session
    session.close()


@pytest.fixture
def admin(db: Session) -> User:
    user = create_user(
        db,
        username="admin",
        password=ADMIN_PASSWORD,
        full_name="System Administrator",
        email="admin@sems.local",
        role="admin",
    )
    assert user is not None
    return user


@pytest.fixture
def staff(db: Session) -> User:
    user = create_user(
        db,
        username="staff1",
        password=STAFF_PASSWORD,
        full_name="John Doe",
        email="staff1@sems.local",
        role="staff",
    )
    assert user is not None
    return user


@pytest.fixture
def examinee(db: Session) -> Examinee:
    created = add_examinee(
        db,
        registration_number="REG001",
        first_name="Alice",
        last_name="Smith",
        email="alice.smith@example.com",
        phone="5551234567",
        date_of_birth=date(2000, 5, 15),
        city="Mumbai",
    )
    assert created is not None
    return created


@pytest.fixture
def other_examinee(db: Session) -> Examinee:
    created = add_examinee(
        db,
        registration_number="REG002",
        first_name="Bob",
        last_name="Jones",
        email="bob.jones@example.com",
    )
    assert created is not None
    return created


@pytest.fixture
def exam(db: Session, admin: User) -> Exam:
    created = add_exam(
        db,
        exam_name="Final Examination 2024",
        exam_code="FINAL2024",
        exam_date=date(2024, 12, 20),
        start_time=time(10, 0),
        end_time=time(13, 0),
        created_by=admin.user_id,
        venue="Main Hall",
        max_capacity=200,
    )
    assert created is not None
    return created


@pytest.fixture
def cli_env(tmp_path, monkeypatch, database_url: str, engine: Engine):
    """Point the CLI at the test database and keep its files in tmp_path."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("SEMS_DATABASE_URL", database_url)
    monkeypatch.delenv("SEMS_USERNAME", raising=False)
    monkeypatch.delenv("SEMS_PASSWORD", raising=False)
    monkeypatch.setenv("CONSOLE_LOG_LEVEL", "CRITICAL")
    yield
    logging_config.reset_logging()


@pytest.fixture
def runner(cli_env) -> CliRunner:
    return CliRunner()
