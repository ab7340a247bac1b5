from datetime import date, datetime, time
from decimal import Decimal
from typing import Literal, Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    Time,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    pass


UserRole = Literal["admin", "staff"]
ExamStatus = Literal["scheduled", "ongoing", "completed", "cancelled"]
RegistrationStatus = Literal["registered", "confirmed", "cancelled"]
GradeType = Literal["A+", "A", "B", "C", "D", "E", "Fail"]

EXAM_STATUSES: tuple[str, ...] = ("scheduled", "ongoing", "completed", "cancelled")
REGISTRATION_STATUSES: tuple[str, ...] = ("registered", "confirmed", "cancelled")
USER_ROLES: tuple[str, ...] = ("admin", "staff")


class User(Base):
    __tablename__ = "users"

    user_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    password: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[UserRole] = mapped_column(String(10), default="staff", nullable=False)
    full_name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    phone: Mapped[Optional[str]] = mapped_column(String(20))
    created_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.current_timestamp()
    )
    last_login: Mapped[Optional[datetime]] = mapped_column(DateTime)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    __table_args__ = (
        CheckConstraint("role IN ('admin', 'staff')", name="ck_users_role"),
        Index("idx_role", "role"),
    )

    def __repr__(self) -> str:
        return f"<User user_id={self.user_id!r} username={self.username!r} role={self.role!r}>"


class Examinee(Base):
    __tablename__ = "examinees"

    examinee_id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    registration_number: Mapped[str] = mapped_column(
        String(50), unique=True, nullable=False
    )
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    phone: Mapped[Optional[str]] = mapped_column(String(20))
    date_of_birth: Mapped[Optional[date]] = mapped_column(Date)
    address: Mapped[Optional[str]] = mapped_column(Text)
    city: Mapped[Optional[str]] = mapped_column(String(100))
    state: Mapped[Optional[str]] = mapped_column(String(100))
    pincode: Mapped[Optional[str]] = mapped_column(String(10))
    created_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.current_timestamp()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        server_default=func.current_timestamp(),
        onupdate=func.current_timestamp(),
    )

    registrations: Mapped[list["ExamRegistration"]] = relationship(
        back_populates="examinee", cascade="all, delete-orphan", passive_deletes=True
    )

    __table_args__ = (Index("idx_name", "first_name", "last_name"),)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def __repr__(self) -> str:
        return (
            f"<Examinee examinee_id={self.examinee_id!r} "
            f"registration_number={self.registration_number!r} name={self.full_name!r}>"
        )


class Exam(Base):
    __tablename__ = "exams"

    exam_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    exam_name: Mapped[str] = mapped_column(String(200), nullable=False)
    exam_code: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    exam_date: Mapped[date] = mapped_column(Date, nullable=False)
    start_time: Mapped[time] = mapped_column(Time, nullable=False)
    end_time: Mapped[time] = mapped_column(Time, nullable=False)
    duration_minutes: Mapped[Optional[int]] = mapped_column(Integer)
    venue: Mapped[Optional[str]] = mapped_column(String(200))
    max_capacity: Mapped[int] = mapped_column(Integer, default=100, nullable=False)
    current_registrations: Mapped[int] = mapped_column(
        Integer, default=0, nullable=False
    )
    status: Mapped[ExamStatus] = mapped_column(
        String(20), default="scheduled", nullable=False
    )
    created_by: Mapped[int] = mapped_column(
        ForeignKey("users.user_id", ondelete="RESTRICT"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.current_timestamp()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        server_default=func.current_timestamp(),
        onupdate=func.current_timestamp(),
    )

    creator: Mapped["User"] = relationship()
    registrations: Mapped[list["ExamRegistration"]] = relationship(
        back_populates="exam", cascade="all, delete-orphan", passive_deletes=True
    )

    __table_args__ = (
        CheckConstraint(
            "status IN ('scheduled', 'ongoing', 'completed', 'cancelled')",
            name="ck_exams_status",
        ),
        Index("idx_exam_date", "exam_date"),
        Index("idx_exam_status", "status"),
    )

    def __repr__(self) -> str:
        return f"<Exam exam_id={self.exam_id!r} exam_code={self.exam_code!r} status={self.status!r}>"


class ExamRegistration(Base):
    __tablename__ = "exam_registrations"

    registration_id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    examinee_id: Mapped[int] = mapped_column(
        ForeignKey("examinees.examinee_id", ondelete="CASCADE"), nullable=False
    )
    exam_id: Mapped[int] = mapped_column(
        ForeignKey("exams.exam_id", ondelete="CASCADE"), nullable=False
    )
    registration_date: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.current_timestamp()
    )
    status: Mapped[RegistrationStatus] = mapped_column(
        String(20), default="registered", nullable=False
    )
    hall_ticket_number: Mapped[Optional[str]] = mapped_column(String(50), unique=True)
    remarks: Mapped[Optional[str]] = mapped_column(Text)

    examinee: Mapped["Examinee"] = relationship(back_populates="registrations")
    exam: Mapped["Exam"] = relationship(back_populates="registrations")
    result: Mapped[Optional["Result"]] = relationship(
        back_populates="registration",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        UniqueConstraint("examinee_id", "exam_id", name="unique_examinee_exam"),
        CheckConstraint(
            "status IN ('registered', 'confirmed', 'cancelled')",
            name="ck_exam_registrations_status",
        ),
        Index("idx_examinee_id", "examinee_id"),
        Index("idx_exam_id", "exam_id"),
        Index("idx_registration_status", "status"),
    )

    def __repr__(self) -> str:
        return (
            f"<ExamRegistration registration_id={self.registration_id!r} "
            f"hall_ticket_number={self.hall_ticket_number!r} status={self.status!r}>"
        )


class Result(Base):
    __tablename__ = "results"

    result_id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    registration_id: Mapped[int] = mapped_column(
        ForeignKey("exam_registrations.registration_id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    marks_obtained: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False)
    max_marks: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False)
    percentage: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False)
    grade: Mapped[Optional[GradeType]] = mapped_column(String(10))
    remarks: Mapped[Optional[str]] = mapped_column(Text)
    entered_by: Mapped[int] = mapped_column(
        ForeignKey("users.user_id", ondelete="RESTRICT"), nullable=False
    )
    entered_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.current_timestamp()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        server_default=func.current_timestamp(),
        onupdate=func.current_timestamp(),
    )

    registration: Mapped["ExamRegistration"] = relationship(back_populates="result")
    enterer: Mapped["User"] = relationship()

    __table_args__ = (
        CheckConstraint(
            "marks_obtained >= 0 AND marks_obtained <= max_marks",
            name="ck_results_marks",
        ),
        CheckConstraint(
            "percentage >= 0 AND percentage <= 100", name="ck_results_percentage"
        ),
        Index("idx_grade", "grade"),
    )

    def __repr__(self) -> str:
        return (
            f"<Result result_id={self.result_id!r} registration_id={self.registration_id!r} "
            f"percentage={self.percentage!r} grade={self.grade!r}>"
        )
