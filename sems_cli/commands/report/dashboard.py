from dataclasses import dataclass, field
from decimal import Decimal
from typing import List

import click
from sqlalchemy import func
from sqlalchemy.orm import Session

from sems_cli.grade_definitions import is_passing_grade
from sems_cli.models import Exam, Examinee, ExamRegistration, Result


@dataclass
class TopExaminee:
    registration_number: str
    name: str
    percentage: Decimal


@dataclass
class DashboardStats:
    total_examinees: int
    total_exams: int
    total_registrations: int
    pass_count: int
    fail_count: int
    top_examinees: List[TopExaminee] = field(default_factory=list)

    @property
    def pass_ratio(self) -> float:
        total = self.pass_count + self.fail_count
        return (self.pass_count / total) * 100 if total else 0.0

    @property
    def fail_ratio(self) -> float:
        total = self.pass_count + self.fail_count
        return (self.fail_count / total) * 100 if total else 0.0


def top_examinees(db: Session, limit: int = 5) -> List[TopExaminee]:
    """Examinees ranked by their best percentage across all results."""
    best = func.max(Result.percentage).label("best_percentage")
    rows = (
        db.query(
            Examinee.registration_number,
            Examinee.first_name,
            Examinee.last_name,
            best,
        )
        .join(ExamRegistration, ExamRegistration.examinee_id == Examinee.examinee_id)
        .join(Result, Result.registration_id == ExamRegistration.registration_id)
        .group_by(
            Examinee.examinee_id,
            Examinee.registration_number,
            Examinee.first_name,
            Examinee.last_name,
        )
        .order_by(best.desc(), Examinee.registration_number.asc())
        .limit(limit)
        .all()
    )
    return [
        TopExaminee(
            registration_number=reg_no,
            name=f"{first_name} {last_name}",
            percentage=Decimal(str(percentage)),
        )
        for reg_no, first_name, last_name, percentage in rows
    ]


def collect_dashboard_stats(db: Session, top: int = 5) -> DashboardStats:
    pass_count = 0
    fail_count = 0
    for (grade,) in db.query(Result.grade).all():
        if is_passing_grade(grade):
            pass_count += 1
        else:
            fail_count += 1

    return DashboardStats(
        total_examinees=db.query(func.count(Examinee.examinee_id)).scalar() or 0,
        total_exams=db.query(func.count(Exam.exam_id)).scalar() or 0,
        total_registrations=db.query(
            func.count(ExamRegistration.registration_id)
        ).scalar()
        or 0,
        pass_count=pass_count,
        fail_count=fail_count,
        top_examinees=top_examinees(db, top),
    )


def show_dashboard(db: Session, top: int = 5) -> DashboardStats:
    stats = collect_dashboard_stats(db, top)

    click.echo(f"Total Examinees: {stats.total_examinees}")
    click.echo(f"Total Exams: {stats.total_exams}")
    click.echo(f"Total Registrations: {stats.total_registrations}")
    click.echo(
        f"Pass/Fail Ratio: {stats.pass_ratio:.1f}% Pass / {stats.fail_ratio:.1f}% Fail"
    )

    click.echo(f"\nTop {top} Examinees:")
    if not stats.top_examinees:
        click.secho("No results entered yet.", fg="yellow")
    for i, examinee in enumerate(stats.top_examinees, 1):
        click.echo(
            f"{i}. {examinee.name} ({examinee.registration_number}) - {examinee.percentage}%"
        )
    return stats
