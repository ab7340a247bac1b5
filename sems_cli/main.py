from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import Optional

import click
from sqlalchemy.orm import Session

from sems_cli.commands.auth.users import (
    authenticate,
    change_password,
    create_user,
    get_all_users,
    set_user_active,
)
from sems_cli.commands.create.hall_ticket import create_hall_ticket
from sems_cli.commands.examinees.examinees import (
    add_examinee,
    delete_examinee,
    get_all_examinees,
    get_examinee_by_registration_number,
    search_examinees,
    update_examinee,
)
from sems_cli.commands.exams.exams import (
    add_exam,
    delete_exam,
    get_all_exams,
    get_exam_by_code,
    search_exams,
    update_exam,
    update_exam_status,
)
from sems_cli.commands.export import export_exam_results
from sems_cli.commands.register.registrations import (
    RegistrationOutcome,
    cancel_registration,
    confirm_registration,
    get_registrations_by_exam,
    get_registrations_by_examinee,
    register_examinee,
    sync_registration_counts,
)
from sems_cli.commands.report.dashboard import show_dashboard
from sems_cli.commands.results.results import (
    delete_result,
    get_results_by_exam,
    get_results_by_examinee,
    save_result,
)
from sems_cli.db.config import get_engine, init_db, session_scope
from sems_cli.models import EXAM_STATUSES, USER_ROLES, Exam, Examinee, User
from sems_cli.utils.logging_config import configure_from_env

DATE = click.DateTime(formats=["%Y-%m-%d"])
TIME = click.DateTime(formats=["%H:%M", "%H:%M:%S"])


def _as_date(value: Optional[datetime]):
    return value.date() if value else None


def _as_time(value: Optional[datetime]):
    return value.time() if value else None


def require_user(db: Session, role: Optional[str] = None) -> User:
    """Log in with the credentials given to the command group, prompting for any that are missing."""
    ctx = click.get_current_context()
    opts = ctx.find_root().obj or {}
    username = opts.get("username") or click.prompt("Username")
    password = opts.get("password") or click.prompt("Password", hide_input=True)

    user = authenticate(db, username, password)
    if not user:
        click.secho("Invalid username or password", fg="red")
        ctx.exit(1)
    if role and user.role != role:
        click.secho(f"This command requires the {role} role", fg="red")
        ctx.exit(1)
    return user


def print_examinee(examinee: Examinee) -> None:
    click.echo(
        f"[{examinee.examinee_id}] {examinee.registration_number} - "
        f"{examinee.full_name} <{examinee.email}>"
    )


def print_exam(exam: Exam) -> None:
    click.echo(
        f"[{exam.exam_id}] {exam.exam_code} - {exam.exam_name} on {exam.exam_date} "
        f"{exam.start_time.strftime('%H:%M')}-{exam.end_time.strftime('%H:%M')} "
        f"({exam.status}, {exam.current_registrations}/{exam.max_capacity})"
    )


@click.group()
@click.option("--username", envvar="SEMS_USERNAME", help="Login username")
@click.option("--password", envvar="SEMS_PASSWORD", help="Login password")
@click.pass_context
def cli(ctx: click.Context, username: Optional[str], password: Optional[str]) -> None:
    configure_from_env()
    ctx.obj = {"username": username, "password": password}


@cli.group()
def db() -> None:
    pass


@db.command(name="init")
@click.option("--with-admin", is_flag=True, help="Seed a default 'admin' account")
def db_init(with_admin: bool) -> None:
    """Create the database schema."""
    engine = get_engine()
    init_db(engine)
    click.secho("Database schema created", fg="green")

    if with_admin:
        password = click.prompt(
            "Password for 'admin'", hide_input=True, confirmation_prompt=True
        )
        with session_scope(engine) as session:
            user = create_user(
                session,
                username="admin",
                password=password,
                full_name="System Administrator",
                email="admin@sems.local",
                role="admin",
            )
        if user:
            click.secho("Admin account created", fg="green")
        else:
            click.secho("Admin account already exists", fg="yellow")


@cli.command()
def login() -> None:
    """Check credentials and record the login."""
    with session_scope() as session:
        user = require_user(session)
        click.secho(f"Welcome, {user.full_name} ({user.role})", fg="green")


@cli.group()
def users() -> None:
    pass


@users.command(name="add")
@click.argument("new_username")
@click.option("--full-name", required=True)
@click.option("--email", required=True)
@click.option("--role", type=click.Choice(USER_ROLES), default="staff")
@click.option("--phone")
@click.option(
    "--new-password", prompt=True, hide_input=True, confirmation_prompt=True
)
def users_add(
    new_username: str,
    full_name: str,
    email: str,
    role: str,
    phone: Optional[str],
    new_password: str,
) -> None:
    with session_scope() as session:
        require_user(session, role="admin")
        user = create_user(
            session, new_username, new_password, full_name, email, role, phone
        )
        if user:
            click.secho(f"Created {role} user {new_username}", fg="green")
        else:
            click.secho(f"Could not create user {new_username} (duplicate?)", fg="red")


@users.command(name="list")
def users_list() -> None:
    with session_scope() as session:
        require_user(session, role="admin")
        for user in get_all_users(session):
            state = "active" if user.is_active else "inactive"
            last_login = user.last_login.strftime("%Y-%m-%d %H:%M") if user.last_login else "never"
            click.echo(
                f"[{user.user_id}] {user.username} ({user.role}, {state}) last login: {last_login}"
            )


@users.command(name="deactivate")
@click.argument("target")
def users_deactivate(target: str) -> None:
    with session_scope() as session:
        require_user(session, role="admin")
        if set_user_active(session, target, False):
            click.secho(f"Deactivated {target}", fg="green")
        else:
            click.secho(f"Could not deactivate {target}", fg="red")


@users.command(name="activate")
@click.argument("target")
def users_activate(target: str) -> None:
    with session_scope() as session:
        require_user(session, role="admin")
        if set_user_active(session, target, True):
            click.secho(f"Activated {target}", fg="green")
        else:
            click.secho(f"Could not activate {target}", fg="red")


@users.command(name="passwd")
@click.argument("target")
@click.option(
    "--new-password", prompt=True, hide_input=True, confirmation_prompt=True
)
def users_passwd(target: str, new_password: str) -> None:
    with session_scope() as session:
        user = require_user(session)
        if user.username != target and user.role != "admin":
            click.secho("Only admins can change other users' passwords", fg="red")
            return
        if change_password(session, target, new_password):
            click.secho(f"Password changed for {target}", fg="green")
        else:
            click.secho(f"Could not change password for {target}", fg="red")


@cli.group()
def examinees() -> None:
    pass


@examinees.command(name="list")
def examinees_list() -> None:
    with session_scope() as session:
        require_user(session)
        data = get_all_examinees(session)
        if not data:
            click.secho("No examinees found.", fg="yellow")
        for examinee in data:
            print_examinee(examinee)


@examinees.command(name="search")
@click.argument("keyword")
def examinees_search(keyword: str) -> None:
    if not keyword.strip():
        click.secho("Please enter a search keyword", fg="red")
        return
    with session_scope() as session:
        require_user(session)
        data = search_examinees(session, keyword)
        if not data:
            click.secho(f"No examinees match '{keyword}'.", fg="yellow")
        for examinee in data:
            print_examinee(examinee)


@examinees.command(name="show")
@click.argument("registration_number")
def examinees_show(registration_number: str) -> None:
    with session_scope() as session:
        require_user(session)
        examinee = get_examinee_by_registration_number(session, registration_number)
        if not examinee:
            click.secho(f"Examinee {registration_number} not found", fg="red")
            return
        print_examinee(examinee)
        click.echo(f"  Phone: {examinee.phone or 'N/A'}")
        click.echo(f"  Date of birth: {examinee.date_of_birth or 'N/A'}")
        address = ", ".join(
            part
            for part in (examinee.address, examinee.city, examinee.state, examinee.pincode)
            if part
        )
        click.echo(f"  Address: {address or 'N/A'}")
        for registration in get_registrations_by_examinee(
            session, examinee.examinee_id
        ):
            click.echo(
                f"  - {registration.hall_ticket_number} {registration.exam.exam_code} ({registration.status})"
            )


@examinees.command(name="add")
@click.argument("registration_number")
@click.option("--first-name", required=True)
@click.option("--last-name", required=True)
@click.option("--email", required=True)
@click.option("--phone")
@click.option("--dob", type=DATE, help="Date of birth (YYYY-MM-DD)")
@click.option("--address")
@click.option("--city")
@click.option("--state")
@click.option("--pincode")
def examinees_add(
    registration_number: str,
    first_name: str,
    last_name: str,
    email: str,
    phone: Optional[str],
    dob: Optional[datetime],
    address: Optional[str],
    city: Optional[str],
    state: Optional[str],
    pincode: Optional[str],
) -> None:
    with session_scope() as session:
        require_user(session)
        examinee = add_examinee(
            session,
            registration_number=registration_number.strip(),
            first_name=first_name.strip(),
            last_name=last_name.strip(),
            email=email.strip(),
            phone=phone,
            date_of_birth=_as_date(dob),
            address=address,
            city=city,
            state=state,
            pincode=pincode,
        )
        if examinee:
            click.secho(
                f"Added examinee {examinee.registration_number} (id {examinee.examinee_id})",
                fg="green",
            )
        else:
            click.secho(
                "Could not add examinee, registration number or email may already exist",
                fg="red",
            )


@examinees.command(name="update")
@click.argument("examinee_id", type=int)
@click.option("--registration-number")
@click.option("--first-name")
@click.option("--last-name")
@click.option("--email")
@click.option("--phone")
@click.option("--dob", type=DATE, help="Date of birth (YYYY-MM-DD)")
@click.option("--address")
@click.option("--city")
@click.option("--state")
@click.option("--pincode")
def examinees_update(examinee_id: int, dob: Optional[datetime], **options) -> None:
    fields = {name: value for name, value in options.items() if value is not None}
    if dob:
        fields["date_of_birth"] = dob.date()
    if not fields:
        click.secho("Nothing to update", fg="yellow")
        return
    with session_scope() as session:
        require_user(session)
        if update_examinee(session, examinee_id, **fields):
            click.secho(f"Updated examinee {examinee_id}", fg="green")
        else:
            click.secho(f"Could not update examinee {examinee_id}", fg="red")


@examinees.command(name="delete")
@click.argument("examinee_id", type=int)
@click.confirmation_option(
    prompt="Delete this examinee with all registrations and results?"
)
def examinees_delete(examinee_id: int) -> None:
    with session_scope() as session:
        require_user(session)
        if delete_examinee(session, examinee_id):
            click.secho(f"Deleted examinee {examinee_id}", fg="green")
        else:
            click.secho(f"Could not delete examinee {examinee_id}", fg="red")


@cli.group()
def exams() -> None:
    pass


@exams.command(name="list")
def exams_list() -> None:
    with session_scope() as session:
        require_user(session)
        data = get_all_exams(session)
        if not data:
            click.secho("No exams found.", fg="yellow")
        for exam in data:
            print_exam(exam)


@exams.command(name="search")
@click.argument("keyword")
def exams_search(keyword: str) -> None:
    if not keyword.strip():
        click.secho("Please enter a search keyword", fg="red")
        return
    with session_scope() as session:
        require_user(session)
        data = search_exams(session, keyword)
        if not data:
            click.secho(f"No exams match '{keyword}'.", fg="yellow")
        for exam in data:
            print_exam(exam)


@exams.command(name="show")
@click.argument("exam_code")
def exams_show(exam_code: str) -> None:
    with session_scope() as session:
        require_user(session)
        exam = get_exam_by_code(session, exam_code)
        if not exam:
            click.secho(f"Exam {exam_code} not found", fg="red")
            return
        print_exam(exam)
        click.echo(f"  Venue: {exam.venue or 'N/A'}")
        click.echo(f"  Duration: {exam.duration_minutes} minutes")
        if exam.description:
            click.echo(f"  {exam.description}")


@exams.command(name="add")
@click.argument("exam_code")
@click.option("--name", "exam_name", required=True)
@click.option("--date", "exam_date", type=DATE, required=True, help="YYYY-MM-DD")
@click.option("--start", "start_time", type=TIME, required=True, help="HH:MM")
@click.option("--end", "end_time", type=TIME, required=True, help="HH:MM")
@click.option("--venue")
@click.option("--capacity", type=click.IntRange(min=1), default=100)
@click.option("--duration", type=click.IntRange(min=1), help="Minutes")
@click.option("--description")
def exams_add(
    exam_code: str,
    exam_name: str,
    exam_date: datetime,
    start_time: datetime,
    end_time: datetime,
    venue: Optional[str],
    capacity: int,
    duration: Optional[int],
    description: Optional[str],
) -> None:
    with session_scope() as session:
        user = require_user(session)
        exam = add_exam(
            session,
            exam_name=exam_name.strip(),
            exam_code=exam_code.strip(),
            exam_date=exam_date.date(),
            start_time=start_time.time(),
            end_time=end_time.time(),
            created_by=user.user_id,
            description=description,
            duration_minutes=duration,
            venue=venue,
            max_capacity=capacity,
        )
        if exam:
            click.secho(f"Added exam {exam.exam_code} (id {exam.exam_id})", fg="green")
        else:
            click.secho(
                "Could not add exam, check the times or whether the code already exists",
                fg="red",
            )


@exams.command(name="update")
@click.argument("exam_id", type=int)
@click.option("--code", "exam_code")
@click.option("--name", "exam_name")
@click.option("--date", "exam_date", type=DATE, help="YYYY-MM-DD")
@click.option("--start", "start_time", type=TIME, help="HH:MM")
@click.option("--end", "end_time", type=TIME, help="HH:MM")
@click.option("--venue")
@click.option("--capacity", "max_capacity", type=click.IntRange(min=1))
@click.option("--duration", "duration_minutes", type=click.IntRange(min=1))
@click.option("--description")
def exams_update(
    exam_id: int,
    exam_date: Optional[datetime],
    start_time: Optional[datetime],
    end_time: Optional[datetime],
    **options,
) -> None:
    fields = {name: value for name, value in options.items() if value is not None}
    if exam_date:
        fields["exam_date"] = _as_date(exam_date)
    if start_time:
        fields["start_time"] = _as_time(start_time)
    if end_time:
        fields["end_time"] = _as_time(end_time)
    if not fields:
        click.secho("Nothing to update", fg="yellow")
        return
    with session_scope() as session:
        require_user(session)
        if update_exam(session, exam_id, **fields):
            click.secho(f"Updated exam {exam_id}", fg="green")
        else:
            click.secho(f"Could not update exam {exam_id}", fg="red")


@exams.command(name="status")
@click.argument("exam_id", type=int)
@click.argument("status", type=click.Choice(EXAM_STATUSES))
def exams_status(exam_id: int, status: str) -> None:
    with session_scope() as session:
        require_user(session)
        if update_exam_status(session, exam_id, status):
            click.secho(f"Exam {exam_id} is now {status}", fg="green")
        else:
            click.secho(f"Could not update exam {exam_id}", fg="red")


@exams.command(name="delete")
@click.argument("exam_id", type=int)
@click.confirmation_option(
    prompt="Delete this exam with all registrations and results?"
)
def exams_delete(exam_id: int) -> None:
    with session_scope() as session:
        require_user(session)
        if delete_exam(session, exam_id):
            click.secho(f"Deleted exam {exam_id}", fg="green")
        else:
            click.secho(f"Could not delete exam {exam_id}", fg="red")


@exams.command(name="sync-counts")
def exams_sync_counts() -> None:
    """Reconcile current_registrations with the active registrations."""
    with session_scope() as session:
        require_user(session)
        corrected = sync_registration_counts(session)
        click.secho(f"Corrected registration counts on {corrected} exams", fg="green")


@cli.group()
def register() -> None:
    pass


@register.command(name="add")
@click.argument("examinee_id", type=int)
@click.argument("exam_id", type=int)
@click.option("--hall-ticket", help="Custom hall ticket number")
@click.option("--remarks")
def register_add(
    examinee_id: int,
    exam_id: int,
    hall_ticket: Optional[str],
    remarks: Optional[str],
) -> None:
    with session_scope() as session:
        require_user(session)
        outcome, registration = register_examinee(
            session, examinee_id, exam_id, hall_ticket, remarks
        )
        if outcome == RegistrationOutcome.REGISTERED and registration:
            click.secho(
                f"Registered with hall ticket {registration.hall_ticket_number}",
                fg="green",
            )
        elif outcome == RegistrationOutcome.DUPLICATE:
            click.secho("Examinee is already registered for this exam", fg="yellow")
        elif outcome == RegistrationOutcome.CAPACITY_FULL:
            click.secho("Exam has reached its capacity", fg="yellow")
        elif outcome == RegistrationOutcome.NOT_FOUND:
            click.secho("Examinee or exam not found", fg="red")
        else:
            click.secho("Registration failed", fg="red")


@register.command(name="confirm")
@click.argument("registration_id", type=int)
def register_confirm(registration_id: int) -> None:
    with session_scope() as session:
        require_user(session)
        if confirm_registration(session, registration_id):
            click.secho(f"Registration {registration_id} confirmed", fg="green")
        else:
            click.secho(f"Could not confirm registration {registration_id}", fg="red")


@register.command(name="cancel")
@click.argument("registration_id", type=int)
def register_cancel(registration_id: int) -> None:
    with session_scope() as session:
        require_user(session)
        if cancel_registration(session, registration_id):
            click.secho(f"Registration {registration_id} cancelled", fg="green")
        else:
            click.secho(f"Could not cancel registration {registration_id}", fg="red")


@register.command(name="list")
@click.option("--exam", "exam_id", type=int, help="Registrations for an exam")
@click.option(
    "--examinee", "examinee_id", type=int, help="Registrations for an examinee"
)
def register_list(exam_id: Optional[int], examinee_id: Optional[int]) -> None:
    if (exam_id is None) == (examinee_id is None):
        click.secho("Pass exactly one of --exam or --examinee", fg="red")
        return
    with session_scope() as session:
        require_user(session)
        if exam_id is not None:
            data = get_registrations_by_exam(session, exam_id)
        else:
            data = get_registrations_by_examinee(session, examinee_id)
        if not data:
            click.secho("No registrations found.", fg="yellow")
        for registration in data:
            click.echo(
                f"[{registration.registration_id}] {registration.hall_ticket_number} "
                f"{registration.examinee.full_name} - {registration.exam.exam_code} "
                f"({registration.status})"
            )


@cli.group()
def results() -> None:
    pass


@results.command(name="enter")
@click.argument("registration_id", type=int)
@click.argument("marks_obtained", type=click.FloatRange(min=0))
@click.argument("max_marks", type=click.FloatRange(min=0, min_open=True))
@click.option("--remarks")
def results_enter(
    registration_id: int,
    marks_obtained: float,
    max_marks: float,
    remarks: Optional[str],
) -> None:
    with session_scope() as session:
        user = require_user(session)
        result = save_result(
            session,
            registration_id,
            Decimal(str(marks_obtained)),
            Decimal(str(max_marks)),
            entered_by=user.user_id,
            remarks=remarks,
        )
        if result:
            click.secho(
                f"Saved: {result.marks_obtained}/{result.max_marks} = "
                f"{result.percentage}% ({result.grade})",
                fg="green",
            )
        else:
            click.secho(f"Could not save result for registration {registration_id}", fg="red")


@results.command(name="list")
@click.option("--exam", "exam_id", type=int, help="Results for an exam")
@click.option("--examinee", "examinee_id", type=int, help="Results for an examinee")
def results_list(exam_id: Optional[int], examinee_id: Optional[int]) -> None:
    if (exam_id is None) == (examinee_id is None):
        click.secho("Pass exactly one of --exam or --examinee", fg="red")
        return
    with session_scope() as session:
        require_user(session)
        if exam_id is not None:
            data = get_results_by_exam(session, exam_id)
        else:
            data = get_results_by_examinee(session, examinee_id)
        if not data:
            click.secho("No results found.", fg="yellow")
        for result in data:
            registration = result.registration
            click.echo(
                f"[{result.result_id}] {registration.hall_ticket_number} "
                f"{registration.examinee.full_name}: {result.marks_obtained}/{result.max_marks} "
                f"{result.percentage}% {result.grade}"
            )


@results.command(name="delete")
@click.argument("result_id", type=int)
def results_delete(result_id: int) -> None:
    with session_scope() as session:
        require_user(session)
        if delete_result(session, result_id):
            click.secho(f"Deleted result {result_id}", fg="green")
        else:
            click.secho(f"Could not delete result {result_id}", fg="red")


@cli.command(name="hall-ticket")
@click.argument("registration_id", type=int)
@click.option(
    "--output-dir",
    type=click.Path(file_okay=False, path_type=Path),
    help="Directory for the PDF (default: hall_tickets)",
)
def hall_ticket(registration_id: int, output_dir: Optional[Path]) -> None:
    """Generate a printable hall ticket for a registration."""
    with session_scope() as session:
        require_user(session)
        create_hall_ticket(session, registration_id, output_dir)


@cli.group()
def report() -> None:
    pass


@report.command(name="dashboard")
@click.option("--top", type=click.IntRange(min=1), default=5, help="Examinees to rank")
def report_dashboard(top: int) -> None:
    with session_scope() as session:
        require_user(session, role="admin")
        show_dashboard(session, top)


@cli.group()
def export() -> None:
    pass


@export.command(name="results")
@click.argument("exam_id", type=int)
@click.option("--output-dir", default="exports", help="Directory for the workbook")
def export_results(exam_id: int, output_dir: str) -> None:
    with session_scope() as session:
        require_user(session)
        export_exam_results(session, exam_id, output_dir)


if __name__ == "__main__":
    cli()
