from sems_cli.main import cli
from sems_cli.models import Exam, ExamRegistration, Result, User
from tests.conftest import ADMIN_PASSWORD, STAFF_PASSWORD

ADMIN = ["--username", "admin", "--password", ADMIN_PASSWORD]
STAFF = ["--username", "staff1", "--password", STAFF_PASSWORD]


def test_help_lists_command_groups(runner):
    result = runner.invoke(cli, ["--help"])

    assert result.exit_code == 0
    for group in ("db", "login", "users", "examinees", "exams", "register", "results"):
        assert group in result.output


def test_db_init_with_admin(runner, db):
    result = runner.invoke(
        cli, ["db", "init", "--with-admin"], input="s3cret\ns3cret\n"
    )

    assert result.exit_code == 0, result.output
    assert "Admin account created" in result.output
    admin = db.query(User).filter_by(username="admin").one()
    assert admin.role == "admin"
    assert admin.password != "s3cret"


def test_login(runner, admin):
    result = runner.invoke(cli, ADMIN + ["login"])

    assert result.exit_code == 0
    assert "Welcome, System Administrator (admin)" in result.output


def test_login_prompts_for_missing_credentials(runner, admin):
    result = runner.invoke(cli, ["login"], input=f"admin\n{ADMIN_PASSWORD}\n")

    assert result.exit_code == 0
    assert "Welcome" in result.output


def test_wrong_password_exits_with_error(runner, admin):
    result = runner.invoke(cli, ["--username", "admin", "--password", "nope", "login"])

    assert result.exit_code == 1
    assert "Invalid username or password" in result.output


def test_staff_cannot_manage_users(runner, admin, staff):
    result = runner.invoke(
        cli,
        STAFF
        + [
            "users",
            "add",
            "intruder",
            "--full-name",
            "Intruder",
            "--email",
            "i@sems.local",
            "--new-password",
            "x",
        ],
    )

    assert result.exit_code == 1
    assert "requires the admin role" in result.output


def test_admin_adds_staff_user(runner, admin, db):
    result = runner.invoke(
        cli,
        ADMIN
        + [
            "users",
            "add",
            "staff2",
            "--full-name",
            "Jane Roe",
            "--email",
            "staff2@sems.local",
            "--new-password",
            "pw12345",
        ],
    )

    assert result.exit_code == 0, result.output
    assert "Created staff user staff2" in result.output
    assert db.query(User).filter_by(username="staff2").count() == 1


def test_examinee_add_and_search(runner, staff):
    added = runner.invoke(
        cli,
        STAFF
        + [
            "examinees",
            "add",
            "REG010",
            "--first-name",
            "Ravi",
            "--last-name",
            "Kumar",
            "--email",
            "ravi@example.com",
            "--dob",
            "2001-02-03",
        ],
    )
    searched = runner.invoke(cli, STAFF + ["examinees", "search", "ravi"])

    assert added.exit_code == 0, added.output
    assert "Added examinee REG010" in added.output
    assert "REG010 - Ravi Kumar <ravi@example.com>" in searched.output


def test_examinee_add_rejects_bad_date(runner, staff):
    result = runner.invoke(
        cli,
        STAFF
        + [
            "examinees",
            "add",
            "REG011",
            "--first-name",
            "A",
            "--last-name",
            "B",
            "--email",
            "ab@example.com",
            "--dob",
            "03/02/2001",
        ],
    )

    assert result.exit_code == 2
    assert "Invalid value for '--dob'" in result.output


def test_exam_add_records_creator(runner, staff, db):
    result = runner.invoke(
        cli,
        STAFF
        + [
            "exams",
            "add",
            "MATH101",
            "--name",
            "Mathematics",
            "--date",
            "2025-06-01",
            "--start",
            "09:00",
            "--end",
            "12:00",
            "--venue",
            "Hall B",
        ],
    )

    assert result.exit_code == 0, result.output
    exam = db.query(Exam).filter_by(exam_code="MATH101").one()
    assert exam.created_by == staff.user_id
    assert exam.duration_minutes == 180


def test_exam_add_rejects_end_before_start(runner, staff, db):
    result = runner.invoke(
        cli,
        STAFF
        + [
            "exams",
            "add",
            "BAD1",
            "--name",
            "Bad",
            "--date",
            "2025-06-01",
            "--start",
            "12:00",
            "--end",
            "09:00",
        ],
    )

    assert "Could not add exam" in result.output
    assert db.query(Exam).filter_by(exam_code="BAD1").count() == 0


def test_register_enter_result_and_list(runner, staff, exam, examinee, db):
    exam_id, examinee_id = exam.exam_id, examinee.examinee_id

    first = runner.invoke(
        cli, STAFF + ["register", "add", str(examinee_id), str(exam_id)]
    )
    again = runner.invoke(
        cli, STAFF + ["register", "add", str(examinee_id), str(exam_id)]
    )

    assert f"Registered with hall ticket HT-{exam_id}-{examinee_id}" in first.output
    assert "already registered" in again.output

    registration = db.query(ExamRegistration).one()
    entered = runner.invoke(
        cli,
        STAFF + ["results", "enter", str(registration.registration_id), "45", "60"],
    )
    listed = runner.invoke(cli, STAFF + ["results", "list", "--exam", str(exam_id)])

    assert entered.exit_code == 0, entered.output
    assert "= 75.00% (B)" in entered.output
    assert "75.00% B" in listed.output
    assert db.query(Result).one().entered_by == staff.user_id


def test_results_enter_rejects_non_finite_marks(runner, staff, exam, examinee, db):
    runner.invoke(
        cli, STAFF + ["register", "add", str(examinee.examinee_id), str(exam.exam_id)]
    )
    registration_id = str(db.query(ExamRegistration).one().registration_id)

    for marks, max_marks in (("50", "nan"), ("nan", "100"), ("50", "inf")):
        result = runner.invoke(
            cli, STAFF + ["results", "enter", registration_id, marks, max_marks]
        )
        assert result.exit_code == 0, result.output
        assert "Could not save result" in result.output

    garbage = runner.invoke(
        cli, STAFF + ["results", "enter", registration_id, "abc", "100"]
    )

    assert garbage.exit_code == 2
    assert "abc" in garbage.output
    assert db.query(Result).count() == 0


def test_cancel_then_confirm_is_refused(runner, staff, exam, examinee, db):
    runner.invoke(
        cli, STAFF + ["register", "add", str(examinee.examinee_id), str(exam.exam_id)]
    )
    registration_id = str(db.query(ExamRegistration).one().registration_id)

    cancelled = runner.invoke(cli, STAFF + ["register", "cancel", registration_id])
    confirmed = runner.invoke(cli, STAFF + ["register", "confirm", registration_id])

    assert "cancelled" in cancelled.output
    assert "Could not confirm" in confirmed.output


def test_exam_delete_cascades(runner, staff, admin, exam, examinee, db):
    exam_id = str(exam.exam_id)
    runner.invoke(cli, STAFF + ["register", "add", str(examinee.examinee_id), exam_id])
    registration_id = str(db.query(ExamRegistration).one().registration_id)
    runner.invoke(cli, STAFF + ["results", "enter", registration_id, "50", "100"])

    result = runner.invoke(cli, STAFF + ["exams", "delete", exam_id, "--yes"])

    assert result.exit_code == 0, result.output
    db.expire_all()
    assert db.query(Exam).count() == 0
    assert db.query(ExamRegistration).count() == 0
    assert db.query(Result).count() == 0


def test_dashboard_is_admin_only(runner, admin, staff):
    as_staff = runner.invoke(cli, STAFF + ["report", "dashboard"])
    as_admin = runner.invoke(cli, ADMIN + ["report", "dashboard"])

    assert as_staff.exit_code == 1
    assert as_admin.exit_code == 0
    assert "Total Exams: 0" in as_admin.output


def test_hall_ticket_command(runner, staff, exam, examinee, db, tmp_path):
    runner.invoke(
        cli, STAFF + ["register", "add", str(examinee.examinee_id), str(exam.exam_id)]
    )
    registration_id = str(db.query(ExamRegistration).one().registration_id)

    result = runner.invoke(
        cli,
        STAFF + ["hall-ticket", registration_id, "--output-dir", str(tmp_path / "tickets")],
    )

    assert result.exit_code == 0, result.output
    assert "Hall ticket generated" in result.output
    assert len(list((tmp_path / "tickets").glob("*.pdf"))) == 1
