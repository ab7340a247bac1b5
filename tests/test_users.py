from sems_cli.commands.auth.users import (
    authenticate,
    change_password,
    create_user,
    get_user_by_id,
    get_user_by_username,
    set_user_active,
)
from tests.conftest import ADMIN_PASSWORD


class TestAuthenticate:
    def test_correct_credentials_return_user_and_stamp_last_login(self, db, admin):
        assert admin.last_login is None

        user = authenticate(db, "admin", ADMIN_PASSWORD)

        assert user is not None
        assert user.user_id == admin.user_id
        db.expire_all()
        assert get_user_by_id(db, admin.user_id).last_login is not None

    def test_wrong_password_returns_none(self, db, admin):
        assert authenticate(db, "admin", "not-the-password") is None
        db.expire_all()
        assert get_user_by_id(db, admin.user_id).last_login is None

    def test_unknown_user_returns_none(self, db, admin):
        assert authenticate(db, "ghost", ADMIN_PASSWORD) is None

    def test_username_must_match_exactly(self, db, admin):
        assert authenticate(db, "ADMIN", ADMIN_PASSWORD) is None

    def test_inactive_user_cannot_log_in(self, db, admin):
        assert set_user_active(db, "admin", False)

        assert authenticate(db, "admin", ADMIN_PASSWORD) is None

        assert set_user_active(db, "admin", True)
        assert authenticate(db, "admin", ADMIN_PASSWORD) is not None


class TestUserManagement:
    def test_password_is_stored_hashed(self, db, admin):
        stored = get_user_by_username(db, "admin")
        assert stored.password != ADMIN_PASSWORD

    def test_duplicate_username_rejected(self, db, admin):
        duplicate = create_user(
            db, "admin", "x", "Other Admin", "other@sems.local", role="admin"
        )
        assert duplicate is None

    def test_invalid_role_rejected(self, db):
        assert create_user(db, "root", "x", "Root", "root@sems.local", role="root") is None

    def test_change_password(self, db, admin):
        assert change_password(db, "admin", "new-secret")

        assert authenticate(db, "admin", ADMIN_PASSWORD) is None
        assert authenticate(db, "admin", "new-secret") is not None

    def test_missing_user_operations_fail(self, db):
        assert set_user_active(db, "ghost", False) is False
        assert change_password(db, "ghost", "x") is False
