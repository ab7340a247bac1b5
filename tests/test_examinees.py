from datetime import date

from sems_cli.commands.examinees.examinees import (
    add_examinee,
    delete_examinee,
    get_all_examinees,
    get_examinee_by_id,
    get_examinee_by_registration_number,
    search_examinees,
    update_examinee,
)


class TestExamineeCrud:
    def test_add_and_lookup(self, db, examinee):
        found = get_examinee_by_registration_number(db, "REG001")

        assert found is not None
        assert found.examinee_id == examinee.examinee_id
        assert found.full_name == "Alice Smith"
        assert found.date_of_birth == date(2000, 5, 15)
        assert found.created_at is not None

    def test_duplicate_registration_number_rejected(self, db, examinee):
        duplicate = add_examinee(
            db, "REG001", "Carol", "White", "carol@example.com"
        )
        assert duplicate is None
        assert len(get_all_examinees(db)) == 1

    def test_duplicate_email_rejected(self, db, examinee):
        assert add_examinee(db, "REG009", "A", "S", "alice.smith@example.com") is None

    def test_list_is_ordered_by_registration_number(self, db, other_examinee, examinee):
        numbers = [e.registration_number for e in get_all_examinees(db)]
        assert numbers == ["REG001", "REG002"]

    def test_search_is_case_insensitive_across_fields(self, db, examinee, other_examinee):
        assert [e.registration_number for e in search_examinees(db, "ALICE")] == ["REG001"]
        assert [e.registration_number for e in search_examinees(db, "jones")] == ["REG002"]
        assert [e.registration_number for e in search_examinees(db, "example.com")] == [
            "REG001",
            "REG002",
        ]
        assert [e.registration_number for e in search_examinees(db, "reg002")] == ["REG002"]
        assert search_examinees(db, "nobody") == []

    def test_update(self, db, examinee):
        assert update_examinee(db, examinee.examinee_id, city="Pune", phone="123")

        db.expire_all()
        updated = get_examinee_by_id(db, examinee.examinee_id)
        assert updated.city == "Pune"
        assert updated.phone == "123"

    def test_update_rejects_unknown_fields_and_missing_rows(self, db, examinee):
        assert update_examinee(db, examinee.examinee_id, shoe_size=42) is False
        assert update_examinee(db, 9999, city="Pune") is False

    def test_update_to_duplicate_registration_number_fails(
        self, db, examinee, other_examinee
    ):
        assert (
            update_examinee(db, other_examinee.examinee_id, registration_number="REG001")
            is False
        )

    def test_delete(self, db, examinee):
        assert delete_examinee(db, examinee.examinee_id)
        assert get_examinee_by_id(db, examinee.examinee_id) is None
        assert delete_examinee(db, examinee.examinee_id) is False
