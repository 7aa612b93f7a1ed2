from sqlalchemy import func, select

from classroom.core.security import verify_password
from classroom.models import User
from classroom.services.importers import import_csv

HEADER = "username,email,password,full_name,role,batch_code\n"


def _csv(*lines: str) -> bytes:
    return (HEADER + "\n".join(lines) + "\n").encode("utf-8")


def test_invalid_row_does_not_stop_the_others(db, test_settings, school) -> None:
    raw = _csv(
        "alice,not-an-email,secret123,Alice Smith,student,CS2024",
        "bob,bob@school.edu,secret123,Bob Jones,student,CS2024",
        "carol,carol@school.edu,secret123,Carol White,teacher,",
    )

    report = import_csv("users", raw, db, test_settings)
    body = report.as_dict()

    assert body["summary"] == {"total": 3, "created": 2, "skipped": 0, "errors": 1}
    assert body["success"] is True
    assert body["message"] == "Partial success: Created 2 user(s). 1 row(s) failed."
    [error] = body["results"]["errors"]
    assert error["row"] == 2
    assert error["status"] == "error"
    assert "email" in error["message"]
    assert [r["row"] for r in body["results"]["success"]] == [3, 4]


def test_created_users_are_normalized_and_hashed(db, test_settings, school) -> None:
    raw = _csv("  Dave ,DAVE@School.EDU,secret123,Dave Brown,Student,cs2024")

    report = import_csv("users", raw, db, test_settings)

    assert report.created == 1
    user = db.execute(select(User).where(User.username == "dave")).scalar_one()
    assert user.email == "dave@school.edu"
    assert user.role == "student"
    assert user.batch_id == school["batch"]
    assert user.password_hash != "secret123"
    assert verify_password("secret123", user.password_hash)


def test_password_is_not_echoed_for_created_rows(db, test_settings, school) -> None:
    raw = _csv(
        "erin,erin@school.edu,secret123,Erin Gray,teacher,",
        "x,bad,123,E,teacher,",
    )

    body = import_csv("users", raw, db, test_settings).as_dict()

    [ok] = body["results"]["success"]
    assert "password" not in ok
    assert ok["user_id"] > 0
    assert ok["message"] == "User created successfully"


def test_duplicates_in_file_reject_every_repeat(db, test_settings, school) -> None:
    raw = _csv(
        "frank,frank@school.edu,secret123,Frank Hill,teacher,",
        "FRANK,other@school.edu,secret123,Frank Again,teacher,",
        "gina,Frank@school.edu,secret123,Gina Lee,teacher,",
    )

    body = import_csv("users", raw, db, test_settings).as_dict()

    assert body["summary"]["created"] == 1
    messages = {r["row"]: r["message"] for r in body["results"]["errors"]}
    assert "Duplicate username in CSV: FRANK" in messages[3]
    assert "Duplicate email in CSV: Frank@school.edu" in messages[4]


def test_existing_users_are_skipped(db, test_settings, school) -> None:
    raw = _csv(
        "tina,new@school.edu,secret123,Tina Again,teacher,",
        "newbie,ADAM@school.edu,secret123,New Person,teacher,",
        "henry,henry@school.edu,secret123,Henry Ford,admin,",
    )

    body = import_csv("users", raw, db, test_settings).as_dict()

    assert body["summary"] == {"total": 3, "created": 1, "skipped": 2, "errors": 0}
    skipped = {r["row"]: r["message"] for r in body["results"]["skipped"]}
    assert skipped == {2: "Username already exists in database", 3: "Email already exists in database"}


def test_students_need_a_known_batch(db, test_settings, school) -> None:
    raw = _csv(
        "ivan,ivan@school.edu,secret123,Ivan Petrov,student,",
        "jane,jane@school.edu,secret123,Jane Doe,student,NOPE",
    )

    body = import_csv("users", raw, db, test_settings).as_dict()

    assert body["success"] is False
    assert body["message"] == "No user(s) were created. All rows had errors."
    errors = {r["row"]: r["message"] for r in body["results"]["errors"]}
    assert "batch_code" in errors[2]
    assert errors[3] == "Batch with code 'NOPE' not found"


def test_nothing_is_written_when_no_row_succeeds(db, test_settings, school) -> None:
    before = db.scalar(select(func.count()).select_from(User))
    raw = _csv("kim,kim@school.edu,secret123,Kim Lee,student,NOPE")

    import_csv("users", raw, db, test_settings)

    assert db.scalar(select(func.count()).select_from(User)) == before


def test_role_must_be_known(db, test_settings, school) -> None:
    raw = _csv("leo,leo@school.edu,secret123,Leo King,janitor,")

    body = import_csv("users", raw, db, test_settings).as_dict()

    assert "Role must be one of: admin, teacher, student" in body["results"]["errors"][0]["message"]


def test_extra_columns_cannot_replace_report_fields(db, test_settings, school) -> None:
    raw = (
        "username,email,password,full_name,role,row,status,message\n"
        "fern,fern@school.edu,secret123,Fern Lee,teacher,99,weird,hello\n"
    ).encode("utf-8")

    body = import_csv("users", raw, db, test_settings).as_dict()

    [ok] = body["results"]["success"]
    assert ok["row"] == 2
    assert ok["status"] == "success"
    assert ok["message"] == "User created successfully"
