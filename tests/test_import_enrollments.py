from sqlalchemy import select

from classroom.models import BatchEnrollment
from classroom.services.importers import import_csv


def _csv(*lines: str) -> bytes:
    return ("batch_code,course_code\n" + "\n".join(lines) + "\n").encode("utf-8")


def test_enrollments_are_created_and_described(db, test_settings, school) -> None:
    body = import_csv("enrollments", _csv("MA2024,CS101", "cs2024,cs102"), db, test_settings).as_dict()

    assert body["summary"] == {"total": 2, "created": 2, "skipped": 0, "errors": 0}
    assert body["message"] == "Successfully created 2 enrollment(s)"
    first = body["results"]["success"][0]
    assert first["batch_name"] == "Mathematics 2024"
    assert first["course_title"] == "Algorithms"
    pairs = db.execute(select(BatchEnrollment.batch_id, BatchEnrollment.course_id)).all()
    assert (school["other_batch"], school["course"]) in pairs
    assert (school["batch"], school["other_course"]) in pairs


def test_existing_enrollment_is_skipped(db, test_settings, school) -> None:
    body = import_csv("enrollments", _csv("CS2024,CS101", "MA2024,CS101"), db, test_settings).as_dict()

    assert body["summary"]["skipped"] == 1
    assert body["results"]["skipped"][0]["message"] == "Enrollment already exists"
    assert body["summary"]["created"] == 1


def test_pair_repeated_in_file_is_rejected(db, test_settings, school) -> None:
    body = import_csv("enrollments", _csv("MA2024,CS102", "ma2024,CS102"), db, test_settings).as_dict()

    assert body["summary"]["created"] == 1
    [error] = body["results"]["errors"]
    assert error["row"] == 3
    assert "Duplicate enrollment in CSV: Batch ma2024 already enrolled in CS102" in error["message"]


def test_unknown_codes_fail_their_row(db, test_settings, school) -> None:
    body = import_csv("enrollments", _csv("ZZ9999,CS101", "MA2024,NOPE", ",CS101"), db, test_settings).as_dict()

    assert body["success"] is False
    messages = [r["message"] for r in body["results"]["errors"]]
    assert messages[0] == "Batch with code 'ZZ9999' not found"
    assert messages[1] == "Course with code 'NOPE' not found"
    assert messages[2] == "batch_code: Batch code is required"
