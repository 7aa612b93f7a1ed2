import pytest
from sqlalchemy import func, select

from classroom.core.storage import StoredFile
from classroom.errors import DeletionBlocked, RecordNotFound, UnknownEntity
from classroom.models import (
    Assignment,
    AssignmentMaterial,
    Batch,
    Course,
    CourseTeacher,
    Folder,
    FolderCourse,
    Material,
    Submission,
    User,
)
from classroom.services.deletion import DeletionService, remove_remote_files
from conftest import make_user


def _ref(name: str) -> StoredFile:
    return StoredFile(
        url=f"https://res.cloudinary.com/demo/raw/authenticated/v1/lms/{name}",
        public_id=f"lms/{name}",
        resource_type="raw",
        delivery_type="authenticated",
    )


def _count(db, model) -> int:
    return db.scalar(select(func.count()).select_from(model))


def _assignment(db, school, title="Homework") -> Assignment:
    row = Assignment(course_id=school["course"], title=title, created_by=school["teacher"])
    db.add(row)
    db.flush()
    return row


def test_guarded_course_is_kept_and_blockers_are_named(db, store, school) -> None:
    _assignment(db, school, "Homework 1")
    _assignment(db, school, "Homework 2")
    db.commit()
    service = DeletionService(db, store)

    with pytest.raises(DeletionBlocked) as exc:
        service.delete("course", school["course"])

    assert "2 assignment(s)" in exc.value.message
    assert "1 batch enrollment(s)" in exc.value.message
    assert exc.value.message == "Cannot delete course: it still has 2 assignment(s), 1 batch enrollment(s)"
    assert exc.value.counts == {"assignment(s)": 2, "batch enrollment(s)": 1}
    assert db.get(Course, school["course"]) is not None
    assert _count(db, Assignment) == 2


def test_course_without_dependents_is_deleted(db, store, school) -> None:
    result = DeletionService(db, store).delete("course", school["other_course"])

    assert result.deleted == {"course": 1}
    assert result.as_dict()["code"] == "CS102"
    assert db.get(Course, school["other_course"]) is None


def test_folder_cascade_survives_a_failing_remote_delete(db, store, school) -> None:
    folder = Folder(name="Week 1")
    db.add(folder)
    db.flush()
    for name in ("a.pdf", "b.pdf", "c.pdf"):
        material = Material(folder_id=folder.id, title=name)
        material.attach_file(_ref(name))
        db.add(material)
    db.add(FolderCourse(folder_id=folder.id, course_id=school["course"], added_by=school["teacher"]))
    db.commit()
    folder_id = folder.id
    store.fail_for = {"lms/b.pdf"}

    result = DeletionService(db, store).delete("folder", folder_id)

    assert result.deleted == {"material(s)": 3, "course share(s)": 1, "folder": 1}
    assert result.files_removed == 2
    assert result.cleanup_failures == 1
    assert sorted(store.deleted) == ["lms/a.pdf", "lms/c.pdf"]
    assert _count(db, Material) == 0
    assert _count(db, FolderCourse) == 0
    assert db.get(Folder, folder_id) is None


def test_folder_with_subfolders_is_guarded(db, store, school) -> None:
    parent = Folder(name="Term 1")
    db.add(parent)
    db.flush()
    db.add(Folder(name="Week 1", parent_id=parent.id))
    db.commit()

    with pytest.raises(DeletionBlocked) as exc:
        DeletionService(db, store).delete("folder", parent.id)

    assert exc.value.counts == {"subfolder(s)": 1}


def test_assignment_cascade_cleans_only_uploaded_files(db, store, school) -> None:
    assignment = _assignment(db, school)
    upload = AssignmentMaterial(assignment_id=assignment.id, title="Brief", kind="file")
    upload.attach_file(_ref("brief.pdf"))
    link = AssignmentMaterial(
        assignment_id=assignment.id,
        title="Reading",
        kind="url",
        file_url="https://res.cloudinary.com/demo/raw/upload/v1/lms/not-ours.pdf",
    )
    db.add_all([upload, link])
    db.commit()

    result = DeletionService(db, store).delete("assignment", assignment.id)

    assert store.deleted == ["lms/brief.pdf"]
    assert result.deleted["assignment material(s)"] == 2
    assert _count(db, AssignmentMaterial) == 0


def test_submissions_guard_their_assignment(db, store, school) -> None:
    assignment = _assignment(db, school)
    student = make_user(db, "sam", batch=db.get(Batch, school["batch"]))
    submission = Submission(assignment_id=assignment.id, student_id=student.id, submission_text="done")
    submission.attach_file(_ref("answer.pdf"))
    db.add(submission)
    db.commit()
    service = DeletionService(db, store)

    with pytest.raises(DeletionBlocked):
        service.delete("assignment", assignment.id)
    assert store.deleted == []

    result = service.delete("submission", submission.id)
    assert result.files_removed == 1
    assert store.deleted == ["lms/answer.pdf"]
    service.delete("assignment", assignment.id)
    assert _count(db, Assignment) == 0


def test_preview_reports_guards_and_cascades(db, store, school) -> None:
    assignment = _assignment(db, school)
    db.add(AssignmentMaterial(assignment_id=assignment.id, title="Link", kind="url", file_url="https://x.org"))
    db.commit()

    preview = DeletionService(db, store).preview("assignment", assignment.id)

    assert preview == {
        "entity": "assignment",
        "id": assignment.id,
        "allowed": True,
        "blocking": {},
        "guards": {"submission(s)": 0},
        "cascades": {"assignment material(s)": 1},
    }


def test_batch_with_students_is_guarded(db, store, school) -> None:
    make_user(db, "stu", batch=db.get(Batch, school["other_batch"]))
    db.commit()
    service = DeletionService(db, store)

    deps = service.dependencies("batch", school["other_batch"])

    assert deps.blocked
    assert deps.blocking == {"student(s)": 1}


def test_unknown_entity_and_missing_record(db, store) -> None:
    service = DeletionService(db, store)

    with pytest.raises(UnknownEntity):
        service.delete("semester", 1)
    with pytest.raises(RecordNotFound) as exc:
        service.delete("course-teacher", 42)
    assert exc.value.reason == "Course teacher not found"


def test_bulk_delete_reports_each_failure(db, store, school) -> None:
    db.add(CourseTeacher(course_id=school["course"], teacher_id=school["teacher"], is_primary=True))
    clean = make_user(db, "leaver", role="teacher")
    db.commit()
    clean_id = clean.id

    report = DeletionService(db, store).bulk_delete("user", [9999, school["teacher"], clean_id])
    body = report.as_dict()

    assert body["summary"] == {"total": 3, "deleted": 1, "errors": 2}
    assert body["results"]["success"] == [{"id": clean_id, "username": "leaver", "email": "leaver@school.edu"}]
    missing, blocked = body["results"]["errors"]
    assert missing == {"id": 9999, "reason": "User not found"}
    assert blocked["id"] == school["teacher"]
    assert blocked["reason"] == "Cannot delete user: it still has 1 course assignment(s) as teacher"
    assert blocked["blocking"] == {"course assignment(s) as teacher": 1}
    assert db.get(User, clean_id) is None
    assert db.get(User, school["teacher"]) is not None


def test_bulk_delete_with_nothing_deleted(db, store, school) -> None:
    report = DeletionService(db, store).bulk_delete("course", [school["course"], 12345])

    assert report.deleted == 0
    assert report.as_dict()["success"] is False
    assert report.message == "No course(s) were deleted"


def test_remote_cleanup_counts_failures(store) -> None:
    store.fail_for = {"lms/x.pdf"}

    assert remove_remote_files(store, [_ref("x.pdf"), _ref("y.pdf")]) == 1
    assert store.deleted == ["lms/y.pdf"]
