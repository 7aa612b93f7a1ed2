from dataclasses import dataclass
from typing import Dict, Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session

from classroom.config import Settings
from classroom.models import BatchEnrollment, Grade, User
from .base import BaseImporter, FieldError, NaturalKey, RowOutcome, created, failed, skipped
from .utils.helpers import LETTER_GRADE_RE, _clean, _is_email, _is_grade
from .utils.resolvers import find_grade, find_user_by_email, find_user_by_username, resolve_course

MAX_REMARKS = 500


@dataclass(frozen=True)
class GradeRow:
    student_username: str
    student_email: str
    course_code: str
    grade: str
    remarks: str

    @property
    def student_label(self) -> str:
        return self.student_username or self.student_email


class GradesImporter(BaseImporter[GradeRow]):
    """
    Course grades keyed by student and course.

    A student may be named by username, by email, or both. Both identifiers
    are tracked for in-file duplicates, and once rows are resolved to real
    students a second row for the same (student, course) pair in one run is
    rejected even when the two rows used different identifier columns.
    """

    kind = "grades"
    noun = "grade(s)"
    required_headers = ("course_code", "grade")
    optional_headers = ("student_username", "student_email", "remarks")
    header_alternatives = (("student_username", "student_email"),)

    def begin_run(self, db: Session) -> None:
        self._resolved: Dict[tuple[int, int], str] = {}

    def build_row(self, data: Dict[str, str]) -> GradeRow:
        grade = _clean(data.get("grade"))
        if LETTER_GRADE_RE.match(grade):
            grade = grade.upper()
        return GradeRow(
            student_username=_clean(data.get("student_username")),
            student_email=_clean(data.get("student_email")),
            course_code=_clean(data.get("course_code")),
            grade=grade,
            remarks=_clean(data.get("remarks")),
        )

    def validate(self, fields: GradeRow) -> Iterable[FieldError]:
        if not fields.student_label:
            yield FieldError("student_username/student_email", "Student username or email is required")
        if fields.student_email and not _is_email(fields.student_email):
            yield FieldError("student_email", "Invalid email format")
        if not fields.course_code:
            yield FieldError("course_code", "Course code is required")
        if not _is_grade(fields.grade):
            yield FieldError("grade", "Grade must be A-F (with optional +/-) or 0-100")
        if len(fields.remarks) > MAX_REMARKS:
            yield FieldError("remarks", f"Remarks must not exceed {MAX_REMARKS} characters")

    def natural_keys(self, fields: GradeRow) -> Iterable[NaturalKey]:
        if not fields.course_code:
            return
        course = fields.course_code.lower()
        message = f"Duplicate grade entry in CSV for student {fields.student_label} in course {fields.course_code}"
        if fields.student_username:
            yield NaturalKey("grade_username", f"{fields.student_username.lower()}_{course}", "student, course", message)
        if fields.student_email:
            yield NaturalKey("grade_email", f"{fields.student_email.lower()}_{course}", "student, course", message)

    def resolve_student(self, fields: GradeRow, db: Session) -> User | str:
        by_username = find_user_by_username(fields.student_username, db) if fields.student_username else None
        by_email = find_user_by_email(fields.student_email, db) if fields.student_email else None
        if fields.student_username and by_username is None:
            return f"Student with username '{fields.student_username}' not found"
        if fields.student_email and by_email is None:
            return f"Student with email '{fields.student_email}' not found"
        if by_username is not None and by_email is not None and by_username.id != by_email.id:
            return (
                f"student_username '{fields.student_username}' and student_email "
                f"'{fields.student_email}' belong to different users"
            )
        student = by_username or by_email
        if student.role != "student":
            return f"User '{student.username}' is not a student"
        return student

    def persist(self, fields: GradeRow, db: Session, settings: Settings) -> RowOutcome:
        student = self.resolve_student(fields, db)
        if isinstance(student, str):
            return failed(student)
        course = resolve_course(fields.course_code, db)
        if course is None:
            return failed(f"Course with code '{fields.course_code}' not found")

        pair = (student.id, course.id)
        if pair in self._resolved:
            return failed(
                f"Duplicate grade entry in CSV for student {student.username} in course {course.code} "
                f"(already given as {self._resolved[pair]})"
            )
        self._resolved[pair] = fields.student_label

        enrolled = student.batch_id is not None and db.execute(
            select(BatchEnrollment.id).where(
                BatchEnrollment.batch_id == student.batch_id, BatchEnrollment.course_id == course.id
            )
        ).first()
        if not enrolled:
            return failed(f"Student '{student.username}' is not enrolled in course {course.code}")

        if find_grade(student.id, course.id, db):
            return skipped("Grade already exists for this student and course")

        db.add(Grade(course_id=course.id, student_id=student.id, grade=fields.grade, remarks=fields.remarks or None))
        db.flush()
        return created("Grade recorded successfully", student=student.username, course_title=course.title)
