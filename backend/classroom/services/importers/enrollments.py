from dataclasses import dataclass
from typing import Dict, Iterable

from sqlalchemy.orm import Session

from classroom.config import Settings
from classroom.models import BatchEnrollment
from .base import BaseImporter, FieldError, NaturalKey, RowOutcome, created, failed, skipped
from .utils.helpers import _clean
from .utils.resolvers import find_enrollment, resolve_batch, resolve_course


@dataclass(frozen=True)
class EnrollmentRow:
    batch_code: str
    course_code: str


class EnrollmentsImporter(BaseImporter[EnrollmentRow]):
    kind = "enrollments"
    noun = "enrollment(s)"
    required_headers = ("batch_code", "course_code")

    def build_row(self, data: Dict[str, str]) -> EnrollmentRow:
        return EnrollmentRow(batch_code=_clean(data.get("batch_code")), course_code=_clean(data.get("course_code")))

    def validate(self, fields: EnrollmentRow) -> Iterable[FieldError]:
        if not fields.batch_code:
            yield FieldError("batch_code", "Batch code is required")
        if not fields.course_code:
            yield FieldError("course_code", "Course code is required")

    def natural_keys(self, fields: EnrollmentRow) -> Iterable[NaturalKey]:
        if fields.batch_code and fields.course_code:
            yield NaturalKey(
                "enrollment",
                f"{fields.batch_code.lower()}_{fields.course_code.lower()}",
                "batch_code, course_code",
                f"Duplicate enrollment in CSV: Batch {fields.batch_code} already enrolled in {fields.course_code}",
            )

    def persist(self, fields: EnrollmentRow, db: Session, settings: Settings) -> RowOutcome:
        batch = resolve_batch(fields.batch_code, db)
        if batch is None:
            return failed(f"Batch with code '{fields.batch_code}' not found")
        course = resolve_course(fields.course_code, db)
        if course is None:
            return failed(f"Course with code '{fields.course_code}' not found")

        if find_enrollment(batch.id, course.id, db):
            return skipped("Enrollment already exists")

        db.add(BatchEnrollment(batch_id=batch.id, course_id=course.id))
        db.flush()
        return created("Enrollment created successfully", batch_name=batch.name, course_title=course.title)
