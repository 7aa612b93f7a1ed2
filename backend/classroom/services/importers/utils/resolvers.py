from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from classroom.models import Batch, BatchEnrollment, Course, Grade, User
from .helpers import _lower

# All natural-key lookups are case-insensitive.


def resolve_batch(code, db: Session) -> Optional[Batch]:
    val = _lower(code)
    if not val:
        return None
    return db.execute(select(Batch).where(func.lower(Batch.code) == val)).scalar_one_or_none()


def resolve_course(code, db: Session) -> Optional[Course]:
    val = _lower(code)
    if not val:
        return None
    return db.execute(select(Course).where(func.lower(Course.code) == val)).scalar_one_or_none()


def find_user_by_username(username, db: Session) -> Optional[User]:
    val = _lower(username)
    if not val:
        return None
    return db.execute(select(User).where(func.lower(User.username) == val)).scalar_one_or_none()


def find_user_by_email(email, db: Session) -> Optional[User]:
    val = _lower(email)
    if not val:
        return None
    return db.execute(select(User).where(func.lower(User.email) == val)).scalar_one_or_none()


def find_enrollment(batch_id: int, course_id: int, db: Session) -> Optional[BatchEnrollment]:
    return db.execute(
        select(BatchEnrollment).where(BatchEnrollment.batch_id == batch_id, BatchEnrollment.course_id == course_id)
    ).scalar_one_or_none()


def find_grade(student_id: int, course_id: int, db: Session) -> Optional[Grade]:
    return db.execute(
        select(Grade).where(Grade.student_id == student_id, Grade.course_id == course_id)
    ).scalar_one_or_none()
