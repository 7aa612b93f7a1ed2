from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..db import get_db
from ..deps import delete_or_raise, get_deletion_service
from ..models import Batch, BatchEnrollment, Course, CourseTeacher, User
from ..schemas import (
    CourseCreate,
    CourseRead,
    CourseTeacherCreate,
    CourseTeacherRead,
    EnrollmentCreate,
    EnrollmentRead,
)
from ..services.deletion import DeletionService
from ..services.importers.utils.resolvers import resolve_course

router = APIRouter(prefix="/courses", tags=["courses"])


def _get_course(course_id: int, db: Session) -> Course:
    course = db.get(Course, course_id)
    if not course:
        raise HTTPException(status_code=404, detail="Course not found")
    return course


@router.get("", response_model=list[CourseRead])
def list_courses(semester: str | None = None, db: Session = Depends(get_db)):
    stmt = select(Course)
    if semester:
        stmt = stmt.where(Course.semester == semester)
    rows = db.execute(stmt.order_by(Course.code)).scalars().all()
    return [CourseRead.model_validate(r) for r in rows]


@router.get("/{course_id}", response_model=CourseRead)
def get_course(course_id: int, db: Session = Depends(get_db)):
    return CourseRead.model_validate(_get_course(course_id, db))


@router.post("", response_model=CourseRead)
def create_course(payload: CourseCreate, db: Session = Depends(get_db)):
    if resolve_course(payload.code, db):
        raise HTTPException(status_code=400, detail="Course code already exists")

    row = Course(
        title=payload.title.strip(),
        code=payload.code.strip(),
        description=payload.description,
        semester=payload.semester,
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    return CourseRead.model_validate(row)


@router.delete("/{course_id}")
def delete_course(course_id: int, service: DeletionService = Depends(get_deletion_service)):
    return delete_or_raise(service, "course", course_id)


@router.post("/{course_id}/teachers", response_model=CourseTeacherRead)
def add_course_teacher(course_id: int, payload: CourseTeacherCreate, db: Session = Depends(get_db)):
    _get_course(course_id, db)
    teacher = db.get(User, payload.teacher_id)
    if not teacher or teacher.role != "teacher":
        raise HTTPException(status_code=400, detail="Selected user must have teacher role")

    if payload.is_primary:
        existing_primary = db.execute(
            select(CourseTeacher).where(CourseTeacher.course_id == course_id, CourseTeacher.is_primary.is_(True))
        ).scalar_one_or_none()
        if existing_primary:
            raise HTTPException(status_code=400, detail="Course already has a primary teacher")

    row = CourseTeacher(course_id=course_id, **payload.model_dump())
    db.add(row)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=400, detail="Teacher is already assigned to this course")
    db.refresh(row)
    return CourseTeacherRead.model_validate(row)


@router.delete("/{course_id}/teachers/{link_id}")
def remove_course_teacher(course_id: int, link_id: int, service: DeletionService = Depends(get_deletion_service)):
    link = service.db.get(CourseTeacher, link_id)
    if not link or link.course_id != course_id:
        raise HTTPException(status_code=404, detail="Teacher assignment not found")
    return delete_or_raise(service, "course_teacher", link_id)


@router.post("/{course_id}/enrollments", response_model=EnrollmentRead)
def enroll_batch(course_id: int, payload: EnrollmentCreate, db: Session = Depends(get_db)):
    _get_course(course_id, db)
    if not db.get(Batch, payload.batch_id):
        raise HTTPException(status_code=404, detail="Batch not found")

    row = BatchEnrollment(batch_id=payload.batch_id, course_id=course_id)
    db.add(row)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=400, detail="Enrollment already exists")
    db.refresh(row)
    return EnrollmentRead.model_validate(row)


@router.delete("/{course_id}/enrollments/{enrollment_id}")
def remove_enrollment(course_id: int, enrollment_id: int, service: DeletionService = Depends(get_deletion_service)):
    enrollment = service.db.get(BatchEnrollment, enrollment_id)
    if not enrollment or enrollment.course_id != course_id:
        raise HTTPException(status_code=404, detail="Enrollment not found")
    return delete_or_raise(service, "enrollment", enrollment_id)
