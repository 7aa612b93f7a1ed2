import logging

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from sqlalchemy import select
from sqlalchemy.orm import Session

from ..core.storage import FileStore
from ..db import get_db
from ..deps import delete_or_raise, get_deletion_service, get_store, signed_url
from ..models import Assignment, AssignmentMaterial, Course, CourseTeacher, Submission, User
from ..schemas import (
    AssignmentCreate,
    AssignmentMaterialRead,
    AssignmentRead,
    SubmissionGrade,
    SubmissionRead,
)
from ..services.deletion import DeletionService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["assignments"])


def _get_assignment(assignment_id: int, db: Session) -> Assignment:
    assignment = db.get(Assignment, assignment_id)
    if not assignment:
        raise HTTPException(status_code=404, detail="Assignment not found")
    return assignment


def _upload(store: FileStore, file: UploadFile, folder: str):
    try:
        return store.store(file.file, file.filename or "upload", folder=folder)
    except Exception:
        logger.exception("upload of %s failed", file.filename)
        raise HTTPException(status_code=502, detail="File upload failed")


def _with_signed_url(schema, store: FileStore, row):
    out = schema.model_validate(row)
    out.file_url = signed_url(store, row)
    return out


@router.get("/courses/{course_id}/assignments", response_model=list[AssignmentRead])
def list_assignments(course_id: int, db: Session = Depends(get_db)):
    rows = db.execute(
        select(Assignment).where(Assignment.course_id == course_id).order_by(Assignment.deadline, Assignment.id)
    ).scalars().all()
    return [AssignmentRead.model_validate(r) for r in rows]


@router.post("/courses/{course_id}/assignments", response_model=AssignmentRead)
def create_assignment(course_id: int, payload: AssignmentCreate, db: Session = Depends(get_db)):
    if not db.get(Course, course_id):
        raise HTTPException(status_code=404, detail="Course not found")
    author = db.get(User, payload.created_by)
    if not author or author.role == "student":
        raise HTTPException(status_code=400, detail="Assignments can only be created by teachers or admins")
    if author.role == "teacher":
        link = db.execute(
            select(CourseTeacher).where(CourseTeacher.course_id == course_id, CourseTeacher.teacher_id == author.id)
        ).scalar_one_or_none()
        if not link or not link.can_edit:
            raise HTTPException(status_code=403, detail="Teacher cannot edit this course")

    row = Assignment(course_id=course_id, **payload.model_dump())
    row.title = row.title.strip()
    db.add(row)
    db.commit()
    db.refresh(row)
    return AssignmentRead.model_validate(row)


@router.delete("/assignments/{assignment_id}")
def delete_assignment(assignment_id: int, service: DeletionService = Depends(get_deletion_service)):
    return delete_or_raise(service, "assignment", assignment_id)


@router.get("/assignments/{assignment_id}/materials", response_model=list[AssignmentMaterialRead])
def list_assignment_materials(
    assignment_id: int, db: Session = Depends(get_db), store: FileStore = Depends(get_store)
):
    rows = db.execute(
        select(AssignmentMaterial).where(AssignmentMaterial.assignment_id == assignment_id).order_by(AssignmentMaterial.id)
    ).scalars().all()
    return [_with_signed_url(AssignmentMaterialRead, store, r) for r in rows]


@router.post("/assignments/{assignment_id}/materials", response_model=AssignmentMaterialRead)
def add_assignment_material(
    assignment_id: int,
    title: str = Form(..., min_length=1, max_length=200),
    description: str | None = Form(None),
    url: str | None = Form(None),
    file: UploadFile | None = File(None),
    db: Session = Depends(get_db),
    store: FileStore = Depends(get_store),
):
    _get_assignment(assignment_id, db)
    if (file is None) == (not url):
        raise HTTPException(status_code=400, detail="Provide either a file or a url")

    row = AssignmentMaterial(assignment_id=assignment_id, title=title.strip(), description=description)
    if file is not None:
        row.kind = "file"
        row.file_type = file.content_type
        row.attach_file(_upload(store, file, "assignments"))
    else:
        row.kind = "url"
        row.file_url = url.strip()
    db.add(row)
    db.commit()
    db.refresh(row)
    return _with_signed_url(AssignmentMaterialRead, store, row)


@router.delete("/assignment-materials/{material_id}")
def delete_assignment_material(material_id: int, service: DeletionService = Depends(get_deletion_service)):
    return delete_or_raise(service, "assignment_material", material_id)


@router.get("/assignments/{assignment_id}/submissions", response_model=list[SubmissionRead])
def list_submissions(assignment_id: int, db: Session = Depends(get_db), store: FileStore = Depends(get_store)):
    rows = db.execute(
        select(Submission).where(Submission.assignment_id == assignment_id).order_by(Submission.submitted_at)
    ).scalars().all()
    return [_with_signed_url(SubmissionRead, store, r) for r in rows]


@router.post("/assignments/{assignment_id}/submissions", response_model=SubmissionRead)
def submit_assignment(
    assignment_id: int,
    student_id: int = Form(...),
    submission_text: str | None = Form(None),
    file: UploadFile | None = File(None),
    db: Session = Depends(get_db),
    store: FileStore = Depends(get_store),
):
    _get_assignment(assignment_id, db)
    student = db.get(User, student_id)
    if not student or student.role != "student":
        raise HTTPException(status_code=400, detail="Only students can submit assignments")
    if file is None and not submission_text:
        raise HTTPException(status_code=400, detail="A submission needs text or a file")
    existing = db.execute(
        select(Submission).where(Submission.assignment_id == assignment_id, Submission.student_id == student_id)
    ).first()
    if existing:
        raise HTTPException(status_code=400, detail="Assignment already submitted")

    row = Submission(assignment_id=assignment_id, student_id=student_id, submission_text=submission_text)
    if file is not None:
        row.attach_file(_upload(store, file, "submissions"))
    db.add(row)
    db.commit()
    db.refresh(row)
    return _with_signed_url(SubmissionRead, store, row)


@router.put("/submissions/{submission_id}/grade", response_model=SubmissionRead)
def grade_submission(
    submission_id: int,
    payload: SubmissionGrade,
    db: Session = Depends(get_db),
    store: FileStore = Depends(get_store),
):
    row = db.get(Submission, submission_id)
    if not row:
        raise HTTPException(status_code=404, detail="Submission not found")
    grader = db.get(User, payload.graded_by)
    if not grader or grader.role == "student":
        raise HTTPException(status_code=400, detail="Submissions can only be graded by teachers or admins")

    row.marks = payload.marks
    row.feedback = payload.feedback
    row.graded_by = grader.id
    db.commit()
    db.refresh(row)
    return _with_signed_url(SubmissionRead, store, row)


@router.delete("/submissions/{submission_id}")
def delete_submission(submission_id: int, service: DeletionService = Depends(get_deletion_service)):
    return delete_or_raise(service, "submission", submission_id)
