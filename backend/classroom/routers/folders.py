from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..db import get_db
from ..deps import delete_or_raise, get_deletion_service
from ..models import Course, Folder, FolderCourse, User
from ..schemas import FolderCourseRead, FolderCreate, FolderRead, FolderShare
from ..services.deletion import DeletionService

router = APIRouter(prefix="/folders", tags=["folders"])


@router.get("", response_model=list[FolderRead])
def list_folders(parent_id: int | None = None, db: Session = Depends(get_db)):
    stmt = select(Folder)
    # no parent_id means root folders
    stmt = stmt.where(Folder.parent_id == parent_id) if parent_id else stmt.where(Folder.parent_id.is_(None))
    rows = db.execute(stmt.order_by(Folder.name)).scalars().all()
    return [FolderRead.model_validate(r) for r in rows]


@router.post("", response_model=FolderRead)
def create_folder(payload: FolderCreate, db: Session = Depends(get_db)):
    if payload.parent_id and not db.get(Folder, payload.parent_id):
        raise HTTPException(status_code=404, detail="Parent folder not found")

    row = Folder(name=payload.name.strip(), parent_id=payload.parent_id)
    db.add(row)
    db.commit()
    db.refresh(row)
    return FolderRead.model_validate(row)


@router.post("/{folder_id}/share", response_model=FolderCourseRead)
def share_folder(folder_id: int, payload: FolderShare, db: Session = Depends(get_db)):
    folder = db.get(Folder, folder_id)
    if not folder:
        raise HTTPException(status_code=404, detail="Folder not found")
    if not db.get(Course, payload.course_id):
        raise HTTPException(status_code=404, detail="Course not found")
    sharer = db.get(User, payload.added_by)
    if not sharer or sharer.role == "student":
        raise HTTPException(status_code=400, detail="Folders can only be shared by teachers or admins")

    row = FolderCourse(folder_id=folder_id, course_id=payload.course_id, added_by=payload.added_by)
    folder.is_shared = True
    db.add(row)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=400, detail="Folder is already shared with this course")
    db.refresh(row)
    return FolderCourseRead.model_validate(row)


@router.delete("/{folder_id}")
def delete_folder(folder_id: int, service: DeletionService = Depends(get_deletion_service)):
    return delete_or_raise(service, "folder", folder_id)
