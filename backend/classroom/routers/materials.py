import logging

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from sqlalchemy import select
from sqlalchemy.orm import Session

from ..core.storage import FileStore
from ..db import get_db
from ..deps import bulk_delete_or_raise, delete_or_raise, get_deletion_service, get_store, signed_url
from ..models import Course, Folder, Material
from ..schemas import BulkDeleteRequest, MaterialRead
from ..services.deletion import DeletionService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/materials", tags=["materials"])


def _read(store: FileStore, row: Material) -> MaterialRead:
    out = MaterialRead.model_validate(row)
    out.file_url = signed_url(store, row)
    return out


def _query(course_id: int | None, folder_id: int | None):
    stmt = select(Material)
    if course_id:
        stmt = stmt.where(Material.course_id == course_id)
    if folder_id:
        stmt = stmt.where(Material.folder_id == folder_id)
    return stmt.order_by(Material.created_at.desc(), Material.id.desc())


@router.get("", response_model=list[MaterialRead])
def list_materials(
    course_id: int | None = None,
    folder_id: int | None = None,
    db: Session = Depends(get_db),
    store: FileStore = Depends(get_store),
):
    rows = db.execute(_query(course_id, folder_id)).scalars().all()
    return [_read(store, r) for r in rows]


@router.post("", response_model=MaterialRead)
def upload_material(
    title: str = Form(..., min_length=1, max_length=200),
    description: str | None = Form(None),
    course_id: int | None = Form(None),
    folder_id: int | None = Form(None),
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    store: FileStore = Depends(get_store),
):
    if not course_id and not folder_id:
        raise HTTPException(status_code=400, detail="A material needs a course_id or a folder_id")
    if course_id and not db.get(Course, course_id):
        raise HTTPException(status_code=404, detail="Course not found")
    if folder_id and not db.get(Folder, folder_id):
        raise HTTPException(status_code=404, detail="Folder not found")

    try:
        stored = store.store(file.file, file.filename or "upload", folder="materials")
    except Exception:
        logger.exception("upload of %s failed", file.filename)
        raise HTTPException(status_code=502, detail="File upload failed")

    row = Material(title=title.strip(), description=description, course_id=course_id, folder_id=folder_id)
    row.attach_file(stored)
    db.add(row)
    db.commit()
    db.refresh(row)
    return _read(store, row)


@router.delete("/{material_id}")
def delete_material(material_id: int, service: DeletionService = Depends(get_deletion_service)):
    return delete_or_raise(service, "material", material_id)


@router.post("/bulk-delete")
def bulk_delete_materials(payload: BulkDeleteRequest, service: DeletionService = Depends(get_deletion_service)):
    return bulk_delete_or_raise(service, "material", payload.ids)
