from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.orm import Session

from ..db import get_db
from ..deps import delete_or_raise, get_deletion_service
from ..models import Batch
from ..schemas import BatchCreate, BatchRead
from ..services.deletion import DeletionService
from ..services.importers.utils.resolvers import resolve_batch

router = APIRouter(prefix="/batches", tags=["batches"])


@router.get("", response_model=list[BatchRead])
def list_batches(year: int | None = None, db: Session = Depends(get_db)):
    stmt = select(Batch)
    if year:
        stmt = stmt.where(Batch.year == year)
    rows = db.execute(stmt.order_by(Batch.year.desc(), Batch.code)).scalars().all()
    return [BatchRead.model_validate(r) for r in rows]


@router.post("", response_model=BatchRead)
def create_batch(payload: BatchCreate, db: Session = Depends(get_db)):
    if resolve_batch(payload.code, db):
        raise HTTPException(status_code=400, detail="Batch code already exists")

    row = Batch(
        name=payload.name.strip(),
        code=payload.code.strip(),
        description=payload.description,
        year=payload.year,
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    return BatchRead.model_validate(row)


@router.delete("/{batch_id}")
def delete_batch(batch_id: int, service: DeletionService = Depends(get_deletion_service)):
    return delete_or_raise(service, "batch", batch_id)
