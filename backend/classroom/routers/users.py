from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from ..config import Settings
from ..core.security import hash_password
from ..db import get_db
from ..deps import bulk_delete_or_raise, delete_or_raise, get_app_settings, get_deletion_service
from ..models import User
from ..schemas import BulkDeleteRequest, UserCreate, UserRead
from ..services.deletion import DeletionService
from ..services.importers.utils.resolvers import resolve_batch

router = APIRouter(prefix="/users", tags=["users"])


@router.get("", response_model=list[UserRead])
def list_users(role: str | None = None, q: str | None = None, limit: int = 200, db: Session = Depends(get_db)):
    stmt = select(User)
    if role:
        stmt = stmt.where(User.role == role.lower())
    if q:
        term = f"%{q.strip().lower()}%"
        stmt = stmt.where(or_(func.lower(User.username).like(term), func.lower(User.full_name).like(term)))
    rows = db.execute(stmt.order_by(User.username).limit(limit)).scalars().all()
    return [UserRead.model_validate(r) for r in rows]


@router.get("/{user_id}", response_model=UserRead)
def get_user(user_id: int, db: Session = Depends(get_db)):
    user = db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return UserRead.model_validate(user)


@router.post("", response_model=UserRead)
def create_user(payload: UserCreate, db: Session = Depends(get_db), settings: Settings = Depends(get_app_settings)):
    username = payload.username.strip().lower()
    email = str(payload.email).strip().lower()
    exists = db.execute(
        select(User).where(or_(func.lower(User.username) == username, func.lower(User.email) == email))
    ).first()
    if exists:
        raise HTTPException(status_code=400, detail="Username or email already exists")

    batch_id = None
    if payload.role == "student":
        batch = resolve_batch(payload.batch_code, db)
        if batch is None:
            raise HTTPException(status_code=400, detail="Students need an existing batch_code")
        batch_id = batch.id

    row = User(
        username=username,
        email=email,
        password_hash=hash_password(payload.password, rounds=settings.bcrypt_rounds),
        full_name=payload.full_name.strip(),
        role=payload.role,
        batch_id=batch_id,
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    return UserRead.model_validate(row)


@router.delete("/{user_id}")
def delete_user(user_id: int, service: DeletionService = Depends(get_deletion_service)):
    return delete_or_raise(service, "user", user_id)


@router.post("/bulk-delete")
def bulk_delete_users(payload: BulkDeleteRequest, service: DeletionService = Depends(get_deletion_service)):
    return bulk_delete_or_raise(service, "user", payload.ids)
