from dataclasses import dataclass
from typing import Dict, Iterable

from sqlalchemy.orm import Session

from classroom.config import Settings
from classroom.core.security import hash_password
from classroom.models import ROLES, User
from .base import BaseImporter, FieldError, NaturalKey, RowOutcome, created, failed, skipped
from .utils.helpers import _clean, _is_email, _lower
from .utils.resolvers import find_user_by_email, find_user_by_username, resolve_batch


@dataclass(frozen=True)
class UserRow:
    username: str
    email: str
    password: str
    full_name: str
    role: str
    batch_code: str


class UsersImporter(BaseImporter[UserRow]):
    kind = "users"
    noun = "user(s)"
    required_headers = ("username", "email", "password", "full_name", "role")
    optional_headers = ("batch_code",)
    redact_on_success = ("password",)

    def build_row(self, data: Dict[str, str]) -> UserRow:
        return UserRow(
            username=_clean(data.get("username")),
            email=_clean(data.get("email")),
            password=_clean(data.get("password")),
            full_name=_clean(data.get("full_name")),
            role=_lower(data.get("role")),
            batch_code=_clean(data.get("batch_code")),
        )

    def validate(self, fields: UserRow) -> Iterable[FieldError]:
        if len(fields.username) < 3:
            yield FieldError("username", "Username is required and must be at least 3 characters")
        if not _is_email(fields.email):
            yield FieldError("email", "Valid email is required")
        if len(fields.password) < 6:
            yield FieldError("password", "Password is required and must be at least 6 characters")
        if len(fields.full_name) < 2:
            yield FieldError("full_name", "Full name is required and must be at least 2 characters")
        if fields.role not in ROLES:
            yield FieldError("role", f"Role must be one of: {', '.join(ROLES)}")
        if fields.role == "student" and not fields.batch_code:
            yield FieldError("batch_code", "Batch code is required for students")

    def natural_keys(self, fields: UserRow) -> Iterable[NaturalKey]:
        yield NaturalKey("username", fields.username.lower(), "username", f"Duplicate username in CSV: {fields.username}")
        yield NaturalKey("email", fields.email.lower(), "email", f"Duplicate email in CSV: {fields.email}")

    def persist(self, fields: UserRow, db: Session, settings: Settings) -> RowOutcome:
        if find_user_by_username(fields.username, db):
            return skipped("Username already exists in database")
        if find_user_by_email(fields.email, db):
            return skipped("Email already exists in database")

        batch_id = None
        if fields.role == "student":
            batch = resolve_batch(fields.batch_code, db)
            if batch is None:
                return failed(f"Batch with code '{fields.batch_code}' not found")
            batch_id = batch.id

        user = User(
            username=fields.username.lower(),
            email=fields.email.lower(),
            password_hash=hash_password(fields.password, rounds=settings.bcrypt_rounds),
            full_name=fields.full_name,
            role=fields.role,
            batch_id=batch_id,
        )
        db.add(user)
        db.flush()
        return created("User created successfully", user_id=user.id)
