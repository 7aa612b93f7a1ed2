from collections.abc import Generator
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session, sessionmaker

from classroom.config import Settings
from classroom.core.security import hash_password
from classroom.core.storage import StoredFile
from classroom.db import build_session_factory, create_schema
from classroom.main import create_app
from classroom.models import Batch, BatchEnrollment, Course, User


class FakeStore:
    """In-memory file store that records every call and fails on request."""

    def __init__(self) -> None:
        self.stored: list[StoredFile] = []
        self.deleted: list[str] = []
        self.fail_for: set[str] = set()

    def store(self, fileobj, filename: str, folder: str | None = None) -> StoredFile:
        public_id = f"lms/{folder}/{filename}" if folder else f"lms/{filename}"
        ref = StoredFile(
            url=f"https://res.cloudinary.com/demo/raw/authenticated/v1/{public_id}",
            public_id=public_id,
            resource_type="raw",
            delivery_type="authenticated",
        )
        self.stored.append(ref)
        return ref

    def delete(self, ref: StoredFile) -> dict:
        if ref.public_id in self.fail_for:
            raise RuntimeError("store unavailable")
        self.deleted.append(ref.public_id)
        return {"result": "ok"}

    def sign(self, ref, expires_in: int | None = None) -> str:
        url = ref if isinstance(ref, str) else ref.url
        return f"{url}?signed=1"


@pytest.fixture()
def test_settings(tmp_path: Path) -> Settings:
    return Settings(
        app_name="classroom",
        database_url=f"sqlite:///{tmp_path / 'test.db'}",
        log_level="INFO",
        max_import_rows=1000,
        bcrypt_rounds=4,
        cloudinary_cloud_name="demo",
        cloudinary_api_key="key",
        cloudinary_api_secret="secret",
        upload_folder="lms",
        signed_url_ttl_seconds=3600,
        import_base_url="http://testserver",
        data_dir=str(tmp_path / "data"),
    )


@pytest.fixture()
def session_factory(test_settings: Settings) -> sessionmaker[Session]:
    factory = build_session_factory(test_settings.database_url)
    create_schema(factory)
    return factory


@pytest.fixture()
def db(session_factory: sessionmaker[Session]) -> Generator[Session, None, None]:
    session = session_factory()
    yield session
    session.close()


@pytest.fixture()
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture()
def client(test_settings: Settings, store: FakeStore) -> Generator[TestClient, None, None]:
    app = create_app(test_settings, store=store)
    with TestClient(app) as c:
        yield c


def make_user(db: Session, username: str, role: str = "student", batch: Batch | None = None) -> User:
    user = User(
        username=username,
        email=f"{username}@school.edu",
        password_hash=hash_password("secret123", rounds=4),
        full_name=username.title(),
        role=role,
        batch_id=batch.id if batch else None,
    )
    db.add(user)
    db.flush()
    return user


@pytest.fixture()
def school(db: Session) -> dict[str, int]:
    """
    Ids of one batch enrolled in one course, a second batch, an unenrolled
    course, a teacher and an admin. The session is committed and left with no
    open transaction, so the app can write to the same SQLite file.
    """
    batch = Batch(name="Computer Science 2024", code="CS2024", year=2024)
    other_batch = Batch(name="Mathematics 2024", code="MA2024", year=2024)
    course = Course(title="Algorithms", code="CS101")
    other_course = Course(title="Databases", code="CS102")
    db.add_all([batch, other_batch, course, other_course])
    db.flush()
    db.add(BatchEnrollment(batch_id=batch.id, course_id=course.id))
    teacher = make_user(db, "tina", role="teacher")
    admin = make_user(db, "adam", role="admin")
    ids = {
        "batch": batch.id,
        "other_batch": other_batch.id,
        "course": course.id,
        "other_course": other_course.id,
        "teacher": teacher.id,
        "admin": admin.id,
    }
    db.commit()
    return ids
