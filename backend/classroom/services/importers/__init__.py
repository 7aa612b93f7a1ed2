from sqlalchemy.orm import Session

from classroom.config import Settings
from classroom.errors import UnknownEntity
from .base import BaseImporter, ImportReport
from .enrollments import EnrollmentsImporter
from .grades import GradesImporter
from .users import UsersImporter

# importers keep per-run state, so a fresh one is built for every run
REGISTRY: dict[str, type[BaseImporter]] = {
    "user": UsersImporter,
    "users": UsersImporter,
    "enrollment": EnrollmentsImporter,
    "enrollments": EnrollmentsImporter,
    "grade": GradesImporter,
    "grades": GradesImporter,
}

KINDS = ("users", "enrollments", "grades")


def get_importer(kind: str) -> BaseImporter:
    key = (kind or "").lower().strip()
    if key not in REGISTRY:
        raise UnknownEntity(kind)
    return REGISTRY[key]()


def import_csv(kind: str, raw: bytes, db: Session, settings: Settings) -> ImportReport:
    importer = get_importer(kind)
    return importer.run(raw, db, settings)
