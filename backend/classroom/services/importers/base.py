from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from enum import Enum
import logging
from typing import Any, Dict, Generic, Iterable, List, TypeVar

from sqlalchemy.orm import Session

from classroom.config import Settings
from classroom.errors import ImportFileError
from .csv_reader import parse_csv

logger = logging.getLogger(__name__)

R = TypeVar("R")


class RowStatus(str, Enum):
    PENDING = "pending"
    VALID = "valid"
    INVALID = "invalid"
    DUPLICATE_IN_FILE = "duplicate_in_file"
    DUPLICATE_IN_STORE = "duplicate_in_store"
    CREATED = "created"
    FAILED = "failed"


_TRANSITIONS = {
    RowStatus.PENDING: {RowStatus.INVALID, RowStatus.DUPLICATE_IN_FILE, RowStatus.VALID},
    RowStatus.VALID: {RowStatus.CREATED, RowStatus.DUPLICATE_IN_STORE, RowStatus.FAILED},
}

# report list each terminal status lands in
_BUCKETS = {
    RowStatus.CREATED: "success",
    RowStatus.DUPLICATE_IN_STORE: "skipped",
    RowStatus.INVALID: "errors",
    RowStatus.DUPLICATE_IN_FILE: "errors",
    RowStatus.FAILED: "errors",
}
_REPORT_STATUS = {"success": "success", "skipped": "skipped", "errors": "error"}


@dataclass(frozen=True)
class FieldError:
    field: str
    message: str
    duplicate: bool = False

    def __str__(self) -> str:
        return f"{self.field}: {self.message}"


@dataclass(frozen=True)
class NaturalKey:
    """A uniqueness key; `value` is already normalized for comparison."""

    namespace: str
    value: str
    field: str
    message: str


@dataclass
class RowOutcome:
    status: RowStatus
    message: str
    extra: Dict[str, Any] = field(default_factory=dict)


def created(message: str, **extra) -> RowOutcome:
    return RowOutcome(RowStatus.CREATED, message, extra)


def skipped(message: str) -> RowOutcome:
    return RowOutcome(RowStatus.DUPLICATE_IN_STORE, message)


def failed(message: str) -> RowOutcome:
    return RowOutcome(RowStatus.FAILED, message)


@dataclass
class ImportRow(Generic[R]):
    row: int
    data: Dict[str, str]
    fields: R
    status: RowStatus = RowStatus.PENDING
    message: str = ""
    extra: Dict[str, Any] = field(default_factory=dict)

    def classify(self, status: RowStatus, message: str = "") -> None:
        if status not in _TRANSITIONS.get(self.status, ()):
            raise RuntimeError(f"row {self.row}: cannot move from {self.status.value} to {status.value}")
        self.status = status
        self.message = message

    @property
    def bucket(self) -> str | None:
        return _BUCKETS.get(self.status)


@dataclass
class ImportReport:
    kind: str
    noun: str
    total: int = 0
    success: List[dict] = field(default_factory=list)
    skipped: List[dict] = field(default_factory=list)
    errors: List[dict] = field(default_factory=list)
    file_error: str | None = None

    @classmethod
    def from_file_error(cls, kind: str, noun: str, exc: ImportFileError) -> "ImportReport":
        report = cls(kind=kind, noun=noun, total=exc.total, file_error=exc.message)
        report.errors.append({"row": 0, "status": "error", "message": exc.message})
        return report

    @property
    def created(self) -> int:
        return len(self.success)

    @property
    def ok(self) -> bool:
        return self.file_error is None and self.created > 0

    def add(self, row: ImportRow, redact: Iterable[str] = ()) -> None:
        bucket = row.bucket
        if bucket is None:
            raise RuntimeError(f"row {row.row} was never classified")
        data = dict(row.data)
        if bucket == "success":
            for name in redact:
                data.pop(name, None)
        # uploaded columns never override the report fields
        item = {**data, **row.extra, "row": row.row, "status": _REPORT_STATUS[bucket], "message": row.message}
        getattr(self, bucket).append(item)

    @property
    def message(self) -> str:
        if self.file_error:
            return self.file_error
        failures = len(self.errors) + len(self.skipped)
        if not self.created:
            return f"No {self.noun} were created. All rows had errors."
        if failures:
            return f"Partial success: Created {self.created} {self.noun}. {failures} row(s) failed."
        return f"Successfully created {self.created} {self.noun}"

    def as_dict(self) -> dict:
        return {
            "success": self.ok,
            "kind": self.kind,
            "message": self.message,
            "summary": {
                "total": self.total,
                "created": self.created,
                "skipped": len(self.skipped),
                "errors": len(self.errors),
            },
            "results": {"success": self.success, "errors": self.errors, "skipped": self.skipped},
        }


class BaseImporter(Generic[R]):
    """
    Validate-then-write pipeline shared by every CSV import kind.

    Subclasses describe their row shape (`build_row`), local checks
    (`validate`), uniqueness keys (`natural_keys`) and how one valid row is
    written (`persist`). The run as a whole shares one transaction; every
    row is written inside its own savepoint so a failing row leaves the
    others untouched.
    """

    kind: str
    noun: str
    required_headers: tuple[str, ...] = ()
    optional_headers: tuple[str, ...] = ()
    # groups of headers where at least one must be present
    header_alternatives: tuple[tuple[str, ...], ...] = ()
    # columns dropped from successful rows in the report
    redact_on_success: tuple[str, ...] = ()

    def run(self, raw: bytes, db: Session, settings: Settings) -> ImportReport:
        try:
            headers, records = parse_csv(raw, settings.max_import_rows)
            self.check_headers(headers, total=len(records))
        except ImportFileError as e:
            logger.info("%s import rejected: %s", self.kind, e.message)
            return ImportReport.from_file_error(self.kind, self.noun, e)

        rows = [ImportRow(row=i, data=rec, fields=self.build_row(rec)) for i, rec in enumerate(records, start=2)]
        self.classify_rows(rows)

        self.begin_run(db)
        try:
            for row in rows:
                if row.status is RowStatus.VALID:
                    self.persist_row(row, db, settings)
        except Exception:
            db.rollback()
            raise

        report = ImportReport(kind=self.kind, noun=self.noun, total=len(rows))
        for row in rows:
            report.add(row, redact=self.redact_on_success)

        if report.created:
            db.commit()
        else:
            db.rollback()
        logger.info(
            "%s import finished: total=%d created=%d skipped=%d errors=%d",
            self.kind, report.total, report.created, len(report.skipped), len(report.errors),
        )
        return report

    def check_headers(self, headers: List[str], total: int = 0) -> None:
        missing = [h for h in self.required_headers if h not in headers]
        if missing:
            raise ImportFileError(f"Missing required headers: {', '.join(missing)}", total=total)
        for group in self.header_alternatives:
            if not any(h in headers for h in group):
                raise ImportFileError(f"Missing required header: {' OR '.join(group)}", total=total)

    def classify_rows(self, rows: List[ImportRow[R]]) -> None:
        seen: Dict[str, set[str]] = defaultdict(set)
        for row in rows:
            problems = list(self.validate(row.fields))
            for key in self.natural_keys(row.fields):
                if not key.value:
                    continue
                if key.value in seen[key.namespace]:
                    problems.append(FieldError(key.field, key.message, duplicate=True))
                seen[key.namespace].add(key.value)

            problems = list(dict.fromkeys(problems))
            if not problems:
                row.classify(RowStatus.VALID)
            elif all(p.duplicate for p in problems):
                row.classify(RowStatus.DUPLICATE_IN_FILE, "; ".join(str(p) for p in problems))
            else:
                row.classify(RowStatus.INVALID, "; ".join(str(p) for p in problems))

    def persist_row(self, row: ImportRow[R], db: Session, settings: Settings) -> None:
        try:
            with db.begin_nested():
                outcome = self.persist(row.fields, db, settings)
        except Exception as e:
            logger.warning("%s import: row %d failed", self.kind, row.row, exc_info=True)
            row.classify(RowStatus.FAILED, str(e) or e.__class__.__name__)
            return
        row.classify(outcome.status, outcome.message)
        row.extra = outcome.extra

    def begin_run(self, db: Session) -> None:
        """Hook for per-run state, called before the first row is written."""

    def build_row(self, data: Dict[str, str]) -> R:
        raise NotImplementedError

    def validate(self, fields: R) -> Iterable[FieldError]:
        raise NotImplementedError

    def natural_keys(self, fields: R) -> Iterable[NaturalKey]:
        return ()

    def persist(self, fields: R, db: Session, settings: Settings) -> RowOutcome:
        raise NotImplementedError
