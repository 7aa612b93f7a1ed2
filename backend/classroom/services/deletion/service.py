from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Any, Dict, List, Sequence

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from classroom.core.storage import FileStore, StoredFile
from classroom.errors import DeletionBlocked, RecordNotFound, UnknownEntity
from .cleanup import remove_remote_files
from .policies import POLICIES, Policy, Relation

logger = logging.getLogger(__name__)

_DESCRIBE_FIELDS = ("username", "email", "code", "title", "name")


@dataclass
class DependencyCount:
    entity: str
    record_id: int
    counts: Dict[str, int]

    @property
    def blocking(self) -> Dict[str, int]:
        return {label: n for label, n in self.counts.items() if n > 0}

    @property
    def blocked(self) -> bool:
        return bool(self.blocking)


@dataclass
class DeleteResult:
    entity: str
    record_id: int
    description: Dict[str, Any] = field(default_factory=dict)
    deleted: Dict[str, int] = field(default_factory=dict)
    files_removed: int = 0
    cleanup_failures: int = 0

    def as_dict(self) -> dict:
        return {
            "success": True,
            "message": f"Deleted {self.entity.replace('_', ' ')} {self.record_id}",
            "entity": self.entity,
            "id": self.record_id,
            **self.description,
            "deleted": self.deleted,
            "files_removed": self.files_removed,
            "cleanup_failures": self.cleanup_failures,
        }


@dataclass
class BulkDeleteReport:
    entity: str
    total: int
    success: List[dict] = field(default_factory=list)
    errors: List[dict] = field(default_factory=list)

    @property
    def deleted(self) -> int:
        return len(self.success)

    @property
    def message(self) -> str:
        noun = f"{self.entity.replace('_', ' ')}(s)"
        if not self.deleted:
            return f"No {noun} were deleted"
        if self.errors:
            return f"Partial success: Deleted {self.deleted} {noun}. {len(self.errors)} failed."
        return f"Successfully deleted {self.deleted} {noun}"

    def as_dict(self) -> dict:
        return {
            "success": self.deleted > 0,
            "message": self.message,
            "summary": {"total": self.total, "deleted": self.deleted, "errors": len(self.errors)},
            "results": {"success": self.success, "errors": self.errors},
        }


class DeletionService:
    """Applies the delete policy table to one session and one file store."""

    def __init__(self, db: Session, store: FileStore) -> None:
        self.db = db
        self.store = store

    def policy(self, entity: str) -> Policy:
        key = (entity or "").lower().strip().replace("-", "_")
        if key not in POLICIES:
            raise UnknownEntity(entity)
        return POLICIES[key]

    def dependencies(self, entity: str, record_id: int) -> DependencyCount:
        policy = self.policy(entity)
        self._get(policy, record_id)
        return DependencyCount(policy.entity, record_id, self._count(policy.guards, record_id))

    def preview(self, entity: str, record_id: int) -> dict:
        policy = self.policy(entity)
        self._get(policy, record_id)
        guards = DependencyCount(policy.entity, record_id, self._count(policy.guards, record_id))
        return {
            "entity": policy.entity,
            "id": record_id,
            "allowed": not guards.blocked,
            "blocking": guards.blocking,
            "guards": guards.counts,
            "cascades": self._count(policy.cascades, record_id),
        }

    def delete(self, entity: str, record_id: int) -> DeleteResult:
        policy = self.policy(entity)
        try:
            result = self._delete_one(policy, record_id)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        logger.info("deleted %s %s: %s", policy.entity, record_id, result.deleted)
        return result

    def bulk_delete(self, entity: str, record_ids: Sequence[int]) -> BulkDeleteReport:
        policy = self.policy(entity)
        report = BulkDeleteReport(entity=policy.entity, total=len(record_ids))
        try:
            for record_id in record_ids:
                try:
                    with self.db.begin_nested():
                        result = self._delete_one(policy, record_id)
                except RecordNotFound as e:
                    report.errors.append({"id": record_id, "reason": e.reason})
                except DeletionBlocked as e:
                    report.errors.append({"id": record_id, "reason": e.message, "blocking": e.counts})
                except IntegrityError:
                    logger.warning("bulk delete of %s %s hit a constraint", policy.entity, record_id, exc_info=True)
                    report.errors.append(
                        {"id": record_id, "reason": f"Cannot delete {policy.entity}: has associated records"}
                    )
                else:
                    report.success.append({"id": record_id, **result.description})

            if report.deleted:
                self.db.commit()
            else:
                self.db.rollback()
        except Exception:
            self.db.rollback()
            raise
        logger.info(
            "bulk delete of %s: total=%d deleted=%d errors=%d",
            policy.entity, report.total, report.deleted, len(report.errors),
        )
        return report

    def _get(self, policy: Policy, record_id: int):
        record = self.db.get(policy.model, record_id)
        if record is None:
            raise RecordNotFound(policy.entity, record_id)
        return record

    def _count(self, relations: Sequence[Relation], record_id: int) -> Dict[str, int]:
        # one round trip; each count is an independent scalar subquery
        if not relations:
            return {}
        stmt = select(
            *[
                select(func.count()).select_from(rel.model).where(rel.fk == record_id).scalar_subquery().label(f"c{i}")
                for i, rel in enumerate(relations)
            ]
        )
        row = self.db.execute(stmt).one()
        return {rel.label: int(n or 0) for rel, n in zip(relations, row)}

    def _delete_one(self, policy: Policy, record_id: int) -> DeleteResult:
        record = self._get(policy, record_id)

        counts = self._count(policy.guards, record_id)
        if any(counts.values()):
            raise DeletionBlocked(policy.entity, record_id, counts)

        refs: List[StoredFile] = []
        if policy.has_file:
            ref = record.stored_file()
            if ref is not None:
                refs.append(ref)
        for rel in policy.cascades:
            if not rel.has_files:
                continue
            for child in self.db.execute(select(rel.model).where(rel.fk == record_id)).scalars():
                ref = child.stored_file()
                if ref is not None:
                    refs.append(ref)

        failures = remove_remote_files(self.store, refs)

        result = DeleteResult(
            entity=policy.entity,
            record_id=record_id,
            description={f: getattr(record, f) for f in _DESCRIBE_FIELDS if hasattr(record, f)},
            files_removed=len(refs) - failures,
            cleanup_failures=failures,
        )
        # children before the parent
        for rel in policy.cascades:
            res = self.db.execute(delete(rel.model).where(rel.fk == record_id))
            result.deleted[rel.label] = res.rowcount or 0
        self.db.delete(record)
        self.db.flush()
        result.deleted[policy.entity] = 1
        return result
