from __future__ import annotations


class ImportFileError(Exception):
    """The uploaded file as a whole cannot be imported; no row was processed."""

    def __init__(self, message: str, total: int = 0) -> None:
        super().__init__(message)
        self.message = message
        self.total = total


class UnknownEntity(KeyError):
    def __init__(self, entity: str) -> None:
        super().__init__(entity)
        self.entity = entity

    def __str__(self) -> str:
        return f"Unsupported entity: {self.entity}"


class RecordNotFound(LookupError):
    def __init__(self, entity: str, record_id: int) -> None:
        super().__init__(f"{entity} {record_id} not found")
        self.entity = entity
        self.record_id = record_id

    @property
    def reason(self) -> str:
        return f"{self.entity.replace('_', ' ').capitalize()} not found"


class DeletionBlocked(Exception):
    """Live dependents exist under a guarded relationship."""

    def __init__(self, entity: str, record_id: int, counts: dict[str, int]) -> None:
        self.entity = entity
        self.record_id = record_id
        self.counts = {label: n for label, n in counts.items() if n > 0}
        super().__init__(self.message)

    @property
    def message(self) -> str:
        parts = ", ".join(f"{n} {label}" for label, n in self.counts.items())
        return f"Cannot delete {self.entity.replace('_', ' ')}: it still has {parts}"
