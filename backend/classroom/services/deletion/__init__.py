from .cleanup import remove_remote_files
from .policies import POLICIES, Policy, Relation
from .service import BulkDeleteReport, DeleteResult, DeletionService, DependencyCount

__all__ = [
    "POLICIES",
    "BulkDeleteReport",
    "DeleteResult",
    "DeletionService",
    "DependencyCount",
    "Policy",
    "Relation",
    "remove_remote_files",
]
