import logging
from typing import Iterable

from classroom.core.storage import FileStore, StoredFile

logger = logging.getLogger(__name__)


def remove_remote_files(store: FileStore, refs: Iterable[StoredFile]) -> int:
    """
    Best-effort delete of each file from the remote store, one at a time.

    A failure is logged and counted, never raised: an orphaned remote file
    is acceptable, a database row that cannot be deleted is not.
    Returns the number of failed deletes.
    """
    failures = 0
    for ref in refs:
        try:
            result = store.delete(ref)
        except Exception:
            failures += 1
            logger.warning("remote cleanup failed for %s", ref.public_id, exc_info=True)
            continue
        logger.info("remote cleanup for %s: %s", ref.public_id, result)
    return failures
