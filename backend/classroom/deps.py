import logging

from fastapi import Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from .config import Settings
from .core.storage import FileStore
from .db import get_db
from .errors import DeletionBlocked, RecordNotFound, UnknownEntity
from .services.deletion import DeletionService

logger = logging.getLogger(__name__)


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_store(request: Request) -> FileStore:
    return request.app.state.store


def get_deletion_service(db: Session = Depends(get_db), store: FileStore = Depends(get_store)) -> DeletionService:
    return DeletionService(db, store)


def signed_url(store: FileStore, row) -> str | None:
    ref = row.stored_file()
    if ref is None:
        return row.file_url
    return store.sign(ref)


def delete_or_raise(service: DeletionService, entity: str, record_id: int) -> dict:
    """Run one policy-driven delete and map its failures onto HTTP errors."""
    try:
        return service.delete(entity, record_id).as_dict()
    except UnknownEntity as e:
        raise HTTPException(status_code=404, detail=str(e))
    except RecordNotFound as e:
        raise HTTPException(status_code=404, detail=e.reason)
    except DeletionBlocked as e:
        raise HTTPException(status_code=400, detail={"message": e.message, "blocking": e.counts})
    except Exception:
        logger.exception("delete of %s %s failed", entity, record_id)
        raise HTTPException(status_code=500, detail=f"Could not delete {entity.replace('_', ' ')}")


def bulk_delete_or_raise(service: DeletionService, entity: str, record_ids: list[int]) -> JSONResponse:
    try:
        report = service.bulk_delete(entity, record_ids)
    except UnknownEntity as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception:
        logger.exception("bulk delete of %s failed", entity)
        raise HTTPException(status_code=500, detail="Internal server error during bulk delete")
    return JSONResponse(report.as_dict(), status_code=200 if report.deleted else 400)
