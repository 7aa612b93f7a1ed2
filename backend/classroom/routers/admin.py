from fastapi import APIRouter, Depends, HTTPException

from ..deps import bulk_delete_or_raise, delete_or_raise, get_deletion_service
from ..errors import RecordNotFound, UnknownEntity
from ..schemas import BulkDeleteRequest
from ..services.deletion import DeletionService

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/{entity}/{record_id}/dependencies")
def delete_preview(entity: str, record_id: int, service: DeletionService = Depends(get_deletion_service)):
    """What a delete would hit: guard counts that block it and children it would take along."""
    try:
        return service.preview(entity, record_id)
    except UnknownEntity as e:
        raise HTTPException(status_code=404, detail=str(e))
    except RecordNotFound as e:
        raise HTTPException(status_code=404, detail=e.reason)


@router.delete("/{entity}/{record_id}")
def delete_record(entity: str, record_id: int, service: DeletionService = Depends(get_deletion_service)):
    return delete_or_raise(service, entity, record_id)


@router.post("/{entity}/bulk-delete")
def bulk_delete(entity: str, payload: BulkDeleteRequest, service: DeletionService = Depends(get_deletion_service)):
    return bulk_delete_or_raise(service, entity, payload.ids)
