import logging

from fastapi import APIRouter, Depends, File, HTTPException, Path, Request, UploadFile
from fastapi.responses import HTMLResponse, JSONResponse
from sqlalchemy.orm import Session

from ..config import Settings
from ..core.templates import templates
from ..db import get_db
from ..deps import get_app_settings
from ..errors import UnknownEntity
from ..services.importers import KINDS, import_csv

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/import", tags=["import"])


@router.get("", response_class=HTMLResponse)
def import_page(request: Request, settings: Settings = Depends(get_app_settings)):
    return templates.TemplateResponse(
        request,
        "import.html",
        {"kinds": KINDS, "max_rows": settings.max_import_rows},
    )


@router.post("/{kind}")
def import_csv_file(
    kind: str = Path(..., pattern="^(user|users|enrollment|enrollments|grade|grades)$"),
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
):
    if file.filename and not file.filename.lower().endswith(".csv"):
        raise HTTPException(status_code=400, detail="File must be a CSV file")
    raw = file.file.read()

    try:
        report = import_csv(kind, raw, db, settings)
    except UnknownEntity as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception:
        logger.exception("%s import failed", kind)
        raise HTTPException(status_code=500, detail="Internal server error during bulk upload")

    return JSONResponse(report.as_dict(), status_code=200 if report.ok else 400)
