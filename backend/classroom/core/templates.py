from __future__ import annotations

from pathlib import Path

from fastapi.templating import Jinja2Templates

# Base paths
BASE = Path(__file__).resolve().parents[1]
TEMPLATES_DIR = BASE / "templates"

templates = Jinja2Templates(directory=str(TEMPLATES_DIR))


def import_headers(kind: str) -> list[str]:
    # lazy import: the importer registry pulls in the ORM models
    from ..services.importers import get_importer

    importer = get_importer(kind)
    return list(importer.required_headers) + list(importer.optional_headers)


templates.env.globals.update(import_headers=import_headers)
