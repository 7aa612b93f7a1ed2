from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request
from fastapi.responses import RedirectResponse

from .config import Settings, get_settings
from .core.storage import FileStore, build_store
from .db import build_session_factory, create_schema
from .routers import admin, assignments, batches, courses, folders, imports, materials, users


def create_app(settings: Settings | None = None, store: FileStore | None = None) -> FastAPI:
    settings = settings or get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    session_factory = build_session_factory(settings.database_url)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        create_schema(session_factory)
        yield
        session_factory.kw["bind"].dispose()

    app = FastAPI(title=settings.app_name, lifespan=lifespan)
    app.state.settings = settings
    app.state.session_factory = session_factory
    app.state.store = store or build_store(settings)

    app.include_router(imports.router)
    app.include_router(users.router)
    app.include_router(batches.router)
    app.include_router(courses.router)
    app.include_router(folders.router)
    app.include_router(materials.router)
    app.include_router(assignments.router)
    app.include_router(admin.router)

    @app.get("/", include_in_schema=False)
    def home(request: Request):
        return RedirectResponse(url="/import")

    return app


app = create_app()
