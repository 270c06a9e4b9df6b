from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from typing import Optional
import logging

from fitplan.api.api_ai import PlanGenerationClient, PlanSuggestionClient, router as ai_router
from fitplan.api.routes import plans, session as session_routes
from fitplan.infra.Document_Store import HttpDocumentStore, JsonFileDocumentStore
from fitplan.infra.Local_Cache import LocalCache
from fitplan.infra.paths import CACHE_FILE, STORE_FILE, SEED_FILE
from fitplan.logic.session import PlanSession
from fitplan.utilities.config import DOCUMENT_STORE_URL, DOCUMENT_STORE_TOKEN, DOCUMENT_STORE_TIMEOUT
from fitplan.utilities.constants import PLAN_KINDS
from fitplan.utilities.errors import (
    FitplanError, ValidationError, TransportFailure, GenerationFailure, NotFound,
)
from fitplan.utilities.export_import import DataImporter

# Logging
logger = logging.getLogger("fitplan_app")

# error class -> HTTP status (first match wins, subclasses first)
ERROR_STATUS = (
    (ValidationError, 422),
    (NotFound, 404),
    (GenerationFailure, 502),
    (TransportFailure, 503),
)


def build_default_session() -> PlanSession:
    """Session wired from configuration: HTTP document store if configured, else a local JSON file."""
    if DOCUMENT_STORE_URL:
        store = HttpDocumentStore(DOCUMENT_STORE_URL, token=DOCUMENT_STORE_TOKEN, timeout=DOCUMENT_STORE_TIMEOUT)
    else:
        store = JsonFileDocumentStore(STORE_FILE)
    generators = {kind: PlanGenerationClient(kind) for kind in PLAN_KINDS}
    return PlanSession(LocalCache(CACHE_FILE), generators, document_store=store, suggester=PlanSuggestionClient())


def create_app(session: Optional[PlanSession] = None) -> FastAPI:
    app = FastAPI(title="FitPlan API")
    app.state.session = session

    @app.on_event("startup")
    async def _startup_session():
        """Build (if needed) and load the session when the app starts."""
        seed_local_file = False
        if app.state.session is None:
            # first run without a remote store: fill the local document file with the catalogue
            seed_local_file = not DOCUMENT_STORE_URL and not STORE_FILE.exists()
            app.state.session = build_default_session()
        try:
            if seed_local_file:
                await DataImporter(app.state.session.document_store).import_file(SEED_FILE)
            await app.state.session.start()
            logger.info("Plan session loaded")
        except FitplanError as e:
            # Stores stay empty; POST /api/plans/{kind}/reload retries
            logger.error("Failed to load plan session: %s", e)

    @app.on_event("shutdown")
    async def _shutdown_session():
        if app.state.session is not None:
            await app.state.session.close()

    @app.exception_handler(FitplanError)
    async def _fitplan_error(request: Request, exc: FitplanError):
        status = next((code for cls, code in ERROR_STATUS if isinstance(exc, cls)), 500)
        if status >= 500:
            logger.warning("%s %s failed: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=status, content={"error": str(exc), "kind": exc.kind})

    # Include routers
    app.include_router(ai_router)
    app.include_router(session_routes.router)
    app.include_router(plans.router)
    return app


app = create_app()
