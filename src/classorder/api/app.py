"""Classroom ordering FastAPI application.

One process serves one client device: the app owns a single ClassroomClient,
connects it to the shared store on startup and closes it on shutdown.

Usage:
    uvicorn --factory classorder.api.app:create_app --host 0.0.0.0 --port 8000
"""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from protean.integrations.fastapi import register_exception_handlers

from classorder import __version__
from classorder.client import ClassroomClient
from classorder.domain import classorder
from classorder.exceptions import AccessDenied, StoreUnavailableError

logger = structlog.get_logger(__name__)


def create_app(client: ClassroomClient | None = None) -> FastAPI:
    """Build the app around one client.

    Without ``client`` the domain is initialized and a client is configured from
    the environment. A caller passing its own client has initialized the domain.
    """
    if client is None:
        classorder.init()
        client = ClassroomClient.from_config()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        with classorder.domain_context():
            app.state.client.start()
        logger.info("client_started", state=app.state.client.state.value)
        yield
        app.state.client.close()

    app = FastAPI(
        title="Class Order API",
        description="Classroom food ordering: student carts, administrator controls and exports",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.client = client

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def domain_context_middleware(request: Request, call_next):
        """Push the Protean domain context for each request."""
        with classorder.domain_context():
            return await call_next(request)

    register_exception_handlers(app)

    @app.exception_handler(AccessDenied)
    async def access_denied_handler(request: Request, exc: AccessDenied):
        return JSONResponse(status_code=403, content={"error": str(exc)})

    @app.exception_handler(StoreUnavailableError)
    async def store_unavailable_handler(request: Request, exc: StoreUnavailableError):
        return JSONResponse(status_code=503, content={"error": str(exc)})

    from classorder.api.routes import admin_router, cart_router, query_router, session_router

    app.include_router(session_router)
    app.include_router(query_router)
    app.include_router(cart_router)
    app.include_router(admin_router)

    @app.get("/health")
    async def health():
        return JSONResponse(
            content={
                "status": "ok",
                "domain": classorder.name,
                "sync": app.state.client.state.value,
            }
        )

    return app
