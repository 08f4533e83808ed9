from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse

from taskboard.core.config import Settings, settings as default_settings
from taskboard.core.database import Database
from taskboard.core.errors import register_error_handlers
from taskboard.api import tasks, users


def create_app(settings: Settings | None = None, database: Database | None = None) -> FastAPI:
    settings = settings or default_settings
    database = database or Database(settings.database_url, echo=settings.debug)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Refuse to serve until the store is reachable.
        await database.connect()
        try:
            yield
        finally:
            await database.dispose()

    app = FastAPI(
        title=settings.app_name,
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.database = database

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.frontend_url],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_error_handlers(app)

    # Routers
    app.include_router(tasks.router)
    app.include_router(users.router)

    @app.get("/", response_class=PlainTextResponse)
    async def liveness():
        return settings.liveness_message

    @app.get("/api/health")
    async def health_check():
        return {"status": "ok"}

    return app


app = create_app()


def run() -> None:
    """Console entry point: configure logging and serve on the configured port."""
    import uvicorn

    from taskboard.core.logging_setup import setup_logging

    setup_logging(default_settings.log_level)
    uvicorn.run(app, host=default_settings.host, port=default_settings.port, log_config=None)
