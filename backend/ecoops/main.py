import logging
from contextlib import asynccontextmanager
from datetime import timedelta

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ecoops.config import Settings, get_settings
from ecoops.api.routes import game, history, text_scenarios
from ecoops.api.routes.text_scenarios import INVALID_LEVEL, MALFORMED_REQUEST
from ecoops.database import build_engine, build_session_maker, create_tables
from ecoops.exceptions import InvalidRequestError, UpstreamError
from ecoops.services.history_store import HistoryStore, SqlAlchemyHistoryStore
from ecoops.services.session import SessionRegistry
from ecoops.services.text_generator import TextGenerator

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
    )


def create_app(
    settings: Settings | None = None,
    text_generator: TextGenerator | None = None,
    history_store: HistoryStore | None = None,
    sessions: SessionRegistry | None = None,
) -> FastAPI:
    """Build the API. Collaborators left as None are built from settings at startup."""
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(settings.log_level)

        # Fail fast on a missing credential instead of failing per request
        app.state.text_generator = text_generator or TextGenerator(settings)

        engine = None
        if history_store is None:
            engine = build_engine(settings.database_url)
            await create_tables(engine)
            app.state.history_store = SqlAlchemyHistoryStore(build_session_maker(engine))
        else:
            app.state.history_store = history_store

        registry = sessions
        if registry is None:
            registry = SessionRegistry(
                max_sessions=settings.max_game_sessions,
                ttl=timedelta(minutes=settings.session_ttl_minutes),
            )
        app.state.sessions = registry
        logger.info("EcoOps started (text provider: %s)", settings.text_provider)
        yield

        if engine is not None:
            await engine.dispose()

    app = FastAPI(
        title="EcoOps",
        description="Controlled-environment agriculture diagnostic training game",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.settings = settings

    cors_origins = [
        settings.frontend_url,
        "http://localhost:5173",
    ]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(InvalidRequestError)
    async def invalid_request_handler(request: Request, exc: InvalidRequestError):
        return JSONResponse(status_code=400, content={"error": exc.message})

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        # Same one-line 400 as InvalidRequestError instead of pydantic's error list
        errors = exc.errors()
        loc = errors[0].get("loc", ()) if errors else ()
        message = INVALID_LEVEL if "level" in loc else MALFORMED_REQUEST
        logger.info("Rejected %s request: %s", request.url.path, errors)
        return JSONResponse(status_code=400, content={"error": message})

    @app.exception_handler(UpstreamError)
    async def upstream_error_handler(request: Request, exc: UpstreamError):
        return JSONResponse(status_code=500, content={"error": exc.public_message})

    # Include routers
    app.include_router(text_scenarios.router, tags=["Text Generation"])
    app.include_router(game.router, prefix="/api/game", tags=["Game"])
    app.include_router(history.router, prefix="/api/history", tags=["History"])

    @app.get("/ping")
    async def ping():
        return {"pong": True}

    @app.get("/health")
    async def health_check():
        return {"status": "healthy", "service": "EcoOps"}

    return app


app = create_app()
