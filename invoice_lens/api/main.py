from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from ..core.config import settings
from ..core.errors import InvoiceLensError
from ..core.logging import setup_logging
from ..services.chat import ChatService
from ..services.document_pipeline import DocumentPipeline
from ..services.storage.history import HistoryStore
from ..services.storage.result_cache import ResultCache
from .routers import health, history, invoice

logger = setup_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting", app=settings.app_name, env=settings.app_env, model=settings.ollama_model)
    yield
    # Session state does not outlive the process
    app.state.history.clear()
    app.state.cache.clear()
    logger.info("Session history cleared")


def create_app() -> FastAPI:
    app = FastAPI(title="Invoice Lens", lifespan=lifespan)

    # Session-scoped state, owned by the app instance
    app.state.history = HistoryStore()
    app.state.cache = ResultCache(settings.result_cache_ttl_seconds)
    app.state.pipeline = DocumentPipeline(app.state.history, cache=app.state.cache)
    app.state.chat = ChatService()

    @app.exception_handler(InvoiceLensError)
    async def invoice_lens_exception_handler(request: Request, exc: InvoiceLensError):
        logger.error("Request failed", path=request.url.path, error=exc.message, details=exc.details)
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.message, "retryable": exc.retryable, "details": exc.details},
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        logger.error("Validation error", errors=str(exc.errors()))
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={"detail": jsonable_encoder(exc.errors())},
        )

    # CORS_ORIGINS can be set in .env as comma-separated list
    allowed_origins = [origin.strip() for origin in settings.cors_origins.split(",")]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health.router)
    app.include_router(invoice.router)
    app.include_router(history.router)
    return app


app = create_app()
