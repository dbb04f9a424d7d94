import logging

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text

from pairwatch.config import settings
from pairwatch.database import engine
from pairwatch.errors import PairingError, StoreUnavailable
from pairwatch.log import configure_logging
from pairwatch.routers import pairings, watchlist

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    configure_logging(settings.log_level)
    application = FastAPI(title="Pairwatch API")

    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    application.include_router(pairings.router)
    application.include_router(watchlist.router)

    @application.exception_handler(PairingError)
    def handle_pairing_error(request: Request, exc: PairingError) -> JSONResponse:
        if isinstance(exc, StoreUnavailable):
            logger.error(
                "Store unavailable on %s %s: %r",
                request.method,
                request.url.path,
                exc.__cause__,
            )
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})

    @application.get("/health")
    def health():
        try:
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return {"status": "healthy"}
        except Exception:
            return JSONResponse(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                content={"status": "unhealthy"},
            )

    return application


app = create_app()
