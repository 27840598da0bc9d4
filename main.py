import uvicorn
import time
import logging
from typing import Optional

from fastapi import FastAPI, Request
from starlette.middleware.base import BaseHTTPMiddleware

from bugregistry.api.bugs import router as bugs_router
from bugregistry.api.occurrences import router as occurrences_router
from bugregistry.api.stats import router as stats_router
from bugregistry.core.config import LOG_LEVEL
from bugregistry.services.dedup_engine import DedupEngine, build_engine
from bugregistry.utils.logging_config import setup_logging

logger = logging.getLogger("main")


# ---------------------------------------------------------------------------
# Logging Middleware
# ---------------------------------------------------------------------------
class LoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        start_time = time.time()
        client_host = request.client.host if request.client else "unknown"
        logger.info("Incoming: %s %s from %s", request.method, request.url.path, client_host)

        try:
            response = await call_next(request)
            process_time = (time.time() - start_time) * 1000
            logger.info(
                "Outgoing: %s %s - Status: %d - Time: %.2fms",
                request.method, request.url.path, response.status_code, process_time,
            )
            return response
        except Exception as e:
            logger.error("Request failed: %s %s - %s", request.method, request.url.path, e, exc_info=True)
            raise


def create_app(engine: Optional[DedupEngine] = None) -> FastAPI:
    """Build the triage API around one engine instance."""
    app = FastAPI(title="Simulation Bug Registry API")
    app.state.engine = engine if engine is not None else build_engine()

    app.add_middleware(LoggingMiddleware)

    @app.get("/health")
    async def health_check():
        return {"status": "ok"}

    app.include_router(occurrences_router)
    app.include_router(bugs_router)
    app.include_router(stats_router)
    return app


setup_logging(level=logging.getLevelName(LOG_LEVEL))
app = create_app()

if __name__ == "__main__":
    uvicorn.run("main:app", host="127.0.0.1", port=8000, reload=True)
