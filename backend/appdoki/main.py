import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from appdoki.api.v1 import api_router
from appdoki.config import get_settings
from appdoki.core.exceptions import AuthFlowError
from appdoki.core.logging import setup_logging
from appdoki.db.database import engine
from appdoki.services.google_oauth import GoogleProviderClient
from appdoki.services.notifier import InMemoryBroker, NewUserNotifier

settings = get_settings()
setup_logging(settings.log_level)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Built once; read-only for the lifetime of the process
    app.state.provider_client = GoogleProviderClient(settings)
    app.state.broker = InMemoryBroker()
    app.state.new_user_notifier = NewUserNotifier(app.state.broker)
    yield
    await app.state.new_user_notifier.drain()
    await engine.dispose()


app = FastAPI(title=settings.app_name, lifespan=lifespan)

if settings.frontend_url:
    cors_origins = ["*"] if settings.debug else [settings.frontend_url]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


@app.exception_handler(AuthFlowError)
async def auth_flow_error_handler(request: Request, exc: AuthFlowError) -> Response:
    # Callers only ever see an empty 500; the kind is for operators
    logger.warning(f"Auth flow failed on {request.url.path}: {exc.kind}: {exc}")
    return Response(status_code=500)


app.include_router(api_router, prefix=settings.api_prefix)


@app.get("/health")
async def health_check():
    return JSONResponse(content={"status": "ok"}, status_code=200)


def main() -> None:
    """Run the API with uvicorn."""
    logger.info(f"Starting {settings.app_name} on {settings.host}:{settings.port}")
    uvicorn.run(
        "appdoki.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
