from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic_settings import BaseSettings
from contextlib import asynccontextmanager
from typing import Optional
import logging

from routers.api import router as api_router
from schemas import AppHealthOK
from core.service_manager import service_manager
from core.config_loader import config_loader
from core.errors import StoreError

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    app_name: str = "Realtime Dashboard API"
    debug: bool = False
    log_level: str = "INFO"
    # Overrides database_path from config/dashboard_config.json when set
    database_path: Optional[str] = None
    # Periodic sample data; can be overridden by environment variable or config file
    generator_enabled: bool = config_loader.get_generator_enabled()
    cors_origins: list[str] = ["*"]


settings = Settings()

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)

if settings.database_path:
    service_manager.configure(settings.database_path)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application startup/shutdown without deprecated on_event."""
    logger.info(
        "Starting background services (sample data %s)", "on" if settings.generator_enabled else "off"
    )
    await service_manager.start_services(generator=settings.generator_enabled)
    try:
        yield
    finally:
        logger.info("Stopping background services")
        service_manager.stop_services()
        await service_manager.data_generator.join()


app = FastAPI(title=settings.app_name, debug=settings.debug, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(StoreError)
async def store_error_handler(request: Request, exc: StoreError) -> JSONResponse:
    logger.error(f"Store error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content={"detail": f"Store error: {exc}"})


@app.get("/", tags=["meta"])
async def read_root() -> dict[str, str]:
    return {"message": settings.app_name}


@app.get("/health", tags=["meta"], response_model=AppHealthOK)
async def healthcheck() -> AppHealthOK:
    return AppHealthOK(status="ok", app=settings.app_name)


# mount API router under /api
app.include_router(api_router, prefix="/api")
logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
