import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from palace3d.api.routes import router
from palace3d.core.logger import setup_logging
from palace3d.core.settings import ensure_directories, settings

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    setup_logging(settings.log_level)
    ensure_directories()

    app = FastAPI(title=settings.app_name, version="0.1.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(router)
    app.mount("/models", StaticFiles(directory=str(settings.models_dir)), name="models")

    @app.get("/")
    def health():
        return {"ok": True, "service": settings.app_name}

    @app.on_event("startup")
    async def startup() -> None:
        logger.info(f"{settings.app_name} ready, models in {settings.models_dir.resolve()}")

    return app


app = create_app()
