import logging

from fastapi import FastAPI, Request

from app.core.cache import build_caches
from app.core.config import settings
from app.core.errors import register_error_handlers
from app.routers import bundle, scan

# Configure logging
logging.basicConfig(level=logging.INFO)
# httpx logs full request URLs at INFO; Alchemy URLs embed the API key
logging.getLogger("httpx").setLevel(logging.WARNING)
logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    app = FastAPI(title=settings.PROJECT_NAME)
    # Process-lifetime caches, one per expiry policy
    app.state.caches = build_caches(settings)
    register_error_handlers(app)
    app.include_router(scan.router)
    app.include_router(bundle.router)

    @app.get("/health")
    async def health(request: Request):
        return {"status": "ok", "caches": request.app.state.caches.sizes()}

    @app.get("/")
    async def root():
        return {"message": f"{settings.PROJECT_NAME} is running"}

    return app


app = create_app()
