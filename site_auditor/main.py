from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from site_auditor.api_routers.v1 import api_router
from site_auditor.features.health.routes.health import router as health_router
from site_auditor.platform.config import settings
from site_auditor.platform.exceptions import add_exception_handlers

API_VERSION = "1.0.0"


def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.APP_NAME,
        description="AI-assisted technical SEO auditor: crawl, sitemap, robots.txt and ads.txt analysis",
        version=API_VERSION,
        debug=settings.DEBUG,
    )

    @app.get("/", tags=["Info"])
    def root():
        return {
            "app_name": settings.APP_NAME,
            "version": API_VERSION,
            "docs_url": "/docs",
            "api_base": "/api/v1",
        }

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    add_exception_handlers(app)

    app.include_router(health_router)
    app.include_router(api_router, prefix="/api/v1")
    return app


app = create_app()
