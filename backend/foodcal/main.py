"""
Food Calorie API - FastAPI Main Entry

✅ LOCAL:
    cd backend
    cp .env.example .env   # then put your BAILIAN_API_KEY in it
    python -m uvicorn foodcal.main:app --reload --host 0.0.0.0 --port 3001

✅ TEST:
    curl -i http://127.0.0.1:3001/health
    curl -i http://127.0.0.1:3001/docs
    curl -i -X POST http://127.0.0.1:3001/api/analyze-image \\
        -H 'Content-Type: application/json' \\
        -d '{"imageBase64": "data:image/jpeg;base64,..."}'
"""

from typing import Optional

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from foodcal.api.middleware import (
    BodySizeLimitMiddleware,
    RequestLoggingMiddleware,
    analyze_error_handler,
    configure_logging,
    http_exception_handler,
    unhandled_exception_handler,
    validation_exception_handler,
)
from foodcal.api.routes_analyze import router as analyze_router
from foodcal.core.config import Settings, settings as default_settings
from foodcal.core.exceptions import AnalyzeError


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or default_settings
    configure_logging(settings.LOG_LEVEL)

    app = FastAPI(
        title="Food Calorie API",
        version=settings.APP_VERSION,
        description="Identify foods in a photo and estimate their nutrients",
    )

    # ✅ Middleware (last added runs first)
    app.add_middleware(BodySizeLimitMiddleware, max_bytes=settings.MAX_BODY_BYTES)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ✅ Errors are always {"error": message}
    app.add_exception_handler(AnalyzeError, analyze_error_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    # ✅ Root (GET /)
    @app.get("/")
    def root():
        return {
            "name": "Food Calorie API",
            "status": "ok",
            "docs": "/docs",
            "health": "/health",
            "version": "/version",
        }

    # ✅ Health Check (GET /health)
    @app.get("/health")
    def health():
        return {"ok": True}

    # ✅ Version endpoint (GET /version)
    @app.get("/version")
    def version():
        return {"version": settings.APP_VERSION, "build": settings.BUILD_ID}

    # ✅ Mount routers
    app.include_router(analyze_router)

    return app


app = create_app()
