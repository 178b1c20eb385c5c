import os
from contextlib import asynccontextmanager

import structlog
from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from commission_calc.core.errors import CommissionError
from commission_calc.core.log_config import setup_logging
from commission_calc.infrastructure import client_from_env, configure_llm_client, is_llm_configured
from commission_calc.routes import calculate, commission, rules

logger = structlog.get_logger(__name__)


def _error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse({"error": True, "message": message}, status_code=status_code)


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    detail = str(first.get("msg") or "Invalid request")
    return f"{location}: {detail}" if location else detail


def create_app() -> FastAPI:
    load_dotenv()
    setup_logging(
        os.getenv("LOG_LEVEL", "INFO"),
        json_format=os.getenv("LOG_JSON", "").strip().lower() in {"1", "true", "yes"},
    )

    client = client_from_env()
    if client is not None:
        configure_llm_client(client)
    logger.info("model backend", configured=is_llm_configured(), provider=getattr(client, "provider", None))

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        if client is not None:
            await client.aclose()
            logger.info("model backend closed", provider=client.provider)

    app = FastAPI(title="Commission Calculator API", version="0.1.0", lifespan=lifespan)

    origins_env = os.getenv("API_CORS_ORIGINS", "")
    origins = [origin.strip() for origin in origins_env.split(",") if origin.strip()]
    if not origins:
        origins = ["http://localhost:3000", "http://127.0.0.1:3000"]

    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(CommissionError)
    async def handle_commission_error(request: Request, exc: CommissionError) -> JSONResponse:
        status_code = exc.status_code or 500
        if status_code >= 500:
            logger.error("request failed", path=request.url.path, status=status_code, message=exc.message)
        return _error_response(status_code, exc.message)

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return _error_response(exc.status_code, str(exc.detail))

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        return _error_response(400, _validation_message(exc))

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("unhandled error", path=request.url.path)
        return _error_response(500, str(exc) or "Unknown error")

    app.include_router(rules.router, prefix="/api")
    app.include_router(commission.router, prefix="/api")
    app.include_router(calculate.router, prefix="/api")

    @app.get("/health")
    async def health() -> dict:
        return {"ok": True, "model_configured": is_llm_configured()}

    @app.get("/", include_in_schema=False)
    async def root() -> JSONResponse:
        """Provide a lightweight landing page for container checks."""
        return JSONResponse(
            {
                "message": "Commission Calculator API",
                "docs": "/docs",
                "health": "/health",
            }
        )

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("commission_calc.app:app", host=os.getenv("HOST", "127.0.0.1"), port=int(os.getenv("PORT", "8000")))
