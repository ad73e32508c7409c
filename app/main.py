import logging
import traceback
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse

from app.api.chat import router as chat_router
from app.core.config import settings, validate_settings_for_production
from app.core.dependencies import get_gateway
from app.core.exceptions import AppError, BadRequestError
from app.core.logging import setup_logging
from app.core.metrics import PrometheusMiddleware, metrics_response
from app.core.middleware import BodySizeLimitMiddleware, RequestLoggingMiddleware
from app.core.sentry import init_sentry
from app.gateway.gateway import GeminiGateway

# Configure logging before anything else
setup_logging()

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    validate_settings_for_production()
    init_sentry()

    # Raises ConfigurationError when no key is configured
    app.state.gateway = GeminiGateway.from_settings(settings)
    logger.info(
        "Gemini proxy ready: model=%s, %d credential(s)",
        settings.gemini_model,
        len(app.state.gateway.pool),
    )

    yield

    logger.info("Gemini proxy shut down")


app = FastAPI(
    title="Gemini Relay",
    description="Gemini generateContent proxy with API key failover",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs" if settings.app_debug else None,
    redoc_url="/redoc" if settings.app_debug else None,
)


@app.exception_handler(AppError)
async def _app_error_handler(request: Request, exc: AppError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_content())


@app.exception_handler(RequestValidationError)
async def _validation_error_handler(request: Request, exc: RequestValidationError):
    details = [{"loc": list(e.get("loc", ())), "msg": e.get("msg", "")} for e in exc.errors()]
    logger.info("Invalid body on %s %s: %s", request.method, request.url.path, details)
    err = BadRequestError("Invalid request body", details=details)
    return JSONResponse(status_code=err.status_code, content=err.to_content())


@app.exception_handler(Exception)
async def _unhandled_exception_handler(request: Request, exc: Exception):
    tb = traceback.format_exception(type(exc), exc, exc.__traceback__)
    logger.error("Unhandled %s on %s %s:\n%s", type(exc).__name__, request.method, request.url.path, "".join(tb))
    return JSONResponse(status_code=500, content={"error": "Internal proxy error"})


# Innermost first: the last middleware added wraps all the others
app.add_middleware(BodySizeLimitMiddleware, max_bytes=settings.max_body_bytes)
app.add_middleware(PrometheusMiddleware)
app.add_middleware(RequestLoggingMiddleware)

# CORS — parse allowed_origins from settings (comma-separated)
_origins = [o.strip() for o in settings.allowed_origins.split(",") if o.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=_origins,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(chat_router)


@app.get("/", response_class=PlainTextResponse)
async def root():
    return "Gemini proxy OK"


@app.get("/health")
async def health(request: Request):
    gateway = get_gateway(request)
    return {"status": "ok", **gateway.get_status()}


@app.get("/metrics", include_in_schema=False)
async def metrics():
    return metrics_response()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("app.main:app", host=settings.app_host, port=settings.app_port)
