import logging
from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from slowapi.errors import RateLimitExceeded
from sqlalchemy.exc import SQLAlchemyError

from lontario.core.config import settings
from lontario.core.database import check_db_connection
from lontario.core.errors import HiringError
from lontario.core.rate_limit import limiter
from lontario.routes.activity import router as activity_router
from lontario.routes.candidates import router as candidates_router
from lontario.routes.cron import router as cron_router
from lontario.routes.interviews import router as interviews_router
from lontario.routes.jobs import router as jobs_router

logger = logging.getLogger(__name__)

app = FastAPI(title="Lontario Hiring Pipeline")
logger.info(
    "Startup config: EMAIL_ENABLED=%s provider=%s AI_CONFIGURED=%s model=%s",
    settings.EMAIL_ENABLED,
    (settings.EMAIL_PROVIDER or "resend"),
    settings.ai_configured,
    settings.OPENAI_MODEL,
)

_ERROR_CODE_BY_STATUS: dict[int, str] = {
    400: "VALIDATION_ERROR",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "CONFLICT",
    422: "VALIDATION_ERROR",
    429: "RATE_LIMITED",
    500: "INTERNAL_ERROR",
    502: "UPSTREAM_ERROR",
    503: "SERVICE_UNAVAILABLE",
}


def _error_code(status_code: int) -> str:
    return _ERROR_CODE_BY_STATUS.get(int(status_code), "HTTP_ERROR")


@app.exception_handler(HiringError)
def hiring_error_handler(request: Request, exc: HiringError):  # noqa: ARG001
    if exc.status_code >= 500:
        logger.warning("Request failed: path=%s code=%s message=%s", request.url.path, exc.code, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


@app.exception_handler(HTTPException)
def http_exception_handler(request: Request, exc: HTTPException):  # noqa: ARG001
    detail = exc.detail
    message: str
    details: dict | None = None

    if isinstance(detail, str):
        message = detail
    elif isinstance(detail, dict):
        msg = detail.get("message")
        message = msg if isinstance(msg, str) and msg else "Request failed"
        det = detail.get("details")
        details = det if isinstance(det, dict) else None
    else:
        message = str(detail) if detail is not None else "Request failed"

    payload: dict = {"error": _error_code(exc.status_code), "message": message}
    if details:
        payload["details"] = details
    return JSONResponse(status_code=exc.status_code, content=payload)


@app.exception_handler(RequestValidationError)
def validation_exception_handler(request: Request, exc: RequestValidationError):  # noqa: ARG001
    return JSONResponse(
        status_code=422,
        content={
            "error": "VALIDATION_ERROR",
            "message": "Invalid request payload",
            "details": {"errors": jsonable_errors(exc)},
        },
    )


def jsonable_errors(exc: RequestValidationError) -> list[dict]:
    # pydantic puts the raw exception into ctx for custom validators; keep only what JSON can carry.
    out = []
    for err in exc.errors():
        item = {k: v for k, v in err.items() if k != "ctx"}
        if "ctx" in err:
            item["ctx"] = {k: str(v) for k, v in err["ctx"].items()}
        out.append(item)
    return out


if settings.ENABLE_RATE_LIMITING:
    app.state.limiter = limiter
    app.add_exception_handler(
        RateLimitExceeded,
        lambda request, exc: JSONResponse(  # noqa: ARG005
            status_code=429,
            content={"error": "RATE_LIMITED", "message": "Too many requests"},
        ),
    )

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(jobs_router)
app.include_router(candidates_router)
app.include_router(activity_router)
app.include_router(interviews_router)
app.include_router(cron_router)


@app.get("/health")
def health_check():
    try:
        check_db_connection()
        db_ok = True
    except SQLAlchemyError:
        logger.exception("Health check: database unreachable")
        db_ok = False
    return {"status": "ok" if db_ok else "degraded", "database": db_ok, "ai_configured": settings.ai_configured}
