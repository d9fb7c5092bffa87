import logging
import uuid
import json

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.core.config import get_settings
from app.routes.agent import router as agent_router
from app.routes.connections import router as connections_router

settings = get_settings()
logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s %(message)s")
logger = logging.getLogger("lazya-backend")

app = FastAPI(title="lazya backend", version="0.1.0")


def _normalize_origin(value: str) -> str:
    # Accept env values with quotes/brackets/trailing slash.
    return value.strip().strip("\"'").rstrip("/")


def _parse_allowed_origins(raw: str, fallback_frontend_url: str) -> list[str]:
    text = (raw or "").strip()
    parsed: list[str] = []

    # 1) JSON array form: ["https://a.com","https://b.com"]
    if text.startswith("[") and text.endswith("]"):
        try:
            items = json.loads(text)
            if isinstance(items, list):
                parsed.extend(str(item) for item in items if isinstance(item, str))
        except json.JSONDecodeError:
            logger.warning("allowed_origins is not valid JSON, falling back to comma form")

    # 2) Comma/newline separated form.
    if not parsed:
        normalized_text = text.strip("[]").replace("\n", ",")
        parsed.extend(part for part in normalized_text.split(",") if part.strip())

    # 3) Ensure frontend_url is always included.
    if fallback_frontend_url:
        parsed.append(fallback_frontend_url)

    origins: list[str] = []
    seen: set[str] = set()
    for item in parsed:
        origin = _normalize_origin(item)
        if not origin or origin in seen:
            continue
        seen.add(origin)
        origins.append(origin)
    return origins


origins = _parse_allowed_origins(settings.allowed_origins, settings.frontend_url)
logger.info("cors_allowed_origins=%s", origins)

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
async def report_upstream_config() -> None:
    logger.info(
        "upstream_config composio_key_set=%s llm_key_set=%s llm_model=%s env=%s",
        bool(settings.composio_api_key),
        bool(settings.llm_api_key),
        settings.llm_model,
        settings.app_env,
    )


@app.middleware("http")
async def add_request_id(request: Request, call_next):
    request_id = str(uuid.uuid4())
    request.state.request_id = request_id
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    request_id = getattr(request.state, "request_id", "unknown")
    logger.warning("http_error request_id=%s path=%s detail=%s", request_id, request.url.path, exc.detail)
    message = exc.detail if isinstance(exc.detail, str) else "The request could not be processed."
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": {"message": message, "request_id": request_id}},
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    request_id = getattr(request.state, "request_id", "unknown")
    logger.exception("unhandled_error request_id=%s path=%s", request_id, request.url.path)
    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "message": "Internal server error. Please try again shortly.",
                "request_id": request_id,
            }
        },
    )


@app.get("/api/health")
async def health_check():
    return {"status": "ok"}


app.include_router(connections_router)
app.include_router(agent_router)
