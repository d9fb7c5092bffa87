from __future__ import annotations

import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from agent.action_catalog import connector_app_name, list_supported_apps
from agent.errors import AgentError
from agent.pipeline import check_connection, find_active_connection
from app.core.config import get_settings
from app.integrations.composio import get_composio_client

router = APIRouter(prefix="/api", tags=["connections"])
logger = logging.getLogger(__name__)


def _split_slug(slug: str) -> tuple[str, str]:
    parts = [part.strip() for part in (slug or "").split("/") if part.strip()]
    user_id = parts[0] if len(parts) > 0 else ""
    app = parts[1] if len(parts) > 1 else ""
    return user_id, app


def _connect_error_message(detail: str) -> str:
    lower = (detail or "").lower()
    if "not found" in lower:
        return "App not found. Please ensure the app is enabled in your connector dashboard."
    if "unauthorized" in lower or "api_key" in lower:
        return "Invalid API key. Please check your connector API key."
    return detail or "Failed to connect app"


@router.get("/apps")
async def supported_apps():
    return {"apps": list_supported_apps()}


@router.get("/check-connection/{slug:path}")
@router.get("/check-connect-app/{slug:path}", include_in_schema=False)
async def check_connection_status(slug: str):
    user_id, app = _split_slug(slug)
    if not user_id or not app:
        return JSONResponse(status_code=400, content={"error": "Missing parameters", "connected": False})

    try:
        connected = await check_connection(user_id, app, client=get_composio_client())
    except Exception:
        logger.exception("check_connection_error user=%s app=%s", user_id, app)
        connected = False
    return {"connected": connected, "app": app.lower(), "userId": user_id}


@router.get("/connect-app/{slug:path}")
async def connect_app(slug: str):
    user_id, app = _split_slug(slug)
    if not user_id or not app:
        return JSONResponse(
            status_code=400,
            content={"error": "Missing userId or app parameter", "connected": False},
        )

    settings = get_settings()
    client = get_composio_client()
    try:
        existing = await find_active_connection(user_id, app, client=client)
        if existing:
            logger.info("connect_app_already_connected user=%s app=%s", user_id, app)
            return {"connected": True, "message": "App already connected", "connectionId": existing.id}

        redirect_url = f"{settings.frontend_url.rstrip('/')}{settings.connection_redirect_path}"
        request = await client.initiate_connection(user_id, connector_app_name(app), redirect_url)
    except AgentError as exc:
        logger.warning("connect_app_failed user=%s app=%s code=%s", user_id, app, exc.code)
        return JSONResponse(
            status_code=500,
            content={
                "error": _connect_error_message(exc.message),
                "details": exc.message,
                "connected": False,
            },
        )

    logger.info("connect_app_initiated user=%s app=%s connection=%s", user_id, app, request.connection_id)
    return {
        "connected": False,
        "redirectUrl": request.redirect_url,
        "connectionId": request.connection_id,
        "message": "Please complete authentication in the opened window",
    }
