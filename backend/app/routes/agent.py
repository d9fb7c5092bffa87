from __future__ import annotations

import logging

from fastapi import APIRouter, Request, Response
from fastapi.responses import JSONResponse

from agent.errors import AgentError, InvalidInput
from agent.pipeline import describe_failure, run_agent
from app.core.config import get_settings
from app.integrations.chat_llm import get_chat_llm_client
from app.integrations.composio import get_composio_client

router = APIRouter(prefix="/api", tags=["agent"])
logger = logging.getLogger(__name__)

PREFLIGHT_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
}


@router.post("/run-agent")
async def run_agent_route(request: Request):
    try:
        body = await request.json()
    except ValueError:
        return JSONResponse(
            status_code=400,
            content={
                "response": "Invalid request format. Please ensure you're sending valid JSON.",
                "success": False,
            },
        )
    if not isinstance(body, dict):
        return JSONResponse(
            status_code=400,
            content={"response": "Request body must be a JSON object.", "success": False},
        )

    settings = get_settings()
    try:
        result = await run_agent(
            body.get("instruction"),
            body.get("app"),
            body.get("entityId"),
            connector=get_composio_client(),
            llm=get_chat_llm_client(),
            settings=settings,
        )
    except InvalidInput as exc:
        return JSONResponse(
            status_code=400,
            content={"response": exc.message, "success": False, "receivedKeys": sorted(body)},
        )
    except Exception as exc:
        if isinstance(exc, AgentError):
            logger.warning("run_agent_route_failed app=%s code=%s", body.get("app"), exc.code)
        else:
            logger.exception("run_agent_route_failed app=%s", body.get("app"))
        content = {"response": describe_failure(exc), "success": False}
        if settings.is_development:
            content["error"] = str(exc)
        return JSONResponse(status_code=500, content=content)

    content = {"response": result.response, "success": result.success}
    if result.needs_clarification:
        content["needs_clarification"] = True
    return content


@router.options("/run-agent")
async def run_agent_preflight():
    return Response(status_code=200, headers=PREFLIGHT_HEADERS)
