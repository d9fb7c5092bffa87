from __future__ import annotations

import asyncio
import logging
from typing import Any, Protocol

from agent.action_catalog import connector_app_name, normalize_app
from agent.action_executor import execute_action
from agent.action_resolver import resolve_action
from agent.errors import (
    ActionNotFound,
    AgentError,
    AuthenticationRequired,
    DeadlineExceeded,
    ExtractionFailed,
    InvalidInput,
    MissingRequiredParameters,
    RecipientInvalid,
    SchemaUnavailable,
    UpstreamUnavailable,
)
from agent.param_extractor import ChatCompleter, extract_parameters
from agent.response_synth import fallback_confirmation, synthesize_response
from agent.schema_fetcher import fetch_action_schema
from agent.types import AgentRunResult, Connection


logger = logging.getLogger("lazya-backend.pipeline")

INSTRUCTION_LOG_CHARS = 80


class ConnectorClient(Protocol):
    async def list_connections(self, user_id: str) -> list[Connection]: ...

    async def search_actions(self, query: str, app: str) -> list[dict[str, Any]]: ...

    async def describe_action(self, action_id: str, user_id: str) -> dict[str, Any]: ...

    async def execute_action(self, user_id: str, action_id: str, params: dict[str, Any]) -> dict[str, Any]: ...


def _excerpt(text: str) -> str:
    text = (text or "").strip().replace("\n", " ")
    if len(text) <= INSTRUCTION_LOG_CHARS:
        return text
    return text[:INSTRUCTION_LOG_CHARS] + "..."


def _require_text(value: Any, field_name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise InvalidInput(f"Missing or invalid '{field_name}' parameter.")
    return value.strip()


def not_connected_message(app: str) -> str:
    return f"You have not connected the {connector_app_name(app)} app. Please connect it first using the settings modal."


async def find_active_connection(user_id: str, app: str, *, client: ConnectorClient) -> Connection | None:
    target = normalize_app(app)
    connections = await client.list_connections(user_id)
    logger.info("connections_listed user=%s count=%s", user_id, len(connections))
    for connection in connections:
        if connection.application_name.strip().lower() == target and connection.is_active:
            return connection
    return None


async def check_connection(user_id: str, app: str, *, client: ConnectorClient) -> bool:
    """Connection check used by both the UI polling route and the pipeline.

    Upstream errors read as "not connected" so a transient failure never
    breaks the caller.
    """
    try:
        return await find_active_connection(user_id, app, client=client) is not None
    except AgentError as exc:
        logger.warning("connection_check_failed user=%s app=%s error=%s", user_id, app, exc.code)
        return False


def describe_failure(exc: BaseException) -> str:
    """One user-facing sentence for a failed run, most specific match first."""
    message = exc.message if isinstance(exc, AgentError) else str(exc)
    lower = message.lower()
    if isinstance(exc, MissingRequiredParameters) or "missing required" in lower:
        return message
    if isinstance(exc, (RecipientInvalid, AuthenticationRequired, InvalidInput)):
        return message
    if isinstance(exc, ActionNotFound):
        return "I couldn't determine which action to perform. Please be more specific."
    if isinstance(exc, DeadlineExceeded):
        return "The request took too long to complete. Please try again."
    if "api key" in lower or "api_key" in lower:
        return "Something went wrong: invalid API key configuration."
    if isinstance(exc, ExtractionFailed):
        return "I failed to process the request. Please try rephrasing."
    if isinstance(exc, SchemaUnavailable):
        return "I couldn't load the details for that action. Please try again."
    if "authentication" in lower or "unauthorized" in lower:
        return "Authentication error. Please reconnect your account."
    if isinstance(exc, UpstreamUnavailable):
        return "A connected service is temporarily unavailable. Please try again shortly."
    if isinstance(exc, AgentError) and message:
        return message
    return "Something went wrong. Please try again."


async def run_agent(
    instruction: str,
    app: str,
    user_id: str,
    *,
    connector: ConnectorClient,
    llm: ChatCompleter,
    settings: Any,
) -> AgentRunResult:
    """Run one instruction end to end.

    The request deadline bounds every stage up to and including execution.
    Synthesis only gets whatever budget is left and falls back to a plain
    confirmation when it runs out, since the action has already happened.
    """
    instruction = _require_text(instruction, "instruction")
    app = _require_text(app, "app")
    user_id = _require_text(user_id, "entityId")

    budget = float(getattr(settings, "agent_request_timeout_seconds", 0) or 0)
    deadline_at = asyncio.get_running_loop().time() + budget if budget > 0 else None
    try:
        async with asyncio.timeout_at(deadline_at):
            outcome = await _run_action_stages(
                instruction, app, user_id, connector=connector, llm=llm, settings=settings
            )
    except TimeoutError as exc:
        logger.warning("run_agent_deadline_exceeded app=%s instruction=%s", app, _excerpt(instruction))
        raise DeadlineExceeded(f"Request exceeded the {budget:g}s deadline") from exc

    if isinstance(outcome, AgentRunResult):
        return outcome
    action_id, result = outcome
    message = await _summarize(instruction, action_id, result, llm=llm, settings=settings, deadline_at=deadline_at)
    return AgentRunResult(success=True, response=message, stage="synthesize_response", action_id=action_id)


async def _run_action_stages(
    instruction: str,
    app: str,
    user_id: str,
    *,
    connector: ConnectorClient,
    llm: ChatCompleter,
    settings: Any,
) -> AgentRunResult | tuple[str, dict[str, Any]]:
    stage = "check_connection"
    action_id: str | None = None
    try:
        if not await check_connection(user_id, app, client=connector):
            logger.info("run_agent_not_connected user=%s app=%s", user_id, app)
            return AgentRunResult(success=False, response=not_connected_message(app), stage=stage)

        stage = "resolve_action"
        action_id = await resolve_action(app, instruction, client=connector)

        stage = "fetch_schema"
        schema = await fetch_action_schema(action_id, user_id, client=connector)

        stage = "extract_parameters"
        extraction = await extract_parameters(
            instruction,
            schema,
            llm=llm,
            max_attempts=settings.extraction_max_attempts,
            retry_delay_seconds=settings.extraction_retry_delay_seconds,
            temperature=settings.llm_extraction_temperature,
            max_tokens=settings.llm_extraction_max_tokens,
        )
        if not extraction.understood:
            logger.info("run_agent_needs_clarification action=%s", action_id)
            return AgentRunResult(
                success=True,
                response=extraction.clarifying_question or "",
                stage=stage,
                action_id=action_id,
                needs_clarification=True,
            )

        stage = "execute_action"
        result = await execute_action(user_id, action_id, extraction.parameters or {}, client=connector)
    except AgentError as exc:
        logger.warning(
            "run_agent_failed stage=%s action=%s code=%s instruction=%s",
            stage,
            action_id,
            exc.code,
            _excerpt(instruction),
        )
        raise
    return action_id, result


async def _summarize(
    instruction: str,
    action_id: str,
    result: dict[str, Any],
    *,
    llm: ChatCompleter,
    settings: Any,
    deadline_at: float | None,
) -> str:
    # The action already took effect; degrade instead of failing the run.
    try:
        async with asyncio.timeout_at(deadline_at):
            return await synthesize_response(
                instruction,
                action_id,
                result,
                llm=llm,
                temperature=settings.llm_response_temperature,
                max_tokens=settings.llm_response_max_tokens,
            )
    except AgentError as exc:
        logger.warning("response_synthesis_failed action=%s code=%s", action_id, exc.code)
    except TimeoutError:
        logger.warning("response_synthesis_failed action=%s code=%s", action_id, DeadlineExceeded.code)
    return fallback_confirmation(action_id)
