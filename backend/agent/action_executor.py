from __future__ import annotations

import logging
from typing import Any, Protocol

from agent.action_catalog import application_for_action, get_param_spec
from agent.errors import (
    AgentError,
    AuthenticationRequired,
    ExecutionFailed,
    MissingRequiredParameters,
    RecipientInvalid,
)
from agent.field_mapping import ensure_required, remap_fields


logger = logging.getLogger("lazya-backend.action_executor")


class ActionExecuteClient(Protocol):
    async def execute_action(self, user_id: str, action_id: str, params: dict[str, Any]) -> dict[str, Any]: ...


def classify_execution_error(action_id: str, message: str) -> AgentError:
    """Map an upstream failure message onto the execution error taxonomy.

    The connector service has no typed error contract, so this is substring
    matching on its message. Keep every heuristic here.
    """
    text = (message or "").strip()
    lower = text.lower()
    if "missing required parameters" in lower:
        _, _, names = text.partition(":")
        return MissingRequiredParameters([name.strip() for name in names.split(",") if name.strip()], message=text)
    if "recipient" in lower:
        return RecipientInvalid(
            f"Email recipient error: Please ensure you've provided a valid email address. {text}".strip()
        )
    if "authentication" in lower or "unauthorized" in lower:
        application = application_for_action(action_id)
        return AuthenticationRequired(
            f"Authentication error: Please reconnect your {application} account.",
            application=application,
        )
    return ExecutionFailed(f"Failed to execute {action_id}: {text or 'unknown error'}")


def prepare_parameters(action_id: str, params: dict[str, Any]) -> dict[str, Any]:
    spec = get_param_spec(action_id)
    if not spec:
        logger.info("no_param_spec action=%s using params as-is", action_id)
        return dict(params or {})
    mapped = remap_fields(params, spec.synonyms)
    ensure_required(mapped, spec.required)
    return mapped


async def execute_action(
    user_id: str,
    action_id: str,
    params: dict[str, Any],
    *,
    client: ActionExecuteClient,
) -> dict[str, Any]:
    mapped = prepare_parameters(action_id, params)
    logger.info("action_execute action=%s param_keys=%s", action_id, ",".join(sorted(mapped)))
    try:
        result = await client.execute_action(user_id, action_id, mapped)
    except MissingRequiredParameters:
        raise
    except AgentError as exc:
        classified = classify_execution_error(action_id, exc.message)
        logger.warning("action_execute_failed action=%s code=%s", action_id, classified.code)
        raise classified from exc
    logger.info("action_executed action=%s", action_id)
    return result
