from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Any, Protocol

from agent.action_catalog import get_param_spec
from agent.errors import AgentError, SchemaUnavailable
from agent.types import ActionSchema


logger = logging.getLogger("lazya-backend.schema_fetcher")


class ActionDescribeClient(Protocol):
    async def describe_action(self, action_id: str, user_id: str) -> dict[str, Any]: ...


def _string_list(value: object) -> list[str]:
    if not isinstance(value, (list, tuple)):
        return []
    return [item.strip() for item in value if isinstance(item, str) and item.strip()]


def build_action_schema(action_id: str, remote: dict[str, Any]) -> ActionSchema:
    """Merge the remote input schema with the local parameter table.

    The remote side owns parameter shape and description. When the action is
    in the local table, the local table owns required/optional/synonyms;
    otherwise the remote required list is used as-is.
    """
    input_schema = remote.get("input_schema") or remote.get("parameters") or {}
    properties = input_schema.get("properties") if isinstance(input_schema, dict) else None
    if not isinstance(properties, dict):
        properties = {}
    remote_required = _string_list(input_schema.get("required") if isinstance(input_schema, dict) else None)

    local = get_param_spec(action_id)
    if local:
        required = local.required
        optional = local.optional
        synonyms = dict(local.synonyms)
    else:
        required = tuple(remote_required)
        optional = tuple(name for name in properties if name not in required)
        synonyms = {}

    description = str(remote.get("description") or "").strip() or action_id
    return ActionSchema(
        action_id=action_id,
        description=description,
        parameter_names=frozenset(properties) | frozenset(required) | frozenset(optional),
        required_fields=tuple(required),
        optional_fields=tuple(optional),
        synonym_map=MappingProxyType(synonyms),
        properties=MappingProxyType(dict(properties)),
    )


async def fetch_action_schema(action_id: str, user_id: str, *, client: ActionDescribeClient) -> ActionSchema:
    try:
        remote = await client.describe_action(action_id, user_id)
    except AgentError as exc:
        logger.warning("schema_fetch_failed action=%s error=%s", action_id, exc.code)
        raise SchemaUnavailable(f"Could not get input schema for action: {action_id} ({exc.message})") from exc

    schema = build_action_schema(action_id, remote or {})
    logger.info(
        "schema_loaded action=%s required=%s optional_count=%s",
        action_id,
        ",".join(schema.required_fields),
        len(schema.optional_fields),
    )
    return schema
