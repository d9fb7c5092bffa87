from __future__ import annotations

import logging
from typing import Any, Protocol

from agent.action_catalog import connector_app_name, list_action_keywords
from agent.errors import ActionNotFound, AgentError


logger = logging.getLogger("lazya-backend.action_resolver")

KEYWORD_WORD_WEIGHT = 10


class ActionSearchClient(Protocol):
    async def search_actions(self, query: str, app: str) -> list[dict[str, Any]]: ...


def score_actions(app: str, instruction: str) -> list[tuple[str, int]]:
    """Score every known action of the app against the instruction.

    Each contained keyword phrase adds ten points per word, so
    "create issue" outranks a bare "issue". Returned in declaration order.
    """
    normalized = (instruction or "").strip().lower()
    scored: list[tuple[str, int]] = []
    for entry in list_action_keywords(app):
        score = 0
        for keyword in entry.keywords:
            if keyword.lower() in normalized:
                score += len(keyword.split()) * KEYWORD_WORD_WEIGHT
        scored.append((entry.action_id, score))
    return scored


def resolve_action_locally(app: str, instruction: str) -> str | None:
    best_action: str | None = None
    best_score = 0
    for action_id, score in score_actions(app, instruction):
        if score > best_score:
            best_action, best_score = action_id, score
    if best_action:
        logger.info("action_resolved source=local app=%s action=%s score=%s", app, best_action, best_score)
    return best_action


async def resolve_action(app: str, instruction: str, *, client: ActionSearchClient) -> str:
    action_id = resolve_action_locally(app, instruction)
    if action_id:
        return action_id

    app_name = connector_app_name(app)
    try:
        items = await client.search_actions(instruction, app_name)
    except AgentError as exc:
        logger.warning("action_search_failed app=%s error=%s", app_name, exc.code)
        raise ActionNotFound(instruction) from exc

    name = next((str(item.get("name") or "").strip() for item in items if item.get("name")), "")
    if not name:
        raise ActionNotFound(instruction)
    logger.info("action_resolved source=remote app=%s action=%s", app_name, name.upper())
    return name.upper()
