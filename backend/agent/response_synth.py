from __future__ import annotations

import json
import logging
from typing import Any

from agent.errors import UpstreamUnavailable
from agent.param_extractor import ChatCompleter


logger = logging.getLogger("lazya-backend.response_synth")

RESPONSE_SYSTEM_PROMPT = (
    "You turn the raw result of a completed API action into a short, friendly message for the user."
)
MAX_RESULT_CHARS = 4000


def fallback_confirmation(action_id: str) -> str:
    action_label = (action_id or "requested").replace("_", " ").lower()
    return f"Your {action_label} action completed, but I could not summarize the result."


def _render_result(result: Any) -> str:
    rendered = json.dumps(result, ensure_ascii=False, default=str)
    if len(rendered) > MAX_RESULT_CHARS:
        rendered = rendered[:MAX_RESULT_CHARS] + "...(truncated)"
    return rendered


def build_response_prompt(instruction: str, action_id: str, result: Any) -> str:
    return (
        "The user requested an action and it has been completed. Generate a friendly, concise response.\n"
        "\n"
        f"USER'S REQUEST: {instruction}\n"
        f"ACTION TAKEN: {action_id}\n"
        f"RESULT: {_render_result(result)}\n"
        "\n"
        "Generate a clear, helpful response that:\n"
        "1. Confirms what was done\n"
        "2. Highlights key information from the result\n"
        "3. Avoids technical identifiers such as raw IDs and action names\n"
        "4. Keeps it brief (2-3 sentences max)\n"
        "\n"
        "RESPONSE:"
    )


async def synthesize_response(
    instruction: str,
    action_id: str,
    result: Any,
    *,
    llm: ChatCompleter,
    temperature: float = 0.7,
    max_tokens: int = 300,
) -> str:
    completion = await llm.complete(
        RESPONSE_SYSTEM_PROMPT,
        build_response_prompt(instruction, action_id, result),
        temperature=temperature,
        max_tokens=max_tokens,
    )
    text = (completion.text or "").strip()
    if not text:
        raise UpstreamUnavailable("Empty summary from LLM")
    logger.info("response_synthesized action=%s chars=%s", action_id, len(text))
    return text
