from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Protocol

from agent.action_catalog import get_extraction_hint
from agent.errors import AgentError, ExtractionFailed, MalformedOutput, MissingRequiredParameters, is_retryable_error
from agent.field_mapping import ensure_required, remap_fields
from agent.json_repair import extract_json_object
from agent.types import ActionSchema, ChatCompletion, ExtractionResult


logger = logging.getLogger("lazya-backend.param_extractor")

EXTRACTION_SYSTEM_PROMPT = (
    "You are a parameter extraction expert for API actions. "
    "Reply with a single JSON object only, no markdown and no commentary. "
    "Use only the exact parameter names you are given; never invent new ones."
)
DEFAULT_CLARIFYING_QUESTION = "I need more information to complete this task."
_UNDERSTOOD_KEYS = ("understood", "understand")
_QUESTION_KEYS = ("clarifying_question", "clarifyingQuestion", "askUser", "ask_user")
_PARAMETER_KEYS = ("parameters", "params")


class ChatCompleter(Protocol):
    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        temperature: float = ...,
        max_tokens: int = ...,
    ) -> ChatCompletion: ...


def build_extraction_prompt(instruction: str, schema: ActionSchema) -> str:
    hint = get_extraction_hint(schema.action_id)
    all_parameters = sorted(schema.parameter_names)
    properties = json.dumps(dict(schema.properties), ensure_ascii=False, indent=2, default=str)
    sections = [
        "Extract the parameters for the action below from the user's message.",
    ]
    if hint:
        sections.append(hint)
    sections.append(
        f'USER\'S MESSAGE: "{instruction}"\n'
        "\n"
        f"ACTION: {schema.action_id}\n"
        f"DESCRIPTION: {schema.description}\n"
        f"REQUIRED PARAMETERS: {json.dumps(list(schema.required_fields))}\n"
        f"OPTIONAL PARAMETERS: {json.dumps(list(schema.optional_fields))}\n"
        f"ALL PARAMETERS: {json.dumps(all_parameters)}\n"
        f"SCHEMA: {properties}"
    )
    sections.append(
        "INSTRUCTIONS:\n"
        '1. Use EXACT parameter names from "ALL PARAMETERS" above\n'
        "2. Extract information intelligently from the user's natural language\n"
        "3. For emails: extract the recipient address, infer a subject if not explicit, write a friendly body\n"
        '4. For GitHub: parse the "owner/repo" format\n'
        "5. If REQUIRED information is missing, set understood=false and ask for it in clarifying_question"
    )
    sections.append(
        "OUTPUT FORMAT (VALID JSON ONLY, NO MARKDOWN):\n"
        "{\n"
        '    "understood": true,\n'
        '    "clarifying_question": null,\n'
        '    "parameters": {\n'
        '        "param_name": "extracted_value"\n'
        "    }\n"
        "}"
    )
    return "\n\n".join(sections)


def _first_present(payload: dict[str, Any], keys: tuple[str, ...]) -> tuple[bool, Any]:
    for key in keys:
        if key in payload:
            return True, payload[key]
    return False, None


def _coerce_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"true", "yes", "1"}
    return bool(value)


def parse_extraction_reply(raw_text: str, schema: ActionSchema) -> ExtractionResult:
    payload = extract_json_object(raw_text)

    present, understood = _first_present(payload, _UNDERSTOOD_KEYS)
    # An absent flag counts as understood.
    if present and not _coerce_bool(understood):
        _, question = _first_present(payload, _QUESTION_KEYS)
        question = question.strip() if isinstance(question, str) else ""
        return ExtractionResult(understood=False, clarifying_question=question or DEFAULT_CLARIFYING_QUESTION)

    _, parameters = _first_present(payload, _PARAMETER_KEYS)
    if not isinstance(parameters, dict):
        raise MalformedOutput("No parameters provided by LLM")

    mapped = remap_fields(parameters, schema.synonym_map)
    ensure_required(mapped, schema.required_fields)
    return ExtractionResult(understood=True, parameters=mapped)


async def extract_parameters(
    instruction: str,
    schema: ActionSchema,
    *,
    llm: ChatCompleter,
    max_attempts: int = 3,
    retry_delay_seconds: float = 0.5,
    temperature: float = 0.1,
    max_tokens: int = 1000,
) -> ExtractionResult:
    attempts = max(1, int(max_attempts))
    prompt = build_extraction_prompt(instruction, schema)
    last_error: AgentError | None = None

    for attempt in range(1, attempts + 1):
        try:
            completion = await llm.complete(
                EXTRACTION_SYSTEM_PROMPT,
                prompt,
                temperature=temperature,
                max_tokens=max_tokens,
            )
            result = parse_extraction_reply(completion.text, schema)
            logger.info(
                "parameters_extracted action=%s attempt=%s understood=%s",
                schema.action_id,
                attempt,
                result.understood,
            )
            return result
        except AgentError as exc:
            if not is_retryable_error(exc.code):
                raise
            last_error = exc
            logger.warning(
                "parameter_extraction_retry action=%s attempt=%s/%s error=%s",
                schema.action_id,
                attempt,
                attempts,
                exc.code,
            )
            if attempt < attempts:
                await asyncio.sleep(retry_delay_seconds * (2 ** (attempt - 1)))

    if isinstance(last_error, MissingRequiredParameters):
        raise last_error
    detail = last_error.message if last_error else "unknown error"
    raise ExtractionFailed(
        f"Failed to parse parameters for {schema.action_id} after {attempts} attempts: {detail}"
    ) from last_error
