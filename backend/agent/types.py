from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping


@dataclass(frozen=True)
class ActionSchema:
    action_id: str
    description: str
    parameter_names: frozenset[str]
    required_fields: tuple[str, ...]
    optional_fields: tuple[str, ...]
    synonym_map: Mapping[str, str] = field(default_factory=dict)
    properties: Mapping[str, Any] = field(default_factory=dict)


@dataclass
class ExtractionResult:
    understood: bool
    clarifying_question: str | None = None
    parameters: dict[str, Any] | None = None


@dataclass(frozen=True)
class Connection:
    id: str
    application_name: str
    status: str

    @property
    def is_active(self) -> bool:
        return self.status.strip().upper() == "ACTIVE"


@dataclass(frozen=True)
class ConnectionRequest:
    redirect_url: str | None
    connection_id: str | None


@dataclass(frozen=True)
class ChatCompletion:
    text: str
    finish_reason: str | None = None


@dataclass
class AgentRunResult:
    success: bool
    response: str
    stage: str
    action_id: str | None = None
    needs_clarification: bool = False
