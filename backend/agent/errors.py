from __future__ import annotations

from enum import StrEnum
from typing import Iterable


class AgentErrorCode(StrEnum):
    INVALID_INPUT = "INVALID_INPUT"
    NOT_CONNECTED = "NOT_CONNECTED"
    ACTION_NOT_FOUND = "ACTION_NOT_FOUND"
    SCHEMA_UNAVAILABLE = "SCHEMA_UNAVAILABLE"
    EXTRACTION_FAILED = "EXTRACTION_FAILED"
    MALFORMED_OUTPUT = "MALFORMED_OUTPUT"
    NO_JSON_FOUND = "NO_JSON_FOUND"
    MISSING_REQUIRED_PARAMETERS = "MISSING_REQUIRED_PARAMETERS"
    EXECUTION_FAILED = "EXECUTION_FAILED"
    RECIPIENT_INVALID = "RECIPIENT_INVALID"
    AUTHENTICATION_REQUIRED = "AUTHENTICATION_REQUIRED"
    UPSTREAM_UNAVAILABLE = "UPSTREAM_UNAVAILABLE"
    DEADLINE_EXCEEDED = "DEADLINE_EXCEEDED"


class AgentError(Exception):
    code: AgentErrorCode = AgentErrorCode.EXECUTION_FAILED

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidInput(AgentError):
    code = AgentErrorCode.INVALID_INPUT


class NotConnected(AgentError):
    code = AgentErrorCode.NOT_CONNECTED


class ActionNotFound(AgentError):
    code = AgentErrorCode.ACTION_NOT_FOUND

    def __init__(self, instruction: str):
        super().__init__(
            f"Could not find appropriate action for: {instruction}. Please try rephrasing your request."
        )
        self.instruction = instruction


class SchemaUnavailable(AgentError):
    code = AgentErrorCode.SCHEMA_UNAVAILABLE


class ExtractionFailed(AgentError):
    code = AgentErrorCode.EXTRACTION_FAILED


class MalformedOutput(ExtractionFailed):
    code = AgentErrorCode.MALFORMED_OUTPUT


class NoJsonFound(MalformedOutput):
    code = AgentErrorCode.NO_JSON_FOUND


class MissingRequiredParameters(ExtractionFailed):
    code = AgentErrorCode.MISSING_REQUIRED_PARAMETERS

    def __init__(self, missing: Iterable[str], message: str | None = None):
        self.missing = tuple(missing)
        super().__init__(message or f"Missing required parameters: {', '.join(self.missing)}")


class ExecutionFailed(AgentError):
    code = AgentErrorCode.EXECUTION_FAILED


class RecipientInvalid(ExecutionFailed):
    code = AgentErrorCode.RECIPIENT_INVALID


class AuthenticationRequired(ExecutionFailed):
    code = AgentErrorCode.AUTHENTICATION_REQUIRED

    def __init__(self, message: str, *, application: str):
        super().__init__(message)
        self.application = application


class UpstreamUnavailable(AgentError):
    code = AgentErrorCode.UPSTREAM_UNAVAILABLE

    def __init__(self, message: str, *, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class DeadlineExceeded(UpstreamUnavailable):
    code = AgentErrorCode.DEADLINE_EXCEEDED


_RETRYABLE_ERROR_CODES = {
    AgentErrorCode.EXTRACTION_FAILED,
    AgentErrorCode.MALFORMED_OUTPUT,
    AgentErrorCode.NO_JSON_FOUND,
    AgentErrorCode.MISSING_REQUIRED_PARAMETERS,
    AgentErrorCode.UPSTREAM_UNAVAILABLE,
}


def is_retryable_error(code: str | AgentErrorCode) -> bool:
    """Only failures inside the parameter extraction loop are retried."""
    try:
        value = AgentErrorCode(str(code))
    except ValueError:
        return False
    return value in _RETRYABLE_ERROR_CODES
