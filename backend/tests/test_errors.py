from agent.errors import (
    AgentErrorCode,
    AuthenticationRequired,
    ExecutionFailed,
    ExtractionFailed,
    MissingRequiredParameters,
    NoJsonFound,
    is_retryable_error,
)


def test_retryable_subset_covers_extraction_loop_only():
    assert is_retryable_error(AgentErrorCode.MALFORMED_OUTPUT)
    assert is_retryable_error(AgentErrorCode.UPSTREAM_UNAVAILABLE)
    assert is_retryable_error("MISSING_REQUIRED_PARAMETERS")
    assert not is_retryable_error(AgentErrorCode.ACTION_NOT_FOUND)
    assert not is_retryable_error(AgentErrorCode.DEADLINE_EXCEEDED)


def test_unknown_code_is_not_retryable():
    assert not is_retryable_error("UNKNOWN_CODE")


def test_error_hierarchy():
    assert isinstance(NoJsonFound("x"), ExtractionFailed)
    assert isinstance(MissingRequiredParameters(["a"]), ExtractionFailed)
    auth = AuthenticationRequired("reconnect", application="GMAIL")
    assert isinstance(auth, ExecutionFailed)
    assert auth.code == AgentErrorCode.AUTHENTICATION_REQUIRED


def test_missing_required_parameters_message_override():
    err = MissingRequiredParameters(["owner", "repo"], message="Missing required parameters: owner, repo (upstream)")
    assert err.missing == ("owner", "repo")
    assert err.message == "Missing required parameters: owner, repo (upstream)"
    assert MissingRequiredParameters(["owner"]).message == "Missing required parameters: owner"
