import asyncio

import pytest

from agent.action_resolver import resolve_action, resolve_action_locally, score_actions
from agent.errors import ActionNotFound, UpstreamUnavailable


class _SearchClient:
    def __init__(self, items=None, error: Exception | None = None):
        self.items = items or []
        self.error = error
        self.calls = []

    async def search_actions(self, query: str, app: str):
        self.calls.append((query, app))
        if self.error:
            raise self.error
        return self.items


def test_score_actions_weights_phrase_length():
    scores = dict(score_actions("github", "please create issue for the login bug"))
    assert scores["GITHUB_CREATE_AN_ISSUE"] == 20
    assert scores["GITHUB_FORK_A_REPOSITORY"] == 0


def test_score_actions_unknown_app_is_empty():
    assert score_actions("dropbox", "upload my file") == []


def test_resolve_locally_prefers_more_specific_match():
    assert resolve_action_locally("github", "remove star from facebook/react") == (
        "GITHUB_UNSTAR_REPO_FOR_AUTHENTICATED_USER"
    )


def test_resolve_locally_tie_keeps_first_declared_action():
    # "unstar" also contains "star": both score 10.
    assert resolve_action_locally("github", "unstar it") == "GITHUB_STAR_A_REPOSITORY_FOR_THE_AUTHENTICATED_USER"


def test_resolve_locally_is_case_insensitive():
    assert resolve_action_locally("GMail", "Send an EMAIL to a@b.com") == "GMAIL_SEND_EMAIL"


def test_resolve_locally_no_match_returns_none():
    assert resolve_action_locally("youtube", "hello there") is None


def test_resolve_action_star_works_without_remote():
    client = _SearchClient(error=UpstreamUnavailable("unreachable"))
    action = asyncio.run(resolve_action("github", "please star the repo", client=client))
    assert action == "GITHUB_STAR_A_REPOSITORY_FOR_THE_AUTHENTICATED_USER"
    assert client.calls == []


def test_resolve_action_remote_fallback_uppercases_name():
    client = _SearchClient(items=[{"name": "slack_send_message"}, {"name": "slack_other"}])
    action = asyncio.run(resolve_action("slack", "tell the team hello", client=client))
    assert action == "SLACK_SEND_MESSAGE"
    assert client.calls == [("tell the team hello", "SLACK")]


def test_resolve_action_unknown_app_and_failing_remote_raises():
    client = _SearchClient(error=UpstreamUnavailable("connector down", status_code=503))
    with pytest.raises(ActionNotFound) as exc_info:
        asyncio.run(resolve_action("dropbox", "upload the report", client=client))
    assert "upload the report" in str(exc_info.value)


def test_resolve_action_empty_remote_result_raises():
    client = _SearchClient(items=[])
    with pytest.raises(ActionNotFound):
        asyncio.run(resolve_action("youtube", "hello there", client=client))
