import asyncio
from types import SimpleNamespace

from fastapi.testclient import TestClient

from agent.errors import UpstreamUnavailable
from agent.types import ChatCompletion, Connection, ConnectionRequest
from app.routes.connections import _split_slug, check_connection_status, connect_app
from main import app


def _settings(**kwargs):
    base = {
        "frontend_url": "http://localhost:3000/",
        "connection_redirect_path": "/connection-success",
        "extraction_max_attempts": 2,
        "extraction_retry_delay_seconds": 0,
        "llm_extraction_temperature": 0.1,
        "llm_extraction_max_tokens": 1000,
        "llm_response_temperature": 0.7,
        "llm_response_max_tokens": 300,
        "agent_request_timeout_seconds": 5,
        "is_development": False,
    }
    base.update(kwargs)
    return SimpleNamespace(**base)


class _Connector:
    def __init__(self, connections=None, list_error=None, initiate_error=None):
        self.connections = connections or []
        self.list_error = list_error
        self.initiate_error = initiate_error
        self.initiated = []
        self.executed = []

    async def list_connections(self, user_id):
        if self.list_error:
            raise self.list_error
        return self.connections

    async def initiate_connection(self, user_id, app_name, redirect_url):
        if self.initiate_error:
            raise self.initiate_error
        self.initiated.append((user_id, app_name, redirect_url))
        return ConnectionRequest(redirect_url="https://auth.example/start", connection_id="conn-new")

    async def search_actions(self, query, app):
        return []

    async def describe_action(self, action_id, user_id):
        return {"description": "Star a repository", "input_schema": {"properties": {"owner": {}, "repo": {}}}}

    async def execute_action(self, user_id, action_id, params):
        self.executed.append((action_id, params))
        return {"successful": True, "data": {}}


class _LLM:
    def __init__(self, *replies):
        self.replies = list(replies)

    async def complete(self, system_prompt, user_prompt, *, temperature=0.7, max_tokens=2000):
        return ChatCompletion(text=self.replies.pop(0), finish_reason="stop")


def _patch_agent_route(monkeypatch, connector, llm, **settings):
    monkeypatch.setattr("app.routes.agent.get_composio_client", lambda: connector)
    monkeypatch.setattr("app.routes.agent.get_chat_llm_client", lambda: llm)
    monkeypatch.setattr("app.routes.agent.get_settings", lambda: _settings(**settings))


def test_split_slug():
    assert _split_slug("user-1/GitHub") == ("user-1", "GitHub")
    assert _split_slug("user-1/") == ("user-1", "")
    assert _split_slug("") == ("", "")


def test_check_connection_returns_status(monkeypatch):
    connector = _Connector(connections=[Connection(id="c1", application_name="GITHUB", status="ACTIVE")])
    monkeypatch.setattr("app.routes.connections.get_composio_client", lambda: connector)
    out = asyncio.run(check_connection_status("user-1/GitHub"))
    assert out == {"connected": True, "app": "github", "userId": "user-1"}


def test_check_connection_missing_app_is_400():
    response = asyncio.run(check_connection_status("user-1"))
    assert response.status_code == 400


def test_check_connection_upstream_error_is_not_5xx(monkeypatch):
    connector = _Connector(list_error=UpstreamUnavailable("down", status_code=503))
    monkeypatch.setattr("app.routes.connections.get_composio_client", lambda: connector)
    out = asyncio.run(check_connection_status("user-1/gmail"))
    assert out["connected"] is False


def test_connect_app_already_connected(monkeypatch):
    connector = _Connector(connections=[Connection(id="c1", application_name="gmail", status="ACTIVE")])
    monkeypatch.setattr("app.routes.connections.get_composio_client", lambda: connector)
    monkeypatch.setattr("app.routes.connections.get_settings", lambda: _settings())
    out = asyncio.run(connect_app("user-1/gmail"))
    assert out["connected"] is True
    assert out["connectionId"] == "c1"
    assert connector.initiated == []


def test_connect_app_initiates_oauth(monkeypatch):
    connector = _Connector()
    monkeypatch.setattr("app.routes.connections.get_composio_client", lambda: connector)
    monkeypatch.setattr("app.routes.connections.get_settings", lambda: _settings())
    out = asyncio.run(connect_app("user-1/googledocs"))
    assert out["connected"] is False
    assert out["redirectUrl"] == "https://auth.example/start"
    assert out["connectionId"] == "conn-new"
    assert connector.initiated == [("user-1", "GOOGLEDOCS", "http://localhost:3000/connection-success")]


def test_connect_app_upstream_failure_is_500(monkeypatch):
    connector = _Connector(initiate_error=UpstreamUnavailable("Connector service error 404: app not found"))
    monkeypatch.setattr("app.routes.connections.get_composio_client", lambda: connector)
    monkeypatch.setattr("app.routes.connections.get_settings", lambda: _settings())
    response = asyncio.run(connect_app("user-1/dropbox"))
    assert response.status_code == 500


def test_run_agent_route_success(monkeypatch):
    connector = _Connector(connections=[Connection(id="c1", application_name="github", status="ACTIVE")])
    llm = _LLM(
        '{"understood": true, "parameters": {"owner": "facebook", "repository": "react"}}',
        "You starred facebook/react.",
    )
    _patch_agent_route(monkeypatch, connector, llm)

    response = TestClient(app).post(
        "/api/run-agent",
        json={"instruction": "star facebook/react", "app": "github", "entityId": "user-1"},
    )

    assert response.status_code == 200
    assert response.json() == {"response": "You starred facebook/react.", "success": True}
    assert response.headers["X-Request-ID"]
    assert connector.executed == [
        ("GITHUB_STAR_A_REPOSITORY_FOR_THE_AUTHENTICATED_USER", {"owner": "facebook", "repo": "react"})
    ]


def test_run_agent_route_not_connected_is_200(monkeypatch):
    _patch_agent_route(monkeypatch, _Connector(), _LLM())
    response = TestClient(app).post(
        "/api/run-agent",
        json={"instruction": "star facebook/react", "app": "github", "entityId": "user-1"},
    )
    assert response.status_code == 200
    assert response.json()["success"] is False


def test_run_agent_route_clarification_flag(monkeypatch):
    connector = _Connector(connections=[Connection(id="c1", application_name="github", status="ACTIVE")])
    llm = _LLM('{"understood": false, "clarifying_question": "Which repository?"}')
    _patch_agent_route(monkeypatch, connector, llm)
    response = TestClient(app).post(
        "/api/run-agent",
        json={"instruction": "star my favourite repo", "app": "github", "entityId": "user-1"},
    )
    assert response.json() == {"response": "Which repository?", "success": True, "needs_clarification": True}
    assert connector.executed == []


def test_run_agent_route_rejects_missing_fields(monkeypatch):
    _patch_agent_route(monkeypatch, _Connector(), _LLM())
    response = TestClient(app).post("/api/run-agent", json={"instruction": "star it", "app": "github"})
    assert response.status_code == 400
    assert "entityId" in response.json()["response"]


def test_run_agent_route_rejects_invalid_json(monkeypatch):
    _patch_agent_route(monkeypatch, _Connector(), _LLM())
    response = TestClient(app).post(
        "/api/run-agent", content="not json", headers={"Content-Type": "application/json"}
    )
    assert response.status_code == 400
    assert response.json()["success"] is False


def test_run_agent_route_failure_is_500_with_sentence(monkeypatch):
    connector = _Connector(connections=[Connection(id="c1", application_name="youtube", status="ACTIVE")])
    _patch_agent_route(monkeypatch, connector, _LLM(), is_development=True)
    response = TestClient(app).post(
        "/api/run-agent",
        json={"instruction": "hello there", "app": "youtube", "entityId": "user-1"},
    )
    assert response.status_code == 500
    body = response.json()
    assert body["success"] is False
    assert body["response"] == "I couldn't determine which action to perform. Please be more specific."
    assert "hello there" in body["error"]


def test_run_agent_preflight():
    response = TestClient(app).options("/api/run-agent")
    assert response.status_code == 200
    assert response.headers["Access-Control-Allow-Methods"] == "POST, OPTIONS"


def test_health_and_apps():
    client = TestClient(app)
    assert client.get("/api/health").json() == {"status": "ok"}
    apps = client.get("/api/apps").json()["apps"]
    assert {item["id"] for item in apps} == {"github", "gmail", "youtube", "googledocs", "googlecalendar"}
