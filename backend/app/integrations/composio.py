from __future__ import annotations

import logging
from json import JSONDecodeError
from typing import Any

import httpx

from agent.errors import UpstreamUnavailable
from agent.types import Connection, ConnectionRequest
from app.core.config import get_settings


logger = logging.getLogger("lazya-backend.composio")


def _error_detail(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except (JSONDecodeError, ValueError):
        return (response.text or "").strip()[:300]
    if isinstance(payload, dict):
        for key in ("message", "error", "detail"):
            value = payload.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
            if isinstance(value, dict) and isinstance(value.get("message"), str):
                return value["message"].strip()
    return str(payload)[:300]


def _json_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except (JSONDecodeError, ValueError) as exc:
        raise UpstreamUnavailable(
            "Connector service returned a non-JSON response", status_code=response.status_code
        ) from exc


class ComposioClient:
    """Thin async client over the connector service REST API."""

    def __init__(self, api_key: str | None, base_url: str, timeout: float = 20.0):
        self._api_key = (api_key or "").strip()
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout

    def _headers(self) -> dict[str, str]:
        if not self._api_key:
            raise UpstreamUnavailable("COMPOSIO_API_KEY is not configured")
        return {"x-api-key": self._api_key, "Content-Type": "application/json"}

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> httpx.Response:
        url = f"{self._base_url}{path}"
        headers = self._headers()
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.request(method, url, headers=headers, params=params, json=json)
        except httpx.HTTPError as exc:
            logger.warning("composio_transport_error method=%s path=%s error=%s", method, path, type(exc).__name__)
            raise UpstreamUnavailable(f"Connector service unreachable: {type(exc).__name__}") from exc

        if response.status_code >= 400:
            detail = _error_detail(response)
            logger.warning("composio_http_error method=%s path=%s status=%s", method, path, response.status_code)
            raise UpstreamUnavailable(
                f"Connector service error {response.status_code}: {detail}",
                status_code=response.status_code,
            )
        return response

    async def list_connections(self, user_id: str) -> list[Connection]:
        response = await self._request("GET", "/api/v1/connectedAccounts", params={"user_uuid": user_id})
        payload = _json_body(response)
        items = payload.get("items") if isinstance(payload, dict) else None
        connections: list[Connection] = []
        for item in items or []:
            if not isinstance(item, dict):
                continue
            connections.append(
                Connection(
                    id=str(item.get("id") or ""),
                    application_name=str(item.get("appName") or ""),
                    status=str(item.get("status") or ""),
                )
            )
        return connections

    async def initiate_connection(self, user_id: str, app_name: str, redirect_url: str) -> ConnectionRequest:
        response = await self._request(
            "POST",
            "/api/v1/connectedAccounts",
            json={"entityId": user_id, "appName": app_name, "redirectUri": redirect_url},
        )
        payload = _json_body(response)
        if not isinstance(payload, dict):
            payload = {}
        return ConnectionRequest(
            redirect_url=payload.get("redirectUrl"),
            connection_id=payload.get("connectionId") or payload.get("connectedAccountId"),
        )

    async def search_actions(self, query: str, app: str) -> list[dict[str, Any]]:
        response = await self._request("GET", "/api/v2/actions", params={"useCase": query, "apps": app})
        payload = _json_body(response)
        items = payload.get("items") if isinstance(payload, dict) else None
        return [item for item in items or [] if isinstance(item, dict)]

    async def describe_action(self, action_id: str, user_id: str) -> dict[str, Any]:
        # Dry execution with empty arguments; the reply carries the input schema.
        response = await self._request(
            "POST",
            f"/api/v3/tools/execute/{action_id}",
            json={"entity_id": user_id, "arguments": {}, "allow_tracing": False},
        )
        payload = _json_body(response)
        return payload if isinstance(payload, dict) else {}

    async def execute_action(self, user_id: str, action_id: str, params: dict[str, Any]) -> dict[str, Any]:
        response = await self._request(
            "POST",
            f"/api/v2/actions/{action_id}/execute",
            json={"entityId": user_id, "input": params},
        )
        payload = _json_body(response)
        if not isinstance(payload, dict):
            return {"data": payload}
        # The service reports action-level failures inside a 2xx body.
        successful = payload.get("successful", payload.get("successfull", True))
        if successful is False:
            error = payload.get("error") or "action reported failure"
            raise UpstreamUnavailable(str(error), status_code=response.status_code)
        return payload


def get_composio_client() -> ComposioClient:
    settings = get_settings()
    return ComposioClient(
        api_key=settings.composio_api_key,
        base_url=settings.composio_base_url,
        timeout=settings.composio_timeout_seconds,
    )
