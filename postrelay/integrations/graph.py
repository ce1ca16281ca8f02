"""Shared HTTP plumbing for Meta Graph API clients."""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

import httpx

from postrelay.core.logger import get_logger


_DETAIL_MAX_CHARS = 240
_REDACTED = "REDACTED"

logger = get_logger("postrelay.integrations.graph")


class GraphAPIError(RuntimeError):
    """Raised when a Graph API call fails at transport, HTTP or payload level."""

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        error_code: Optional[int] = None,
        transport: bool = False,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.error_code = error_code
        self.transport = transport


def _truncate(detail: str) -> str:
    detail = detail.strip()
    if len(detail) > _DETAIL_MAX_CHARS:
        return detail[:_DETAIL_MAX_CHARS] + "..."
    return detail


def redact_params(params: Mapping[str, Any]) -> Dict[str, Any]:
    return {key: (_REDACTED if key == "access_token" else value) for key, value in params.items()}


def extract_graph_error(body: Any) -> Optional[Dict[str, Any]]:
    if not isinstance(body, dict):
        return None
    error = body.get("error")
    if isinstance(error, dict):
        return error
    if isinstance(error, str) and error.strip():
        return {"message": error.strip()}
    return None


class GraphHTTPClient:
    """Minimal Graph API transport: form-encoded POSTs and query GETs."""

    error_class = GraphAPIError
    error_prefix = "graph"

    def __init__(
        self,
        *,
        access_token: str,
        base_url: str,
        timeout_seconds: int = 20,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self._access_token = access_token.strip()
        self._base_url = base_url.rstrip("/")
        self._timeout_seconds = max(1, timeout_seconds)
        self._client = client

    def _error(self, message: str, **kwargs: Any) -> GraphAPIError:
        return self.error_class(f"{self.error_prefix}_{message}", **kwargs)

    def _send(self, method: str, url: str, params: Dict[str, Any]) -> httpx.Response:
        if method == "GET":
            request_kwargs: Dict[str, Any] = {"params": params}
        else:
            request_kwargs = {"data": params}

        if self._client is not None:
            return self._client.request(method, url, **request_kwargs)
        with httpx.Client(timeout=self._timeout_seconds) as client:
            return client.request(method, url, **request_kwargs)

    def _request(self, method: str, path: str, params: Dict[str, Any]) -> Dict[str, Any]:
        url = f"{self._base_url}/{path.lstrip('/')}"
        payload = {key: value for key, value in params.items() if value is not None}
        payload["access_token"] = self._access_token
        logger.debug("graph_request", method=method, path=path, params=redact_params(payload))

        try:
            response = self._send(method, url, payload)
        except httpx.HTTPError as exc:
            raise self._error(
                f"request_transport_failed detail={_truncate(str(exc) or type(exc).__name__)}",
                transport=True,
            ) from exc

        try:
            body: Any = response.json()
        except ValueError:
            body = None

        graph_error = extract_graph_error(body)
        if response.status_code < 200 or response.status_code >= 300 or graph_error is not None:
            if graph_error is not None:
                detail = str(graph_error.get("message") or graph_error)
                error_code = graph_error.get("code")
            else:
                detail = response.text
                error_code = None
            raise self._error(
                f"request_failed status={response.status_code} detail={_truncate(detail)}",
                status_code=response.status_code,
                error_code=error_code if isinstance(error_code, int) else None,
            )

        if not isinstance(body, dict):
            raise self._error("invalid_payload", status_code=response.status_code)
        return body

    def _post(self, path: str, params: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("POST", path, params)

    def _get(self, path: str, params: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("GET", path, params)
