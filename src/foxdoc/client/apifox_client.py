"""Synchronous client for the ``export-openapi`` endpoint.

:class:`ApifoxClient` is deliberately thin: one request, no retries. It
layers on top of :class:`httpx.Client`:

- **Auth** -- ``Authorization: Bearer <token>`` plus the
  ``X-Apifox-Api-Version`` header on every request.
- **Decoding** -- JSON bodies are parsed as JSON; a YAML export (or a body
  served as YAML) is parsed with PyYAML.
- **Error mapping** -- 401/403 raise :class:`~foxdoc.exceptions.AuthError`,
  404 raises :class:`~foxdoc.exceptions.NotFoundError`, other failures raise
  :class:`~foxdoc.exceptions.ServerError`, and transport problems raise
  :class:`~foxdoc.exceptions.ConnectionError_`.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Optional

import httpx
import yaml

from foxdoc.exceptions import AuthError, ConnectionError_, NotFoundError, ServerError
from foxdoc.models import ApiConfig, ExportOptions

logger = logging.getLogger(__name__)


def _bare_token(token: str) -> str:
    """Drop a pasted ``Bearer `` prefix so the header is not doubled."""
    token = token.strip()
    if token[:7].lower() == "bearer ":
        return token[7:].strip()
    return token


class ApifoxClient:
    """HTTP client for the schema-export API.

    Args:
        config: Base URL, API version, timeout and SSL settings.
        token: Access token sent as a bearer credential.
        transport: Optional httpx transport, used by tests to stub the
            network with :class:`httpx.MockTransport`.

    Example::

        with ApifoxClient(ApiConfig(), token) as client:
            doc = client.export_openapi("3189010", ExportOptions.for_endpoint(42))
    """

    def __init__(
        self,
        config: ApiConfig,
        token: str,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._config = config
        self._token = token
        self._transport = transport
        self._client: Optional[httpx.Client] = None

    # ------------------------------------------------------------------ #
    # Context manager
    # ------------------------------------------------------------------ #

    def __enter__(self) -> ApifoxClient:
        self._client = httpx.Client(
            base_url=self._config.base_url.rstrip("/") + "/",
            timeout=self._config.timeout,
            verify=self._config.verify_ssl,
            follow_redirects=True,
            transport=self._transport,
            headers={
                "Authorization": f"Bearer {_bare_token(self._token)}",
                "X-Apifox-Api-Version": self._config.api_version,
                "Accept": "application/json",
            },
        )
        return self

    def __exit__(self, *args: object) -> None:
        if self._client:
            self._client.close()
            self._client = None

    # ------------------------------------------------------------------ #
    # API
    # ------------------------------------------------------------------ #

    def export_openapi(self, project_id: str, options: ExportOptions) -> dict[str, Any]:
        """Export part of a project as an OpenAPI document.

        Args:
            project_id: Numeric project id, as a string.
            options: Scope and format of the export.

        Returns:
            The exported document.

        Raises:
            AuthError: On 401 / 403.
            NotFoundError: On 404.
            ServerError: On any other error status, or an unreadable body.
            ConnectionError_: On network or timeout errors.
        """
        assert self._client is not None, "Client not initialised -- use as context manager"

        path = f"v1/projects/{project_id}/export-openapi"
        logger.debug(
            "Exporting project %s (scope %s)", project_id, options.scope.type.value
        )
        try:
            response = self._client.post(path, json=options.to_request())
        except (httpx.TimeoutException, httpx.NetworkError, httpx.ConnectError) as exc:
            raise ConnectionError_(f"Cannot reach {self._config.base_url}: {exc}") from exc

        self._map_response_error(response)
        document = self._decode(response, options.export_format)
        logger.debug(
            "Exported project %s: %d paths",
            project_id,
            len(document.get("paths") or {}),
        )
        return document

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    @staticmethod
    def _decode(response: httpx.Response, export_format: str) -> dict[str, Any]:
        content_type = response.headers.get("content-type", "")
        as_yaml = export_format.upper() == "YAML" or "yaml" in content_type
        try:
            data = yaml.safe_load(response.text) if as_yaml else response.json()
        except (json.JSONDecodeError, yaml.YAMLError) as exc:
            raise ServerError(f"Unreadable export response: {exc}") from exc
        if not isinstance(data, dict):
            raise ServerError(
                f"Expected an OpenAPI document, got {type(data).__name__}"
            )
        return data

    @staticmethod
    def _map_response_error(response: httpx.Response) -> None:
        """Raise a typed exception for error HTTP status codes."""
        status = response.status_code
        if status < 400:
            return

        try:
            detail = response.json()
            if isinstance(detail, dict):
                msg = (
                    detail.get("errorMessage")
                    or detail.get("message")
                    or detail.get("error")
                    or ""
                )
            else:
                msg = str(detail)
        except ValueError:
            msg = response.text[:200] if response.text else ""

        full_msg = f"HTTP {status}: {msg}" if msg else f"HTTP {status}"

        if status in (401, 403):
            raise AuthError(full_msg)
        if status == 404:
            raise NotFoundError(full_msg)
        if status == 429:
            raise ServerError(f"{full_msg} (rate limited, try again in a few minutes)")
        raise ServerError(full_msg)
