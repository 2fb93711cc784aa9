"""
Tenderly HTTP Client

Thin async wrapper around the Tenderly REST API. Owns the `httpx.AsyncClient`,
the account/project scoped base URL and the `X-Access-Key` header, and turns
transport failures into :class:`TransportError`.
"""

import logging
from typing import Any, Dict, Optional

import httpx

from ..config import Settings, TenderlyEnvironment, get_settings
from ..errors import MalformedResponseError, TransportError

logger = logging.getLogger(__name__)


class TenderlyClient:
    """
    Tenderly API client

    Usage::

        async with TenderlyClient(env) as client:
            data = await client.request("GET", "/forks")
    """

    def __init__(
        self,
        env: TenderlyEnvironment,
        settings: Optional[Settings] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Args:
            env: resolved Tenderly environment
            settings: API/dashboard URLs and timeout (defaults to global settings)
            http_client: pre-built client, mainly for tests; not closed by us
        """
        settings = settings or get_settings()
        self.env = env
        self.api_url = settings.tenderly_api_url.rstrip("/")
        self.dashboard_url = settings.tenderly_dashboard_url.rstrip("/")
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=settings.http_timeout)

    @property
    def project_path(self) -> str:
        """Account/project scoped API path"""
        return f"/account/{self.env.user}/project/{self.env.project}"

    @property
    def headers(self) -> Dict[str, str]:
        return {"X-Access-Key": self.env.api_key}

    async def close(self) -> None:
        if self._owns_client:
            await self._http.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def request(
        self,
        method: str,
        path: str,
        json: Optional[Any] = None,
        scoped: bool = True,
    ) -> Any:
        """
        Send a Tenderly API request.

        Args:
            method: HTTP method
            path: path below the project scope (or below the API root when
                `scoped` is False)
            json: request body
            scoped: prefix `path` with the account/project path

        Returns:
            Decoded JSON body, None for an empty body

        Raises:
            TransportError: network failure or non-2xx status
            MalformedResponseError: body is not JSON
        """
        url = self.api_url + (self.project_path if scoped else "") + path
        logger.debug(f"Tenderly {method} {url}")
        response = await self._send(method, url, json=json, headers=self.headers)
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            raise MalformedResponseError(
                f"Tenderly {method} {url} returned a non-JSON body: {response.text[:200]}",
                payload=response.text,
            )

    async def rpc(self, rpc_url: str, method: str, params: list) -> Any:
        """
        Send a JSON-RPC request straight to a fork RPC endpoint.

        Returns:
            The `result` member

        Raises:
            TransportError: network failure, non-2xx status or JSON-RPC error
            MalformedResponseError: body is not a JSON-RPC response
        """
        payload = {"jsonrpc": "2.0", "method": method, "params": params, "id": 1}
        logger.debug(f"RPC {method} -> {rpc_url}")
        response = await self._send("POST", rpc_url, json=payload)
        try:
            data = response.json()
        except ValueError:
            raise MalformedResponseError(
                f"RPC {method} returned a non-JSON body: {response.text[:200]}",
                payload=response.text,
            )
        if not isinstance(data, dict):
            raise MalformedResponseError(f"RPC {method} returned {data!r}", payload=data)
        if data.get("error") is not None:
            raise TransportError(f"RPC {method} failed: {data['error']}", url=rpc_url)
        return data.get("result")

    async def _send(self, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            response = await self._http.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            raise TransportError(f"{method} {url} failed: {e}", url=url) from e
        if not 200 <= response.status_code < 300:
            raise TransportError(
                f"{method} {url} returned HTTP {response.status_code}: {response.text[:200]}",
                status_code=response.status_code,
                url=url,
            )
        return response
