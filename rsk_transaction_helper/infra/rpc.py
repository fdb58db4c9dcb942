"""
RPC transport for RSK nodes

Provides:
- JsonRpcSender: posts raw JSON-RPC envelopes with caller-chosen ids (httpx)
- NodeHTTPProvider: web3 async provider that reports unreachable nodes
  as NodeConnectionError
- create_web3: AsyncWeb3 client factory
"""

from __future__ import annotations

import itertools
import logging
import time
from typing import Any, Dict, List, Optional

import aiohttp
import httpx
from web3 import AsyncWeb3
from web3.providers import AsyncHTTPProvider

from ..errors import NodeConnectionError, RpcError

logger = logging.getLogger(__name__)


# Ids start from the current time in ms and only grow, so two requests never share one
_request_ids = itertools.count(int(time.time() * 1000))


def new_request_id(span: int = 1) -> int:
    """
    First of `span` consecutive JSON-RPC request ids, none handed out before

    new_request_id(2) returns N and reserves N + 1 for a paired follow-up call.
    """
    first = next(_request_ids)
    for _ in range(span - 1):
        next(_request_ids)
    return first


class JsonRpcSender:
    """
    Minimal async JSON-RPC client for node-specific methods

    web3 picks its own request ids; the evm_* / personal_* / fed_* calls
    this helper issues are sent with explicit ids instead.

    Usage:
        sender = JsonRpcSender("http://localhost:4444")
        result = await sender.request("evm_mine", [], request_id=1)
        await sender.close()
    """

    def __init__(self, endpoint: str, timeout_seconds: float = 30.0):
        self._endpoint = endpoint
        self._timeout_seconds = timeout_seconds
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def endpoint(self) -> str:
        return self._endpoint

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client"""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self._timeout_seconds,
                headers={"Content-Type": "application/json"},
            )
        return self._client

    @staticmethod
    def build_envelope(method: str, params: Optional[List[Any]], request_id: int) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "jsonrpc": "2.0",
            "id": request_id,
            "method": method,
        }
        if params is not None:
            body["params"] = params
        return body

    async def request(
        self,
        method: str,
        params: Optional[List[Any]] = None,
        request_id: Optional[int] = None,
    ) -> Any:
        """
        Make JSON-RPC call

        Args:
            method: RPC method name
            params: RPC parameters; omitted from the envelope when None
            request_id: Envelope id (a fresh one when None)

        Returns:
            The response's "result" member

        Raises:
            NodeConnectionError: Node unreachable
            RpcError: Error object, bad status or malformed body
        """
        if request_id is None:
            request_id = new_request_id()
        body = self.build_envelope(method, params, request_id)
        logger.debug(f"RPC -> {method} id={request_id}")

        try:
            response = await self._get_client().post(self._endpoint, json=body)
            response.raise_for_status()
        except (httpx.ConnectError, httpx.ConnectTimeout) as e:
            raise NodeConnectionError.unreachable(self._endpoint, e) from e
        except httpx.TimeoutException as e:
            raise RpcError.timeout(method, self._timeout_seconds, e) from e
        except httpx.HTTPStatusError as e:
            raise RpcError.invalid_response(method, f"HTTP {e.response.status_code}", e) from e

        try:
            payload = response.json()
        except ValueError as e:
            raise RpcError.invalid_response(method, "body is not JSON", e) from e

        if not isinstance(payload, dict):
            raise RpcError.invalid_response(method, f"unexpected payload {payload!r}")
        if payload.get("error") is not None:
            error = payload["error"]
            if not isinstance(error, dict):
                error = {"message": str(error)}
            raise RpcError.from_response(method, error)

        return payload.get("result")

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None


class NodeHTTPProvider(AsyncHTTPProvider):
    """
    AsyncHTTPProvider whose connection failures read "Couldn't connect to node"

    web3's own exception retries are disabled; the helper's retry loop is the
    only place unreachable nodes are retried.
    """

    def __init__(self, endpoint_uri: str, timeout_seconds: float = 30.0):
        super().__init__(
            endpoint_uri,
            request_kwargs={"timeout": aiohttp.ClientTimeout(total=timeout_seconds)},
            exception_retry_configuration=None,
        )

    async def make_request(self, method, params):
        try:
            return await super().make_request(method, params)
        except (aiohttp.ClientConnectionError, ConnectionError) as e:
            raise NodeConnectionError.unreachable(str(self.endpoint_uri), e) from e


def create_web3(host_url: str, timeout_seconds: float = 30.0) -> AsyncWeb3:
    """
    Create AsyncWeb3 instance for a node

    Args:
        host_url: Node URL, scheme included
        timeout_seconds: Request timeout in seconds

    Returns:
        AsyncWeb3 client backed by NodeHTTPProvider
    """
    return AsyncWeb3(NodeHTTPProvider(host_url, timeout_seconds=timeout_seconds))
