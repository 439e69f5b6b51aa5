"""JSON-RPC Transport: WalletTransport implementation over an HTTP node endpoint.

Invariants:
    - Transient failures (connection errors, 429, 5xx): retried with exponential backoff
    - JSON-RPC error objects surface as TransportError(code, message, data), never retried
    - Network failures after retries surface as TransportError(code=None)
    - No push events: on()/remove_listener() are accepted and never fire

Design Decisions:
    - Lets the same ProviderAdapter drive a dev node or a public read-only RPC
      (ADR: the ledger reader's override provider must not need a browser wallet)
    - eth_requestAccounts maps to eth_accounts: a node has no prompt, unlocked accounts are "authorized"
    - Wallet-only methods answer 4200 (unsupported method), like a provider without the capability
"""

import asyncio
import itertools
import logging
from collections.abc import Callable, Sequence
from typing import Any

import httpx

from donatechain.core.boundary_protocols import TransportError
from donatechain.infrastructure.backoff import backoff_ms, is_transient_status, retry_after_ms

logger = logging.getLogger(__name__)

RPC_UNSUPPORTED_METHOD = 4200
_WALLET_ONLY_METHODS = frozenset({
    "wallet_switchEthereumChain", "wallet_addEthereumChain",
})


class JsonRpcTransport:
    """HTTP JSON-RPC 2.0 client shaped like an injected wallet transport."""

    def __init__(
        self,
        rpc_url: str,
        timeout_seconds: float = 30.0,
        max_retries: int = 3,
        base_delay_ms: int = 500,
        max_delay_ms: int = 8_000,
        client: httpx.AsyncClient | None = None,
    ):
        self.rpc_url = rpc_url
        self.client = client or httpx.AsyncClient(timeout=timeout_seconds)
        self.max_retries = max_retries
        self.base_delay_ms = base_delay_ms
        self.max_delay_ms = max_delay_ms
        self._ids = itertools.count(1)
        self._listeners: dict[str, list[Callable[..., Any]]] = {}

    async def request(self, method: str, params: Sequence[Any] | None = None) -> Any:
        if method in _WALLET_ONLY_METHODS:
            raise TransportError(
                f"{method} is not supported by a node endpoint",
                code=RPC_UNSUPPORTED_METHOD,
            )
        if method == "eth_requestAccounts":
            method = "eth_accounts"

        body = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": list(params or []),
        }
        payload = await self._post(body)
        if not isinstance(payload, dict):
            raise TransportError(f"Malformed JSON-RPC response to {method}")
        error = payload.get("error")
        if error:
            raise TransportError(
                str(error.get("message", "unknown error")),
                code=error.get("code"),
                data=error.get("data"),
            )
        return payload.get("result")

    async def _post(self, body: dict) -> Any:
        method = body["method"]
        for attempt in range(self.max_retries + 1):
            try:
                response = await self.client.post(self.rpc_url, json=body)
            except httpx.TransportError as e:
                if attempt >= self.max_retries:
                    raise TransportError(
                        f"RPC endpoint unreachable after {self.max_retries} retries: {e}",
                    ) from e
                delay = backoff_ms(attempt, self.base_delay_ms, self.max_delay_ms)
                logger.warning(
                    f"RPC transport error on {method}, retry after {delay}ms: {e}",
                    extra={"attempt": attempt + 1},
                )
                await asyncio.sleep(delay / 1000)
                continue

            if is_transient_status(response.status_code):
                if attempt >= self.max_retries:
                    raise TransportError(
                        f"RPC endpoint returned HTTP {response.status_code} after retries",
                    )
                delay = retry_after_ms(response.headers) or backoff_ms(
                    attempt, self.base_delay_ms, self.max_delay_ms,
                )
                logger.warning(
                    f"RPC HTTP {response.status_code} on {method}, retry after {delay}ms",
                    extra={"attempt": attempt + 1},
                )
                await asyncio.sleep(delay / 1000)
                continue

            if response.status_code >= 400:
                raise TransportError(
                    f"RPC endpoint returned HTTP {response.status_code}",
                )
            try:
                return response.json()
            except ValueError as e:
                raise TransportError(f"RPC endpoint returned invalid JSON: {e}") from e

    def on(self, event: str, listener: Callable[..., Any]) -> None:
        self._listeners.setdefault(event, []).append(listener)

    def remove_listener(self, event: str, listener: Callable[..., Any]) -> None:
        listeners = self._listeners.get(event, [])
        if listener in listeners:
            listeners.remove(listener)

    async def aclose(self) -> None:
        await self.client.aclose()

    async def __aenter__(self) -> "JsonRpcTransport":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
