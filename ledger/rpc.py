"""Antelope chain API client with endpoint failover and exponential backoff."""
import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional, Protocol, TypeVar

import httpx

from shared.constants import RETRY_BACKOFF, RETRY_INITIAL_DELAY, RETRY_MAX_DELAY
from shared.errors import TransportError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class TransactionPusher(Protocol):
    """Signs an action bundle and pushes it to one endpoint."""

    async def push(self, endpoint: str, actions: list[dict], expire_seconds: int) -> dict:
        ...


class FailoverRpcClient:
    """Chain API client that rotates endpoints and backs off on failure.

    Every read and write runs through ``_with_failover``: up to one attempt
    per configured endpoint, rotating round-robin to the next endpoint after
    each failure. The rotation is sticky across calls until the next failure.
    """

    def __init__(
        self,
        endpoints: list[str],
        pusher: Optional[TransactionPusher] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 10.0,
        initial_delay: float = RETRY_INITIAL_DELAY,
        max_delay: float = RETRY_MAX_DELAY,
        backoff: float = RETRY_BACKOFF,
    ):
        if not endpoints:
            raise ValueError("At least one RPC endpoint is required")
        self.endpoints = [e.rstrip("/") for e in endpoints]
        self.pusher = pusher
        self.initial_delay = initial_delay
        self.max_delay = max_delay
        self.backoff = backoff
        self._index = 0
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)

    @property
    def current_endpoint(self) -> str:
        return self.endpoints[self._index]

    @property
    def max_attempts(self) -> int:
        return len(self.endpoints)

    def _rotate(self) -> None:
        self._index = (self._index + 1) % len(self.endpoints)
        logger.debug("Rotated RPC endpoint", extra={"endpoint": self.current_endpoint})

    async def _with_failover(self, fn: Callable[[str], Awaitable[T]], operation: str) -> T:
        delay = self.initial_delay
        last_error: Optional[Exception] = None

        for attempt in range(1, self.max_attempts + 1):
            endpoint = self.current_endpoint
            try:
                return await fn(endpoint)
            except Exception as e:
                last_error = e
                self._rotate()
                if attempt < self.max_attempts:
                    logger.warning(
                        f"Attempt {attempt} failed, retrying in {delay:.1f}s",
                        extra={
                            "operation": operation,
                            "endpoint": endpoint,
                            "next_endpoint": self.current_endpoint,
                            "error": str(e),
                        },
                    )
                    await asyncio.sleep(delay)
                    delay = min(delay * self.backoff, self.max_delay)

        raise last_error

    async def _post(self, endpoint: str, path: str, payload: dict) -> Any:
        url = f"{endpoint}{path}"
        try:
            resp = await self._client.post(url, json=payload)
        except httpx.HTTPError as e:
            raise TransportError(f"{url} unreachable: {e}", endpoint=endpoint) from e
        if resp.status_code >= 300:
            raise TransportError(
                f"{url} returned {resp.status_code}: {resp.text[:200]}",
                endpoint=endpoint,
                status_code=resp.status_code,
            )
        try:
            return resp.json()
        except ValueError as e:
            raise TransportError(f"{url} returned invalid JSON: {e}", endpoint=endpoint) from e

    async def read(self, path: str, payload: dict) -> Any:
        """POST a chain API read, with failover."""
        return await self._with_failover(
            lambda endpoint: self._post(endpoint, path, payload), path
        )

    async def get_table_page(
        self,
        scope: str,
        code: str,
        table: str,
        lower_bound: Optional[Any] = None,
        upper_bound: Optional[Any] = None,
        limit: int = 100,
        reverse: bool = False,
    ) -> dict:
        """Read one page of a contract table: ``{"rows": [...], "more": bool}``."""
        payload = {
            "json": True,
            "scope": scope,
            "code": code,
            "table": table,
            "limit": limit,
            "reverse": reverse,
        }
        if lower_bound is not None:
            payload["lower_bound"] = str(lower_bound)
        if upper_bound is not None:
            payload["upper_bound"] = str(upper_bound)
        data = await self.read("/v1/chain/get_table_rows", payload)
        return {"rows": data.get("rows", []), "more": bool(data.get("more", False))}

    async def get_table_rows(self, scope: str, code: str, table: str, **kwargs) -> list[dict]:
        page = await self.get_table_page(scope, code, table, **kwargs)
        return page["rows"]

    async def get_currency_balance(self, code: str, account: str, symbol: str) -> list[str]:
        return await self.read(
            "/v1/chain/get_currency_balance",
            {"code": code, "account": account, "symbol": symbol},
        )

    async def write(self, actions: list[dict], expire_seconds: int) -> dict:
        """Sign and push one atomic transaction, with failover."""
        if self.pusher is None:
            raise RuntimeError("FailoverRpcClient has no transaction pusher configured")
        return await self._with_failover(
            lambda endpoint: self.pusher.push(endpoint, actions, expire_seconds),
            "push_transaction",
        )

    async def close(self) -> None:
        await self._client.aclose()
