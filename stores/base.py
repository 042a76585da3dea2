"""Store contracts and the shared PostgREST client."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

import httpx

from config.settings import Settings, get_settings
from models.schemas import Action, Branch, DecisionLogEntry


class StoreError(Exception):
    """Base exception for data store errors."""

    def __init__(self, message: str, store_name: str) -> None:
        super().__init__(message)
        self.store_name = store_name


# =============================================================================
# Collaborator Contracts
# =============================================================================


class BranchStore(ABC):
    """Source of the candidate branches of a workflow."""

    @abstractmethod
    async def list_branches(self, workflow_id: str) -> list[Branch]:
        """Branches of the workflow ordered by priority descending; empty if none."""
        ...


class LogSink(ABC):
    """Destination for decision log entries."""

    @abstractmethod
    async def append(self, entry: DecisionLogEntry) -> None:
        """Write one entry; raises StoreError on failure."""
        ...


class ActionStore(ABC):
    """Source of the actions attached to a branch."""

    @abstractmethod
    async def list_actions(self, branch_id: str) -> list[Action]:
        """Actions of the branch ordered by execution_order ascending."""
        ...


# =============================================================================
# PostgREST Client
# =============================================================================


class BaseStore(ABC):
    """Abstract base class for stores backed by the Supabase REST API."""

    def __init__(
        self,
        settings: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    @abstractmethod
    def name(self) -> str:
        """Store name for logging and identification."""
        ...

    @property
    @abstractmethod
    def table(self) -> str:
        """Table the store reads from or writes to."""
        ...

    @property
    def url(self) -> str:
        """REST endpoint of the store's table."""
        if not self.settings.supabase_url:
            raise StoreError("SUPABASE_URL is not configured", self.name)
        return f"{self.settings.supabase_url.rstrip('/')}/rest/v1/{self.table}"

    def _headers(self) -> dict[str, str]:
        key = self.settings.supabase_anon_key or ""
        return {
            "apikey": key,
            "Authorization": f"Bearer {key}",
            "Content-Type": "application/json",
        }

    async def get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.settings.request_timeout),
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close HTTP client."""
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def _request(
        self,
        method: str,
        params: dict[str, Any] | None = None,
        **kwargs: Any,
    ) -> httpx.Response:
        """Make a single HTTP request, converting failures into StoreError."""
        url = self.url
        client = await self.get_client()
        headers = {**self._headers(), **kwargs.pop("headers", {})}

        try:
            response = await client.request(method, url, params=params, headers=headers, **kwargs)
            response.raise_for_status()
            return response
        except httpx.TimeoutException as e:
            raise StoreError(
                f"Request timed out after {self.settings.request_timeout}s",
                self.name,
            ) from e
        except httpx.HTTPStatusError as e:
            raise StoreError(
                f"HTTP error {e.response.status_code}: {e.response.text[:200]}",
                self.name,
            ) from e
        except httpx.RequestError as e:
            raise StoreError(f"Request failed: {e}", self.name) from e

    async def _select(self, params: dict[str, Any]) -> list[dict[str, Any]]:
        """Run a select query and return the decoded rows."""
        response = await self._request("GET", params={"select": "*", **params})
        try:
            rows = response.json()
        except ValueError as e:
            raise StoreError(f"Failed to parse response: {e}", self.name) from e
        if not isinstance(rows, list):
            raise StoreError("Expected a list of rows", self.name)
        return rows
