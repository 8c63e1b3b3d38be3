"""Shared HTTP plumbing for the async provider clients."""

from __future__ import annotations

from typing import Any

import httpx

from app.clients.errors import (
    ProviderClientError,
    ProviderError,
    ProviderRateLimitError,
    ProviderSchemaError,
    ProviderTimeoutError,
)


class JsonApiClient:
    """Maps transport failures and HTTP statuses onto the provider error taxonomy."""

    provider = "provider"

    def __init__(self, http_client: httpx.AsyncClient, *, timeout: float = 10.0) -> None:
        self._http = http_client
        self._timeout = timeout

    async def _send(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        kwargs.setdefault("timeout", self._timeout)
        try:
            response = await self._http.request(method, url, **kwargs)
        except httpx.TimeoutException as exc:
            raise ProviderTimeoutError(self.provider) from exc
        except httpx.HTTPError as exc:
            raise ProviderError(
                f"HTTP error calling {self.provider}: {exc}",
                code=f"{self.provider.upper()}_HTTP",
                provider=self.provider,
            ) from exc

        if response.status_code == 429:
            raise ProviderRateLimitError(self.provider)

        if response.status_code in (408, 504):
            raise ProviderTimeoutError(self.provider)

        if response.status_code >= 400:
            detail: str | None = None
            try:
                payload = response.json()
                if isinstance(payload, dict):
                    detail = payload.get("message") or payload.get("detail") or payload.get("error")
            except ValueError:
                detail = response.text[:200]
            message = f"{self.provider} request failed: {response.status_code}"
            if detail:
                message = f"{message} - {detail}"
            error_cls = ProviderError if response.status_code >= 500 else ProviderClientError
            raise error_cls(
                message,
                code=f"{self.provider.upper()}_{response.status_code}",
                provider=self.provider,
            )

        return response

    async def _request_json(self, method: str, url: str, **kwargs: Any) -> Any:
        response = await self._send(method, url, **kwargs)
        try:
            return response.json()
        except ValueError as exc:
            raise ProviderSchemaError(
                self.provider, f"Failed to decode {self.provider} response JSON."
            ) from exc

    def _require_list(self, payload: Any, key: str) -> list[dict[str, Any]]:
        results = payload.get(key) if isinstance(payload, dict) else None
        if not isinstance(results, list):
            raise ProviderSchemaError(self.provider, f"`{key}` missing from {self.provider} response.")
        if not all(isinstance(entry, dict) for entry in results):
            raise ProviderSchemaError(self.provider, f"Entries in `{key}` must be JSON objects.")
        return results
