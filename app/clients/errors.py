"""Error taxonomy shared by every source provider client."""

from __future__ import annotations


class ProviderError(RuntimeError):
    """Base error for source provider failures."""

    retryable = True

    def __init__(self, message: str, code: str = "PROVIDER_ERROR", *, provider: str = "provider") -> None:
        super().__init__(message)
        self.code = code
        self.provider = provider


class ProviderRateLimitError(ProviderError):
    """Raised when a provider responds with HTTP 429."""

    def __init__(self, provider: str, message: str | None = None) -> None:
        super().__init__(
            message or f"Rate limited by {provider} (HTTP 429)",
            code=f"{provider.upper()}_429",
            provider=provider,
        )


class ProviderTimeoutError(ProviderError):
    """Raised when a provider request times out."""

    def __init__(self, provider: str, message: str | None = None) -> None:
        super().__init__(
            message or f"{provider} request timed out",
            code=f"{provider.upper()}_TIMEOUT",
            provider=provider,
        )


class ProviderSchemaError(ProviderError):
    """Raised when a provider response does not match the expected schema."""

    retryable = False

    def __init__(self, provider: str, message: str | None = None) -> None:
        super().__init__(
            message or f"Unexpected {provider} response schema",
            code=f"{provider.upper()}_SCHEMA_ERR",
            provider=provider,
        )


class ProviderClientError(ProviderError):
    """Raised for non-retryable 4xx responses (bad key, bad request)."""

    retryable = False


class ModeError(RuntimeError):
    """Raised when runtime mode/source configuration is invalid."""

    def __init__(self, message: str, code: str = "E_MODE_UNSUPPORTED") -> None:
        super().__init__(message)
        self.code = code


class PersistenceError(RuntimeError):
    """Raised when a repository fails to save a record."""

    def __init__(self, message: str, code: str = "PERSISTENCE_ERROR") -> None:
        super().__init__(message)
        self.code = code
