"""
Application errors for clean API error handling.

Use ServiceUnavailableError when a dependency (database, embeddings, LLM)
is misconfigured or unreachable so the API can return 503 with a user-facing message.
"""


class ServiceUnavailableError(Exception):
    """Raised when a required service (e.g. LLM endpoint, embeddings API) is unavailable."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ConfigurationError(Exception):
    """Raised at startup when required settings are missing or inconsistent."""


class InvalidTenantError(ValueError):
    """Raised when a tenant id does not parse as a UUID. No query is issued."""

    def __init__(self, tenant_id: object) -> None:
        self.tenant_id = tenant_id
        super().__init__(f"Invalid tenant id: {tenant_id!r}")
