from __future__ import annotations


class ContextAssemblyError(Exception):
    """Base class for every error raised by context assembly."""


class InvalidContextRequest(ContextAssemblyError, ValueError):
    """The request is missing required fields or carries an unknown format."""


class EntityNotFoundError(ContextAssemblyError):
    def __init__(self, entity_id: str):
        super().__init__(f"Entity not found: {entity_id}")
        self.entity_id = entity_id


class ProviderError(ContextAssemblyError):
    """A provider failed while fail-fast mode is enabled."""

    def __init__(self, provider: str, cause: BaseException):
        super().__init__(f"Provider '{provider}' failed: {cause}")
        self.provider = provider


class AssemblyTimeoutError(ContextAssemblyError, TimeoutError):
    def __init__(self, timeout: float):
        super().__init__(f"Context assembly exceeded {timeout:.2f}s")
        self.timeout = timeout


class GraphStoreUnavailable(ContextAssemblyError):
    """No graph store is configured, or the configured one cannot be reached."""
