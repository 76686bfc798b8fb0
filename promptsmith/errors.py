from __future__ import annotations


class PromptStoreError(Exception):
    """Base class for every error raised by the store."""


class NotFoundError(PromptStoreError, LookupError):
    def __init__(self, entity: str, entity_id: str | None = None) -> None:
        self.entity = entity
        self.entity_id = entity_id
        message = f"{entity} not found" if not entity_id else f"{entity} not found: {entity_id}"
        super().__init__(message)


class ValidationError(PromptStoreError, ValueError):
    pass


class EngineError(PromptStoreError, RuntimeError):
    pass


class TransactionScopeError(EngineError):
    pass


class ReadOnlyTransactionError(EngineError):
    pass
