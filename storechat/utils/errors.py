"""Exception hierarchy shared by the catalog, LLM and execution layers."""
from typing import List, Optional

from ..schemas.action_models import ErrorKind


class StoreChatError(Exception):
    """Base class for all STORE-CHAT errors."""

    kind: Optional[ErrorKind] = None


# Catalog backend ---------------------------------------------------------

class CatalogError(StoreChatError):
    """Network or backend failure talking to the catalog service."""

    kind = ErrorKind.remote_failure


class CatalogAuthError(CatalogError):
    """The catalog rejected our credentials (401/403)."""


class CatalogUnavailableError(CatalogError):
    """Network failure, timeout or 5xx from the catalog."""


class CatalogItemMissingError(StoreChatError):
    """The backend has no record with the given id."""

    kind = ErrorKind.not_found

    def __init__(self, item_id: str):
        super().__init__(f"Catalog item {item_id} does not exist")
        self.item_id = item_id


# Language model ----------------------------------------------------------

class ChatServiceError(StoreChatError):
    """The language-model service failed or returned an unusable payload."""

    kind = ErrorKind.remote_failure


# Product lookup ----------------------------------------------------------

class ProductLookupError(StoreChatError):
    """Resolving an intent to a single catalog item failed."""


class ProductNotFoundError(ProductLookupError):
    kind = ErrorKind.not_found

    def __init__(self, reference: str, suggestions: Optional[List[str]] = None):
        self.reference = reference
        self.suggestions = suggestions or []
        message = f"Product not found: {reference}"
        if self.suggestions:
            message += f". Did you mean: {', '.join(self.suggestions)}?"
        super().__init__(message)


class AmbiguousProductError(ProductLookupError):
    kind = ErrorKind.ambiguous

    def __init__(self, reference: str, matches: List[str]):
        self.reference = reference
        self.matches = matches
        super().__init__(
            f"Found {len(matches)} products matching '{reference}'. Please be more specific."
        )


class MissingEntityError(ProductLookupError):
    kind = ErrorKind.invalid_entity

    def __init__(self, entity: str, message: Optional[str] = None):
        self.entity = entity
        super().__init__(message or f"Missing required parameter: {entity}")


# Execution engine --------------------------------------------------------

class ExecutionNotFoundError(StoreChatError):
    def __init__(self, execution_id: str):
        super().__init__(f"Execution not found: {execution_id}")
        self.execution_id = execution_id


class InvalidTransitionError(StoreChatError):
    def __init__(self, current, target):
        super().__init__(f"Illegal status transition {current} -> {target}")
        self.current = current
        self.target = target


class RollbackNotAllowedError(StoreChatError):
    """The execution is not completed, not undoable, or already rolled back."""

    def __init__(self, execution_id: str, reason: str):
        super().__init__(f"Execution {execution_id} cannot be rolled back: {reason}")
        self.execution_id = execution_id
