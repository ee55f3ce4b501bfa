"""Error taxonomy for sherdview.

Validation errors are raised before any request reaches a store. Fetch errors
wrap whatever the data-access backend raised. Tree traversal errors mark a
failed hierarchical walk, which never yields partial rows.
"""

from typing import Optional


class SherdViewError(Exception):
    """Base exception for sherdview operations."""


class FilterValidationError(SherdViewError, ValueError):
    """Raised when a caller-supplied filter violates a structural limit."""


class FetchError(SherdViewError, RuntimeError):
    """Raised when the data-access collaborator fails."""


class TreeTraversalError(FetchError):
    """Raised when any level of a hierarchical walk fails."""

    def __init__(self, message: str, collection_path: Optional[str] = None):
        super().__init__(message)
        self.collection_path = collection_path
