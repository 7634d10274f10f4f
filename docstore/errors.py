"""
Error taxonomy for the document repository

Absence is never an error: fetches and dequeues return None when nothing
is stored. Everything in this module signals a genuine failure.
"""

from typing import Optional


class RepositoryError(Exception):
    """Base class for all repository failures"""

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        resource: Optional[str] = None,
        identifier: Optional[str] = None
    ):
        """
        Initialize the error with optional diagnostic context.

        Args:
            message: Human readable description
            operation: Name of the operation that failed (e.g. 'fetch_document')
            resource: Resource kind ('citation', 'draft', 'document', 'type', 'queue')
                or the backend primitive's key namespace
            identifier: Identifier or storage key involved in the failure
        """
        super().__init__(message)
        self.message = message
        self.operation = operation
        self.resource = resource
        self.identifier = identifier

    def with_context(
        self,
        operation: str,
        resource: str,
        identifier: str
    ) -> "RepositoryError":
        """Return a copy of this error carrying repository-level context."""
        return type(self)(
            f"{operation} failed for {resource} '{identifier}': {self.message}",
            operation=operation,
            resource=resource,
            identifier=identifier
        )

    def __str__(self) -> str:
        return self.message


class AlreadyExists(RepositoryError):
    """A write-once record already exists under the identifier"""


class AlreadyCommitted(RepositoryError):
    """A draft cannot be saved because a committed document has the same identifier"""


class TransportFailure(RepositoryError):
    """The backend could not be reached or failed internally"""


class MalformedRequest(RepositoryError):
    """A request could not be formed or was rejected as invalid"""


class MalformedResponse(RepositoryError):
    """A stored record or remote response could not be interpreted"""


class CitationMismatch(RepositoryError):
    """A cited document does not match the digest recorded in its citation"""
