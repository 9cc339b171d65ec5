"""Exceptions raised by document store capabilities."""

from typing import Optional


class StoreError(Exception):
    """Base exception for document store failures."""

    pass


class CapabilityInitError(StoreError):
    """The store client could not be initialized (bad credentials, unreachable project).

    Fatal at startup.
    """

    pass


class DocumentReadError(StoreError):
    """A single document read failed for reasons other than the document being absent."""

    def __init__(self, message: str, collection: str, document_id: str) -> None:
        super().__init__(message)
        self.collection = collection
        self.document_id = document_id


class SubscriptionError(StoreError):
    """A live subscription could not be opened or stopped delivering changes.

    Recoverable: the subscription manager replaces the subscription.
    """

    def __init__(self, message: str, cause: Optional[BaseException] = None) -> None:
        super().__init__(message)
        self.cause = cause
