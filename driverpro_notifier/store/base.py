"""Document store capability consumed by the listener.

Implementations translate their client's change notifications into
ChangeBatch objects, so nothing downstream depends on a particular
store SDK or its callback signatures.
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Optional

from driverpro_notifier.domain.models import ChangeBatch, SubscriptionFilter

from .exceptions import SubscriptionError

BatchCallback = Callable[[ChangeBatch], None]
ErrorCallback = Callable[[SubscriptionError], None]


class SubscriptionHandle(ABC):
    """A live, cancellable subscription."""

    @abstractmethod
    def cancel(self) -> None:
        """Stop delivery and release resources. Safe to call more than once."""

    @property
    @abstractmethod
    def is_active(self) -> bool:
        """False once the subscription was cancelled or its stream ended."""


class DocumentStore(ABC):
    """Read and subscribe operations on a document store."""

    @abstractmethod
    def subscribe(
        self,
        collection: str,
        query_filter: SubscriptionFilter,
        on_batch: BatchCallback,
        on_error: ErrorCallback,
    ) -> SubscriptionHandle:
        """Open a live subscription to documents of ``collection`` matching ``query_filter``.

        ``on_batch`` receives every change batch in arrival order. ``on_error``
        is called when the subscription fails after it was established.

        Raises:
            SubscriptionError: If the subscription cannot be opened
        """

    @abstractmethod
    def get_document(self, collection: str, document_id: str) -> Optional[Dict[str, Any]]:
        """Return the document's fields, or None if it does not exist.

        Raises:
            DocumentReadError: If the read itself fails
        """
