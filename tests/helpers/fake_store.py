"""In-memory document store for testing.

Implements the DocumentStore capability without any network access. Tests
push change batches and subscription errors through the subscriptions the
code under test opened, and seed documents from YAML fixtures.
"""

from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from driverpro_notifier.domain.models import (
    ChangeBatch,
    ChangeEvent,
    ChangeKind,
    SubscriptionFilter,
)
from driverpro_notifier.store.base import (
    BatchCallback,
    DocumentStore,
    ErrorCallback,
    SubscriptionHandle,
)
from driverpro_notifier.store.exceptions import DocumentReadError, SubscriptionError


def load_fixture_documents(fixture_path: Path) -> Dict[str, Dict[str, Dict[str, Any]]]:
    """Load collections from a YAML fixture: ``{collection: {document_id: fields}}``.

    Raises:
        FileNotFoundError: If fixture file doesn't exist
    """
    if not fixture_path.exists():
        raise FileNotFoundError(f"Fixture file not found: {fixture_path}")

    with open(fixture_path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f)

    return data.get("collections", {})


class FakeSubscription(SubscriptionHandle):
    """Subscription handle recording what the code under test did with it."""

    def __init__(
        self,
        store: "FakeDocumentStore",
        collection: str,
        query_filter: SubscriptionFilter,
        on_batch: BatchCallback,
        on_error: ErrorCallback,
    ):
        self.store = store
        self.collection = collection
        self.query_filter = query_filter
        self.on_batch = on_batch
        self.on_error = on_error
        self.cancelled = False
        self.cancel_count = 0
        self.stream_alive = True

    def cancel(self) -> None:
        self.cancel_count += 1
        self.cancelled = True

    @property
    def is_active(self) -> bool:
        return not self.cancelled and self.stream_alive

    def emit(self, batch: ChangeBatch) -> Any:
        return self.on_batch(batch)

    def emit_modified(self, *documents: Any) -> Any:
        """Deliver one batch of modified changes given ``(id, fields)`` pairs."""
        changes = ((doc_id, ChangeKind.MODIFIED, data) for doc_id, data in documents)
        return self.emit(make_batch(*changes))

    def fail(self, message: str = "stream closed") -> None:
        self.on_error(SubscriptionError(message))


def make_batch(*changes: Any) -> ChangeBatch:
    """Build a ChangeBatch from ``(id, kind, fields)`` triples."""
    return ChangeBatch(
        changes=tuple(
            ChangeEvent(reservation_id=doc_id, kind=ChangeKind(kind), data=dict(data))
            for doc_id, kind, data in changes
        )
    )


class FakeDocumentStore(DocumentStore):
    """DocumentStore backed by nested dictionaries.

    Attributes:
        documents: ``{collection: {document_id: fields}}``
        subscriptions: Every subscription opened, in order
        subscribe_errors: Errors raised by the next subscribe() calls, consumed in order
        read_errors: ``{(collection, document_id): exception}`` raised by get_document()
    """

    def __init__(self, documents: Optional[Dict[str, Dict[str, Dict[str, Any]]]] = None):
        self.documents = documents or {}
        self.subscriptions: List[FakeSubscription] = []
        self.subscribe_errors: List[Exception] = []
        self.read_errors: Dict[Any, Exception] = {}
        self.reads: List[Any] = []

    def subscribe(
        self,
        collection: str,
        query_filter: SubscriptionFilter,
        on_batch: BatchCallback,
        on_error: ErrorCallback,
    ) -> SubscriptionHandle:
        if self.subscribe_errors:
            raise self.subscribe_errors.pop(0)
        subscription = FakeSubscription(self, collection, query_filter, on_batch, on_error)
        self.subscriptions.append(subscription)
        return subscription

    def get_document(self, collection: str, document_id: str) -> Optional[Dict[str, Any]]:
        self.reads.append((collection, document_id))
        error = self.read_errors.get((collection, document_id))
        if error is not None:
            raise error
        data = self.documents.get(collection, {}).get(document_id)
        return dict(data) if data is not None else None

    @property
    def latest(self) -> FakeSubscription:
        return self.subscriptions[-1]

    def active_subscriptions(self) -> List[FakeSubscription]:
        return [s for s in self.subscriptions if not s.cancelled]

    def fail_reads(self, collection: str, document_id: str, message: str = "unavailable") -> None:
        self.read_errors[(collection, document_id)] = DocumentReadError(
            message, collection=collection, document_id=document_id
        )
