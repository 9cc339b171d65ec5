"""Firestore implementation of the document store capability.

Wraps the Firebase Admin SDK: query listeners become SubscriptionHandles and
snapshot callbacks become ChangeBatch objects.
"""

import threading
from typing import Any, Dict, Optional

import firebase_admin
from firebase_admin import credentials, firestore
from google.api_core import exceptions as google_exceptions
from google.cloud.firestore_v1.base_query import FieldFilter

from driverpro_notifier.config.environment import EnvironmentConfig
from driverpro_notifier.domain.models import (
    ChangeBatch,
    ChangeEvent,
    ChangeKind,
    SubscriptionFilter,
)
from driverpro_notifier.logging import get_logger

from .base import BatchCallback, DocumentStore, ErrorCallback, SubscriptionHandle
from .exceptions import CapabilityInitError, DocumentReadError, SubscriptionError

logger = get_logger(__name__, component="store")

TOKEN_URI = "https://oauth2.googleapis.com/token"
DEFAULT_APP_NAME = "[DEFAULT]"


class FirestoreSubscription(SubscriptionHandle):
    """Handle around a Firestore query watch."""

    def __init__(self, watch: Any) -> None:
        self._watch = watch
        self._cancelled = False
        self._lock = threading.Lock()

    def cancel(self) -> None:
        with self._lock:
            if self._cancelled:
                return
            self._cancelled = True
        self._watch.unsubscribe()

    @property
    def is_active(self) -> bool:
        return not self._cancelled and bool(self._watch.is_active)


class FirestoreDocumentStore(DocumentStore):
    """DocumentStore backed by a google-cloud-firestore client."""

    def __init__(self, client: Any) -> None:
        self._client = client

    @classmethod
    def from_config(
        cls, env_config: EnvironmentConfig, app_name: str = DEFAULT_APP_NAME
    ) -> "FirestoreDocumentStore":
        """Initialize the Firebase Admin app from service-account fields and build a client.

        Raises:
            CapabilityInitError: If the credentials are invalid or the client cannot be created
        """
        try:
            certificate = credentials.Certificate(
                {
                    "type": "service_account",
                    "project_id": env_config.firebase_project_id,
                    "client_email": env_config.firebase_client_email,
                    "private_key": env_config.firebase_private_key,
                    "token_uri": TOKEN_URI,
                }
            )
            app = firebase_admin.initialize_app(
                certificate,
                {
                    "projectId": env_config.firebase_project_id,
                    "databaseURL": env_config.firebase_database_url,
                },
                name=app_name,
            )
            client = firestore.client(app)
        except Exception as e:
            raise CapabilityInitError(f"Failed to initialize Firestore: {e}") from e

        logger.info(
            "Firestore client initialized",
            extra={"event": "store.initialized", "project_id": env_config.firebase_project_id},
        )
        return cls(client)

    def subscribe(
        self,
        collection: str,
        query_filter: SubscriptionFilter,
        on_batch: BatchCallback,
        on_error: ErrorCallback,
    ) -> SubscriptionHandle:
        query = self._client.collection(collection).where(
            filter=FieldFilter(query_filter.field, query_filter.operator, list(query_filter.values))
        )

        def on_snapshot(_documents, changes, read_time) -> None:
            try:
                batch = to_change_batch(changes, read_time)
            except Exception as e:
                error = SubscriptionError(f"Unreadable snapshot from {collection}: {e}", cause=e)
                # This runs on the watch consumer thread, which cannot stop itself.
                threading.Thread(
                    target=on_error, args=(error,), name="firestore-watch-error", daemon=True
                ).start()
                return
            on_batch(batch)

        try:
            watch = query.on_snapshot(on_snapshot)
        except Exception as e:
            raise SubscriptionError(f"Failed to subscribe to {collection}: {e}", cause=e) from e

        return FirestoreSubscription(watch)

    def get_document(self, collection: str, document_id: str) -> Optional[Dict[str, Any]]:
        try:
            snapshot = self._client.collection(collection).document(document_id).get()
        except (google_exceptions.GoogleAPIError, ValueError) as e:
            raise DocumentReadError(
                f"Failed to read {collection}/{document_id}: {e}",
                collection=collection,
                document_id=document_id,
            ) from e

        if not snapshot.exists:
            return None
        return snapshot.to_dict() or {}


def to_change_batch(changes: Any, read_time: Any = None) -> ChangeBatch:
    """Translate Firestore DocumentChange objects into a ChangeBatch, preserving order."""
    events = []
    for change in changes:
        document = change.document
        events.append(
            ChangeEvent(
                reservation_id=document.id,
                kind=ChangeKind(change.type.name.lower()),
                data=document.to_dict() or {},
            )
        )
    return ChangeBatch(changes=tuple(events), read_time=read_time)
