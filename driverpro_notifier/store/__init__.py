"""Document store capability and its Firestore implementation."""

from .base import BatchCallback, DocumentStore, ErrorCallback, SubscriptionHandle
from .exceptions import (
    CapabilityInitError,
    DocumentReadError,
    StoreError,
    SubscriptionError,
)

__all__ = [
    "DocumentStore",
    "SubscriptionHandle",
    "BatchCallback",
    "ErrorCallback",
    "StoreError",
    "CapabilityInitError",
    "DocumentReadError",
    "SubscriptionError",
]
