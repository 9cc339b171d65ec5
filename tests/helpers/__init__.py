"""Test helper utilities for DriverPro notifier tests."""

from .fake_store import FakeDocumentStore, FakeSubscription, load_fixture_documents, make_batch

__all__ = ["FakeDocumentStore", "FakeSubscription", "load_fixture_documents", "make_batch"]
