"""End-to-end tests: store change batch to SendGrid request body.

Only the store (in-memory) and the HTTP session (mocked) are faked; the
manager, handler, formatter, notifier and SendGrid client are real.
"""

from unittest.mock import Mock

import pytest
import requests

from driverpro_notifier.listener import ReservationChangeHandler, SubscriptionManager
from driverpro_notifier.notifications import Notifier, SendGridClient


def accepted(message_id):
    response = Mock(spec=requests.Response)
    response.status_code = 202
    response.headers = {"X-Message-Id": message_id}
    return response


@pytest.fixture
def session():
    session = Mock()
    session.headers = {}
    session.post.side_effect = [accepted(f"msg-{i}") for i in range(1, 10)]
    return session


@pytest.fixture
def manager(store, session):
    notifier = Notifier(
        email_client=SendGridClient("SG.test-key", session=session),
        sender_email="notifications@driverpro.fr",
    )
    manager = SubscriptionManager(
        store=store,
        handler=ReservationChangeHandler(store=store, notifier=notifier),
        reconnect_delay_seconds=0.1,
    )
    manager.start()
    yield manager
    manager.shutdown()


def posted_bodies(session):
    return [c.kwargs["json"] for c in session.post.call_args_list]


def test_confirmed_reservation_reaches_sendgrid(manager, store, session, reservations):
    outcomes = store.latest.emit_modified(("abcdefgh1234", reservations["abcdefgh1234"]))

    assert outcomes[0].result.message_id == "msg-1"
    (body,) = posted_bodies(session)
    assert body["template_id"] == "d-81602ae7361f4254b28d4ca883226242"
    assert body["subject"] == "Course confirmée par votre chauffeur"
    assert body["from"] == {
        "email": "notifications@driverpro.fr",
        "name": "DriverPro Notifications",
    }
    personalization = body["personalizations"][0]
    assert personalization["to"] == [{"email": "alice@example.com"}]
    assert personalization["dynamic_template_data"] == {
        "reservationId": "abcdefgh",
        "clientName": "Alice",
        "driverName": "Marc Dupont",
        "driverPhone": "+33 6 12 34 56 78",
        "date": "lundi 3 mars 2025 à 14:05",
        "trip": {"from": "Gare de Lyon", "to": "Orly"},
        "price": "42.50",
    }


def test_mixed_batch_sends_only_eligible(manager, store, session, reservations):
    outcomes = store.latest.emit_modified(
        *((reservation_id, data) for reservation_id, data in reservations.items())
    )

    assert {o.reservation_id: o.status for o in outcomes} == {
        "abcdefgh1234": "sent",
        "ijklmnop5678": "sent",
        "nodriver0001": "skipped",
        "noemail00001": "skipped",
        "pending00001": "skipped",
    }
    subjects = [body["subject"] for body in posted_bodies(session)]
    assert subjects == ["Course confirmée par votre chauffeur", "Annulation de votre course"]


def test_provider_rejection_is_isolated(manager, store, session, reservations):
    rejected = Mock(spec=requests.Response)
    rejected.status_code = 400
    rejected.headers = {}
    rejected.json.return_value = {"errors": [{"message": "Invalid template"}]}
    session.post.side_effect = [rejected, accepted("msg-2")]

    outcomes = store.latest.emit_modified(
        ("abcdefgh1234", reservations["abcdefgh1234"]),
        ("ijklmnop5678", reservations["ijklmnop5678"]),
    )

    assert [(o.status, o.reason) for o in outcomes] == [
        ("failed", "dispatch_failed"),
        ("sent", None),
    ]
    assert session.post.call_count == 2
    assert len(store.active_subscriptions()) == 1
