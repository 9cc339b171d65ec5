"""Subscription manager: keeps a live subscription to reservations and dispatches changes.

The store delivers change batches on its own thread. Each batch is processed
there, one modified reservation at a time in delivery order; a failure is
confined to its reservation. When the subscription itself fails, the handle
is dropped and a single replacement is scheduled after a fixed delay with
APScheduler. There is no backoff and no retry limit: the service is expected
to run indefinitely.
"""

import logging
import threading
from datetime import timedelta, timezone
from functools import partial
from typing import Callable, List, Optional

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.date import DateTrigger
from apscheduler.triggers.interval import IntervalTrigger

from driverpro_notifier.domain.models import ChangeBatch, ChangeEvent, SubscriptionFilter
from driverpro_notifier.logging import get_logger
from driverpro_notifier.logging.context import log_context
from driverpro_notifier.notifications.templates import watched_statuses
from driverpro_notifier.store.base import DocumentStore, SubscriptionHandle
from driverpro_notifier.store.exceptions import SubscriptionError
from driverpro_notifier.utils.timestamps import utc_now

from .exceptions import HandlerError
from .handler import ReservationChangeHandler
from .models import ChangeOutcome, SubscriptionState

logger = get_logger(__name__, component="listener")

DEFAULT_RECONNECT_DELAY_SECONDS = 5.0
DEFAULT_HEALTH_CHECK_INTERVAL_SECONDS = 30

FatalCallback = Callable[[BaseException], None]


class SubscriptionManager:
    """Owns the reservation subscription and its reconnection.

    Attributes:
        store: Document store capability
        handler: Handler invoked for every modified reservation
        collection: Reservations collection name
        reconnect_delay_seconds: Fixed delay before resubscribing after an error
        on_fatal: Called with errors that escape per-reservation isolation
    """

    RESUBSCRIBE_JOB_ID = "resubscribe"
    HEALTH_CHECK_JOB_ID = "subscription-health-check"

    def __init__(
        self,
        store: DocumentStore,
        handler: ReservationChangeHandler,
        collection: str = "reservations",
        reconnect_delay_seconds: float = DEFAULT_RECONNECT_DELAY_SECONDS,
        health_check_interval_seconds: int = DEFAULT_HEALTH_CHECK_INTERVAL_SECONDS,
        on_fatal: Optional[FatalCallback] = None,
        logger_instance: Optional[logging.Logger] = None,
    ):
        self.store = store
        self.handler = handler
        self.collection = collection
        self.reconnect_delay_seconds = reconnect_delay_seconds
        self.health_check_interval_seconds = health_check_interval_seconds
        self.on_fatal = on_fatal
        self.logger = logger_instance or logger

        self.scheduler = BackgroundScheduler(
            job_defaults={
                "max_instances": 1,
                "coalesce": True,
                "misfire_grace_time": None,
            },
            timezone=timezone.utc,
        )

        # Reentrant: a store may deliver a callback synchronously from subscribe().
        self._lock = threading.RLock()
        self._handle: Optional[SubscriptionHandle] = None
        self._state = SubscriptionState.DISCONNECTED
        self._subscription_id = 0

    @property
    def state(self) -> SubscriptionState:
        return self._state

    @property
    def subscription_id(self) -> int:
        """Increments with every subscription attempt."""
        return self._subscription_id

    @property
    def has_active_subscription(self) -> bool:
        return self._handle is not None

    @property
    def resubscribe_pending(self) -> bool:
        return self.scheduler.get_job(self.RESUBSCRIBE_JOB_ID) is not None

    def query_filter(self) -> SubscriptionFilter:
        """Only reservations whose status has a template are observed."""
        return SubscriptionFilter("status", "in", tuple(watched_statuses()))

    def start(self) -> None:
        """Start the scheduler and open the first subscription.

        Raises:
            RuntimeError: If the manager was already stopped
        """
        with self._lock:
            if self._state is SubscriptionState.STOPPED:
                raise RuntimeError("SubscriptionManager cannot be restarted after unsubscribe()")

            if not self.scheduler.running:
                self.scheduler.start()
            self.scheduler.add_job(
                func=self._check_subscription,
                trigger=IntervalTrigger(
                    seconds=self.health_check_interval_seconds, timezone=timezone.utc
                ),
                id=self.HEALTH_CHECK_JOB_ID,
                name="Reservation subscription health check",
                replace_existing=True,
            )

        self.logger.info(
            "Initializing reservation listener",
            extra={
                "event": "listener.starting",
                "collection": self.collection,
                "filter": self.query_filter().describe(),
                "reconnect_delay_seconds": self.reconnect_delay_seconds,
            },
        )
        self._subscribe()

    def unsubscribe(self) -> None:
        """Release the current subscription and stop for good.

        Idempotent. After this returns no subscription will be opened again,
        including one that was waiting for its reconnect delay.
        """
        with self._lock:
            already_stopped = self._state is SubscriptionState.STOPPED
            self._state = SubscriptionState.STOPPED
            self._cancel_pending_resubscribe()
            self._release_handle()

        if not already_stopped:
            self.logger.info(
                "Reservation listener unsubscribed",
                extra={"event": "listener.unsubscribed", "subscription_id": self._subscription_id},
            )

    def shutdown(self) -> None:
        """Unsubscribe and stop the scheduler without waiting for running jobs."""
        self.unsubscribe()
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)

    def process_batch(self, batch: ChangeBatch) -> List[ChangeOutcome]:
        """Handle the modified changes of a batch in delivery order.

        Added and removed changes are ignored. A failing reservation never
        stops the rest of the batch.

        Returns:
            One ChangeOutcome per modified change
        """
        self.logger.info(
            f"{len(batch)} change(s) received",
            extra={"event": "listener.batch.received", "change_count": len(batch)},
        )

        outcomes = [self._process_change(change) for change in batch.modified()]

        if outcomes:
            sent = sum(1 for o in outcomes if o.is_success())
            skipped = sum(1 for o in outcomes if o.status == "skipped")
            failed = sum(1 for o in outcomes if o.status == "failed")
            self.logger.info(
                f"Batch complete: {sent} sent, {skipped} skipped, {failed} failed",
                extra={
                    "event": "listener.batch.completed",
                    "sent": sent,
                    "skipped": skipped,
                    "failed": failed,
                },
            )
        return outcomes

    def _process_change(self, change: ChangeEvent) -> ChangeOutcome:
        reservation_id = change.reservation_id
        with log_context(reservation_id=reservation_id):
            try:
                result = self.handler.handle(reservation_id, change.data)
            except HandlerError as e:
                self.logger.warning(
                    f"Processing failed for reservation {reservation_id}: {e}",
                    extra={"event": "listener.change.failed", "reason": e.reason},
                )
                return ChangeOutcome(
                    reservation_id=reservation_id,
                    status=e.outcome,
                    reason=e.reason,
                    error=str(e),
                )
            except Exception as e:
                self.logger.error(
                    f"Unexpected error processing reservation {reservation_id}: {e}",
                    exc_info=True,
                    extra={"event": "listener.change.failed", "reason": "unexpected_error"},
                )
                return ChangeOutcome(
                    reservation_id=reservation_id,
                    status="failed",
                    reason="unexpected_error",
                    error=str(e),
                )

        return ChangeOutcome(reservation_id=reservation_id, status="sent", result=result)

    def _subscribe(self) -> None:
        try:
            with self._lock:
                if self._state is SubscriptionState.STOPPED:
                    self.logger.info(
                        "Listener stopped, not subscribing",
                        extra={"event": "listener.subscribe.skipped"},
                    )
                    return

                # Never keep two live subscriptions.
                self._release_handle()

                self._subscription_id += 1
                subscription_id = self._subscription_id
                self._state = SubscriptionState.SUBSCRIBING

                try:
                    handle = self.store.subscribe(
                        self.collection,
                        self.query_filter(),
                        on_batch=partial(self._on_batch, subscription_id),
                        on_error=partial(self._on_error, subscription_id),
                    )
                except SubscriptionError as e:
                    self._state = SubscriptionState.DISCONNECTED
                    self._schedule_resubscribe(e, subscription_id)
                    return

                if self._state is not SubscriptionState.SUBSCRIBING:
                    # The store reported an error before subscribe() returned.
                    handle.cancel()
                    return

                self._handle = handle
                self._state = SubscriptionState.LISTENING

            self.logger.info(
                "Reservation listener active",
                extra={"event": "listener.subscribed", "subscription_id": subscription_id},
            )
        except Exception as e:
            self._report_fatal(e)

    def _on_batch(self, subscription_id: int, batch: ChangeBatch) -> List[ChangeOutcome]:
        if subscription_id != self._subscription_id or self._state is SubscriptionState.STOPPED:
            self.logger.debug(
                "Ignoring batch from a replaced subscription",
                extra={"event": "listener.batch.stale", "subscription_id": subscription_id},
            )
            return []

        try:
            with log_context(subscription_id=subscription_id):
                return self.process_batch(batch)
        except Exception as e:
            self._report_fatal(e)
            return []

    def _on_error(self, subscription_id: int, error: SubscriptionError) -> None:
        with self._lock:
            if subscription_id != self._subscription_id or self._state not in (
                SubscriptionState.SUBSCRIBING,
                SubscriptionState.LISTENING,
            ):
                self.logger.debug(
                    f"Ignoring error from inactive subscription: {error}",
                    extra={"event": "listener.error.stale", "subscription_id": subscription_id},
                )
                return

            self._release_handle()
            self._state = SubscriptionState.DISCONNECTED
            self._schedule_resubscribe(error, subscription_id)

    def _check_subscription(self) -> None:
        try:
            with self._lock:
                handle = self._handle
                if self._state is not SubscriptionState.LISTENING or handle is None:
                    return
                if handle.is_active:
                    return
                subscription_id = self._subscription_id

            self._on_error(
                subscription_id, SubscriptionError("Subscription stream is no longer active")
            )
        except Exception as e:
            self._report_fatal(e)

    def _schedule_resubscribe(self, error: SubscriptionError, subscription_id: int) -> None:
        run_date = utc_now() + timedelta(seconds=self.reconnect_delay_seconds)
        self.logger.error(
            f"Subscription error: {error}",
            extra={
                "event": "listener.subscription.failed",
                "subscription_id": subscription_id,
                "retry_in_seconds": self.reconnect_delay_seconds,
            },
        )
        # Fixed id: an error arriving while a retry is pending replaces it, never adds one.
        self.scheduler.add_job(
            func=self._subscribe,
            trigger=DateTrigger(run_date=run_date, timezone=timezone.utc),
            id=self.RESUBSCRIBE_JOB_ID,
            name="Reservation resubscription",
            replace_existing=True,
        )

    def _cancel_pending_resubscribe(self) -> None:
        try:
            self.scheduler.remove_job(self.RESUBSCRIBE_JOB_ID)
        except JobLookupError:
            pass

    def _release_handle(self) -> None:
        handle, self._handle = self._handle, None
        if handle is None:
            return
        try:
            handle.cancel()
        except Exception as e:
            self.logger.warning(
                f"Error cancelling subscription: {e}",
                extra={"event": "listener.cancel.failed"},
            )

    def _report_fatal(self, error: BaseException) -> None:
        self.logger.critical(
            f"Unrecoverable listener error: {error}",
            exc_info=error,
            extra={"event": "listener.fatal", "error_type": type(error).__name__},
        )
        if self.on_fatal is not None:
            self.on_fatal(error)
