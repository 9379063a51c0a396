"""
notifications.py — Change notifications for ledger tables.

The store publishes a table name after each committed write. Listeners get
no payload and are expected to refetch. Delivery is in-process and best
effort: a listener that raises is logged and skipped.

ChangeChannel wraps a private blinker Signal per instance; the application
creates one in create_app() and hands it to whoever needs it.
"""

import itertools
import logging
import threading

from blinker import Signal


logger = logging.getLogger(__name__)


class Subscription:
    """Handle returned by ChangeChannel.subscribe(); call unsubscribe() to detach."""

    def __init__(self, channel, table, receiver):
        self.channel = channel
        self.table = table
        self._receiver = receiver
        self.active = True

    def unsubscribe(self):
        if self.active:
            self.channel._signal.disconnect(self._receiver, sender=self.table)
            self.active = False


class ChangeChannel:
    """Per-table change notifications backed by a blinker Signal."""

    def __init__(self):
        self._signal = Signal('ledger-table-changed')

    def subscribe(self, table, callback):
        """Call `callback(table)` whenever `table` changes."""
        def receiver(sender, **kwargs):
            try:
                callback(sender)
            except Exception:
                logger.warning("Change listener for %s failed", sender, exc_info=True)

        # Strong reference: the subscription, not garbage collection, ends delivery
        self._signal.connect(receiver, sender=table, weak=False)
        return Subscription(self, table, receiver)

    def publish(self, table):
        logger.debug("Change published for %s", table)
        self._signal.send(table)


class LedgerRefresher:
    """
    Keep a recomputed view in step with the store.

    On every notification for one of `tables`, calls fetch() for a fresh
    snapshot and compute(snapshot) for the derived view. Each run gets a
    generation number; a run that finishes after a newer one has already
    been stored is discarded. refresh() may be called from several threads.

    Library API for long-lived consumers (workers, dashboards); request
    handlers compute on demand and do not hold a refresher.

    Args:
        channel: ChangeChannel to listen on.
        tables: Table names that invalidate the view.
        fetch: Callable returning the latest records.
        compute: Callable turning those records into the view.
    """

    def __init__(self, channel, tables, fetch, compute):
        self.channel = channel
        self.tables = tuple(tables)
        self.fetch = fetch
        self.compute = compute
        self.latest = None
        self.latest_generation = 0
        self._generations = itertools.count(1)
        self._lock = threading.Lock()
        self._subscriptions = []

    def start(self):
        """Subscribe and compute an initial view."""
        if not self._subscriptions:
            self._subscriptions = [self.channel.subscribe(t, self._on_change) for t in self.tables]
        return self.refresh()

    def stop(self):
        for subscription in self._subscriptions:
            subscription.unsubscribe()
        self._subscriptions = []

    def _on_change(self, table):
        logger.debug("Recomputing after change to %s", table)
        self.refresh()

    def refresh(self):
        with self._lock:
            generation = next(self._generations)
        result = self.compute(self.fetch())
        return self.accept(generation, result)

    def accept(self, generation, result):
        """Store `result` unless a newer generation is already stored."""
        with self._lock:
            if generation < self.latest_generation:
                logger.debug("Discarding superseded recompute %d (latest %d)",
                             generation, self.latest_generation)
                return self.latest
            self.latest_generation = generation
            self.latest = result
            return result
