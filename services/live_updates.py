"""
Live query subscriptions over incident reports.

A subscriber registers interest in one of the report views and receives a
full snapshot of that view on subscribe and again after every committed
change to a matching report, until it unsubscribes.

Writes complete on worker threads (background tasks), so the hub is guarded
by a threading lock and never calls subscriber callbacks while holding it.
"""
import itertools
import threading
from typing import Callable, Dict, Iterable, List, Optional, Tuple, Union

from core.lifecycle import rank
from core.logger import logger
from database.models import ReportStatus


Snapshot = Union[List[dict], Optional[dict]]
SnapshotCallback = Callable[[Snapshot], None]


class ReportQuery:
    """Base class for the report views the hub can serve."""
    view = "reports"
    single = False

    def matches(self, record: dict) -> bool:
        raise NotImplementedError

    def describe(self) -> str:
        return self.view


class OwnReportsQuery(ReportQuery):
    """Reports filed by one user."""
    view = "own_reports"

    def __init__(self, user_id: str):
        self.user_id = user_id

    def matches(self, record: dict) -> bool:
        return record.get("userId") == self.user_id

    def describe(self) -> str:
        return f"{self.view}:{self.user_id}"


class AllReportsQuery(ReportQuery):
    """Every report (administrators)."""
    view = "all_reports"

    def matches(self, record: dict) -> bool:
        return True


class SingleReportQuery(ReportQuery):
    """
    One report by id; the snapshot is the record or None when it does not exist.

    With `owner_id` set, reports filed by anyone else never match, so a
    non-administrator sees a foreign report as not found.
    """
    view = "report"
    single = True

    def __init__(self, report_id: str, owner_id: Optional[str] = None):
        self.report_id = report_id
        self.owner_id = owner_id

    def matches(self, record: dict) -> bool:
        if record.get("id") != self.report_id:
            return False
        return self.owner_id is None or record.get("userId") == self.owner_id

    def describe(self) -> str:
        return f"{self.view}:{self.report_id}"


def merge_record(existing: Optional[dict], incoming: dict) -> dict:
    """
    Combine two versions of the same report.

    Status is forward-only, so the version with the later status wins even if
    publications arrive out of order.
    """
    if existing is None:
        return incoming
    if rank(ReportStatus(existing["status"])) > rank(ReportStatus(incoming["status"])):
        return existing
    return incoming


class Subscription:
    """
    A registered interest in one query.

    Every snapshot gets a sequence number when it is built (under the hub
    lock). Delivery is serialized per subscription and a snapshot older than
    the last one delivered is dropped, so callbacks see snapshots in the
    order they were built.
    """

    def __init__(self, subscription_id: int, query: ReportQuery, callback: SnapshotCallback):
        self.id = subscription_id
        self.query = query
        self.callback = callback
        self.records: Dict[str, dict] = {}
        self.active = True
        self.loading = True  # publishes are merged but not delivered until the initial snapshot
        self.sequence = 0
        self.delivered = 0
        self.delivery_lock = threading.RLock()

    def snapshot(self) -> Snapshot:
        if self.query.single:
            return next(iter(self.records.values()), None)
        return sorted(self.records.values(), key=lambda r: r.get("reportDateTime") or "", reverse=True)

    def next_snapshot(self) -> Tuple[int, Snapshot]:
        """Build the current snapshot with its sequence number (caller holds the hub lock)."""
        self.sequence += 1
        return self.sequence, self.snapshot()

    def merge(self, record: dict) -> None:
        self.records[record["id"]] = merge_record(self.records.get(record["id"]), record)


class LiveQueryHub:
    """Observer registry that fans report changes out to matching subscriptions."""

    def __init__(self):
        self._subscriptions: Dict[int, Subscription] = {}
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def subscribe(
        self,
        query: ReportQuery,
        callback: SnapshotCallback,
        loader: Optional[Callable[[], Iterable[dict]]] = None,
    ) -> Subscription:
        """
        Register a subscription and deliver its initial snapshot.

        The subscription is registered before `loader` runs so a change committed
        while the initial records are being read is not lost. Such changes are
        held back and folded into the initial snapshot, which is always the
        first one the callback receives.

        Args:
            query: The view to follow
            callback: Called with every new snapshot
            loader: Returns the records currently matching the query

        Returns:
            The Subscription handle (pass it to unsubscribe)
        """
        with self._lock:
            subscription = Subscription(next(self._ids), query, callback)
            self._subscriptions[subscription.id] = subscription

        try:
            initial = list(loader()) if loader else []
        except Exception:
            self.unsubscribe(subscription)
            raise

        with self._lock:
            for record in initial:
                if query.matches(record):
                    subscription.merge(record)
            subscription.loading = False
            sequence, snapshot = subscription.next_snapshot()

        logger.debug(f"Live subscription {subscription.id} registered for {query.describe()}")
        self._deliver(subscription, sequence, snapshot)
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        with self._lock:
            subscription.active = False
            self._subscriptions.pop(subscription.id, None)
        logger.debug(f"Live subscription {subscription.id} removed")

    def publish(self, record: dict) -> int:
        """
        Push a committed report version to every matching subscription.

        Returns:
            Number of subscriptions a new snapshot was sent to (subscriptions
            still loading pick the record up in their initial snapshot)
        """
        deliveries = []
        with self._lock:
            for subscription in self._subscriptions.values():
                if not subscription.query.matches(record):
                    continue
                subscription.merge(record)
                if subscription.loading:
                    continue
                deliveries.append((subscription,) + subscription.next_snapshot())

        for subscription, sequence, snapshot in deliveries:
            self._deliver(subscription, sequence, snapshot)
        return len(deliveries)

    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscriptions)

    def _deliver(self, subscription: Subscription, sequence: int, snapshot: Snapshot) -> None:
        with subscription.delivery_lock:
            if not subscription.active or sequence <= subscription.delivered:
                # a newer snapshot already went out
                return
            subscription.delivered = sequence
            try:
                subscription.callback(snapshot)
            except Exception as e:
                # A broken subscriber must not affect the writer or other subscribers
                logger.warning(f"Live subscription {subscription.id} callback failed: {e}", exc_info=True)
