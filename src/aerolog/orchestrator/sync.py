"""Remote replication: pull on configure/startup, debounced push on change."""

from __future__ import annotations

import threading
from typing import Any, Callable, List, Optional

from ..domain.models import FlightReport, SyncState, SyncStatus, now_ms, reports_from_wire, reports_to_wire
from ..logging import get_logger
from ..remote.client import RemoteStoreClient, SyncError

LOG = get_logger("orchestrator-sync")

DEFAULT_QUIET_PERIOD = 1.0

TimerFactory = Callable[..., Any]


class PushDebouncer:
    """Run an action once the caller has been quiet for ``quiet_period`` seconds.

    Scheduling again before the timer fires cancels the pending timer and
    starts a new one, so a burst of changes collapses into one action. After
    close() nothing runs anymore, including timers already started.
    """

    def __init__(self, quiet_period: float, *, timer_factory: TimerFactory = threading.Timer) -> None:
        self.quiet_period = float(quiet_period)
        self._timer_factory = timer_factory
        self._lock = threading.Lock()
        self._timer: Optional[Any] = None
        self._action: Optional[Callable[[], Any]] = None
        self._generation = 0
        self._closed = False

    @property
    def pending(self) -> bool:
        with self._lock:
            return self._action is not None

    def schedule(self, action: Callable[[], Any]) -> None:
        with self._lock:
            if self._closed:
                LOG.debug("Debouncer closed; dropping scheduled action")
                return
            if self._timer is not None:
                self._timer.cancel()
            self._generation += 1
            self._action = action
            timer = self._timer_factory(self.quiet_period, self._fire, args=(self._generation,))
            timer.daemon = True
            self._timer = timer
            timer.start()

    def _fire(self, generation: int) -> None:
        with self._lock:
            # a replaced timer may still wake up; only the newest one may run
            if self._closed or generation != self._generation or self._action is None:
                return
            action = self._action
            self._action = None
            self._timer = None
        action()

    def _take_pending(self) -> Optional[Callable[[], Any]]:
        # caller holds the lock
        action = self._action
        if self._timer is not None:
            self._timer.cancel()
        self._timer = None
        self._action = None
        self._generation += 1
        return action

    def cancel(self) -> bool:
        with self._lock:
            return self._take_pending() is not None

    def flush(self) -> bool:
        """Run the pending action now instead of waiting for the timer."""
        with self._lock:
            if self._closed:
                return False
            action = self._take_pending()
        if action is None:
            return False
        action()
        return True

    def close(self) -> None:
        with self._lock:
            self._take_pending()
            self._closed = True


class RemoteSyncEngine:
    """Keep the remote copy in step with the local collection.

    The engine never touches the collection itself: a pull hands the remote
    reports to an ``apply`` callback, a push uploads whatever snapshot it is
    given. Changes caused by a pull are never pushed back.
    """

    def __init__(
        self,
        client: Optional[RemoteStoreClient] = None,
        *,
        quiet_period: float = DEFAULT_QUIET_PERIOD,
        timer_factory: TimerFactory = threading.Timer,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self.client = client or RemoteStoreClient()
        self.state = SyncState()
        self._clock = clock
        self._debouncer = PushDebouncer(quiet_period, timer_factory=timer_factory)
        self._push_lock = threading.Lock()
        self._applying_pull = False
        self._pull_epoch = 0

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------
    @property
    def endpoint(self) -> Optional[str]:
        return self.state.endpoint

    @property
    def status(self) -> SyncStatus:
        return self.state.status

    @property
    def last_sync_time(self) -> Optional[int]:
        return self.state.last_sync_time

    @property
    def push_pending(self) -> bool:
        return self._debouncer.pending

    def _set_status(self, status: SyncStatus) -> None:
        if self.state.status != status:
            LOG.debug(f"Sync status {self.state.status.value} -> {status.value}")
        self.state.status = status

    def _mark_synced(self) -> None:
        self.state.last_sync_time = self._clock()
        self._set_status(SyncStatus.SYNCED)

    def configure(self, url: Optional[str]) -> None:
        url = (url or "").strip() or None
        self.state.endpoint = url
        if url is None:
            if self._debouncer.cancel():
                LOG.info("Sync endpoint cleared; pending push discarded")
            self._set_status(SyncStatus.IDLE)
            LOG.info("Remote sync disabled; running local-only")
        else:
            LOG.info(f"Remote sync endpoint: {url}")

    # ------------------------------------------------------------------
    # Pull / push
    # ------------------------------------------------------------------
    def pull(self, apply: Callable[[List[FlightReport]], None]) -> Optional[List[FlightReport]]:
        """Fetch the remote collection and, if non-empty, hand it to ``apply``.

        Returns the fetched reports (possibly empty) or None on failure, in
        which case the local collection is left alone.
        """
        url = self.state.endpoint
        if not url:
            LOG.debug("Pull skipped; no endpoint configured")
            return None

        # waits for an in-flight push so the fetch sees what it uploaded
        with self._push_lock:
            # whatever a pending push would upload is about to be replaced
            if self._debouncer.cancel():
                LOG.info("Pending push discarded in favour of remote pull")

            self._set_status(SyncStatus.SYNCING)
            try:
                reports = reports_from_wire(self.client.fetch_records(url))
            except (SyncError, ValueError) as exc:
                LOG.error(f"Server fetch error: {exc}")
                self._set_status(SyncStatus.ERROR)
                return None

            if reports:
                self._applying_pull = True
                try:
                    apply(reports)
                finally:
                    self._applying_pull = False
                self._pull_epoch += 1
                LOG.info(f"Pulled {len(reports)} report(s); local collection replaced")
            else:
                LOG.info("Remote collection is empty; keeping local data")
            self._mark_synced()
        return reports

    def push(self, reports: List[FlightReport]) -> bool:
        return self._push(reports, None)

    def _push(self, reports: List[FlightReport], epoch: Optional[int]) -> bool:
        url = self.state.endpoint
        if not url:
            LOG.debug("Push skipped; no endpoint configured")
            return False
        with self._push_lock:
            if epoch is not None and epoch != self._pull_epoch:
                LOG.info("Snapshot predates a remote pull; push skipped")
                return False
            self._set_status(SyncStatus.SYNCING)
            try:
                self.client.save_records(url, reports_to_wire(reports))
            except SyncError as exc:
                LOG.error(f"Server save error: {exc}")
                self._set_status(SyncStatus.ERROR)
                return False
            self._mark_synced()
        LOG.info(f"Pushed {len(reports)} report(s) to remote")
        return True

    def _push_snapshot(self, snapshot: Callable[[], List[FlightReport]]) -> bool:
        # snapshot() may need the caller's lock, so it is taken before _push_lock
        epoch = self._pull_epoch
        return self._push(snapshot(), epoch)

    def notify_change(self, snapshot: Callable[[], List[FlightReport]]) -> None:
        """Schedule a debounced push of ``snapshot()`` after a local change."""
        if self._applying_pull:
            LOG.debug("Change came from a pull; not pushing it back")
            return
        if not self.state.endpoint:
            return
        self._debouncer.schedule(lambda: self._push_snapshot(snapshot))

    def flush(self) -> bool:
        return self._debouncer.flush()

    def close(self) -> None:
        self._debouncer.close()
