"""Single owner of the in-memory report collection."""

from __future__ import annotations

import dataclasses
import threading
from typing import Callable, List, Optional, Sequence

from ..domain.models import FlightReport, SyncState
from ..extraction.adapter import DocumentLike, ReportExtractor
from ..logging import get_logger
from .backup import export_backup, read_backup
from .pipeline import IngestionPipeline, IngestResult
from .store import LocalStore
from .sync import RemoteSyncEngine

LOG = get_logger("orchestrator-controller")


def _unique(reports: Sequence[FlightReport]) -> List[FlightReport]:
    out: List[FlightReport] = []
    seen = set()
    for report in reports:
        if report.id in seen:
            LOG.warning(f"Dropping duplicate report id {report.id}")
            continue
        seen.add(report.id)
        out.append(report)
    return out


class CollectionController:
    """Wire the local store, the sync engine and ingestion around one collection.

    Every mutation replaces the collection under a lock, saves it locally and
    then tells the sync engine, which decides whether a debounced push is due.
    Construct one per process, call start() once and teardown() at the end.
    """

    def __init__(
        self,
        store: LocalStore,
        *,
        extractor: Optional[ReportExtractor] = None,
        sync: Optional[RemoteSyncEngine] = None,
        default_sync_url: Optional[str] = None,
    ) -> None:
        self.store = store
        self.extractor = extractor
        self.sync = sync or RemoteSyncEngine()
        self._default_sync_url = default_sync_url
        self._lock = threading.RLock()
        self._records: List[FlightReport] = []

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def start(self) -> None:
        """Seed from the local store, then pull if an endpoint is configured."""
        with self._lock:
            # seeding is not a change and must not be pushed
            self._records = self.store.load_collection()
            url = self.store.load_sync_url() or self._default_sync_url
            self.sync.configure(url)
            if self.sync.endpoint:
                LOG.info("Endpoint configured; running startup pull")
                self.sync.pull(self.replace_all)
        LOG.info(f"Collection controller started with {len(self._records)} report(s)")

    def flush(self) -> bool:
        """Push a pending change right away instead of waiting for the debounce."""
        return self.sync.flush()

    def teardown(self) -> None:
        """Cancel pending pushes; nothing scheduled runs after this."""
        self.sync.close()
        LOG.info("Collection controller torn down")

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------
    @property
    def records(self) -> List[FlightReport]:
        with self._lock:
            return list(self._records)

    def snapshot(self) -> List[FlightReport]:
        return self.records

    @property
    def sync_state(self) -> SyncState:
        return dataclasses.replace(self.sync.state)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------
    def _commit(self, records: List[FlightReport]) -> None:
        # caller holds the lock
        self._records = records
        self.store.save_collection(records)
        self.sync.notify_change(self.snapshot)

    def add_record(self, report: FlightReport) -> None:
        with self._lock:
            self._commit([report] + self._records)
        LOG.debug(f"Added report {report.id}")

    def remove_record(self, report_id: str) -> bool:
        with self._lock:
            remaining = [r for r in self._records if r.id != report_id]
            if len(remaining) == len(self._records):
                LOG.debug(f"Report {report_id} not present; nothing removed")
                return False
            self._commit(remaining)
        LOG.info(f"Removed report {report_id}")
        return True

    def clear_all(self) -> None:
        """Drop every report locally; the empty collection is pushed like any change."""
        with self._lock:
            self._records = []
            self.store.clear_collection()
            self.sync.notify_change(self.snapshot)
        LOG.info("All reports cleared")

    def replace_all(self, reports: Sequence[FlightReport]) -> None:
        """Replace the collection wholesale; incoming order is kept."""
        with self._lock:
            self._commit(_unique(reports))
        LOG.info(f"Collection replaced with {len(self._records)} report(s)")

    def ingest_batch(
        self,
        documents: Sequence[DocumentLike],
        *,
        progress: Optional[Callable[[str], None]] = None,
    ) -> IngestResult:
        """Extract documents one by one, adding each report as it arrives."""
        if self.extractor is None:
            raise RuntimeError("No extractor configured; cannot ingest documents")
        pipeline = IngestionPipeline(self.extractor)
        return pipeline.ingest(documents, progress=progress, on_accepted=self.add_record)

    # ------------------------------------------------------------------
    # Sync configuration
    # ------------------------------------------------------------------
    def configure_sync(self, url: Optional[str]) -> SyncState:
        """Persist a new endpoint and pull from it; an empty url goes local-only."""
        with self._lock:
            self.store.save_sync_url(url)
            self.sync.configure(url)
            if self.sync.endpoint:
                self.sync.pull(self.replace_all)
        return self.sync_state

    def sync_now(self) -> bool:
        """Manual pull from the configured endpoint."""
        with self._lock:
            if not self.sync.endpoint:
                LOG.warning("No sync endpoint configured")
                return False
            return self.sync.pull(self.replace_all) is not None

    # ------------------------------------------------------------------
    # Backups
    # ------------------------------------------------------------------
    def export_backup(self, output_dir: str) -> str:
        return export_backup(self.records, output_dir)

    def import_backup(self, path: str, *, confirm: Optional[Callable[[int], bool]] = None) -> Optional[int]:
        """Replace the collection with a backup file.

        ``confirm`` receives the record count and may veto the replacement.
        Raises BackupImportError for malformed files; nothing is replaced then.
        Returns the number of imported reports, or None when declined.
        """
        reports = read_backup(path)
        if confirm is not None and not confirm(len(reports)):
            LOG.info("Backup import declined")
            return None
        self.replace_all(reports)
        return len(reports)
