"""High-level orchestration: ingestion, local persistence and remote sync."""

from .backup import BackupImportError, export_backup, read_backup
from .controller import CollectionController
from .pipeline import IngestionPipeline, IngestResult
from .store import LocalStore, PersistenceError
from .summary import summarize_reports
from .sync import PushDebouncer, RemoteSyncEngine
from .watch import ScanEventListener

__all__ = [
    "BackupImportError",
    "export_backup",
    "read_backup",
    "CollectionController",
    "IngestionPipeline",
    "IngestResult",
    "LocalStore",
    "PersistenceError",
    "summarize_reports",
    "PushDebouncer",
    "RemoteSyncEngine",
    "ScanEventListener",
]
