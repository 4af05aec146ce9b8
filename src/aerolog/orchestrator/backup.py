"""JSON backup files of the report collection."""

from __future__ import annotations

import json
import os
from datetime import date
from typing import List, Optional

from ..domain.models import FlightReport, reports_from_wire, reports_to_wire
from ..logging import get_logger

LOG = get_logger("orchestrator-backup")


class BackupImportError(Exception):
    pass


def backup_filename(today: Optional[date] = None) -> str:
    return f"aerolog_backup_{(today or date.today()).isoformat()}.json"


def export_backup(reports: List[FlightReport], output_dir: str, *, today: Optional[date] = None) -> str:
    """Write the collection verbatim as indented JSON and return the file path."""
    os.makedirs(output_dir, exist_ok=True)
    path = os.path.join(os.path.abspath(output_dir), backup_filename(today))
    with open(path, "w", encoding="utf-8") as handle:
        json.dump(reports_to_wire(reports), handle, ensure_ascii=False, indent=2)
    LOG.info(f"Exported {len(reports)} report(s) to {path}")
    return path


def read_backup(path: str) -> List[FlightReport]:
    """Parse a backup file; any problem aborts the whole import."""
    try:
        with open(path, "r", encoding="utf-8") as handle:
            data = json.load(handle)
    except OSError as exc:
        raise BackupImportError(f"Cannot read backup file {path}: {exc}") from exc
    except ValueError as exc:
        raise BackupImportError(f"Error parsing backup file {path}: {exc}") from exc

    try:
        reports = reports_from_wire(data)
    except ValueError as exc:
        raise BackupImportError(f"Invalid backup file {path}: {exc}") from exc
    LOG.info(f"Found {len(reports)} report(s) in {path}")
    return reports
