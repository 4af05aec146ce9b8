from __future__ import annotations

import math
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from ..logging import get_logger

LOG = get_logger("domain-models")


def now_ms() -> int:
    """Wall-clock time in milliseconds since the epoch."""
    return int(time.time() * 1000)


def new_report_id() -> str:
    return uuid.uuid4().hex


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _epoch_ms(value: Any) -> Optional[int]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if isinstance(value, float) and not math.isfinite(value):
        return None
    return int(value)


def _object_list(data: Dict[str, Any], key: str) -> List[Dict[str, Any]]:
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValueError(f"{key!r} must be a list, got {type(value).__name__}")
    return [item for item in value if isinstance(item, dict)]


@dataclass
class FaultItem:
    time: str = ""
    phase: str = ""
    ata: str = ""
    description: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FaultItem":
        return cls(
            time=_text(data.get("time")),
            phase=_text(data.get("phase")),
            ata=_text(data.get("ata")),
            description=_text(data.get("description")),
        )

    def as_dict(self) -> Dict[str, str]:
        return {
            "time": self.time,
            "phase": self.phase,
            "ata": self.ata,
            "description": self.description,
        }


@dataclass
class FailureItem:
    time: str = ""
    source: str = ""
    identifier: str = ""
    description: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FailureItem":
        return cls(
            time=_text(data.get("time")),
            source=_text(data.get("source")),
            identifier=_text(data.get("identifier")),
            description=_text(data.get("description")),
        )

    def as_dict(self) -> Dict[str, str]:
        return {
            "time": self.time,
            "source": self.source,
            "identifier": self.identifier,
            "description": self.description,
        }


@dataclass
class FlightReport:
    """One ingested post-flight report.

    ``timestamp`` is the local ingest time in milliseconds, not the date printed
    on the report. It is only used for ordering and audit.
    """

    id: str
    aircraft_id: str = ""
    date: str = ""
    flight_number: str = ""
    city_pair: str = ""
    faults: List[FaultItem] = field(default_factory=list)
    failures: List[FailureItem] = field(default_factory=list)
    raw_text: Optional[str] = None
    timestamp: int = 0

    @classmethod
    def from_dict(cls, data: Any) -> "FlightReport":
        """Build a report from its JSON form (camelCase keys).

        Raises ValueError when ``data`` is not an object or ``faults`` /
        ``failures`` is present but not a list. Other fields are tolerated:
        descriptive fields default to "", a missing id gets a fresh one and a
        missing or non-finite timestamp becomes the current time.
        """
        if not isinstance(data, dict):
            raise ValueError(f"report must be a JSON object, got {type(data).__name__}")

        faults = _object_list(data, "faults")
        failures = _object_list(data, "failures")

        report_id = _text(data.get("id"))
        if not report_id:
            report_id = new_report_id()
            LOG.warning(f"Report without id; assigned {report_id}")

        timestamp = _epoch_ms(data.get("timestamp"))
        if timestamp is None:
            timestamp = now_ms()

        raw_text = data.get("rawText")
        return cls(
            id=report_id,
            aircraft_id=_text(data.get("aircraftId")),
            date=_text(data.get("date")),
            flight_number=_text(data.get("flightNumber")),
            city_pair=_text(data.get("cityPair")),
            faults=[FaultItem.from_dict(f) for f in faults],
            failures=[FailureItem.from_dict(f) for f in failures],
            raw_text=raw_text if isinstance(raw_text, str) else None,
            timestamp=timestamp,
        )

    def as_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "id": self.id,
            "aircraftId": self.aircraft_id,
            "date": self.date,
            "flightNumber": self.flight_number,
            "cityPair": self.city_pair,
            "faults": [f.as_dict() for f in self.faults],
            "failures": [f.as_dict() for f in self.failures],
            "timestamp": self.timestamp,
        }
        if self.raw_text is not None:
            out["rawText"] = self.raw_text
        return out


def reports_from_wire(data: Any) -> List[FlightReport]:
    """Convert a JSON array into reports, keeping the incoming order.

    Raises ValueError if ``data`` is not a list or an element is not an
    object. Later duplicates of an id are dropped.
    """
    if not isinstance(data, list):
        raise ValueError(f"expected a JSON array of reports, got {type(data).__name__}")
    reports: List[FlightReport] = []
    seen = set()
    for idx, item in enumerate(data):
        try:
            report = FlightReport.from_dict(item)
        except ValueError as exc:
            raise ValueError(f"element {idx}: {exc}") from exc
        if report.id in seen:
            LOG.warning(f"Dropping duplicate report id {report.id} at position {idx}")
            continue
        seen.add(report.id)
        reports.append(report)
    return reports


def reports_to_wire(reports: List[FlightReport]) -> List[Dict[str, Any]]:
    return [r.as_dict() for r in reports]


class SyncStatus(str, Enum):
    IDLE = "idle"
    SYNCING = "syncing"
    SYNCED = "synced"
    ERROR = "error"


@dataclass
class SyncState:
    endpoint: Optional[str] = None
    status: SyncStatus = SyncStatus.IDLE
    last_sync_time: Optional[int] = None
