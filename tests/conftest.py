import os
import sys
from typing import Any, Callable, Dict, List, Optional

import pytest

# Ensure src/ is importable when tests run from repo root
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "src")))

from aerolog.domain.models import FaultItem, FailureItem, FlightReport, new_report_id  # noqa: E402
from aerolog.remote.client import SyncError  # noqa: E402


class FakeTimer:
    """Stand-in for threading.Timer that only fires when a test says so."""

    def __init__(self, interval: float, function: Callable[..., Any], args=None, kwargs=None) -> None:
        self.interval = interval
        self.function = function
        self.args = tuple(args or ())
        self.kwargs = dict(kwargs or {})
        self.daemon = False
        self.started = False
        self.cancelled = False
        self.fired = False

    def start(self) -> None:
        self.started = True

    def cancel(self) -> None:
        self.cancelled = True

    def fire(self) -> None:
        if self.started and not self.cancelled and not self.fired:
            self.fired = True
            self.function(*self.args, **self.kwargs)


class FakeTimerFactory:
    def __init__(self) -> None:
        self.timers: List[FakeTimer] = []

    def __call__(self, interval: float, function: Callable[..., Any], args=None, kwargs=None) -> FakeTimer:
        timer = FakeTimer(interval, function, args=args, kwargs=kwargs)
        self.timers.append(timer)
        return timer

    @property
    def live(self) -> List[FakeTimer]:
        return [t for t in self.timers if t.started and not t.cancelled and not t.fired]

    def fire_all(self) -> None:
        for timer in list(self.timers):
            timer.fire()


class FakeRemoteClient:
    """In-memory remote store with the RemoteStoreClient interface."""

    def __init__(self, records: Optional[List[Dict[str, Any]]] = None) -> None:
        self.records: Any = list(records or [])
        self.fail_fetch = False
        self.fail_save = False
        self.fetch_calls: List[str] = []
        self.saves: List[List[Dict[str, Any]]] = []
        self.on_save: Optional[Callable[[], None]] = None

    def fetch_records(self, url: str) -> Any:
        self.fetch_calls.append(url)
        if self.fail_fetch:
            raise SyncError("connection refused")
        return self.records

    def save_records(self, url: str, payload: List[Dict[str, Any]]) -> None:
        if self.on_save is not None:
            self.on_save()
        if self.fail_save:
            raise SyncError("500 Server Error")
        self.saves.append(payload)
        self.records = list(payload)


class FakeRecognizer:
    """Returns queued payloads in order; an Exception instance is raised instead."""

    def __init__(self, outputs: List[Any]) -> None:
        self.outputs = list(outputs)
        self.calls: List[str] = []

    def recognize(self, document):
        self.calls.append(document.name)
        out = self.outputs.pop(0)
        if isinstance(out, Exception):
            raise out
        return out


def report_payload(aircraft: str = "D-AIBA", flight: str = "LH400", **extra: Any) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "aircraftId": aircraft,
        "date": "2024-05-01",
        "flightNumber": flight,
        "cityPair": "FRA-JFK",
        "faults": [{"time": "10:12", "phase": "CRZ", "ata": "21-31-00", "description": "PACK 1 FAULT"}],
        "failures": [],
    }
    payload.update(extra)
    return payload


@pytest.fixture
def make_report() -> Callable[..., FlightReport]:
    def _make(report_id: Optional[str] = None, *, aircraft: str = "D-AIBA", timestamp: int = 1_700_000_000_000, **kw: Any) -> FlightReport:
        return FlightReport(
            id=report_id or new_report_id(),
            aircraft_id=aircraft,
            date=kw.pop("date", "2024-05-01"),
            flight_number=kw.pop("flight_number", "LH400"),
            city_pair=kw.pop("city_pair", "FRA-JFK"),
            faults=kw.pop("faults", [FaultItem(time="10:12", phase="CRZ", ata="21-31-00", description="PACK 1 FAULT")]),
            failures=kw.pop("failures", [FailureItem(time="10:15", source="ECAM", identifier="AIR PACK 1", description="OVHT")]),
            raw_text=kw.pop("raw_text", None),
            timestamp=timestamp,
        )

    return _make


@pytest.fixture
def timers() -> FakeTimerFactory:
    return FakeTimerFactory()


@pytest.fixture
def remote() -> FakeRemoteClient:
    return FakeRemoteClient()


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch):
    for name in ("AEROLOG_SYNC_URL", "AEROLOG_SYNC_DEBOUNCE", "AEROLOG_HTTP_TIMEOUT", "AEROLOG_BACKEND", "LOG_FILE"):
        monkeypatch.delenv(name, raising=False)
