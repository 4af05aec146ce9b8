"""Turn one scan into one FlightReport via the recognition collaborator."""

from __future__ import annotations

import os
from typing import Union

from ..domain.models import FlightReport, new_report_id, now_ms
from ..logging import get_logger
from .documents import ScanDocument
from .parser import ReportValidationError, parse_report_payload
from .recognizers import Recognizer

LOG = get_logger("extraction-adapter")

DocumentLike = Union[ScanDocument, str, "os.PathLike[str]"]


class ExtractionError(Exception):
    """A single document could not be turned into a report."""


class ReportExtractor:
    """Call the recognizer once per document and build a fresh report.

    No retries happen here; a failed call surfaces as ExtractionError and the
    caller decides what to do with it.
    """

    def __init__(self, recognizer: Recognizer) -> None:
        self.recognizer = recognizer

    @staticmethod
    def _load(document: DocumentLike) -> ScanDocument:
        if isinstance(document, ScanDocument):
            return document
        path = os.fspath(document)
        try:
            return ScanDocument.from_path(path)
        except OSError as exc:
            raise ExtractionError(f"Unable to read {path}: {exc}") from exc

    def extract(self, document: DocumentLike) -> FlightReport:
        doc = self._load(document)
        if not doc.data:
            raise ExtractionError(f"{doc.name} is empty")

        try:
            payload = self.recognizer.recognize(doc)
        except Exception as exc:
            raise ExtractionError(f"Recognition failed for {doc.name}: {exc}") from exc
        if payload is None:
            raise ExtractionError(f"Recognition produced no payload for {doc.name}")

        try:
            fields = parse_report_payload(payload)
        except ReportValidationError as exc:
            raise ExtractionError(f"Malformed recognition output for {doc.name}: {exc}") from exc

        # id and ingest time are always local, never taken from the model
        fields["id"] = new_report_id()
        fields["timestamp"] = now_ms()
        report = FlightReport.from_dict(fields)
        LOG.info(
            f"Extracted report {report.id}: aircraft={report.aircraft_id or '?'} "
            f"flight={report.flight_number or '?'} faults={len(report.faults)} failures={len(report.failures)}"
        )
        return report
