"""Fleet-level counts over the report collection for handover summaries."""

from __future__ import annotations

from collections import Counter
from typing import Any, Dict, List

from ..domain.models import FlightReport


def _ata_chapter(ata: str) -> str:
    """Chapter prefix of an ATA reference, e.g. 21 for 21-31-00."""
    head = (ata or "").strip().split("-", 1)[0].strip()
    return head if head.isdigit() else "unknown"


def summarize_reports(reports: List[FlightReport], *, top: int = 5) -> Dict[str, Any]:
    faults_by_ata: Counter = Counter()
    faults_by_aircraft: Counter = Counter()
    failures_by_source: Counter = Counter()

    for report in reports:
        aircraft = report.aircraft_id or "unknown"
        faults_by_aircraft[aircraft] += len(report.faults)
        for fault in report.faults:
            faults_by_ata[_ata_chapter(fault.ata)] += 1
        for failure in report.failures:
            failures_by_source[failure.source or "unknown"] += 1

    return {
        "counts": {
            "reports": len(reports),
            "aircraft": len({r.aircraft_id for r in reports if r.aircraft_id}),
            "faults": sum(len(r.faults) for r in reports),
            "failures": sum(len(r.failures) for r in reports),
        },
        "top_ata_chapters": [{"ata": k, "faults": v} for k, v in faults_by_ata.most_common(top)],
        "faults_by_aircraft": dict(faults_by_aircraft.most_common()),
        "failures_by_source": dict(failures_by_source.most_common()),
    }
