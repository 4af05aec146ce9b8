from __future__ import annotations

from typing import Any, Dict, List, Optional

from ..logging import get_logger


LOG = get_logger("extraction-parser")


class ReportValidationError(Exception):
    pass


_HEADER_KEYS = {
    "aircraftId": ("aircraftId", "aircraft_id", "aircraft"),
    "date": ("date", "flight_date"),
    "flightNumber": ("flightNumber", "flight_number", "flight"),
    "cityPair": ("cityPair", "city_pair", "route"),
}
_FAULT_FIELDS = ("time", "phase", "ata", "description")
_FAILURE_FIELDS = ("time", "source", "identifier", "description")


def parse_report_payload(payload: Any) -> Dict[str, Any]:
    """Shape-check model output and return it in the report's JSON form.

    Expected input shape (from the recognition prompt):
    - aircraftId, date, flightNumber, cityPair: strings
    - faults: list of { time, phase, ata, description }
    - failures: list of { time, source, identifier, description }
    - rawText: full transcription (optional)

    snake_case spellings are accepted too. Content is not validated beyond
    that; any ``id`` or ``timestamp`` sent by the model is dropped.
    """
    if not isinstance(payload, dict):
        raise ReportValidationError("Payload must be a JSON object")

    def _norm_s(v: Any) -> str:
        if v is None or isinstance(v, (dict, list)):
            return ""
        return str(v).strip()

    def _first(keys: tuple) -> str:
        for key in keys:
            if key in payload:
                return _norm_s(payload.get(key))
        return ""

    def _entries(key: str, fields: tuple) -> List[Dict[str, str]]:
        raw = payload.get(key)
        if raw is None:
            return []
        if not isinstance(raw, list):
            raise ReportValidationError(f"{key} must be an array")
        out: List[Dict[str, str]] = []
        for idx, entry in enumerate(raw):
            if not isinstance(entry, dict):
                LOG.warning(f"Dropping {key}[{idx}]: expected object, got {type(entry).__name__}")
                continue
            out.append({f: _norm_s(entry.get(f)) for f in fields})
        return out

    report: Dict[str, Any] = {name: _first(keys) for name, keys in _HEADER_KEYS.items()}
    report["faults"] = _entries("faults", _FAULT_FIELDS)
    report["failures"] = _entries("failures", _FAILURE_FIELDS)

    raw_text: Optional[str] = None
    for key in ("rawText", "raw_text", "raw_content"):
        if isinstance(payload.get(key), str) and payload[key].strip():
            raw_text = payload[key].strip()
            break
    if raw_text is not None:
        report["rawText"] = raw_text

    has_header = any(report[name] for name in _HEADER_KEYS)
    if not (has_header or report["faults"] or report["failures"] or raw_text):
        raise ReportValidationError("Payload contains no report data")

    LOG.debug(
        f"Validated payload: aircraft={report['aircraftId']!r} "
        f"faults={len(report['faults'])} failures={len(report['failures'])}"
    )
    return report
