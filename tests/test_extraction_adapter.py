import os

import pytest

from aerolog.extraction import (
    ExtractionError,
    ReportExtractor,
    ReportValidationError,
    ScanDocument,
    expand_sources,
    parse_report_payload,
)

from conftest import FakeRecognizer, report_payload


def _doc(name: str = "scan.jpg") -> ScanDocument:
    return ScanDocument(name=name, data=b"\xff\xd8\xff", mime_type="image/jpeg")


def test_extract_builds_report_with_local_id_and_timestamp():
    payload = report_payload(id="model-id", timestamp=1, rawText="  PFR TEXT  ")
    extractor = ReportExtractor(FakeRecognizer([payload]))

    report = extractor.extract(_doc())

    assert report.id != "model-id"
    assert report.timestamp != 1
    assert report.aircraft_id == "D-AIBA"
    assert report.city_pair == "FRA-JFK"
    assert report.faults[0].description == "PACK 1 FAULT"
    assert report.raw_text == "PFR TEXT"


def test_each_extraction_gets_a_fresh_id():
    extractor = ReportExtractor(FakeRecognizer([report_payload(), report_payload()]))
    first = extractor.extract(_doc("a.jpg"))
    second = extractor.extract(_doc("b.jpg"))
    assert first.id != second.id


def test_recognizer_exception_becomes_extraction_error():
    recognizer = FakeRecognizer([RuntimeError("quota exceeded")])
    with pytest.raises(ExtractionError):
        ReportExtractor(recognizer).extract(_doc())
    assert recognizer.calls == ["scan.jpg"]


def test_missing_payload_is_an_error_and_not_retried():
    recognizer = FakeRecognizer([None, report_payload()])
    with pytest.raises(ExtractionError):
        ReportExtractor(recognizer).extract(_doc())
    assert len(recognizer.calls) == 1


def test_malformed_payload_is_an_error():
    with pytest.raises(ExtractionError):
        ReportExtractor(FakeRecognizer([{"faults": "PACK 1"}])).extract(_doc())
    with pytest.raises(ExtractionError):
        ReportExtractor(FakeRecognizer([["not", "an", "object"]])).extract(_doc())


def test_empty_and_unreadable_documents_fail_before_recognition(tmp_path):
    recognizer = FakeRecognizer([])
    extractor = ReportExtractor(recognizer)
    with pytest.raises(ExtractionError):
        extractor.extract(ScanDocument(name="empty.png", data=b"", mime_type="image/png"))
    with pytest.raises(ExtractionError):
        extractor.extract(str(tmp_path / "missing.jpg"))
    assert recognizer.calls == []


def test_extract_reads_paths(tmp_path):
    scan = tmp_path / "pfr.png"
    scan.write_bytes(b"\x89PNG")
    recognizer = FakeRecognizer([report_payload()])
    report = ReportExtractor(recognizer).extract(str(scan))
    assert recognizer.calls == ["pfr.png"]
    assert report.flight_number == "LH400"


def test_parse_report_payload_accepts_snake_case_and_drops_bad_entries():
    fields = parse_report_payload(
        {
            "aircraft_id": " D-AIBC ",
            "flight_number": "LH401",
            "city_pair": "JFK-FRA",
            "faults": [{"ata": "36-11-00", "description": "BLEED 2 LEAK"}, "junk"],
            "failures": None,
            "raw_text": "TEXT",
        }
    )
    assert fields["aircraftId"] == "D-AIBC"
    assert fields["flightNumber"] == "LH401"
    assert fields["cityPair"] == "JFK-FRA"
    assert fields["faults"] == [{"time": "", "phase": "", "ata": "36-11-00", "description": "BLEED 2 LEAK"}]
    assert fields["failures"] == []
    assert fields["rawText"] == "TEXT"
    assert "id" not in fields and "timestamp" not in fields


def test_parse_report_payload_rejects_empty_content():
    with pytest.raises(ReportValidationError):
        parse_report_payload({"aircraftId": "", "faults": []})


def test_expand_sources_keeps_file_order_and_sorts_directories(tmp_path):
    folder = tmp_path / "scans"
    folder.mkdir()
    for name in ("b.jpg", "a.pdf", "notes.txt"):
        (folder / name).write_bytes(b"x")
    single = tmp_path / "z.png"
    single.write_bytes(b"x")

    out = expand_sources([str(single), str(folder)])
    assert [os.path.basename(p) for p in out] == ["z.png", "a.pdf", "b.jpg"]
