from aerolog.extraction import ReportExtractor, ScanDocument
from aerolog.orchestrator import IngestionPipeline

from conftest import FakeRecognizer, report_payload


def _docs(*names):
    return [ScanDocument(name=n, data=b"img", mime_type="image/jpeg") for n in names]


def test_batch_is_sequential_newest_first_and_counts_failures():
    recognizer = FakeRecognizer(
        [
            report_payload(flight="LH1"),
            RuntimeError("network down"),
            report_payload(flight="LH3"),
        ]
    )
    accepted_order = []
    progress = []

    result = IngestionPipeline(ReportExtractor(recognizer)).ingest(
        _docs("1.jpg", "2.jpg", "3.jpg"),
        progress=progress.append,
        on_accepted=lambda r: accepted_order.append(r.flight_number),
    )

    assert recognizer.calls == ["1.jpg", "2.jpg", "3.jpg"]
    assert [r.flight_number for r in result.accepted] == ["LH3", "LH1"]
    assert accepted_order == ["LH1", "LH3"]
    assert result.success_count == 2
    assert result.failure_count == 1
    assert result.summary == "Completed with issues: 2 processed, 1 failed."
    assert progress == ["Processing 1 of 3...", "Processing 2 of 3...", "Processing 3 of 3..."]


def test_clean_batch_has_no_summary():
    recognizer = FakeRecognizer([report_payload()])
    result = IngestionPipeline(ReportExtractor(recognizer)).ingest(_docs("only.jpg"))
    assert result.failure_count == 0
    assert result.summary is None


def test_all_failures_keep_nothing():
    recognizer = FakeRecognizer([None, {"faults": 3}])
    result = IngestionPipeline(ReportExtractor(recognizer)).ingest(_docs("a.jpg", "b.jpg"))
    assert result.accepted == []
    assert result.failure_count == 2
    assert result.summary == "Completed with issues: 0 processed, 2 failed."


def test_empty_batch():
    result = IngestionPipeline(ReportExtractor(FakeRecognizer([]))).ingest([])
    assert result.accepted == []
    assert result.summary is None
