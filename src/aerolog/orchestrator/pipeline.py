"""Sequential batch ingestion of report scans."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence

from ..domain.models import FlightReport
from ..extraction.adapter import DocumentLike, ExtractionError, ReportExtractor
from ..logging import get_logger

LOG = get_logger("orchestrator-pipeline")


@dataclass
class IngestResult:
    accepted: List[FlightReport] = field(default_factory=list)  # newest first
    failure_count: int = 0

    @property
    def success_count(self) -> int:
        return len(self.accepted)

    @property
    def summary(self) -> Optional[str]:
        """Caller-facing message when part of the batch failed, else None."""
        if self.failure_count <= 0:
            return None
        return f"Completed with issues: {self.success_count} processed, {self.failure_count} failed."


def _label(document: DocumentLike) -> str:
    name = getattr(document, "name", None)
    if isinstance(name, str) and name:
        return name
    try:
        return os.path.basename(os.fspath(document))  # type: ignore[arg-type]
    except TypeError:
        return repr(document)


class IngestionPipeline:
    """Drive documents through the extractor strictly one at a time.

    The recognition service enforces a request quota, so documents are never
    submitted in parallel. A failed document is counted and skipped; records
    already accepted are always kept.
    """

    def __init__(self, extractor: ReportExtractor) -> None:
        self.extractor = extractor

    def ingest(
        self,
        documents: Sequence[DocumentLike],
        *,
        progress: Optional[Callable[[str], None]] = None,
        on_accepted: Optional[Callable[[FlightReport], None]] = None,
    ) -> IngestResult:
        result = IngestResult()
        total = len(documents)
        LOG.info(f"Ingesting batch of {total} document(s)")

        for i, document in enumerate(documents, start=1):
            message = f"Processing {i} of {total}..."
            LOG.info(message)
            if progress is not None:
                progress(message)

            try:
                report = self.extractor.extract(document)
            except ExtractionError as exc:
                result.failure_count += 1
                LOG.error(f"Error processing {_label(document)}: {exc}")
                continue

            result.accepted.insert(0, report)
            if on_accepted is not None:
                on_accepted(report)

        if result.summary:
            LOG.warning(result.summary)
        else:
            LOG.info(f"Batch complete: {result.success_count} processed")
        return result
