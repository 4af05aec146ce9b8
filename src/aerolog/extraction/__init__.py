"""Report extraction: scan documents, recognition backends and the adapter.

Modules:
- documents: raw scan payloads and scan-folder listing
- recognizers: OpenRouter / OpenAI vision backends
- parser: shape checks on model output
- adapter: ReportExtractor, one document in, one FlightReport out
"""

from .adapter import ExtractionError, ReportExtractor
from .documents import ScanDocument, expand_sources, list_scan_paths
from .parser import ReportValidationError, parse_report_payload
from .recognizers import OpenAIRecognizer, OpenRouterConfig, OpenRouterRecognizer, build_recognizer

__all__ = [
    "ExtractionError",
    "ReportExtractor",
    "ScanDocument",
    "expand_sources",
    "list_scan_paths",
    "ReportValidationError",
    "parse_report_payload",
    "OpenAIRecognizer",
    "OpenRouterConfig",
    "OpenRouterRecognizer",
    "build_recognizer",
]
