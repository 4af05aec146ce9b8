"""Raw scan documents handed to the recognition service."""

from __future__ import annotations

import base64
import mimetypes
import os
from dataclasses import dataclass
from typing import Iterable, List, Set

from ..logging import get_logger
from ..paths import fix_windows_path_input

LOG = get_logger("extraction-documents")

DEFAULT_SCAN_EXTENSIONS: Set[str] = {".jpg", ".jpeg", ".png", ".webp", ".pdf"}


def guess_mime(path: str) -> str:
    mime, _ = mimetypes.guess_type(path)
    if mime:
        return mime
    ext = os.path.splitext(path)[1].lower()
    if ext == ".pdf":
        return "application/pdf"
    if ext in {".jpg", ".jpeg", ".jpe", ".jfif"}:
        return "image/jpeg"
    return "image/png"


@dataclass(frozen=True)
class ScanDocument:
    """One photographed or scanned report printout."""

    name: str
    data: bytes
    mime_type: str

    @classmethod
    def from_path(cls, path: str) -> "ScanDocument":
        p = os.path.abspath(fix_windows_path_input(path))
        with open(p, "rb") as fh:
            data = fh.read()
        return cls(name=os.path.basename(p), data=data, mime_type=guess_mime(p))

    @property
    def is_pdf(self) -> bool:
        return self.mime_type == "application/pdf"

    def data_url(self) -> str:
        b64 = base64.b64encode(self.data).decode("ascii")
        return f"data:{self.mime_type};base64,{b64}"


def normalize_extensions(exts: Iterable[str]) -> Set[str]:
    normalized: Set[str] = set()
    for value in exts:
        clean = (value or "").strip().lower()
        if not clean:
            continue
        if not clean.startswith("."):
            clean = "." + clean
        normalized.add(clean)
    return normalized


def list_scan_paths(directory: str, exts: Iterable[str] | None = None) -> List[str]:
    """Return sorted absolute paths of scan files directly inside directory."""
    allowed = normalize_extensions(exts or DEFAULT_SCAN_EXTENSIONS)
    try:
        entries = os.listdir(directory)
    except OSError as exc:
        LOG.error(f"Failed to list scan directory {directory}: {exc}")
        return []
    matches = []
    for name in entries:
        full = os.path.join(directory, name)
        if os.path.isfile(full) and os.path.splitext(name)[1].lower() in allowed:
            matches.append(os.path.abspath(full))
    matches.sort()
    return matches


def expand_sources(sources: Iterable[str], exts: Iterable[str] | None = None) -> List[str]:
    """Expand a mix of file and directory arguments into document paths.

    Files are kept in the given order; a directory contributes its scans in
    sorted order at the position where it appeared.
    """
    out: List[str] = []
    for src in sources:
        p = os.path.abspath(fix_windows_path_input(src))
        if os.path.isdir(p):
            found = list_scan_paths(p, exts)
            LOG.info(f"Found {len(found)} scan(s) in {p}")
            out.extend(found)
        else:
            out.append(p)
    return out
