import os
from typing import Iterable, List, Optional, Set

from ..extraction.documents import DEFAULT_SCAN_EXTENSIONS, list_scan_paths, normalize_extensions
from ..logging import get_logger

LOG = get_logger("scan-event-listener")


class ScanEventListener:
    """Poll a folder and report scan files that appeared since the last poll.

    Files present at construction time form the baseline and are not
    reported unless ``include_existing`` is set.
    """

    def __init__(
        self,
        *,
        watch_dir: str,
        poll_interval_sec: float = 2.0,
        exts: Optional[Iterable[str]] = None,
        include_existing: bool = False,
    ) -> None:
        self.watch_dir = os.path.abspath(os.path.expanduser(os.path.expandvars(watch_dir)))
        if not os.path.isdir(self.watch_dir):
            raise NotADirectoryError(f"Watch directory does not exist or is not a directory: {self.watch_dir!r}")

        self.exts: Set[str] = normalize_extensions(exts or DEFAULT_SCAN_EXTENSIONS)
        self.poll_interval_sec = float(poll_interval_sec)
        self.seen: Set[str] = set() if include_existing else set(list_scan_paths(self.watch_dir, self.exts))

        LOG.info(f"Watching {self.watch_dir!r} every {self.poll_interval_sec:g}s for {sorted(self.exts)}")
        LOG.info(f"{len(self.seen)} scan(s) already present will be ignored")

    def scan_once(self) -> List[str]:
        """Return absolute paths of scans not seen before, in sorted order."""
        fresh = [p for p in list_scan_paths(self.watch_dir, self.exts) if p not in self.seen]
        if fresh:
            LOG.info(f"Detected {len(fresh)} new scan(s): {[os.path.basename(p) for p in fresh]}")
            self.seen.update(fresh)
        return fresh
