import logging
import os
from typing import Optional


ROOT_LOGGER = "aerolog"

_LEVELS = {
    "CRITICAL": logging.CRITICAL,
    "ERROR": logging.ERROR,
    "WARN": logging.WARNING,
    "WARNING": logging.WARNING,
    "INFO": logging.INFO,
    "DEBUG": logging.DEBUG,
}


def _coerce_level(value: Optional[str]) -> int:
    if isinstance(value, str):
        return _LEVELS.get(value.upper().strip(), logging.INFO)
    return logging.INFO


class _AreaFilter(logging.Filter):
    """Expose the child name ("orchestrator-sync") as %(area)s."""

    def filter(self, record: logging.LogRecord) -> bool:
        prefix = ROOT_LOGGER + "."
        record.area = record.name[len(prefix):] if record.name.startswith(prefix) else record.name
        return True


def _configure_root() -> logging.Logger:
    root = logging.getLogger(ROOT_LOGGER)
    if getattr(root, "_aerolog_configured", False):
        return root

    level = _coerce_level(os.environ.get("LOG_LEVEL", "INFO"))
    root.setLevel(level)
    formatter = logging.Formatter(
        fmt="%(asctime)s [%(area)s] %(levelname)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    def _attach(handler: logging.Handler) -> None:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        handler.addFilter(_AreaFilter())
        root.addHandler(handler)

    _attach(logging.StreamHandler())
    log_file = os.environ.get("LOG_FILE")
    if log_file:
        try:
            _attach(logging.FileHandler(log_file, encoding="utf-8"))
        except OSError as e:
            root.warning(f"LOG_FILE {log_file!r} could not be opened ({e}); logging to console only")

    root.propagate = False
    setattr(root, "_aerolog_configured", True)
    return root


def get_logger(name: str) -> logging.Logger:
    """Return the logger for one area of the app, e.g. ``get_logger("orchestrator-sync")``.

    All areas are children of the ``aerolog`` logger, which is configured on
    first use from LOG_LEVEL (default INFO) and LOG_FILE (optional, appended).
    Lines carry the area name: ``2024-05-01 10:00:00 [orchestrator-sync] INFO: ...``.
    """
    return _configure_root().getChild(name)
