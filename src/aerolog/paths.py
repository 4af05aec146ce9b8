from __future__ import annotations

import os
import re

from .logging import get_logger

log = get_logger("paths")

ROOT_MARKERS = ("pyproject.toml", ".env", "README.md")


def fix_windows_path_input(p: str) -> str:
    """Strip pasted quotes and repair a missing separator after a drive letter ("C:scans")."""
    s = (p or "").strip().strip("\"'")
    if os.name == "nt" and re.match(r"^[A-Za-z]:(?![\\/])", s):
        log.debug(f"Repaired Windows path input: {s!r}")
        s = f"{s[:2]}\\{s[2:]}"
    return s


def expand_abs(path: str) -> str:
    return os.path.abspath(os.path.expanduser(os.path.expandvars(fix_windows_path_input(path))))


def _is_root(directory: str) -> bool:
    if os.path.isdir(os.path.join(directory, ".git")):
        return True
    return any(os.path.isfile(os.path.join(directory, m)) for m in ROOT_MARKERS)


def find_project_root(start_dir: str | None = None) -> str:
    """Nearest directory at or above start_dir holding .git or a ROOT_MARKERS file.

    Falls back to start_dir (or the working directory) itself.
    """
    start = os.path.abspath(start_dir or os.getcwd())
    current = start
    while not _is_root(current):
        parent = os.path.dirname(current)
        if parent == current:
            return start
        current = parent
    return current


def var_dir(root_dir: str) -> str:
    return os.path.join(os.path.abspath(root_dir), "var")


def state_path(root_dir: str | None, folder: str, filename: str) -> str:
    """Return var/<folder>/<filename> under the project root, creating the folder."""
    target = os.path.join(var_dir(find_project_root(root_dir)), folder)
    os.makedirs(target, exist_ok=True)
    return os.path.join(target, filename)
