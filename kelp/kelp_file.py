from __future__ import annotations
import os
from typing import Optional, Dict, Any

from kelp.kelp_errors import IOFailure

# Paths are used exactly as given: no scheme, no normalization, no
# directory creation. The OS reports anything malformed.
# newline="" keeps text byte-for-byte, so a read returns what a write stored.


def _encoding(config: Optional[Dict[str, Any]]) -> str:
    return (config or {}).get("encoding") or "utf-8"


def file_get(path: str, config: Optional[Dict[str, Any]] = None) -> str:
    # Check first so a missing file is reported as such, not as a raw open() error
    if not os.path.exists(path):
        raise IOFailure(f"file does not exist: {path}", path, reason="missing")
    with open(path, "r", encoding=_encoding(config), newline="") as f:
        return f.read()


def file_put(path: str, data: str, config: Optional[Dict[str, Any]] = None) -> str:
    with open(path, "w", encoding=_encoding(config), newline="") as f:
        if not f.writable():
            raise IOFailure(f"file is not writable: {path}", path, reason="unwritable")
        f.write(data)
    return data


def file_append(path: str, data: str, config: Optional[Dict[str, Any]] = None) -> str:
    with open(path, "a", encoding=_encoding(config), newline="") as f:
        if not f.writable():
            raise IOFailure(f"file is not writable: {path}", path, reason="unwritable")
        f.write(data)
    return data


def file_exists(path: str) -> bool:
    return os.path.exists(path)


def file_delete(path: str) -> bool:
    if os.path.isdir(path):
        # Directories are never removed
        raise IsADirectoryError(path)
    if not os.path.exists(path):
        return False
    os.remove(path)
    return True
