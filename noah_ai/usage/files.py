"""File storage for usage and plan settings (dev mode).

Mirrors the Firestore layout under a local directory:

    <storage dir>/<uid>/ai_usage/<YYYY-MM>.json
    <storage dir>/<uid>/settings/app.json

Environment Variables:
    NOAH_USAGE_FORCE_FILE: Set to "1" to use local file storage
    NOAH_USAGE_STORAGE_DIR: Directory for file-based storage (default: noah_usage/)
"""
from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional
from urllib.parse import quote


def force_file_fallback() -> bool:
    """Check if file-based storage should be used (dev mode)."""
    return os.getenv("NOAH_USAGE_FORCE_FILE", "0") == "1"


def storage_dir() -> Path:
    """Return the directory for file-based storage."""
    default_dir = Path(__file__).resolve().parents[2] / "noah_usage"
    return Path(os.getenv("NOAH_USAGE_STORAGE_DIR", str(default_dir)))


def account_path(uid: str, *parts: str) -> Path:
    # Quote the uid so it can never escape the storage directory.
    return storage_dir().joinpath(quote(uid, safe=""), *parts)


def read_json(path: Path) -> Optional[Dict[str, Any]]:
    """Return the parsed document, or None when the file does not exist."""
    if not path.exists():
        return None
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def write_json_atomic(path: Path, data: Dict[str, Any]) -> None:
    """Write ``data`` so readers see either the old or the new document."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
        os.replace(tmp_name, path)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise
