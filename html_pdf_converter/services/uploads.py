"""Upload validation and storage for incoming HTML files."""

from __future__ import annotations

import logging
import shutil
import tempfile
from pathlib import Path, PurePosixPath, PureWindowsPath
from typing import BinaryIO

logger = logging.getLogger(__name__)

ALLOWED_SUFFIXES = {".html", ".htm"}
ALLOWED_CONTENT_TYPES = {"text/html"}
DEFAULT_BASE_NAME = "converted_document"
_CHUNK = 1024 * 1024


class UploadRejected(ValueError):
    """Raised when an upload fails validation. Carries the HTTP status to answer with."""

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


def base_name(filename: str) -> str:
    """Strip directories and the last extension: ``reports/q3.v2.html`` -> ``q3.v2``."""
    name = PureWindowsPath(PurePosixPath(filename or "").name).name
    stem = name.rsplit(".", 1)[0] if "." in name.lstrip(".") else name
    return stem.strip() or DEFAULT_BASE_NAME


def validate_upload(filename: str | None, content_type: str | None, size: int | None, max_bytes: int) -> None:
    """Check name, type and (when known) size of an upload."""
    if not filename:
        raise UploadRejected("No file name supplied")

    suffix = Path(filename).suffix.lower()
    mime = (content_type or "").split(";")[0].strip().lower()
    if suffix not in ALLOWED_SUFFIXES and mime not in ALLOWED_CONTENT_TYPES:
        raise UploadRejected(f"Only .html files are accepted (got {Path(filename).name})")

    if size is not None and size > max_bytes:
        raise UploadRejected(_too_large(max_bytes), status_code=413)


def save_upload(stream: BinaryIO, work_dir: Path, max_bytes: int) -> tuple[Path, int]:
    """Copy ``stream`` into a fresh temp file under ``work_dir``.

    Enforces ``max_bytes`` while copying so an oversized body is never kept.
    Returns the stored path and the byte count.
    """
    work_dir.mkdir(parents=True, exist_ok=True)
    fd, raw_path = tempfile.mkstemp(prefix="upload_", suffix=".html", dir=work_dir)
    path = Path(raw_path)
    written = 0
    try:
        with open(fd, "wb") as out:
            while True:
                chunk = stream.read(_CHUNK)
                if not chunk:
                    break
                written += len(chunk)
                if written > max_bytes:
                    raise UploadRejected(_too_large(max_bytes), status_code=413)
                out.write(chunk)
    except BaseException:
        path.unlink(missing_ok=True)
        raise

    logger.info("Stored upload %s (%d bytes)", path.name, written)
    return path, written


def discard(path: Path | None) -> None:
    """Delete a temp file if it is still there."""
    if path is None:
        return
    try:
        Path(path).unlink(missing_ok=True)
    except OSError as e:
        logger.warning("Could not remove %s: %s", path, e)


def discard_tree(path: Path) -> None:
    shutil.rmtree(path, ignore_errors=True)


def _too_large(max_bytes: int) -> str:
    return f"File exceeds the {max_bytes / (1024 * 1024):g} MB upload limit"
