"""Conversion orchestrator: upload -> convert -> ready -> download, per session.

One ``ConversionSession`` per browser session. Every upload bumps a
generation counter; a conversion only writes its outcome back while its
generation is still current, so a result from a superseded upload is
dropped instead of surfacing.
"""

from __future__ import annotations

import html
import logging
import re
import secrets
import tempfile
import threading
from dataclasses import dataclass, replace
from enum import Enum
from pathlib import Path
from typing import Callable

from html_pdf_converter.services.print_engine import BrowserNotFoundError, PrintOptions
from html_pdf_converter.services.uploads import base_name as derive_base_name
from html_pdf_converter.services.uploads import discard

logger = logging.getLogger(__name__)

MSG_WELCOME = "Please upload an HTML file."
MSG_UPLOADED = "HTML file uploaded. Ready for Preview or Conversion."
MSG_CLEARED = "File input cleared."
MSG_STARTING = "Starting PDF conversion process..."
MSG_NO_BROWSER = "Error: Google Chrome/Chromium not found. Conversion aborted."
MSG_SUCCESS = "Conversion successful! Click Download PDF."

_TEMPLATE_STYLE = "font-size: 9px; width: 100%; text-align: center;"


class ConversionState(str, Enum):
    IDLE = "idle"
    UPLOADED = "uploaded"
    CONVERTING = "converting"
    READY = "ready"
    FAILED = "failed"


@dataclass(frozen=True)
class UploadedDocument:
    source_path: Path
    base_name: str
    original_name: str
    preview_token: str
    size_bytes: int = 0

    @property
    def download_name(self) -> str:
        return f"{self.base_name}_converted.pdf"


@dataclass(frozen=True)
class ConversionResult:
    pdf_path: Path | None = None
    status_message: str = MSG_WELCOME


def header_template(base: str) -> str:
    """Centered 'Document: <name>.html' line printed at the top of every page."""
    return f"<div style='{_TEMPLATE_STYLE}'>Document: {html.escape(base)}.html</div>"


def footer_template() -> str:
    # pageNumber / totalPages are filled in by Chromium
    return (
        f"<div style='{_TEMPLATE_STYLE}'>"
        "Page <span class='pageNumber'></span> of <span class='totalPages'></span>"
        "</div>"
    )


def build_print_options(base: str, wait_secs: float = 2.0) -> PrintOptions:
    return PrintOptions(
        header_template=header_template(base),
        footer_template=footer_template(),
        display_header_footer=True,
        margin={"top": "1cm", "bottom": "1cm", "left": "1cm", "right": "1cm"},
        print_background=True,
        wait_secs=wait_secs,
    )


Listener = Callable[["ConversionSession"], None]


class ConversionSession:
    """State machine for a single user's upload/convert/download cycle."""

    def __init__(self, engine, work_dir: Path, wait_secs: float = 2.0, session_id: str = ""):
        self.engine = engine
        self.work_dir = Path(work_dir)
        self.wait_secs = wait_secs
        self.session_id = session_id or secrets.token_urlsafe(16)

        self.state = ConversionState.IDLE
        self.document: UploadedDocument | None = None
        self.result = ConversionResult()

        self._generation = 0
        self._lock = threading.RLock()
        self._listeners: list[Listener] = []

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------

    def subscribe(self, callback: Listener) -> None:
        self._listeners.append(callback)

    def unsubscribe(self, callback: Listener) -> None:
        if callback in self._listeners:
            self._listeners.remove(callback)

    def _notify(self) -> None:
        for callback in list(self._listeners):
            try:
                callback(self)
            except Exception as e:
                logger.warning("Session %s listener failed: %s", self.session_id[:8], e)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    @property
    def status_message(self) -> str:
        return self.result.status_message

    def upload(self, original_name: str, source_path: Path, size_bytes: int = 0) -> ConversionResult:
        """Replace the current document and convert it right away."""
        document = UploadedDocument(
            source_path=Path(source_path),
            base_name=derive_base_name(original_name),
            original_name=original_name,
            preview_token=secrets.token_urlsafe(24),
            size_bytes=size_bytes,
        )
        with self._lock:
            self._generation += 1
            generation = self._generation
            stale = self._release_files()
            self.document = document
            self.state = ConversionState.UPLOADED
            self.result = ConversionResult(status_message=MSG_UPLOADED)

        for path in stale:
            discard(path)
        logger.info("Session %s: uploaded %s (%d bytes)",
                    self.session_id[:8], original_name, size_bytes)
        self._notify()

        return self._convert(generation, document.source_path, document.base_name)

    def clear(self) -> None:
        """File input was cleared: drop everything and go back to IDLE."""
        self._reset(MSG_CLEARED)

    def close(self) -> None:
        """Session ended: delete temp files and forget listeners."""
        self._reset(MSG_WELCOME)
        self._listeners.clear()

    def convert(self, source_path: Path, base_name: str) -> ConversionResult:
        """Print ``source_path`` to a fresh temp PDF.

        Failures never raise: they land in FAILED with the reason as status.
        """
        with self._lock:
            generation = self._generation
        return self._convert(generation, source_path, base_name)

    def _convert(self, generation: int, source_path: Path, base_name: str) -> ConversionResult:
        if not self._transition(generation, ConversionState.CONVERTING, MSG_STARTING):
            return self.result

        try:
            self.engine.resolve()
        except BrowserNotFoundError as e:
            logger.warning("Session %s: %s", self.session_id[:8], e)
            self._transition(generation, ConversionState.FAILED, MSG_NO_BROWSER)
            return self.result

        pdf_path = self._allocate_output(base_name)
        if not self._transition(
            generation,
            ConversionState.CONVERTING,
            f"Found Chrome/Chromium.\nAttempting conversion to: {pdf_path.name}",
        ):
            discard(pdf_path)
            return self.result

        options = build_print_options(base_name, self.wait_secs)
        try:
            self.engine.print(Path(source_path), pdf_path, options)
            if not pdf_path.exists() or pdf_path.stat().st_size == 0:
                raise RuntimeError("print engine produced no output")
        except Exception as e:
            logger.exception("Session %s: conversion of %s failed", self.session_id[:8], base_name)
            discard(pdf_path)
            self._transition(generation, ConversionState.FAILED, f"Error during PDF conversion: {e}")
            return self.result

        if not self._transition(generation, ConversionState.READY, MSG_SUCCESS, pdf_path):
            discard(pdf_path)
        return self.result

    def _transition(
        self,
        generation: int,
        state: ConversionState,
        message: str,
        pdf_path: Path | None = None,
    ) -> bool:
        """Apply a state change unless a newer upload has superseded ``generation``."""
        with self._lock:
            if generation != self._generation:
                logger.warning("Session %s: dropping stale %s result", self.session_id[:8], state.value)
                return False
            self.state = state
            self.result = ConversionResult(pdf_path=pdf_path, status_message=message)
        self._notify()
        return True

    def _reset(self, message: str) -> None:
        with self._lock:
            self._generation += 1
            stale = self._release_files()
            self.document = None
            self.state = ConversionState.IDLE
            self.result = ConversionResult(status_message=message)
        for path in stale:
            discard(path)
        self._notify()

    def _release_files(self) -> list[Path]:
        """Detach the current upload and PDF; caller deletes them outside the lock."""
        paths = []
        if self.document is not None:
            paths.append(self.document.source_path)
        if self.result.pdf_path is not None:
            paths.append(self.result.pdf_path)
            self.result = replace(self.result, pdf_path=None)
        return paths

    def _allocate_output(self, base: str) -> Path:
        self.work_dir.mkdir(parents=True, exist_ok=True)
        prefix = re.sub(r"[^\w.-]", "_", base)[:40] + "_"
        with tempfile.NamedTemporaryFile(prefix=prefix, suffix=".pdf", dir=self.work_dir, delete=False) as f:
            return Path(f.name)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def is_download_ready(self) -> bool:
        with self._lock:
            pdf = self.result.pdf_path
            return self.state is ConversionState.READY and pdf is not None and pdf.exists()

    def download_target(self) -> tuple[Path, str] | None:
        """(pdf path, download filename) when a PDF can be served, else None."""
        with self._lock:
            if not self.is_download_ready() or self.document is None:
                return None
            return self.result.pdf_path, self.document.download_name

    def preview_url(self) -> str | None:
        with self._lock:
            if self.document is None:
                return None
            return f"/preview/{self.document.preview_token}"

    def preview_path(self, token: str) -> Path | None:
        """Uploaded file for ``token`` if it is the current document's token."""
        with self._lock:
            doc = self.document
        if doc is None or not secrets.compare_digest(doc.preview_token, token):
            return None
        return doc.source_path if doc.source_path.exists() else None

    def snapshot(self) -> dict:
        with self._lock:
            return {
                "state": self.state.value,
                "status_message": self.result.status_message,
                "base_name": self.document.base_name if self.document else None,
                "download_ready": self.is_download_ready(),
                "preview_url": self.preview_url(),
            }
