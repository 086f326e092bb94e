"""Headless Chrome print engine: renders an HTML file to PDF via Playwright.

The engine is an external collaborator: it owns layout, pagination and the
header/footer overlay. The orchestrator only resolves it and calls ``print``.
"""

from __future__ import annotations

import logging
import os
import shutil
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)

# Checked in order on PATH when no explicit executable is configured
CHROME_CANDIDATES = (
    "google-chrome",
    "google-chrome-stable",
    "chromium",
    "chromium-browser",
    "chrome",
)


class PrintEngineError(RuntimeError):
    """Base class for print engine failures."""


class BrowserNotFoundError(PrintEngineError):
    """No Chrome/Chromium executable could be resolved on this host."""


def _default_margin() -> dict:
    return {"top": "1cm", "bottom": "1cm", "left": "1cm", "right": "1cm"}


@dataclass
class PrintOptions:
    """Options forwarded to Chromium's print-to-PDF."""

    header_template: str = ""
    footer_template: str = ""
    display_header_footer: bool = True
    margin: dict = field(default_factory=_default_margin)
    print_background: bool = True
    wait_secs: float = 2.0


class ChromePrintEngine:
    """Prints local HTML files with a headless Chromium."""

    def __init__(self, chrome_path: str = "", timeout_secs: float = 60):
        self.chrome_path = chrome_path
        self.timeout_secs = timeout_secs
        self._executable: str | None = None

    def resolve(self) -> str:
        """Return the browser executable path or raise BrowserNotFoundError.

        A hit is remembered for as long as the file stays on disk, so the
        Playwright fallback runs at most once per install.
        """
        if self._executable and os.path.isfile(self._executable):
            return self._executable
        self._executable = self._find_executable()
        return self._executable

    def _find_executable(self) -> str:
        if self.chrome_path:
            if os.path.isfile(self.chrome_path):
                return self.chrome_path
            raise BrowserNotFoundError(f"Configured CHROME_PATH does not exist: {self.chrome_path}")

        for name in CHROME_CANDIDATES:
            found = shutil.which(name)
            if found:
                return found

        bundled = _bundled_chromium()
        if bundled:
            return bundled

        raise BrowserNotFoundError("Google Chrome/Chromium not found")

    def print(self, input_path: Path, output_path: Path, options: PrintOptions) -> None:
        """Render ``input_path`` and write the PDF to ``output_path``.

        Playwright errors (navigation timeouts, crashes) propagate unchanged.
        """
        try:
            from playwright.sync_api import sync_playwright
        except ImportError:
            raise PrintEngineError(
                "Playwright not installed. Run: pip install playwright && playwright install chromium"
            )

        executable = self.resolve()
        timeout_ms = self.timeout_secs * 1000

        with sync_playwright() as p:
            browser = p.chromium.launch(executable_path=executable, headless=True)
            try:
                page = browser.new_page()
                page.goto(Path(input_path).resolve().as_uri(), wait_until="load", timeout=timeout_ms)
                if options.wait_secs > 0:
                    page.wait_for_timeout(options.wait_secs * 1000)

                page.pdf(
                    path=str(output_path),
                    display_header_footer=options.display_header_footer,
                    header_template=options.header_template,
                    footer_template=options.footer_template,
                    margin=options.margin,
                    print_background=options.print_background,
                )
            finally:
                browser.close()

        logger.info("Printed %s -> %s", Path(input_path).name, Path(output_path).name)


def _bundled_chromium() -> str | None:
    """Locate the Chromium build installed by ``playwright install``."""
    try:
        from playwright.sync_api import sync_playwright
    except ImportError:
        return None

    try:
        with sync_playwright() as p:
            path = p.chromium.executable_path
    except Exception as e:
        logger.warning("Could not query Playwright for bundled Chromium: %s", e)
        return None

    return path if path and os.path.isfile(path) else None
