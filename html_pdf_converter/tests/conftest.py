"""Shared fixtures for converter tests.

Provides:
- engine: a fake print engine (no browser needed) that records calls
- session: a ConversionSession wired to the fake engine
- client: TestClient for the FastAPI app with the scheduler lifespan stubbed out
- write_html: factory for HTML files on disk
"""

from contextlib import asynccontextmanager
from pathlib import Path

import pytest

from html_pdf_converter.config import Settings
from html_pdf_converter.services.conversion import ConversionSession
from html_pdf_converter.services.print_engine import BrowserNotFoundError

FAKE_PDF = b"%PDF-1.4\n1 0 obj << /Type /Catalog >> endobj\n%%EOF\n"

SAMPLE_HTML = b"""<!DOCTYPE html>
<html><head><title>Quarterly Report</title></head>
<body><h1>Q3 Report</h1><p>Revenue up 12%.</p></body></html>
"""


# ---------------------------------------------------------------------------
# Fake print engine
# ---------------------------------------------------------------------------

class FakePrintEngine:
    """Stands in for ChromePrintEngine.

    ``available`` toggles browser resolution, ``error`` is raised from
    ``print``, and ``on_print`` (run once, before writing output) lets a
    test act while a conversion is in flight.
    """

    def __init__(self):
        self.available = True
        self.error = None
        self.on_print = None
        self.calls = []

    def resolve(self):
        if not self.available:
            raise BrowserNotFoundError("Google Chrome/Chromium not found")
        return "/usr/bin/fake-chrome"

    def print(self, input_path, output_path, options):
        self.calls.append({"input": Path(input_path), "output": Path(output_path), "options": options})
        hook, self.on_print = self.on_print, None
        if hook is not None:
            hook()
        if self.error is not None:
            Path(output_path).write_bytes(b"%PDF-partial")
            raise self.error
        Path(output_path).write_bytes(FAKE_PDF)


@pytest.fixture
def engine():
    return FakePrintEngine()


@pytest.fixture
def work_dir(tmp_path):
    path = tmp_path / "work"
    path.mkdir()
    return path


@pytest.fixture
def write_html(tmp_path):
    """Write an HTML file into an uploads dir and return its path."""
    uploads = tmp_path / "uploads"
    uploads.mkdir(exist_ok=True)

    def _write(name="report.html", content=SAMPLE_HTML):
        path = uploads / name
        path.write_bytes(content)
        return path

    return _write


@pytest.fixture
def session(engine, work_dir):
    return ConversionSession(engine=engine, work_dir=work_dir, wait_secs=0, session_id="test-session")


# ---------------------------------------------------------------------------
# App client
# ---------------------------------------------------------------------------

@pytest.fixture
def settings(tmp_path):
    return Settings(
        max_upload_mb=1,
        work_dir=tmp_path / "app-work",
        print_wait_secs=0,
        session_ttl_minutes=60,
    )


@asynccontextmanager
async def noop_lifespan(app):
    yield


@pytest.fixture
def app(settings, engine):
    from html_pdf_converter.app import create_app

    app = create_app(settings, engine=engine)
    # Skip the scheduler; tests drive sweeps directly
    app.router.lifespan_context = noop_lifespan
    return app


@pytest.fixture
def client(app):
    from fastapi.testclient import TestClient

    with TestClient(app) as c:
        yield c


def upload(client, name="report.html", content=SAMPLE_HTML, content_type="text/html", htmx=True):
    headers = {"HX-Request": "true"} if htmx else {}
    return client.post(
        "/upload",
        files={"htmlfile": (name, content, content_type)},
        headers=headers,
    )
