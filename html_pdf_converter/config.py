"""Converter configuration: loaded from environment variables."""

import os
import tempfile
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

load_dotenv(Path(__file__).resolve().parent.parent / ".env")

# Jinja2 templates for the web UI
WEB_TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"
STATIC_DIR = Path(__file__).resolve().parent / "static"

# Server
HOST = os.environ.get("HOST", "0.0.0.0")
PORT = int(os.environ.get("PORT", "8000"))

# Uploads
MAX_UPLOAD_MB = float(os.environ.get("MAX_UPLOAD_MB", "30"))
WORK_DIR = Path(os.environ.get("WORK_DIR", "") or Path(tempfile.gettempdir()) / "html2pdf")

# Print engine (headless Chrome/Chromium via Playwright)
CHROME_PATH = os.environ.get("CHROME_PATH", "")
PRINT_WAIT_SECS = float(os.environ.get("PRINT_WAIT_SECS", "2"))
PRINT_TIMEOUT_SECS = float(os.environ.get("PRINT_TIMEOUT_SECS", "60"))

# Sessions
SESSION_COOKIE = os.environ.get("SESSION_COOKIE", "html2pdf_session")
SESSION_TTL_MINUTES = int(os.environ.get("SESSION_TTL_MINUTES", "60"))
CLEANUP_INTERVAL_MINUTES = int(os.environ.get("CLEANUP_INTERVAL_MINUTES", "5"))


@dataclass(frozen=True)
class Settings:
    """Startup configuration handed to ``create_app``."""

    max_upload_mb: float = MAX_UPLOAD_MB
    work_dir: Path = WORK_DIR
    chrome_path: str = CHROME_PATH
    print_wait_secs: float = PRINT_WAIT_SECS
    print_timeout_secs: float = PRINT_TIMEOUT_SECS
    session_cookie: str = SESSION_COOKIE
    session_ttl_minutes: int = SESSION_TTL_MINUTES
    cleanup_interval_minutes: int = CLEANUP_INTERVAL_MINUTES

    @property
    def max_upload_bytes(self) -> int:
        return int(self.max_upload_mb * 1024 * 1024)

    @classmethod
    def from_env(cls) -> "Settings":
        return cls()
