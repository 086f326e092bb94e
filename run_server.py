#!/usr/bin/env python3
"""HTML to PDF Converter web server.

Launch: python3 run_server.py [--host HOST] [--port PORT]
Serves at http://0.0.0.0:8000 (or HOST/PORT env vars)
"""

import argparse

import uvicorn

from html_pdf_converter.config import HOST, PORT, Settings
from html_pdf_converter.services.print_engine import BrowserNotFoundError, ChromePrintEngine


def main():
    parser = argparse.ArgumentParser(description="Serve the HTML to PDF converter")
    parser.add_argument("--host", default=HOST)
    parser.add_argument("--port", type=int, default=PORT)
    args = parser.parse_args()

    settings = Settings.from_env()

    print("=" * 60)
    print("  HTML to PDF Converter")
    print("=" * 60)

    # Conversions still start without a browser; they just fail with a status message
    print("\n[1/2] Looking for Chrome/Chromium...")
    try:
        chrome = ChromePrintEngine(settings.chrome_path).resolve()
        print(f"  -> Found {chrome}")
    except BrowserNotFoundError as e:
        print(f"  -> WARNING: {e}")
        print("  -> Install Chrome or run: playwright install chromium")

    print(f"[2/2] Starting server on {args.host}:{args.port}")
    print(f"  Upload limit: {settings.max_upload_mb:g} MB, work dir: {settings.work_dir}")
    print(f"\n  Converter: http://{args.host}:{args.port}")
    print("  Press Ctrl+C to stop\n")

    from html_pdf_converter.app import create_app
    app = create_app(settings)
    uvicorn.run(app, host=args.host, port=args.port, log_level="info")


if __name__ == "__main__":
    main()
