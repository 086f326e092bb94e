"""Converter routes: upload form, status, preview frame, PDF download."""

import html
import logging

from fastapi import APIRouter, File, HTTPException, Request, UploadFile
from fastapi.responses import FileResponse, HTMLResponse, JSONResponse, RedirectResponse, Response
from fastapi.templating import Jinja2Templates

from html_pdf_converter.config import WEB_TEMPLATES_DIR
from html_pdf_converter.services.conversion import ConversionSession
from html_pdf_converter.services.sessions import SessionStore
from html_pdf_converter.services.uploads import UploadRejected, save_upload, validate_upload

logger = logging.getLogger(__name__)

router = APIRouter()
templates = Jinja2Templates(directory=str(WEB_TEMPLATES_DIR))


def _store(request: Request) -> SessionStore:
    return request.app.state.sessions


def _cookie_name(request: Request) -> str:
    return request.app.state.settings.session_cookie


def _current_session(request: Request) -> ConversionSession | None:
    return _store(request).get(request.cookies.get(_cookie_name(request)))


def _session(request: Request) -> ConversionSession:
    return _store(request).get_or_create(request.cookies.get(_cookie_name(request)))


def _with_cookie(request: Request, response, session: ConversionSession):
    response.set_cookie(
        _cookie_name(request), session.session_id, httponly=True, samesite="lax",
    )
    return response


def _context(request: Request, session: ConversionSession, **extra) -> dict:
    settings = request.app.state.settings
    context = {
        "session": session,
        "snapshot": session.snapshot(),
        "max_upload_mb": settings.max_upload_mb,
        "oob": False,
    }
    context.update(extra)
    return context


def _panel_or_redirect(request: Request, session: ConversionSession):
    """htmx gets the refreshed status panel (+ out-of-band preview); plain forms go back to /."""
    if request.headers.get("HX-Request"):
        response = templates.TemplateResponse(
            request, "partials/workspace.html", _context(request, session, oob=True),
        )
    else:
        response = RedirectResponse("/", status_code=303)
    return _with_cookie(request, response, session)


def _rejected(request: Request, error: UploadRejected):
    logger.info("Upload rejected: %s", error)
    if not request.headers.get("HX-Request"):
        raise HTTPException(status_code=error.status_code, detail=str(error))
    return HTMLResponse(
        f'<div class="alert alert--error">{html.escape(str(error))}</div>',
        status_code=error.status_code,
        headers={"HX-Retarget": "#upload-feedback", "HX-Reswap": "innerHTML"},
    )


@router.get("/")
async def index(request: Request):
    session = _session(request)
    response = templates.TemplateResponse(request, "index.html", _context(request, session))
    return _with_cookie(request, response, session)


@router.post("/upload")
def upload(request: Request, htmlfile: UploadFile | None = File(None)):
    # Sync handler: conversion blocks, so FastAPI runs this in its threadpool
    session = _session(request)
    if htmlfile is None or not htmlfile.filename:
        session.clear()
        return _panel_or_redirect(request, session)

    max_bytes = request.app.state.settings.max_upload_bytes
    try:
        validate_upload(htmlfile.filename, htmlfile.content_type, htmlfile.size, max_bytes)
        source_path, size = save_upload(htmlfile.file, session.work_dir, max_bytes)
    except UploadRejected as e:
        return _rejected(request, e)

    session.upload(htmlfile.filename, source_path, size)
    return _panel_or_redirect(request, session)


@router.post("/clear")
async def clear(request: Request):
    session = _session(request)
    session.clear()
    return _panel_or_redirect(request, session)


@router.get("/status")
async def status_panel(request: Request):
    session = _session(request)
    response = templates.TemplateResponse(
        request, "partials/workspace.html", _context(request, session, oob=True),
    )
    return _with_cookie(request, response, session)


@router.get("/api/status")
async def status_json(request: Request):
    session = _session(request)
    return _with_cookie(request, JSONResponse(session.snapshot()), session)


@router.get("/preview/{token}")
async def preview(request: Request, token: str):
    session = _current_session(request)
    path = session.preview_path(token) if session else None
    if path is None:
        raise HTTPException(status_code=404, detail="Preview not available")

    # The file can vanish between the lookup and the read (new upload, clear, expiry)
    try:
        content = path.read_bytes()
    except OSError:
        raise HTTPException(status_code=404, detail="Preview not available")
    return Response(content, media_type="text/html", headers={"Cache-Control": "no-store"})


@router.get("/download")
async def download(request: Request):
    session = _current_session(request)
    target = session.download_target() if session else None
    if target is None:
        raise HTTPException(status_code=404, detail="No converted PDF available")

    pdf_path, filename = target
    logger.info("Serving %s", filename)
    return FileResponse(pdf_path, media_type="application/pdf", filename=filename)