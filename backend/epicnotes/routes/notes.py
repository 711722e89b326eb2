"""
Epic Notes — Notes Route Handlers
==================================

What:  Notes list, note detail and the note editor (GET form / POST submit).
Why:   The editor is the one place users change data, so it carries CSRF
       protection, the shared validation rules and accessible error output.
How:   Handlers read the request, call NoteService and choose between a
       template, a redirect and a 400 re-render.

Edit Request Flow:
    1. GET renders the form pre-filled from the stored note, with a CSRF
       token in both a cookie and a hidden field
    2. POST checks the CSRF token first (403 before anything else runs)
    3. Fields are read from the form body; the image part is read at most
       MAX_UPLOAD_SIZE + 1 bytes, enough to decide the size rule
    4. NoteService.submit_edit() validates and, only if valid, persists
    5. Success → 302 to the note page; failure → 400 with the form,
       submitted values echoed and errors attached to their fields

Field names contain dots (`image.id`, `image.altText`), which is why the
body is read from request.form() instead of declared Form() parameters.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from starlette.datastructures import FormData, UploadFile

from epicnotes.csrf import CSRF_FIELD, csrf
from epicnotes.exceptions import ValidationError
from epicnotes.forms.note_editor import (
    FORM_ID,
    MAX_UPLOAD_SIZE,
    RULES_BY_NAME,
    Submission,
    rules_as_client_config,
)
from epicnotes.dependencies import get_note_store
from epicnotes.schemas.note import NoteRecord
from epicnotes.services.note_service import EditFormInput, UploadedImage, note_service
from epicnotes.storage.base import NoteStore
from epicnotes.templating import templates

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users/{username}/notes", tags=["Notes"])


@router.get("", response_class=HTMLResponse)
async def list_notes(
    request: Request,
    username: str,
    store: NoteStore = Depends(get_note_store),
):
    user = await note_service.get_user(store, username)
    notes = await note_service.list_notes(store, user.username)
    return templates.TemplateResponse(
        request, "notes_list.html", {"user": user, "notes": notes}
    )


@router.get("/{note_id}", response_class=HTMLResponse)
async def note_detail(
    request: Request,
    username: str,
    note_id: str,
    store: NoteStore = Depends(get_note_store),
):
    note = await note_service.get_note(store, note_id)
    return templates.TemplateResponse(
        request, "note_detail.html", {"note": note, "username": username}
    )


def _render_editor(
    request: Request,
    note: NoteRecord,
    values: Dict[str, Any],
    submission: Optional[Submission] = None,
    status_code: int = 200,
):
    """Render the edit form and make sure the browser holds the CSRF cookie."""
    token = csrf.get_token(request)
    response = templates.TemplateResponse(
        request,
        "note_edit.html",
        {
            "note": note,
            "image": note.image,
            "values": values,
            "submission": submission,
            "focus_target": submission.focus_target() if submission else None,
            "form_id": FORM_ID,
            "rules": RULES_BY_NAME,
            "client_rules": rules_as_client_config(),
            "csrf_token": token,
        },
        status_code=status_code,
    )
    csrf.commit_token(request, response, token)
    return response


@router.get("/{note_id}/edit", response_class=HTMLResponse)
async def edit_note_form(
    request: Request,
    username: str,
    note_id: str,
    store: NoteStore = Depends(get_note_store),
):
    note = await note_service.get_note(store, note_id)
    values = {
        "title": note.title,
        "content": note.content,
        "image.altText": note.image.alt_text if note.image else "",
    }
    return _render_editor(request, note, values)


def _text_field(form: FormData, name: str) -> Optional[str]:
    value = form.get(name)
    if value is None or isinstance(value, str):
        return value
    raise ValidationError(f"Field {name} must be text", field=name)


async def _read_upload(form: FormData) -> Optional[UploadedImage]:
    """
    The chosen image, or None when the file input was left empty.

    Reads one byte past the limit so an oversized file is detected without
    buffering all of it.
    """
    part = form.get("image.file")
    if not isinstance(part, UploadFile):
        return None
    content = await part.read(MAX_UPLOAD_SIZE + 1)
    if not content:
        return None
    # part.size counts what the parser spooled; the read above may stop early
    size = max(part.size or 0, len(content))
    return UploadedImage(
        filename=part.filename,
        content_type=part.content_type,
        content=content,
        size=size,
    )


@router.post("/{note_id}/edit", response_class=HTMLResponse)
async def submit_note_edit(
    request: Request,
    username: str,
    note_id: str,
    store: NoteStore = Depends(get_note_store),
):
    async with request.form() as form:
        csrf.validate(request, form.get(CSRF_FIELD))
        form_input = EditFormInput(
            title=_text_field(form, "title"),
            content=_text_field(form, "content"),
            image_id=_text_field(form, "image.id") or None,
            image_alt_text=_text_field(form, "image.altText"),
            upload=await _read_upload(form),
        )

    outcome = await note_service.submit_edit(store, username, note_id, form_input)
    if outcome.succeeded:
        return RedirectResponse(outcome.redirect_to, status_code=302)

    note = await note_service.get_note(store, note_id)
    return _render_editor(
        request,
        note,
        outcome.submission.field_values,
        submission=outcome.submission,
        status_code=400,
    )
