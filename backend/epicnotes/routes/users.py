"""
Epic Notes — User Profile Route
================================

What:  GET /users/{username} renders a user's profile page.
Why:   The profile is the entry point to a user's notes.
       GET / sends visitors to the demo user's profile, the site's only
       landing page.
"""

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse, RedirectResponse

from epicnotes.dependencies import get_note_store
from epicnotes.seed import DEMO_USERNAME
from epicnotes.services.note_service import note_service
from epicnotes.storage.base import NoteStore
from epicnotes.templating import templates

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Users"])


@router.get("/", include_in_schema=False)
async def home():
    return RedirectResponse(f"/users/{DEMO_USERNAME}", status_code=302)


@router.get("/users/{username}", response_class=HTMLResponse)
async def user_profile(
    request: Request,
    username: str,
    store: NoteStore = Depends(get_note_store),
):
    """
    Profile page: display name as heading plus a link to the notes list.

    Unknown users raise NotFoundError, rendered as 404 `User "{username}" not found`.
    """
    user = await note_service.get_user(store, username)
    return templates.TemplateResponse(request, "user_profile.html", {"user": user})
