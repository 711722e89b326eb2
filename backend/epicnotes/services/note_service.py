"""
Epic Notes — Note Service (Business Logic Orchestrator)
========================================================

What:  Loads profiles and notes, and runs the edit workflow.
Why:   Keeps every rule about notes out of the route handlers, so the edit
       lifecycle can be tested without HTTP.
How:   Receives the NoteStore per call (injected by the route), uses the
       shared rule set for validation and FileService for uploads.

Edit Flow (POST /users/{username}/notes/{noteId}/edit):
    ┌──────────┐    ┌──────────────┐    ┌──────────────┐    ┌───────────┐
    │  Load    │───▶│  Validate    │───▶│  Store image │───▶│  Update   │
    │  note    │    │  (rule set)  │    │  (if upload) │    │  note     │
    └──────────┘    └──────────────┘    └──────────────┘    └───────────┘
         │                 │                                      │
      404 if            400 with                            302 to the
      unknown           Submission                          detail page

    Validation completes before anything is written. A submission with
    errors never stores an upload and never calls update_note; a valid one
    calls update_note exactly once.

Error Recovery:
    Upload stored, update fails → stored file removed, error re-raised
    Update succeeds, old image replaced → old file removed (best effort)
"""

import logging
import uuid
from dataclasses import dataclass
from typing import List, Optional

from epicnotes.exceptions import NotFoundError, invariant
from epicnotes.forms.note_editor import Submission, validate_submission
from epicnotes.schemas.note import ImageChange, NoteChanges, NoteRecord, UserRecord
from epicnotes.services.file_service import file_service
from epicnotes.storage.base import NoteStore

logger = logging.getLogger(__name__)

IMAGE_NOT_ON_NOTE = "The selected image no longer belongs to this note"


@dataclass
class UploadedImage:
    """An image file part read from the request (at most limit + 1 bytes)."""

    filename: Optional[str]
    content_type: Optional[str]
    content: bytes
    size: int


@dataclass
class EditFormInput:
    """Raw edit-form fields. Missing text fields arrive as None."""

    title: Optional[str] = None
    content: Optional[str] = None
    image_id: Optional[str] = None
    image_alt_text: Optional[str] = None
    upload: Optional[UploadedImage] = None


@dataclass
class EditOutcome:
    """Result of one submit: either a redirect target or a failed Submission."""

    submission: Submission
    redirect_to: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.redirect_to is not None


def note_url(username: str, note_id: str) -> str:
    return f"/users/{username}/notes/{note_id}"


class NoteService:
    """
    Business logic layer for users and notes.

    Responsibilities:
        - get_user() / list_notes(): profile and notes pages
        - get_note(): single note with not-found handling
        - submit_edit(): validate-then-commit edit workflow

    Stateless: the store is passed in on every call.
    """

    async def get_user(self, store: NoteStore, username: str) -> UserRecord:
        invariant(username, "username param is required!")
        user = await store.find_user_by_username(username)
        if user is None:
            raise NotFoundError(
                f'User "{username}" not found', resource="user", resource_id=username
            )
        return user

    async def list_notes(self, store: NoteStore, username: str) -> List[NoteRecord]:
        await self.get_user(store, username)
        return await store.list_notes_by_owner(username)

    async def get_note(self, store: NoteStore, note_id: Optional[str]) -> NoteRecord:
        """
        Load a note or fail the request.

        Raises:
            InvariantError: note_id missing (a routing bug, not user input)
            NotFoundError:  no note with that id (→ 404)
        """
        invariant(note_id, "noteId param is required!")
        note = await store.find_note_by_id(note_id)
        if note is None:
            raise NotFoundError(
                f"No note with the id {note_id}", resource="note", resource_id=note_id
            )
        return note

    async def submit_edit(
        self,
        store: NoteStore,
        username: str,
        note_id: Optional[str],
        form: EditFormInput,
    ) -> EditOutcome:
        """
        Validate an edit and, only if it is valid, persist it.

        Args:
            store:    NoteStore to read from and write to
            username: owner segment of the URL (used for the redirect)
            note_id:  note being edited
            form:     submitted fields

        Returns:
            EditOutcome with redirect_to set on success, or the Submission
            carrying field/form errors (caller responds 400).
        """
        note = await self.get_note(store, note_id)

        # Sniff the bytes up front: the declared Content-Type is client input
        upload = form.upload
        image_type = file_service.detect_content_type(upload.content) if upload else None

        submission = validate_submission(
            {
                "title": form.title,
                "content": form.content,
                "image.id": form.image_id,
                "image.altText": form.image_alt_text,
            },
            image_size=upload.size if upload else None,
            image_type=image_type,
            image_filename=upload.filename if upload else None,
        )

        # A stale form (image replaced in another tab) must not resurrect
        # or re-label an image the note no longer has
        if form.image_id and all(image.id != form.image_id for image in note.images):
            submission.form_errors.append(IMAGE_NOT_ON_NOTE)

        if submission.has_errors:
            logger.info(
                "Edit of note %s rejected: %s",
                note_id,
                {name: errors for name, errors in submission.field_errors.items() if errors}
                or submission.form_errors,
            )
            return EditOutcome(submission=submission)

        alt_text = form.image_alt_text or None
        image_change: Optional[ImageChange] = None
        stored = None
        if upload is not None:
            if upload.content_type and upload.content_type != image_type:
                logger.info(
                    "Upload declared %s but contains %s", upload.content_type, image_type
                )
            stored = await file_service.store_image(upload.content, content_type=image_type)
            # New bytes always get a new id; existing ids stay immutable
            image_change = ImageChange(id=str(uuid.uuid4()), alt_text=alt_text, upload=stored)
        elif form.image_id:
            image_change = ImageChange(id=form.image_id, alt_text=alt_text)

        # Persist the line-break-normalized text that was length checked
        changes = NoteChanges(
            title=submission.field_values["title"],
            content=submission.field_values["content"],
            image=image_change,
        )
        try:
            await store.update_note(note.id, changes)
        except Exception:
            if stored is not None:
                await file_service.cleanup_file(stored.file_path)
            raise

        if stored is not None:
            for replaced in note.images:
                await file_service.cleanup_file(replaced.file_path)

        logger.info("Note %s saved by %s", note.id, username)
        return EditOutcome(submission=submission, redirect_to=note_url(username, note.id))


# ── Singleton Instance ────────────────────────────────────────────────────
note_service = NoteService()
