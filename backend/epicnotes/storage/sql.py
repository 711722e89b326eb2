"""
Epic Notes — SQLAlchemy NoteStore
==================================

What:  NoteStore implementation over the users / notes / note_images tables.
Why:   Durable storage for deployments that outlive a single process.
How:   Every operation opens its own AsyncSession from the factory, commits
       on success and rolls back on error, then converts ORM rows into the
       pydantic records the rest of the app works with.

Error Handling Strategy:
    Unknown ids return None (callers decide between 404 and invariant).
    SQLAlchemy failures are logged with context and wrapped in DatabaseError
    so no SQL text ever reaches a response.
"""

import logging
from typing import List, Optional

from sqlalchemy import select, text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from epicnotes.exceptions import DatabaseError, InvariantError, NotFoundError
from epicnotes.models.note import Note, NoteImage
from epicnotes.models.user import User
from epicnotes.schemas.note import ImageMeta, NoteChanges, NoteRecord, UserRecord

logger = logging.getLogger(__name__)


def _to_record(note: Note) -> NoteRecord:
    return NoteRecord(
        id=note.id,
        owner_username=note.owner.username,
        title=note.title,
        content=note.content,
        images=[ImageMeta.model_validate(image) for image in note.images],
        created_at=note.created_at,
        updated_at=note.updated_at,
    )


class SqlNoteStore:
    """
    NoteStore over async SQLAlchemy.

    Args:
        session_factory: async_sessionmaker bound to the target engine.
                         Tests pass one bound to an in-memory SQLite engine.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    # ── Users ─────────────────────────────────────────────────────────────

    async def find_user_by_username(self, username: str) -> Optional[UserRecord]:
        async with self.session_factory() as session:
            try:
                result = await session.execute(select(User).where(User.username == username))
            except SQLAlchemyError as e:
                logger.error("Database error fetching user %s: %s", username, str(e))
                raise DatabaseError(context={"username": username})
            user = result.scalar_one_or_none()
            return UserRecord.model_validate(user) if user else None

    async def create_user(self, username: str, name: Optional[str] = None) -> UserRecord:
        async with self.session_factory() as session:
            user = User(username=username, name=name)
            session.add(user)
            try:
                await session.commit()
            except IntegrityError:
                await session.rollback()
                raise InvariantError(f"Username '{username}' is already taken", status_code=409)
            except SQLAlchemyError as e:
                await session.rollback()
                logger.error("Database error creating user %s: %s", username, str(e))
                raise DatabaseError(context={"username": username})
            return UserRecord.model_validate(user)

    # ── Notes ─────────────────────────────────────────────────────────────

    async def list_notes_by_owner(self, username: str) -> List[NoteRecord]:
        async with self.session_factory() as session:
            try:
                result = await session.execute(
                    select(Note)
                    .join(User, Note.owner_id == User.id)
                    .where(User.username == username)
                    .order_by(Note.updated_at.desc())
                )
            except SQLAlchemyError as e:
                logger.error("Database error listing notes of %s: %s", username, str(e))
                raise DatabaseError(context={"username": username})
            return [_to_record(note) for note in result.scalars().all()]

    async def find_note_by_id(self, note_id: str) -> Optional[NoteRecord]:
        async with self.session_factory() as session:
            try:
                note = await session.get(Note, note_id)
            except SQLAlchemyError as e:
                logger.error("Database error fetching note %s: %s", note_id, str(e))
                raise DatabaseError(context={"note_id": note_id})
            return _to_record(note) if note else None

    async def create_note(
        self,
        owner_username: str,
        title: str,
        content: str,
        images: Optional[List[ImageMeta]] = None,
        note_id: Optional[str] = None,
    ) -> NoteRecord:
        async with self.session_factory() as session:
            result = await session.execute(select(User).where(User.username == owner_username))
            owner = result.scalar_one_or_none()
            if owner is None:
                raise NotFoundError(
                    f'User "{owner_username}" not found',
                    resource="user",
                    resource_id=owner_username,
                )

            note = Note(owner_id=owner.id, title=title, content=content)
            if note_id:
                note.id = note_id
            note.images = [
                NoteImage(
                    id=image.id,
                    position=position,
                    alt_text=image.alt_text,
                    content_type=image.content_type,
                    file_path=image.file_path,
                )
                for position, image in enumerate(images or [])
            ]
            session.add(note)
            try:
                await session.commit()
            except IntegrityError:
                await session.rollback()
                raise InvariantError(f"Note id '{note_id}' already exists", status_code=409)
            except SQLAlchemyError as e:
                await session.rollback()
                logger.error("Database error creating note for %s: %s", owner_username, str(e))
                raise DatabaseError(context={"owner": owner_username})
            await session.refresh(note, attribute_names=["owner", "images"])
            return _to_record(note)

    async def update_note(self, note_id: str, changes: NoteChanges) -> None:
        async with self.session_factory() as session:
            try:
                note = await session.get(Note, note_id)
                if note is None:
                    raise NotFoundError(
                        f"No note with the id {note_id}", resource="note", resource_id=note_id
                    )

                note.title = changes.title
                note.content = changes.content

                change = changes.image
                if change is not None and change.upload is not None:
                    # Orphaned rows are deleted by the cascade
                    note.images = [
                        NoteImage(
                            id=change.id,
                            position=0,
                            alt_text=change.alt_text,
                            content_type=change.upload.content_type,
                            file_path=change.upload.file_path,
                        )
                    ]
                elif change is not None:
                    for image in note.images:
                        if image.id == change.id:
                            image.alt_text = change.alt_text

                await session.commit()
                logger.info("Note %s updated", note_id)
            except SQLAlchemyError as e:
                await session.rollback()
                logger.error("Database error updating note %s: %s", note_id, str(e))
                raise DatabaseError(
                    message="Could not save the note. Please try again.",
                    context={"note_id": note_id},
                )

    # ── Images ────────────────────────────────────────────────────────────

    async def find_image_by_id(self, image_id: str) -> Optional[ImageMeta]:
        async with self.session_factory() as session:
            try:
                image = await session.get(NoteImage, image_id)
            except SQLAlchemyError as e:
                logger.error("Database error fetching image %s: %s", image_id, str(e))
                raise DatabaseError(context={"image_id": image_id})
            return ImageMeta.model_validate(image) if image else None

    async def ping(self) -> bool:
        """Runs SELECT 1; False when the database cannot be reached."""
        try:
            async with self.session_factory() as session:
                await session.execute(text("SELECT 1"))
            return True
        except (SQLAlchemyError, OSError) as e:
            logger.warning("Note store ping failed: %s", str(e))
            return False
