"""Demo data for local runs (SEED_DEMO_DATA=true)."""

import logging

from epicnotes.storage.base import NoteStore

logger = logging.getLogger(__name__)

DEMO_USERNAME = "kody"

DEMO_NOTES = [
    (
        "d27a197e",
        "Basic Koala Facts",
        "Koalas are found in the eucalyptus forests of eastern Australia. "
        "They have grey fur with a cream-coloured chest, and strong, clawed feet, "
        "perfect for living in the branches of trees!",
    ),
    (
        "414f0c09",
        "Koalas like to cuddle",
        "Cuddly critters, koalas measure about 60cm to 85cm long, and weigh about 14kg.",
    ),
    (
        "260366b1",
        "Not bears",
        "Although you may have heard people call them koala 'bears', these awesome "
        "animals aren’t bears at all – they are in fact marsupials.",
    ),
]


async def seed_demo_data(store: NoteStore) -> None:
    """Create the demo user and notes unless the user already exists."""
    if await store.find_user_by_username(DEMO_USERNAME):
        logger.info("Demo data requested but user '%s' exists; skipping seed", DEMO_USERNAME)
        return

    await store.create_user(DEMO_USERNAME, name="Kody")
    for note_id, title, content in DEMO_NOTES:
        await store.create_note(DEMO_USERNAME, title, content, note_id=note_id)
    logger.info("Seeded demo user '%s' with %d notes", DEMO_USERNAME, len(DEMO_NOTES))
