"""
Epic Notes — Demo Data Tests
=============================
"""

import pytest

from epicnotes.seed import DEMO_NOTES, DEMO_USERNAME, seed_demo_data
from epicnotes.storage.memory import InMemoryNoteStore


@pytest.mark.asyncio
async def test_seed_creates_demo_user_and_notes():
    store = InMemoryNoteStore()
    await seed_demo_data(store)

    user = await store.find_user_by_username(DEMO_USERNAME)
    assert user.display_name == "Kody"
    notes = await store.list_notes_by_owner(DEMO_USERNAME)
    assert sorted(n.id for n in notes) == sorted(note_id for note_id, _, _ in DEMO_NOTES)


@pytest.mark.asyncio
async def test_seed_is_skipped_when_user_exists():
    store = InMemoryNoteStore()
    await seed_demo_data(store)
    # A second run must not fail on duplicate ids
    await seed_demo_data(store)
    assert len(await store.list_notes_by_owner(DEMO_USERNAME)) == len(DEMO_NOTES)
