"""
Epic Notes — Health Check Route
================================

What:  GET /resources/healthcheck for container probes and load balancers.
How:   Asks the NoteStore to ping its backing storage (SELECT 1 for SQL,
       always up for the in-memory store).

Responses (plain text):
    200 OK      store reachable
    503 ERROR   store unreachable; stop routing traffic here
"""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse

from epicnotes.dependencies import get_note_store
from epicnotes.storage.base import NoteStore

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])


@router.get("/resources/healthcheck", response_class=PlainTextResponse)
async def healthcheck(store: NoteStore = Depends(get_note_store)) -> PlainTextResponse:
    if await store.ping():
        return PlainTextResponse("OK")
    logger.warning("Health check: note store unreachable")
    return PlainTextResponse("ERROR", status_code=503)
