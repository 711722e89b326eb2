"""
Epic Notes — Services Layer
============================

What:  Business logic between routes (HTTP) and storage (NoteStore, disk).
Why:   Routes handle HTTP; services handle the rules. Services can be
       unit-tested without an HTTP client.

Service Inventory:
    - FileService:  stores uploads, opens images for streaming, cleans up
    - NoteService:  profile/note lookups and the validate-then-commit edit
    - ImageService: image id → open stream plus response headers
"""
