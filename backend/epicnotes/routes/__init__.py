"""
Epic Notes — Routes Package
============================

What:  HTTP route handlers that accept requests and return responses.
How:   Each route module handles one resource.

Route Inventory:
    - users.py:   GET  /users/{username}                       (profile page)
    - notes.py:   GET  /users/{username}/notes                 (notes list)
                  GET  /users/{username}/notes/{noteId}        (note detail)
                  GET  /users/{username}/notes/{noteId}/edit   (edit form)
                  POST /users/{username}/notes/{noteId}/edit   (submit edit)
    - images.py:  GET  /resources/images/{imageId}             (image stream)
    - health.py:  GET  /resources/healthcheck                  (liveness probe)

Design Principle:
    Routes are THIN: they read the request, call a service and pick the
    response (template, redirect or stream). Business logic lives in
    services, so it can be tested without HTTP.
"""
