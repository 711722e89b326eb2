"""
Epic Notes — Jinja2 Template Environment
=========================================

What:  The shared Jinja2Templates instance used by every HTML route.
How:   Globals available in all templates:
         site_name:  "Epic Notes" (page titles)
         public_env: client-safe settings, emitted as window.ENV
"""

from pathlib import Path

from starlette.templating import Jinja2Templates

from epicnotes.config import settings

TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"
STATIC_DIR = Path(__file__).resolve().parent / "static"

templates = Jinja2Templates(directory=str(TEMPLATES_DIR))
templates.env.globals.update(
    site_name=settings.site_name,
    public_env=settings.public_env(),
)
