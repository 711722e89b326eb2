"""SQLAlchemy ORM models used by the SQL NoteStore backend."""
