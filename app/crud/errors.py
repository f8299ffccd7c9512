# app/crud/errors.py
class DatabaseInteractionError(Exception):
    """Any unexpected DB-layer failure."""
