"""
SQLAlchemy ORM models package.

All models are imported here so that table metadata is registered on Base
and other modules can import from app.models directly.
"""

from app.models.user import DirectoryUser  # noqa: F401
