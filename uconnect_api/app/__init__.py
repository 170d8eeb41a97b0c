"""
Application package initializer.

The API is split by concern: ``core`` holds configuration, database,
security and the error taxonomy; ``infra`` wraps the external
collaborators (media storage, mail, realtime fan-out); ``services``
hold the business rules; ``schemas`` define the payloads; and
``api/v1/endpoints`` expose one router per domain.
"""

from .main import app  # noqa: F401
