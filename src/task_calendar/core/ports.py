# src/task_calendar/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The core depends on Protocols instead of concrete implementations.
This keeps the storage backend swappable and makes testing easier.
"""

from typing import Any, Protocol

from ..tasks.backend import Document


class DocumentBackend(Protocol):
    """
    Keyed-document storage with revision tokens.

    get: raises DocumentNotFound when the key was never written.
    put: rev=None creates; otherwise rev must be current or DocumentConflict is raised.
    """

    def get(self, key: str) -> Document: ...

    def put(self, key: str, data: Any, rev: str | None = None) -> str: ...
