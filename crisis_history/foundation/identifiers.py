"""ID generation for domain objects."""

from __future__ import annotations

from uuid import uuid4


def new_id(prefix: str = "crisis") -> str:
    """Generate a new random identifier, e.g. ``crisis_3f2a...``."""
    return f"{prefix}_{uuid4().hex}"
