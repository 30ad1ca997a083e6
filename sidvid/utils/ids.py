"""Identifier generation."""

import uuid


def generate_id(prefix: str) -> str:
    """Return a unique id such as ``char-3f2a9c...``."""
    return f"{prefix}-{uuid.uuid4().hex[:12]}"
