"""Identifier generation."""

import uuid


def generate_id(prefix: str) -> str:
    """Generate a prefixed unique ID such as ``job_a1b2c3d4e5f6a7b8``."""
    return f"{prefix}{uuid.uuid4().hex[:16]}"


def generate_uuid() -> str:
    """Externally visible entity UUID (canonical 36-char form)."""
    return str(uuid.uuid4())
