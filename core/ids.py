"""Identifier generation for editor entities."""
import uuid


def generate_id() -> str:
    """Generate a new UUID hex string for node/port/control/connection IDs."""
    return uuid.uuid4().hex
