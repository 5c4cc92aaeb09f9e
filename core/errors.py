"""
PLEXUS ERRORS - Contract Violations

Contract errors are caller misuse: operating on an id that is not in the
store, adding an id twice, attaching a second control to an input.
They are raised immediately and abort the call.

A subscriber vetoing a mutation is NOT an error. Vetoes come back as a
falsy result from the editor operation and never raise.
"""


class EditorError(Exception):
    """Base exception for editor contract errors."""
    pass


class NotFoundError(EditorError):
    """Raised when an entity (node, connection, port key) does not exist."""
    def __init__(self, kind: str, entity_id: str):
        self.kind = kind
        self.entity_id = entity_id
        super().__init__(f"{kind} not found: {entity_id}")


class DuplicateEntityError(EditorError):
    """Raised when adding an entity or mapping key that already exists."""
    def __init__(self, kind: str, entity_id: str):
        self.kind = kind
        self.entity_id = entity_id
        super().__init__(f"{kind} already exists: {entity_id}")


class InvalidStateError(EditorError):
    """Raised when an operation is not valid for the entity's current state."""
    pass
