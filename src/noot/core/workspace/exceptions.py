"""
Exceptions for remote workspace sync.

Exception Hierarchy:
    WorkspaceError (base; also raised for transport failures)
    ├── WorkspaceAPIError (non-2xx response, carries status and remote message)
    ├── NotConnectedError (no workspace connection configured)
    ├── InvalidTokenError (token does not look like an integration secret)
    ├── NoContainerAccessError (token sees no container to sync into)
    └── NoteNotFoundError (single-note sync for an unknown note)

Example:
    >>> try:
    ...     await client.get_container(container_id)
    ... except WorkspaceAPIError as e:
    ...     print(e.status_code, e.message)
"""


class WorkspaceError(Exception):
    """
    Base exception for workspace sync errors.

    Attributes:
        message: Human-readable error message
        context: Optional dictionary of additional context
    """

    def __init__(self, message: str, **context: object) -> None:
        super().__init__(message)
        self.message = message
        self.context = context

    def __str__(self) -> str:
        return self.message


class WorkspaceAPIError(WorkspaceError):
    """The remote API answered with a non-2xx status."""

    def __init__(self, status_code: int, message: str, **context: object) -> None:
        super().__init__(message, status_code=status_code, **context)
        self.status_code = status_code

    def __str__(self) -> str:
        return f"[{self.status_code}] {self.message}"


class NotConnectedError(WorkspaceError):
    def __init__(self) -> None:
        super().__init__("Not connected to a workspace. Connect first.")


class InvalidTokenError(WorkspaceError):
    def __init__(self) -> None:
        super().__init__(
            "Invalid token. Use an internal integration secret starting with 'secret_' or 'ntn_'."
        )


class NoContainerAccessError(WorkspaceError):
    def __init__(self) -> None:
        super().__init__(
            "No database found. Share a database with your integration and try again."
        )


class NoteNotFoundError(WorkspaceError):
    def __init__(self, note_id: str) -> None:
        super().__init__(f"Note not found: {note_id}", note_id=note_id)
        self.note_id = note_id


__all__ = [
    "WorkspaceError",
    "WorkspaceAPIError",
    "NotConnectedError",
    "InvalidTokenError",
    "NoContainerAccessError",
    "NoteNotFoundError",
]
