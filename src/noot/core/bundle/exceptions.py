"""
Exceptions for bundle export and import.

Exception Hierarchy:
    BundleError (base)
    ├── InvalidBundleError (not a bundle: no directory, no/unparsable manifest)
    ├── ExportError (export aborted by an I/O or encoding failure)
    ├── NoteParseError (one note file cannot be read; carries a skip reason)
    ├── IntegrityError (replace refused: dangling references in the bundle)
    └── ReplaceImportError (replace transaction aborted and rolled back)

Example:
    >>> try:
    ...     importer.import_bundle(path, ImportMode.REPLACE)
    ... except IntegrityError as e:
    ...     for violation in e.violations:
    ...         print(violation)
"""


class BundleError(Exception):
    """
    Base exception for bundle errors.

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


class InvalidBundleError(BundleError):
    """
    The path is not a usable bundle.

    Raised before anything is read or written, so the caller can refuse to
    proceed.
    """

    def __init__(self, path: object, reason: str) -> None:
        super().__init__(f"Not a valid bundle: {reason}", path=str(path), reason=reason)
        self.path = path
        self.reason = reason


class ExportError(BundleError):
    """Export failed; the partially written bundle must not be trusted."""


class NoteParseError(BundleError):
    """
    A single note file could not be turned into a note.

    Per-entity and recoverable: the importer records `reason` in the
    report's skipped list and moves on.
    """

    def __init__(self, filename: str, reason: str) -> None:
        super().__init__(f"{filename}: {reason}", filename=filename, reason=reason)
        self.filename = filename
        self.reason = reason


class IntegrityError(BundleError):
    """Bundle contains dangling references and cannot replace the store."""

    def __init__(self, violations: list[str]) -> None:
        super().__init__(
            f"Bundle failed integrity validation with {len(violations)} violation(s)",
            violations=violations,
        )
        self.violations = violations


class ReplaceImportError(BundleError):
    """
    Replace import aborted.

    The store was rolled back to its state before the import; the automatic
    backup is recorded in `backup_path`.
    """

    def __init__(self, message: str, backup_path: object = None, **context: object) -> None:
        super().__init__(message, backup_path=str(backup_path) if backup_path else None, **context)
        self.backup_path = backup_path


__all__ = [
    "BundleError",
    "InvalidBundleError",
    "ExportError",
    "NoteParseError",
    "IntegrityError",
    "ReplaceImportError",
]
