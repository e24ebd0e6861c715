"""
Exceptions raised by the local store.

Exception Hierarchy:
    StoreError (base)
    └── DependencyCycleError (table dependency graph is not a DAG)
"""


class StoreError(Exception):
    """
    Base exception for store errors.

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


class DependencyCycleError(StoreError):
    """
    Raised when the declared table dependencies contain a cycle.

    No safe deletion order exists for a cyclic graph, so callers must not
    fall back to an arbitrary order.
    """

    def __init__(self, tables: list[str]) -> None:
        super().__init__(
            f"Table dependency cycle involving: {', '.join(sorted(tables))}",
            tables=tables,
        )
        self.tables = tables


__all__ = [
    "StoreError",
    "DependencyCycleError",
]
