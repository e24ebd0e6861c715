"""
Table dependency graph.

Derives a safe deletion order (and the matching insertion order) from the
foreign-key dependencies declared in noot.core.store.schema, so adding a
table only means declaring what it references.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from .exceptions import DependencyCycleError
from .schema import TABLE_DEPENDENCIES


class TableGraph:
    """Immutable dependency graph over store tables.

    An edge ``A -> B`` means table A holds a foreign key into table B, so
    rows of A must be deleted before rows of B and inserted after them.

    Example::

        graph = TableGraph()
        graph.deletion_order(["notes", "note_contexts", "contexts"])
        # ['note_contexts', 'contexts', 'notes']
    """

    __slots__ = ("_forward", "_reverse")

    def __init__(self, dependencies: Mapping[str, Iterable[str]] | None = None) -> None:
        if dependencies is None:
            dependencies = TABLE_DEPENDENCIES

        # forward[A] = {B} means A references B
        self._forward: dict[str, set[str]] = {}
        # reverse[B] = {A} means A must go before B is deleted
        self._reverse: dict[str, set[str]] = {}

        for table, refs in dependencies.items():
            self._forward.setdefault(table, set())
            for ref in refs:
                self._forward[table].add(ref)
                self._forward.setdefault(ref, set())
                self._reverse.setdefault(ref, set()).add(table)

    @property
    def tables(self) -> frozenset[str]:
        return frozenset(self._forward)

    def dependents(self, table: str) -> list[str]:
        """Tables holding a foreign key into *table*."""
        return sorted(self._reverse.get(table, set()))

    def deletion_order(self, tables: Iterable[str] | None = None) -> list[str]:
        """Return *tables* ordered so every dependent precedes what it references.

        Kahn's algorithm over the reverse edges; ties are broken
        alphabetically so the order is stable across runs.

        Raises:
            DependencyCycleError: If the subgraph contains a cycle
        """
        selected = set(self._forward) if tables is None else set(tables)

        # Count, for each table, how many selected tables still reference it
        remaining: dict[str, int] = {
            table: len(self._reverse.get(table, set()) & selected) for table in selected
        }
        ready = sorted(table for table, count in remaining.items() if count == 0)
        order: list[str] = []

        while ready:
            table = ready.pop(0)
            order.append(table)
            for ref in self._forward.get(table, set()) & selected:
                remaining[ref] -= 1
                if remaining[ref] == 0:
                    ready.append(ref)
            ready.sort()

        if len(order) != len(selected):
            raise DependencyCycleError(sorted(selected - set(order)))

        return order

    def insertion_order(self, tables: Iterable[str] | None = None) -> list[str]:
        """Reverse of deletion_order(): referenced tables first."""
        return list(reversed(self.deletion_order(tables)))
