"""
Bundle schema migration.

Upgrades raw bundle documents written under an older schema version to the
shape current decoders expect. Each version step is an explicit, pure
function registered under its (from, to) pair; steps only fill keys that
are absent, so running one over already-upgraded data changes nothing.

Bundles from a newer version are never migrated: they are read best-effort
and the importer attaches a compatibility warning. A (from, to) pair with
no registered step passes data through unchanged.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Callable
from typing import Any, NamedTuple

from .models import CURRENT_SCHEMA_VERSION

logger = logging.getLogger(__name__)

Document = dict[str, Any]


class MigrationStep(NamedTuple):
    """One single-version upgrade."""

    from_version: int
    to_version: int
    description: str
    apply: Callable[[Document], Document]


def _manifest_v0_to_v1(document: Document) -> Document:
    result = dict(document)
    # Context links were not counted before v1
    if "contextLinkCount" not in result:
        result["contextLinkCount"] = 0
    return result


def _frontmatter_defaults(header: Document) -> Document:
    result = dict(header)
    if "archived" not in result:
        result["archived"] = False
    return result


BUNDLE_STEPS: dict[tuple[int, int], MigrationStep] = {
    (0, 1): MigrationStep(0, 1, "Add contextLinkCount to the manifest", _manifest_v0_to_v1),
}

FRONTMATTER_STEPS: dict[tuple[int, int], MigrationStep] = {
    (0, 1): MigrationStep(0, 1, "Default the archived flag", _frontmatter_defaults),
}


def _run_steps(
    document: Document,
    from_version: int,
    steps: dict[tuple[int, int], MigrationStep],
    target_version: int,
) -> Document:
    result = copy.deepcopy(document)
    if from_version >= target_version:
        return result

    for version in range(from_version, target_version):
        step = steps.get((version, version + 1))
        if step is None:
            logger.debug("No migration step for %d -> %d, passing through", version, version + 1)
            continue
        logger.debug("Migrating %d -> %d: %s", version, version + 1, step.description)
        result = step.apply(result)

    return result


def migrate(
    document: Document,
    from_version: int,
    target_version: int = CURRENT_SCHEMA_VERSION,
) -> Document:
    """
    Upgrade a bundle document from *from_version* to *target_version*.

    The input mapping is never mutated.

    Example:
        >>> migrate({"schemaVersion": 0, "noteCount": 3}, 0)["contextLinkCount"]
        0
    """
    return _run_steps(document, from_version, BUNDLE_STEPS, target_version)


def migrate_frontmatter(
    header: Document,
    from_version: int,
    target_version: int = CURRENT_SCHEMA_VERSION,
) -> Document:
    """
    Upgrade one note's frontmatter mapping.

    Notes are migrated file by file at import time. The archived default
    applies to every bundle, since a missing flag can only mean the note
    was never archived.
    """
    result = _run_steps(header, from_version, FRONTMATTER_STEPS, target_version)
    return _frontmatter_defaults(result)


def is_compatible(version: int) -> bool:
    """Older bundles are migrated; newer ones are not understood."""
    return version <= CURRENT_SCHEMA_VERSION


def migration_description(version: int) -> str | None:
    if version >= CURRENT_SCHEMA_VERSION:
        return None
    if version == 0:
        return "Legacy export format will be upgraded to the current version"
    return f"Export from version {version} will be migrated to version {CURRENT_SCHEMA_VERSION}"


def migration_warnings(version: int) -> list[str]:
    warnings: list[str] = []
    if version > CURRENT_SCHEMA_VERSION:
        warnings.append(
            "This export was created with a newer version of Noot. "
            "Some data may not be imported correctly."
        )
    if version == 0:
        warnings.append("This is a legacy export. Some metadata may be missing.")
    return warnings
