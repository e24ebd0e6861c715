"""
Portable export bundles: export, schema migration, validation and import.

Usage:
    from noot.core.bundle import BundleExporter, BundleImporter, ImportMode

    bundle = BundleExporter(store, config.paths).export_full(Path("~/Backups"))
    report = BundleImporter(store, config.paths).import_bundle(bundle, ImportMode.MERGE)
"""

from .exceptions import (
    BundleError,
    ExportError,
    IntegrityError,
    InvalidBundleError,
    NoteParseError,
    ReplaceImportError,
)
from .exporter import BundleExporter
from .importer import BundleImporter
from .markdown_import import MarkdownImporter
from .migration import (
    is_compatible,
    migrate,
    migrate_frontmatter,
    migration_description,
    migration_warnings,
)
from .models import (
    CURRENT_SCHEMA_VERSION,
    BundleGraph,
    ExportManifest,
    ExportProgress,
    ImportMode,
    ImportPreview,
    ImportProgress,
    ImportReport,
    MarkdownExportOptions,
    MarkdownImportOptions,
    NoteFrontmatter,
    OrganizeBy,
    SkippedItem,
)
from .validation import validate

__all__ = [
    # Exceptions
    "BundleError",
    "ExportError",
    "IntegrityError",
    "InvalidBundleError",
    "NoteParseError",
    "ReplaceImportError",
    # Services
    "BundleExporter",
    "BundleImporter",
    "MarkdownImporter",
    # Migration
    "is_compatible",
    "migrate",
    "migrate_frontmatter",
    "migration_description",
    "migration_warnings",
    # Models
    "CURRENT_SCHEMA_VERSION",
    "BundleGraph",
    "ExportManifest",
    "ExportProgress",
    "ImportMode",
    "ImportPreview",
    "ImportProgress",
    "ImportReport",
    "MarkdownExportOptions",
    "MarkdownImportOptions",
    "NoteFrontmatter",
    "OrganizeBy",
    "SkippedItem",
    # Validation
    "validate",
]
