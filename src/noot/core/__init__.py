"""Core engine: store, bundle export/import and workspace sync."""
