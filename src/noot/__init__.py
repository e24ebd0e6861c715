"""
Noot - personal knowledge capture.

Stores short notes, meeting records and attachments in a local SQLite
store, organizes them with hierarchical contexts, and reconciles the store
with portable export bundles and a remote document workspace.
"""

__version__ = "0.4.0"

from noot.core.config.models import NootConfig
from noot.core.store.models import Context, Note

__all__ = ["NootConfig", "Note", "Context", "__version__"]
