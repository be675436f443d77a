"""
Adapters layer - Storage and calendar integrations.
"""

from .file_store import FileStore

__all__ = ["FileStore"]
