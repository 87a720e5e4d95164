"""
Session-scoped disk storage for the web crawler system.
"""

from .session_storage import StorageManager, StorageError
from .dedup_set import DedupSet
from .hashing import fnv1a_32

__all__ = ['StorageManager', 'StorageError', 'DedupSet', 'fnv1a_32']
