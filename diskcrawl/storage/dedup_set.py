"""
Disk-bucketed set for exact membership tests over large key collections.
"""

import logging
from typing import List

from .hashing import fnv1a_32
from .session_storage import (
    StorageManager, append_record, format_record, read_records, record_size
)

N_STORAGE_BUCKETS = 512


class Bucket:
    """One partition of a DedupSet, backed by a single append-only file."""

    def __init__(self, bucket_id: int, namespace: str, storage: StorageManager):
        self.id = bucket_id
        self.namespace = namespace
        self.file_path = storage.path_for(f"{namespace}_bucket_{bucket_id:x}")

    def make_file(self):
        self.file_path.write_text('', encoding='utf-8')

    def load(self) -> List[str]:
        return read_records(self.file_path)

    def has_record(self, record: str) -> bool:
        # linear scan, cost grows with bucket occupancy
        return record in self.load()

    def add_record(self, record: str):
        append_record(self.file_path, record)


class DedupSet:
    """
    Set of strings partitioned over a fixed number of bucket files.

    Each key lives in exactly one bucket, chosen by its FNV-1a hash, so a
    lookup or insert only ever reads or appends a single file. Length and
    byte usage are tracked as keys are added rather than by rescanning.
    """

    def __init__(self, name: str, storage: StorageManager,
                 bucket_count: int = N_STORAGE_BUCKETS):
        self.name = name
        self.length = 0
        self.data_usage = 0  # in bytes
        self.logger = logging.getLogger(__name__)

        self.buckets: List[Bucket] = []
        for i in range(bucket_count):
            bucket = Bucket(i, name, storage)
            bucket.make_file()
            self.buckets.append(bucket)

        self.logger.debug(f"Built dedup set '{name}' with {bucket_count} buckets")

    def __len__(self) -> int:
        return self.length

    def __contains__(self, key: str) -> bool:
        return self.has(key)

    def _bucket_for(self, key: str) -> Bucket:
        return self.buckets[fnv1a_32(key) % len(self.buckets)]

    def has(self, key: str) -> bool:
        return self._bucket_for(key).has_record(format_record(key))

    def add(self, key: str) -> bool:
        """Insert a key. Returns True if it was not already present."""
        bucket = self._bucket_for(key)
        record = format_record(key)
        if bucket.has_record(record):
            return False

        bucket.add_record(record)
        self.length += 1
        self.data_usage += record_size(record)
        return True
