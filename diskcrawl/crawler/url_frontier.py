"""
URL Frontier implementation for managing URLs to crawl.
Keeps pending nodes on disk in fixed-size chunks, in strict FIFO order.
"""

import logging
from typing import List

from ..storage.session_storage import (
    StorageManager, append_record, format_record, parse_record, record_size
)

QUEUE_CHUNK_SIZE = 1024


class QueueChunk:
    """A bounded segment of the frontier backed by its own file."""

    def __init__(self, chunk_id: int, namespace: str, storage: StorageManager):
        self.id = chunk_id
        self.namespace = namespace
        self.length = 0
        self.file_path = storage.path_for(f"{namespace}_chunk_{chunk_id:x}")
        self.file_path.write_text('', encoding='utf-8')

    def add(self, record: str):
        append_record(self.file_path, record)
        self.length += 1

    def pop_first(self) -> str:
        """
        Remove and return the first raw record.

        The rest of the chunk is written back, so the cost is bounded by
        the chunk capacity rather than by the size of the whole frontier.
        """
        with open(self.file_path, 'r', encoding='utf-8', newline='') as f:
            content = f.read()
        record, _, rest = content.partition('\n')
        with open(self.file_path, 'w', encoding='utf-8', newline='') as f:
            f.write(rest)
        self.length -= 1
        return record

    def delete_file(self):
        self.file_path.unlink()


class URLFrontier:
    """
    Disk-backed FIFO queue of nodes waiting to be crawled.

    New values go to the tail chunk; a full tail causes a fresh chunk to be
    allocated. Drained head chunks are deleted immediately, and there is
    always at least one chunk to append to.
    """

    def __init__(self, name: str, storage: StorageManager,
                 chunk_size: int = QUEUE_CHUNK_SIZE):
        self.name = name
        self.storage = storage
        self.chunk_size = chunk_size
        self.next_id = 0
        self.length = 0
        self.data_usage = 0  # in bytes
        self.logger = logging.getLogger(__name__)

        self.chunks: List[QueueChunk] = []
        self._add_chunk()

    def __len__(self) -> int:
        return self.length

    @property
    def chunk_count(self) -> int:
        return len(self.chunks)

    def is_empty(self) -> bool:
        return self.length == 0

    def enqueue(self, value: str):
        chunk = self.chunks[-1]
        if chunk.length >= self.chunk_size:
            chunk = self._add_chunk()

        record = format_record(value)
        chunk.add(record)
        self.length += 1
        self.data_usage += record_size(record)

    def dequeue(self) -> str:
        """Remove and return the oldest value. The frontier must not be empty."""
        if self.length == 0:
            raise IndexError("dequeue from an empty frontier")

        chunk = self.chunks[0]
        record = chunk.pop_first()

        if chunk.length == 0:
            self.chunks.pop(0)
            chunk.delete_file()
            self.logger.debug(f"Released drained chunk {chunk.id} of '{self.name}'")

        if not self.chunks:
            self._add_chunk()

        self.length -= 1
        self.data_usage -= record_size(record)
        return parse_record(record)

    def _add_chunk(self) -> QueueChunk:
        chunk = QueueChunk(self.next_id, self.name, self.storage)
        self.chunks.append(chunk)
        self.next_id += 1
        return chunk
