"""
Session-scoped on-disk storage root shared by the dedup sets and the frontier.

Everything under the storage directory belongs to a single crawl session.
Contents are discarded when the manager is initialized, so nothing written
here survives into the next run.
"""

import logging
import shutil
from pathlib import Path
from typing import List, Union

DEFAULT_STORAGE_DIR = "_storage"


class StorageError(Exception):
    """Raised when the storage layer is used before it is ready."""
    pass


def format_record(data: str) -> str:
    """Escape embedded newlines so a value fits on a single line."""
    return data.replace('\n', '\\n')


def parse_record(line: str) -> str:
    """Reverse format_record()."""
    return line.replace('\\n', '\n')


def record_size(record: str) -> int:
    """Number of bytes a formatted record occupies on disk, excluding the delimiter."""
    return len(record.encode('utf-8'))


def read_records(path: Path) -> List[str]:
    """Load every raw (still escaped) record stored in a file."""
    with open(path, 'r', encoding='utf-8', newline='') as f:
        lines = f.read().split('\n')
    # a complete file always ends with the delimiter
    if lines and lines[-1] == '':
        lines.pop()
    return lines


def append_record(path: Path, record: str):
    """Append one already formatted record to a file."""
    with open(path, 'a', encoding='utf-8', newline='') as f:
        f.write(record + '\n')


class StorageManager:
    """
    Owns the storage root directory for one crawl session.

    ``initialize()`` must run before any dedup set or frontier is built on
    top of the manager. It wipes residual files from a previous run and only
    does so once per manager; later calls are no-ops.
    """

    def __init__(self, directory: Union[str, Path] = DEFAULT_STORAGE_DIR):
        self.directory = Path(directory)
        self.initialized = False
        self.logger = logging.getLogger(__name__)

    def initialize(self):
        """Create the storage root, discarding residual contents."""
        if self.initialized:
            return

        if self.directory.exists():
            self.logger.info(f"Removing residual storage from previous run: {self.directory}")
            shutil.rmtree(self.directory)

        self.directory.mkdir(parents=True)
        self.initialized = True
        self.logger.debug(f"Storage initialized at {self.directory}")

    def cleanup(self):
        """Remove the storage root and everything in it."""
        if self.directory.exists():
            shutil.rmtree(self.directory)
            self.logger.info(f"Storage directory removed: {self.directory}")
        self.initialized = False

    def path_for(self, filename: str) -> Path:
        """Resolve a file inside the storage root."""
        if not self.initialized:
            raise StorageError(
                f"Storage at {self.directory} has not been initialized"
            )
        return self.directory / filename

    def disk_usage(self) -> int:
        """Total size in bytes of the files currently in the storage root."""
        if not self.directory.exists():
            return 0
        return sum(p.stat().st_size for p in self.directory.iterdir() if p.is_file())
