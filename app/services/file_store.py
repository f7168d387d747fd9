import asyncio
from typing import Dict, List, Optional

from app.errors import PersistenceError
from app.models.file_record import FileEntry, FileRecord
from app.services.persistence import FilePersistence
from app.services.write_monitor import WriteMonitor
from logger_config import setup_logger

logger = setup_logger()


class FileStore:
    """Write-through, in-memory index of every file in the store directory.

    Reads are served from memory only. ``put`` commits to disk first and
    publishes to the index second, so the index never shows content that is
    not on disk. All mapping access goes through ``self._lock``; no disk I/O
    happens while it is held.
    """

    def __init__(self, persistence: FilePersistence, monitor: Optional[WriteMonitor] = None):
        self._persistence = persistence
        self._monitor = monitor
        self._files: Dict[str, FileRecord] = {}
        self._lock = asyncio.Lock()
        # Per-name locks, held across disk write and publish. A lock lives
        # only while _writers counts a put holding or waiting for it.
        self._write_locks: Dict[str, asyncio.Lock] = {}
        self._writers: Dict[str, int] = {}

    async def initialize(self) -> int:
        """Load the store directory into memory. Returns the number of records."""
        logger.info("Initializing file store...")
        records = await self._persistence.load_all()
        async with self._lock:
            self._files = {record.name: record for record in records}
            count = len(self._files)
        logger.info(f"Loaded {count} files from store")
        return count

    async def list_all(self) -> List[FileEntry]:
        async with self._lock:
            names = list(self._files)
        return [FileEntry(name=name) for name in names]

    async def get(self, name: str) -> Optional[FileRecord]:
        async with self._lock:
            record = self._files.get(name)
        return record.model_copy() if record is not None else None

    async def put(self, name: str, content: str) -> None:
        """Persist ``content`` under ``name`` and then publish it.

        On a persistence failure the error propagates and the previous
        entry, if any, stays in place.
        """
        async with self._lock:
            write_lock = self._write_locks.setdefault(name, asyncio.Lock())
            self._writers[name] = self._writers.get(name, 0) + 1

        try:
            async with write_lock:
                try:
                    await self._persistence.write_file(name, content)
                except PersistenceError as e:
                    if self._monitor:
                        self._monitor.record_failure(name, e)
                    raise
                if self._monitor:
                    self._monitor.record_success(name)

                async with self._lock:
                    self._files[name] = FileRecord(name=name, content=content)
        finally:
            async with self._lock:
                self._writers[name] -= 1
                if not self._writers[name]:
                    del self._writers[name]
                    del self._write_locks[name]
        logger.info(f"Stored file {name} ({len(content)} characters)")

    async def count(self) -> int:
        async with self._lock:
            return len(self._files)
