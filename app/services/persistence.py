from pathlib import Path
from typing import List, Optional

import aiofiles
import aiofiles.os

from app.errors import PersistenceError
from app.models.file_record import FileRecord
from logger_config import setup_logger

logger = setup_logger()


def sanitize_name(raw: str) -> Optional[str]:
    """Reduce a client supplied name to its final path component.

    Both ``/`` and ``\\`` count as separators, so ``../../etc/passwd`` becomes
    ``passwd``. Returns None when no usable component is left or the name
    holds a NUL byte, which no filesystem accepts.
    """
    if not raw or "\x00" in raw:
        return None
    leaf = raw.replace("\\", "/").rstrip("/").rsplit("/", 1)[-1]
    if leaf in ("", ".", ".."):
        return None
    return leaf


class FilePersistence:
    """Whole-file reads and writes in a flat directory, addressed by name."""

    def __init__(self, store_dir: Path, temp_dir: Path):
        self.store_dir = Path(store_dir)
        self.temp_dir = Path(temp_dir)

    def path_for(self, name: str) -> Path:
        if sanitize_name(name) != name:
            raise ValueError(f"Not a plain file name: {name!r}")
        return self.store_dir / name

    async def initialize_directory(self) -> None:
        """Create the store and staging directories, clear stale staging files."""
        try:
            self.store_dir.mkdir(exist_ok=True, parents=True)
            self.temp_dir.mkdir(exist_ok=True, parents=True)
        except OSError as e:
            logger.error(f"Cannot create storage directories: {e}")
            raise PersistenceError("Cannot create storage directory") from e
        logger.debug(f"Storage directories created/verified: {self.store_dir}, {self.temp_dir}")

        files_removed = 0
        for file in self.temp_dir.glob("*"):
            if file.is_file():
                await aiofiles.os.unlink(file)
                files_removed += 1
        logger.info(f"Cleaned temporary directory, removed {files_removed} files")

    async def load_all(self) -> List[FileRecord]:
        """Read every regular file in the store directory.

        A file that cannot be read or is not valid UTF-8 is still cataloged
        by name, with no content.
        """
        records = []
        for path in self.store_dir.iterdir():
            if not path.is_file():
                continue
            content = None
            try:
                async with aiofiles.open(path, 'rb') as f:
                    data = await f.read()
                content = data.decode('utf-8')
            except UnicodeDecodeError:
                logger.warning(f"File {path.name} is not valid UTF-8, cataloging without content")
            except OSError as e:
                logger.warning(f"Could not read {path.name}: {e}")
            records.append(FileRecord(name=path.name, content=content))
        return records

    async def write_file(self, name: str, content: str) -> None:
        """Durably store ``content`` under ``name``, replacing any previous file.

        The bytes are staged in the temp directory and renamed into place.
        """
        final_path = self.path_for(name)
        temp_path = self.temp_dir / f"{name}.tmp"
        try:
            async with aiofiles.open(temp_path, 'wb') as f:
                await f.write(content.encode('utf-8'))
                await f.flush()
            await aiofiles.os.replace(str(temp_path), str(final_path))
        except (OSError, ValueError) as e:
            logger.error(f"Error writing file {name}: {e}", exc_info=True)
            if await aiofiles.os.path.exists(temp_path):
                await aiofiles.os.unlink(temp_path)
            raise PersistenceError(f"Failed to store file '{name}'") from e
        logger.debug(f"Wrote {len(content)} characters to {final_path}")
