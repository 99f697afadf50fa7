import os
from pathlib import Path
from typing import AsyncIterator

import aiofiles
import aiofiles.os
from starlette.datastructures import UploadFile

import config
from logger_config import setup_logger

logger = setup_logger()


class InvalidFilenameError(ValueError):
    """Raised when a requested name is not a plain file name inside the upload directory."""


class StorageManager:
    def __init__(self, upload_dir: Path, chunk_size: int = config.CHUNK_SIZE):
        self.upload_dir = Path(upload_dir)
        self.chunk_size = chunk_size

    async def initialize(self):
        """Create the upload directory if it doesn't exist."""
        logger.info("Initializing storage manager...")
        self.upload_dir.mkdir(exist_ok=True, parents=True)
        logger.debug(f"Upload directory created/verified: {self.upload_dir}")

    def resolve(self, filename: str) -> Path:
        """Get the path of a stored file, refusing anything outside the upload directory."""
        if not filename or filename in (".", "..") or "\x00" in filename:
            raise InvalidFilenameError(f"Invalid filename: {filename!r}")
        if "/" in filename or "\\" in filename or os.sep in filename:
            raise InvalidFilenameError(f"Invalid filename: {filename!r}")

        root = self.upload_dir.resolve()
        path = (root / filename).resolve()
        if path.parent != root:
            raise InvalidFilenameError(f"Filename escapes upload directory: {filename!r}")
        return path

    async def exists(self, filename: str) -> bool:
        return await aiofiles.os.path.isfile(self.resolve(filename))

    async def write_stream(self, filename: str, upload: UploadFile) -> int:
        """Stream an uploaded file to a new file in the upload directory.

        Args:
            filename: Generated storage name
            upload: The multipart file to copy

        Returns:
            int: Number of bytes written

        Raises:
            FileExistsError: If a file with this name is already stored
        """
        path = self.resolve(filename)
        content_size = 0
        try:
            # 'xb' so a name collision never overwrites an existing upload
            async with aiofiles.open(path, 'xb') as f:
                while chunk := await upload.read(self.chunk_size):
                    content_size += len(chunk)
                    await f.write(chunk)
        except FileExistsError:
            raise
        except Exception:
            if await aiofiles.os.path.exists(path):
                await aiofiles.os.unlink(path)
            raise

        logger.debug(f"Wrote {content_size} bytes to {path}")
        return content_size

    async def open_stream(self, filename: str) -> AsyncIterator[bytes]:
        """Return an iterator over a stored file's chunks.

        A missing file raises FileNotFoundError here. The file itself is only
        opened once the response starts reading, so an iterator that is never
        consumed holds no handle.
        """
        path = self.resolve(filename)
        if not await aiofiles.os.path.isfile(path):
            raise FileNotFoundError(f"No stored file named {filename!r}")

        async def file_iterator():
            async with aiofiles.open(path, 'rb') as f:
                while chunk := await f.read(self.chunk_size):
                    yield chunk

        return file_iterator()

    async def delete(self, filename: str) -> bool:
        """Delete a stored file.

        Returns:
            bool: True if the file existed and was removed
        """
        path = self.resolve(filename)
        if not await aiofiles.os.path.isfile(path):
            return False
        try:
            await aiofiles.os.unlink(path)
        except FileNotFoundError:
            return False
        logger.debug(f"Deleted {path}")
        return True
