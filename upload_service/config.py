"""Configuration settings for the Upload Service."""
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

# Size limits
MAX_IMAGE_SIZE = 10 * 1024 * 1024  # 10MB
MAX_OTHER_SIZE = 15 * 1024 * 1024  # 15MB for videos/PDFs

# Streaming
CHUNK_SIZE = 8192  # 8KB chunks
MAX_NAME_ATTEMPTS = 5

# Directory paths
UPLOAD_DIR = os.getenv("UPLOAD_DIR", "./uploads")
LOG_DIR = os.getenv("LOG_DIR", "./logs")

# Server
HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "8009"))


@dataclass(frozen=True)
class UploadSettings:
    upload_dir: Path
    max_image_size: int = MAX_IMAGE_SIZE
    max_other_size: int = MAX_OTHER_SIZE
    chunk_size: int = CHUNK_SIZE
    max_name_attempts: int = MAX_NAME_ATTEMPTS
    host: str = HOST
    port: int = PORT

    @classmethod
    def from_env(cls, upload_dir: Optional[str] = None) -> 'UploadSettings':
        """Create UploadSettings from the environment, falling back to module defaults."""
        return cls(
            upload_dir=Path(upload_dir or os.getenv("UPLOAD_DIR", UPLOAD_DIR)).absolute(),
            host=os.getenv("HOST", HOST),
            port=int(os.getenv("PORT", str(PORT))),
        )
