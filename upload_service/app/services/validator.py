from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from config import UploadSettings

APK_MIME_TYPE = "application/vnd.android.package-archive"

ALLOWED_IMAGE_TYPES = frozenset({"image/jpeg", "image/png", "image/gif", "image/webp"})
ALLOWED_VIDEO_TYPES = frozenset({"video/mp4", "video/mpeg", "video/quicktime", "video/x-msvideo"})
ALLOWED_DOCUMENT_TYPES = frozenset({"application/pdf"})

UNSUPPORTED_TYPE_MESSAGE = (
    "Invalid file type. Only JPEG, PNG, GIF, WEBP, MP4, MPEG, MOV, AVI, PDF, and APK files are allowed."
)

SIZE_UNITS = ("Bytes", "KB", "MB", "GB")


class Category(str, Enum):
    IMAGE = "image"
    VIDEO = "video"
    DOCUMENT = "pdf"
    PACKAGE = "apk"

    @property
    def label(self) -> str:
        """Capitalized name used in success messages, e.g. "Pdf"."""
        return self.value.capitalize()


class RejectionReason(str, Enum):
    UNSUPPORTED_TYPE = "unsupported-type"
    SIZE_EXCEEDED = "size-exceeded"


@dataclass(frozen=True)
class Accepted:
    category: Category


@dataclass(frozen=True)
class Rejected:
    reason: RejectionReason
    message: str
    actual_size: Optional[int] = None
    max_size: Optional[int] = None

    def details(self) -> dict:
        """Extra response fields for a size rejection."""
        if self.reason is not RejectionReason.SIZE_EXCEEDED:
            return {}
        return {
            "actualSize": self.actual_size,
            "formattedSize": format_file_size(self.actual_size),
            "maxSize": self.max_size,
            "formattedMaxSize": format_file_size(self.max_size),
        }


ValidationOutcome = Union[Accepted, Rejected]


def format_file_size(size: int) -> str:
    """Format a byte count with binary units, e.g. 1572864 -> "1.5 MB"."""
    if size == 0:
        return "0 Bytes"

    k = 1024
    i = 0
    while i < len(SIZE_UNITS) - 1 and size >= k ** (i + 1):
        i += 1

    value = f"{size / k ** i:.2f}".rstrip("0").rstrip(".")
    return f"{value} {SIZE_UNITS[i]}"


def is_package_archive(content_type: Optional[str], filename: Optional[str]) -> bool:
    """APK uploads are recognized by media type or by the .apk suffix.

    Clients and proxies often send APKs as application/octet-stream, so the
    name is checked as well.
    """
    return content_type == APK_MIME_TYPE or (filename or "").lower().endswith(".apk")


def classify(content_type: Optional[str], filename: Optional[str]) -> Optional[Category]:
    """Map a declared media type (and name, for APKs) to an upload category."""
    if is_package_archive(content_type, filename):
        return Category.PACKAGE
    if content_type in ALLOWED_IMAGE_TYPES:
        return Category.IMAGE
    if content_type in ALLOWED_VIDEO_TYPES:
        return Category.VIDEO
    if content_type in ALLOWED_DOCUMENT_TYPES:
        return Category.DOCUMENT
    return None


def size_limit(category: Category, settings: UploadSettings) -> Optional[int]:
    """Maximum size in bytes for a category, None when unconstrained."""
    if category is Category.PACKAGE:
        return None
    if category is Category.IMAGE:
        return settings.max_image_size
    return settings.max_other_size


def check_size(category: Category, size: int, settings: UploadSettings) -> ValidationOutcome:
    limit = size_limit(category, settings)
    if limit is not None and size > limit:
        return Rejected(
            reason=RejectionReason.SIZE_EXCEEDED,
            message=f"File size ({format_file_size(size)}) exceeds the limit ({format_file_size(limit)})",
            actual_size=size,
            max_size=limit,
        )
    return Accepted(category)


def validate_upload(
    content_type: Optional[str],
    filename: Optional[str],
    size: int,
    settings: UploadSettings,
) -> ValidationOutcome:
    """Run the full type and size policy for one file.

    Args:
        content_type: Media type declared by the client
        filename: Original file name
        size: Number of bytes actually received
        settings: Limits to check against

    Returns:
        Accepted with the category, or Rejected with the reason and message
    """
    category = classify(content_type, filename)
    if category is None:
        return Rejected(reason=RejectionReason.UNSUPPORTED_TYPE, message=UNSUPPORTED_TYPE_MESSAGE)
    return check_size(category, size, settings)
