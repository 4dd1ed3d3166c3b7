import re
from dataclasses import dataclass
from typing import Any, BinaryIO

from .errors import ContentValidationError

MATERIAL_MIME_TYPES = frozenset({
    "application/pdf",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",  # .xlsx
    "application/vnd.ms-excel",  # .xls
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",  # .docx
    "application/msword",  # .doc
    "application/vnd.openxmlformats-officedocument.presentationml.presentation",  # .pptx
    "application/vnd.ms-powerpoint",  # .ppt
    "text/csv",
    "text/plain",
    "application/zip",
    "application/x-zip-compressed",
    "application/x-rar-compressed",
    "application/json",
    "image/png",
    "image/jpeg",
    "image/jpg",
    "audio/mpeg",
    "audio/mp3",
    "application/x-python-code",
    "text/x-python",
})

VIDEO_MIME_TYPES = frozenset({
    "video/mp4",
    "video/webm",
    "video/ogg",
    "video/x-msvideo",  # .avi
    "video/quicktime",  # .mov
    "video/x-ms-wmv",
    "video/x-flv",
    "video/x-matroska",  # .mkv
})

THUMBNAIL_MIME_TYPES = frozenset({"image/jpeg", "image/png", "image/webp"})


@dataclass
class UploadedFile:
    """То, что транспорт загрузки отдаёт ядру: тип, размер, имя и сами байты."""

    mime_type: str
    size: int
    original_name: str
    content: BinaryIO | bytes


def validate_upload(upload: UploadedFile | None, allowed_types: frozenset[str], max_size: int) -> UploadedFile:
    if upload is None:
        raise ContentValidationError("No file provided")
    if not upload.original_name:
        raise ContentValidationError("File name is required")
    if upload.mime_type not in allowed_types:
        raise ContentValidationError(f"File type {upload.mime_type} not allowed")
    if upload.size <= 0:
        raise ContentValidationError("File is empty")
    if upload.size > max_size:
        max_size_mb = max_size / (1024 * 1024)
        raise ContentValidationError(f"File size exceeds maximum allowed size of {max_size_mb:g} MB")
    return upload


_CLOCK_RE = re.compile(r"^\d+(:\d{1,2}){1,2}$")


def parse_duration(value: Any) -> int:
    """Длительность видео в секундах: число, "MM:SS" или "HH:MM:SS"."""
    if value is None or value == "":
        return 0
    if isinstance(value, bool):
        raise ContentValidationError("Duration must be a number of seconds or MM:SS")
    if isinstance(value, (int, float)):
        seconds = int(value)
    elif isinstance(value, str):
        text = value.strip()
        if text.isdigit():
            seconds = int(text)
        elif _CLOCK_RE.match(text):
            parts = [int(p) for p in text.split(":")]
            if any(p >= 60 for p in parts[1:]):
                raise ContentValidationError(f"Invalid duration: {value}")
            seconds = 0
            for part in parts:
                seconds = seconds * 60 + part
        else:
            raise ContentValidationError(f"Invalid duration: {value}")
    else:
        raise ContentValidationError(f"Invalid duration: {value!r}")
    if seconds < 0:
        raise ContentValidationError("Duration cannot be negative")
    return seconds
