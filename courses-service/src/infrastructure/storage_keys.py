"""Имена ключей в объектном хранилище.

Видео и материалы версионируются: courses/{course}/v{N}/{videos|materials}/...
Обложка курса общая для всех версий: courses/{course}/thumbnails/...
"""
import re
import time

from ..config import settings
from ..domain.bilingual import BilingualText, parse_bilingual

_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9.-]")
_VERSION_SEGMENT = re.compile(r"/v(\d+)/(?:videos|materials|misc)/")
_THUMBNAIL_FILE = re.compile(r"/thumbnails/[^/]+$")

VERSIONED_FOLDERS = {
    "video": "videos",
    "material": "materials",
}


def sanitize(value: str) -> str:
    return _UNSAFE_CHARS.sub("_", value)


def course_folder_name(course_title: BilingualText | str | dict | None) -> str:
    title = parse_bilingual(course_title)
    return sanitize(title.primary or title.secondary or "course")


def _root(root_prefix: str | None) -> str:
    prefix = settings.S3_ROOT_PREFIX if root_prefix is None else root_prefix
    prefix = prefix.strip("/")
    return f"{prefix}/courses" if prefix else "courses"


def course_folder_path(course_title, version: int = 1, root_prefix: str | None = None) -> str:
    return f"{_root(root_prefix)}/{course_folder_name(course_title)}/v{version}"


def generate_course_file_key(
    file_type: str,
    file_name: str,
    course_title,
    version: int = 1,
    timestamp_ms: int | None = None,
    root_prefix: str | None = None,
) -> str:
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    stamped_name = f"{timestamp_ms}_{sanitize(file_name)}"

    if file_type == "thumbnail":
        # версия игнорируется: одна обложка на курс
        return f"{_root(root_prefix)}/{course_folder_name(course_title)}/thumbnails/{stamped_name}"
    folder = VERSIONED_FOLDERS.get(file_type, "misc")
    return f"{course_folder_path(course_title, version, root_prefix)}/{folder}/{stamped_name}"


def is_thumbnail_key(key: str) -> bool:
    return _THUMBNAIL_FILE.search(key) is not None


def version_from_key(key: str) -> int | None:
    match = _VERSION_SEGMENT.search(key)
    return int(match.group(1)) if match else None
