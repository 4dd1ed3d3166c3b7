from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import ClassVar

from .bilingual import BilingualText


class ItemType(str, Enum):
    VIDEO = "video"
    MATERIAL = "material"


class ItemStatus(str, Enum):
    ACTIVE = "active"
    DELETED = "deleted"


class CourseStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    ARCHIVED = "archived"


@dataclass(frozen=True)
class Course:
    id: int
    title: BilingualText
    description: BilingualText
    current_version: int
    status: CourseStatus = CourseStatus.ACTIVE
    thumbnail_key: str | None = None
    created_by: str | None = None
    created_at: datetime | None = None
    enrolled_student_ids: frozenset[str] = field(default_factory=frozenset)

    @property
    def has_enrollments(self) -> bool:
        return len(self.enrolled_student_ids) > 0


@dataclass(frozen=True)
class CourseVersion:
    id: int
    course_id: int
    version_number: int
    video_ids: tuple[int, ...] = ()
    material_ids: tuple[int, ...] = ()
    change_log: str = ""
    created_by: str | None = None
    created_at: datetime | None = None
    status: str = "active"
    total_videos: int = 0
    total_materials: int = 0
    total_duration: int = 0
    total_file_size: int = 0

    def item_ids(self, item_type: ItemType) -> tuple[int, ...]:
        return self.video_ids if item_type is ItemType.VIDEO else self.material_ids


@dataclass(frozen=True)
class Enrollment:
    course_id: int
    user_id: str
    version_enrolled: int
    granted_by: str = "payment"
    status: str = "active"
    enrolled_at: datetime | None = None


@dataclass(frozen=True)
class ContentItem:
    id: int
    course_id: int
    course_version: int
    blob_key: str
    title: BilingualText
    description: BilingualText
    order: int
    status: ItemStatus
    file_size: int
    mime_type: str | None
    original_name: str | None
    uploaded_by: str | None
    created_at: datetime | None

    item_type: ClassVar[ItemType]

    @property
    def is_active(self) -> bool:
        return self.status is ItemStatus.ACTIVE


@dataclass(frozen=True)
class Video(ContentItem):
    duration: int = 0
    is_free_preview: bool = False

    item_type: ClassVar[ItemType] = ItemType.VIDEO

    @property
    def formatted_duration(self) -> str:
        return format_duration(self.duration)


# (метка, расширения, фрагменты mime-типа)
_FILE_TYPES = (
    ("PDF", ("pdf",), ("pdf",)),
    ("Excel", ("xlsx", "xls"), ("spreadsheet", "ms-excel")),
    ("Word", ("docx", "doc"), ("word",)),
    ("PowerPoint", ("pptx", "ppt"), ("presentation", "powerpoint")),
    ("CSV", ("csv",), ("csv",)),
    ("Python", ("py",), ("python",)),
    ("Archive", ("zip", "rar"), ("zip", "rar")),
    ("Image", (), ("image",)),
    ("Audio", (), ("audio",)),
)


@dataclass(frozen=True)
class Material(ContentItem):
    item_type: ClassVar[ItemType] = ItemType.MATERIAL

    @property
    def file_extension(self) -> str:
        name = self.original_name or ""
        if "." not in name:
            return ""
        return name.rsplit(".", 1)[1].lower()

    @property
    def file_type(self) -> str:
        ext = self.file_extension
        mime = (self.mime_type or "").lower()
        for label, extensions, mime_parts in _FILE_TYPES:
            if ext in extensions or any(part in mime for part in mime_parts):
                return label
        return "File"

    @property
    def formatted_size(self) -> str:
        return format_size(self.file_size)


def format_duration(seconds: int) -> str:
    seconds = max(0, int(seconds or 0))
    hours, rest = divmod(seconds, 3600)
    minutes, secs = divmod(rest, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def format_size(size: int) -> str:
    if not size:
        return "0 B"
    if size < 1024:
        return f"{size} B"
    if size < 1024 ** 2:
        return f"{size / 1024:.2f} KB"
    if size < 1024 ** 3:
        return f"{size / 1024 ** 2:.2f} MB"
    return f"{size / 1024 ** 3:.2f} GB"


@dataclass(frozen=True)
class Viewer:
    """Кто смотрит контент: user_id берём из JWT sub, None для анонимов."""

    user_id: str | None = None
    is_admin: bool = False

    @property
    def is_anonymous(self) -> bool:
        return self.user_id is None
