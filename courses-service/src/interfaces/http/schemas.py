from datetime import datetime

from pydantic import BaseModel

from ...application.dto import ContentListing, ItemView
from ...domain.entities import CourseStatus

# двуязычный текст принимаем объектом {"primary", "secondary"} / {"en", "tg"} или строкой
BilingualIn = dict[str, str] | str


class BilingualOut(BaseModel):
    primary: str = ""
    secondary: str = ""
    class Config: from_attributes = True


class CourseCreate(BaseModel):
    title: BilingualIn
    description: BilingualIn | None = None


class CourseUpdate(BaseModel):
    title: BilingualIn | None = None
    description: BilingualIn | None = None


class CourseOut(BaseModel):
    id: int
    title: BilingualOut
    description: BilingualOut
    current_version: int
    status: CourseStatus
    thumbnail_url: str | None = None
    student_count: int = 0
    created_at: datetime | None = None


class EnrollmentCreate(BaseModel):
    user_id: str
    granted_by: str = "payment"


class EnrollmentOut(BaseModel):
    course_id: int
    user_id: str
    version_enrolled: int
    granted_by: str
    status: str
    enrolled_at: datetime | None = None
    class Config: from_attributes = True


class VersionOut(BaseModel):
    version_number: int
    video_ids: list[int]
    material_ids: list[int]
    change_log: str
    created_by: str | None = None
    created_at: datetime | None = None
    status: str
    total_videos: int = 0
    total_materials: int = 0
    total_duration: int = 0
    total_file_size: int = 0
    class Config: from_attributes = True


class VideoUpdate(BaseModel):
    title: BilingualIn | None = None
    description: BilingualIn | None = None
    order: int | None = None
    duration: int | str | None = None
    is_free_preview: bool | None = None


class MaterialUpdate(BaseModel):
    title: BilingualIn | None = None
    description: BilingualIn | None = None
    order: int | None = None


class ItemOut(BaseModel):
    id: int
    course_id: int
    course_version: int
    title: BilingualOut
    description: BilingualOut
    order: int
    file_size: int = 0
    mime_type: str | None = None
    original_name: str | None = None
    created_at: datetime | None = None
    has_access: bool = True
    is_locked: bool = False
    lock_reason: str | None = None


class VideoOut(ItemOut):
    video_url: str | None = None
    duration: int
    formatted_duration: str
    is_free_preview: bool


class MaterialOut(ItemOut):
    download_url: str | None = None
    file_type: str
    formatted_size: str


class VideoListOut(BaseModel):
    course_id: int
    version: int
    user_has_purchased: bool
    has_free_previews: bool
    videos: list[VideoOut]


class MaterialListOut(BaseModel):
    course_id: int
    version: int
    user_has_purchased: bool
    materials: list[MaterialOut]


class VideoMutationOut(BaseModel):
    video: VideoOut
    version: int
    forked: bool


class MaterialMutationOut(BaseModel):
    material: MaterialOut
    version: int
    forked: bool


def _item_fields(view: ItemView) -> dict:
    item = view.item
    return dict(
        id=item.id,
        course_id=item.course_id,
        course_version=item.course_version,
        title=BilingualOut.model_validate(item.title),
        description=BilingualOut.model_validate(item.description),
        order=item.order,
        file_size=item.file_size,
        mime_type=item.mime_type,
        original_name=item.original_name,
        created_at=item.created_at,
        has_access=view.access.has_access,
        is_locked=not view.access.has_access,
        lock_reason=view.access.lock_reason,
    )


def video_out(view: ItemView) -> VideoOut:
    video = view.item
    return VideoOut(
        video_url=view.url,
        duration=video.duration,
        formatted_duration=video.formatted_duration,
        is_free_preview=video.is_free_preview,
        **_item_fields(view),
    )


def material_out(view: ItemView) -> MaterialOut:
    material = view.item
    return MaterialOut(
        download_url=view.url,
        file_type=material.file_type,
        formatted_size=material.formatted_size,
        **_item_fields(view),
    )


def video_list_out(listing: ContentListing) -> VideoListOut:
    return VideoListOut(
        course_id=listing.course_id,
        version=listing.version,
        user_has_purchased=listing.user_has_purchased,
        has_free_previews=listing.has_free_previews,
        videos=[video_out(v) for v in listing.items],
    )


def material_list_out(listing: ContentListing) -> MaterialListOut:
    return MaterialListOut(
        course_id=listing.course_id,
        version=listing.version,
        user_has_purchased=listing.user_has_purchased,
        materials=[material_out(v) for v in listing.items],
    )
