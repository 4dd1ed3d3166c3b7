from typing import BinaryIO, ContextManager, Iterable

from ..domain.bilingual import BilingualText
from ..domain.entities import ContentItem, Course, CourseStatus, CourseVersion, Enrollment, ItemType


class ICourseRepository:
    def get(self, course_id: int, for_update: bool = False) -> Course: ...
    def list(self, limit: int, offset: int, status: CourseStatus | None = None) -> list[Course]: ...
    def create(self, title: BilingualText, description: BilingualText, created_by: str | None) -> Course: ...
    def update_details(self, course_id: int, modified_by: str | None, title: BilingualText | None = None,
                       description: BilingualText | None = None) -> Course: ...
    def set_thumbnail(self, course_id: int, key: str, modified_by: str | None) -> Course: ...
    def set_status(self, course_id: int, status: CourseStatus, modified_by: str | None) -> Course: ...


class IEnrollmentRepository:
    def user_has_purchased(self, user_id: str, course_id: int) -> bool: ...
    def enrolled_student_ids(self, course_id: int) -> set[str]: ...
    def get(self, course_id: int, user_id: str) -> Enrollment | None: ...
    def enroll(self, course_id: int, user_id: str, version_enrolled: int, granted_by: str) -> Enrollment: ...


class IVersionLedger:
    def create_version(self, course_id: int, video_ids: Iterable[int] = (), material_ids: Iterable[int] = (),
                       change_log: str = "", created_by: str | None = None,
                       expected_number: int | None = None) -> CourseVersion: ...
    def get_manifest(self, course_id: int, version_number: int) -> CourseVersion: ...
    def list_versions(self, course_id: int) -> list[CourseVersion]: ...
    def next_version_number(self, course_id: int) -> int: ...
    def latest_version_number(self, course_id: int) -> int: ...
    def set_current(self, course_id: int, version_number: int, expected: int) -> None: ...
    def append_item(self, course_id: int, version_number: int, item: ContentItem) -> CourseVersion: ...
    def remove_item(self, course_id: int, version_number: int, item: ContentItem) -> CourseVersion: ...
    def replace_manifest(self, course_id: int, version_number: int, video_ids: Iterable[int],
                         material_ids: Iterable[int]) -> CourseVersion: ...
    def refresh_statistics(self, course_id: int, version_number: int) -> CourseVersion: ...


class IContentRegistry:
    def get(self, item_type: ItemType, item_id: int) -> ContentItem: ...
    def list_by_ids(self, item_type: ItemType, ids: Iterable[int], active_only: bool = True) -> list[ContentItem]: ...
    def find_in_version(self, item_type: ItemType, course_id: int, version_number: int,
                        blob_key: str) -> ContentItem | None: ...
    def upload(self, item_type: ItemType, course_id: int, course_version: int, blob_key: str,
               fields: dict) -> ContentItem: ...
    def clone_into(self, items: Iterable[ContentItem], course_version: int) -> list[ContentItem]: ...
    def soft_delete(self, item_type: ItemType, item_id: int) -> ContentItem: ...
    def restore(self, item_type: ItemType, item_id: int) -> ContentItem: ...
    def update_metadata(self, item_type: ItemType, item_id: int, fields: dict) -> ContentItem: ...


class IBlobStore:
    def key_for(self, file_type: str, file_name: str, course_title, version: int = 1) -> str: ...
    def put(self, data: BinaryIO | bytes, key: str, content_type: str | None = None) -> str: ...
    def sign_get(self, key: str, ttl: int, content_type: str | None = None) -> str: ...


class ICourseLocks:
    def hold(self, course_id: int) -> ContextManager[None]: ...


class ITransaction:
    def commit(self) -> None: ...
    def rollback(self) -> None: ...
