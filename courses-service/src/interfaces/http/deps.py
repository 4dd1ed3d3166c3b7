import os

from fastapi import UploadFile
from sqlalchemy.orm import Session

from ...application.dto import ItemView, MutationResult
from ...application.use_cases.add_content import AddContentItem
from ...application.use_cases.list_content import GetVideo, ListCourseContent
from ...application.use_cases.remove_content import RemoveContentItem
from ...application.use_cases.restore_content import RestoreContentItem
from ...application.use_cases.update_content import UpdateContentMetadata
from ...config import settings
from ...domain.access import REASON_ADMIN, AccessDecision
from ...domain.entities import ContentItem, ItemType
from ...domain.validation import UploadedFile
from ...infrastructure.metrics import content_mutations_total, version_forks_total
from ...infrastructure.repositories import (
    ContentRegistry,
    CourseRepository,
    EnrollmentRepository,
    VersionLedger,
)


def to_uploaded(file: UploadFile | None) -> UploadedFile | None:
    if file is None:
        return None
    size = file.size
    if size is None:
        file.file.seek(0, os.SEEK_END)
        size = file.file.tell()
        file.file.seek(0)
    return UploadedFile(
        mime_type=file.content_type or "",
        size=size,
        original_name=file.filename or "",
        content=file.file,
    )


def add_content(db: Session, blob_store, locks) -> AddContentItem:
    return AddContentItem(
        CourseRepository(db), VersionLedger(db), ContentRegistry(db), blob_store, db, locks,
        max_sizes={ItemType.VIDEO: settings.MAX_VIDEO_SIZE, ItemType.MATERIAL: settings.MAX_MATERIAL_SIZE},
    )


def remove_content(db: Session, locks) -> RemoveContentItem:
    return RemoveContentItem(CourseRepository(db), VersionLedger(db), ContentRegistry(db), db, locks)


def restore_content(db: Session, locks) -> RestoreContentItem:
    return RestoreContentItem(CourseRepository(db), VersionLedger(db), ContentRegistry(db), db, locks)


def update_content(db: Session) -> UpdateContentMetadata:
    return UpdateContentMetadata(CourseRepository(db), VersionLedger(db), ContentRegistry(db), db)


def list_content(db: Session, blob_store) -> ListCourseContent:
    return ListCourseContent(
        CourseRepository(db), EnrollmentRepository(db), VersionLedger(db), ContentRegistry(db),
        blob_store, url_ttl=settings.SIGNED_URL_TTL,
    )


def get_video(db: Session, blob_store) -> GetVideo:
    return GetVideo(
        CourseRepository(db), EnrollmentRepository(db), ContentRegistry(db),
        blob_store, url_ttl=settings.STREAM_URL_TTL,
    )


def admin_view(item: ContentItem) -> ItemView:
    return ItemView(item=item, access=AccessDecision(True, REASON_ADMIN))


def record_mutation(result: MutationResult, kind: str) -> None:
    content_mutations_total.labels(kind=kind, mode="fork" if result.forked else "in_place").inc()
    if result.forked:
        version_forks_total.inc()
