import structlog

from ...domain.access import AccessResolver
from ...domain.entities import Course, CourseVersion, ItemType, Viewer
from ...domain.errors import ForbiddenError, NotFoundError
from ..dto import ContentListing, ItemView
from ..ports import IBlobStore, IContentRegistry, ICourseRepository, IEnrollmentRepository, IVersionLedger

logger = structlog.get_logger()


class ListCourseContent:
    """Видео или материалы одной версии курса с разметкой доступа.

    Подписанная ссылка выдаётся только на то, к чему есть доступ; у
    закрытых элементов url=None и lock_reason.
    """

    def __init__(self, courses: ICourseRepository, enrollments: IEnrollmentRepository,
                 ledger: IVersionLedger, registry: IContentRegistry, blob_store: IBlobStore, url_ttl: int):
        self.courses = courses
        self.enrollments = enrollments
        self.ledger = ledger
        self.registry = registry
        self.blob_store = blob_store
        self.url_ttl = url_ttl

    def resolve_version(self, course: Course, viewer: Viewer, requested: int | None) -> int:
        if requested is not None:
            return requested
        if not viewer.is_anonymous and not viewer.is_admin:
            enrollment = self.enrollments.get(course.id, viewer.user_id)
            if enrollment is not None and enrollment.status == "active":
                # студент по умолчанию видит версию, которую купил
                return enrollment.version_enrolled
        return course.current_version

    def execute(self, course_id: int, item_type: ItemType, viewer: Viewer,
                version: int | None = None) -> ContentListing:
        course = self.courses.get(course_id)
        number = self.resolve_version(course, viewer, version)
        manifest = self.ledger.get_manifest(course_id, number)
        resolver = AccessResolver(self.enrollments)

        listing = ContentListing(
            course_id=course_id,
            version=number,
            item_type=item_type,
            user_has_purchased=resolver.has_purchased(viewer, course_id),
        )
        locked = 0
        for item in self.registry.list_by_ids(item_type, manifest.item_ids(item_type)):
            if item_type is ItemType.VIDEO:
                decision = resolver.resolve_video(viewer, course_id, item)
            else:
                decision = resolver.resolve_material(viewer, course_id)
            url = None
            if decision.has_access:
                url = self.blob_store.sign_get(item.blob_key, self.url_ttl, item.mime_type)
            else:
                locked += 1
            listing.items.append(ItemView(item=item, access=decision, url=url))

        logger.debug(
            "content_listed",
            course_id=course_id,
            item_type=item_type.value,
            version=number,
            total=len(listing.items),
            locked=locked,
        )
        return listing


class GetVideo:
    """Одно видео со ссылкой для просмотра; закрытое видео даёт ForbiddenError."""

    def __init__(self, courses: ICourseRepository, enrollments: IEnrollmentRepository,
                 registry: IContentRegistry, blob_store: IBlobStore, url_ttl: int):
        self.courses = courses
        self.enrollments = enrollments
        self.registry = registry
        self.blob_store = blob_store
        self.url_ttl = url_ttl

    def execute(self, course_id: int, video_id: int, viewer: Viewer) -> ItemView:
        self.courses.get(course_id)
        video = self.registry.get(ItemType.VIDEO, video_id)
        if video.course_id != course_id or not video.is_active:
            raise NotFoundError("video not found")
        decision = AccessResolver(self.enrollments).resolve_video(viewer, course_id, video)
        if not decision.has_access:
            logger.info("locked_content_requested", course_id=course_id, video_id=video_id, user_id=viewer.user_id)
            raise ForbiddenError("Access denied to this video", reason=decision.reason)
        url = self.blob_store.sign_get(video.blob_key, self.url_ttl, video.mime_type)
        return ItemView(item=video, access=decision, url=url)


class VersionHistory:
    def __init__(self, courses: ICourseRepository, ledger: IVersionLedger):
        self.courses = courses
        self.ledger = ledger

    def list(self, course_id: int) -> list[CourseVersion]:
        self.courses.get(course_id)
        return self.ledger.list_versions(course_id)

    def get(self, course_id: int, version_number: int) -> CourseVersion:
        self.courses.get(course_id)
        return self.ledger.get_manifest(course_id, version_number)
