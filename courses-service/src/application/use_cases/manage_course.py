import structlog

from ...domain.bilingual import parse_bilingual
from ...domain.entities import Course, CourseStatus, Enrollment
from ...domain.errors import ContentValidationError
from ...domain.validation import THUMBNAIL_MIME_TYPES, UploadedFile, validate_upload
from ..ports import (
    IBlobStore,
    ICourseLocks,
    ICourseRepository,
    IEnrollmentRepository,
    ITransaction,
    IVersionLedger,
)

logger = structlog.get_logger()

GRANTED_BY = ("payment", "admin")


class CreateCourse:
    def __init__(self, courses: ICourseRepository, ledger: IVersionLedger, tx: ITransaction):
        self.courses = courses
        self.ledger = ledger
        self.tx = tx

    def execute(self, title, description=None, created_by: str | None = None) -> Course:
        title = parse_bilingual(title)
        if title.is_blank():
            raise ContentValidationError("title is required")
        try:
            course = self.courses.create(title, parse_bilingual(description), created_by)
            # у нового курса сразу есть пустая версия 1
            self.ledger.create_version(course.id, change_log="Initial version", created_by=created_by)
            self.tx.commit()
        except Exception:
            self.tx.rollback()
            raise
        logger.info("course_created", course_id=course.id, created_by=created_by)
        return course


class UpdateCourseDetails:
    def __init__(self, courses: ICourseRepository, tx: ITransaction):
        self.courses = courses
        self.tx = tx

    def execute(self, course_id: int, title=None, description=None, actor: str | None = None) -> Course:
        new_title = parse_bilingual(title) if title is not None else None
        if new_title is not None and new_title.is_blank():
            raise ContentValidationError("title is required")
        new_description = parse_bilingual(description) if description is not None else None
        try:
            course = self.courses.update_details(course_id, actor, title=new_title, description=new_description)
            self.tx.commit()
        except Exception:
            self.tx.rollback()
            raise
        return course


class ChangeCourseStatus:
    """Перевод курса между active / inactive / archived.

    Курс не удаляется никогда. Неактивный и архивный курсы пропадают из
    публичного списка и закрыты для новых записей, но купившие студенты
    сохраняют доступ к своим версиям.
    """

    source: tuple[CourseStatus, ...] = ()
    target: CourseStatus = CourseStatus.ACTIVE
    event: str = ""

    def __init__(self, courses: ICourseRepository, tx: ITransaction):
        self.courses = courses
        self.tx = tx

    def execute(self, course_id: int, actor: str | None = None) -> Course:
        try:
            course = self.courses.get(course_id)
            if course.status is self.target:
                raise ContentValidationError(f"course is already {self.target.value}")
            if course.status not in self.source:
                raise ContentValidationError(f"course is {course.status.value}, cannot become {self.target.value}")
            course = self.courses.set_status(course_id, self.target, actor)
            self.tx.commit()
        except Exception:
            self.tx.rollback()
            raise
        logger.info(self.event, course_id=course_id, changed_by=actor)
        return course


class ArchiveCourse(ChangeCourseStatus):
    source = (CourseStatus.ACTIVE, CourseStatus.INACTIVE)
    target = CourseStatus.ARCHIVED
    event = "course_archived"


class UnarchiveCourse(ChangeCourseStatus):
    source = (CourseStatus.ARCHIVED,)
    target = CourseStatus.ACTIVE
    event = "course_unarchived"


class DeactivateCourse(ChangeCourseStatus):
    source = (CourseStatus.ACTIVE,)
    target = CourseStatus.INACTIVE
    event = "course_deactivated"


class ReactivateCourse(ChangeCourseStatus):
    source = (CourseStatus.INACTIVE,)
    target = CourseStatus.ACTIVE
    event = "course_reactivated"


class UploadCourseThumbnail:
    def __init__(self, courses: ICourseRepository, blob_store: IBlobStore, tx: ITransaction, max_size: int):
        self.courses = courses
        self.blob_store = blob_store
        self.tx = tx
        self.max_size = max_size

    def execute(self, course_id: int, upload: UploadedFile | None, actor: str | None = None) -> Course:
        validate_upload(upload, THUMBNAIL_MIME_TYPES, self.max_size)
        try:
            course = self.courses.get(course_id)
            key = self.blob_store.key_for("thumbnail", upload.original_name, course.title)
            self.blob_store.put(upload.content, key, upload.mime_type)
            course = self.courses.set_thumbnail(course_id, key, actor)
            self.tx.commit()
        except Exception:
            self.tx.rollback()
            raise
        return course


class EnrollStudent:
    """Запись студента на курс (после оплаты или вручную админом).

    Запись меняет has_enrollments, от которого зависит ветвление версий,
    поэтому берётся та же блокировка курса, что и у загрузок.
    """

    def __init__(self, courses: ICourseRepository, enrollments: IEnrollmentRepository,
                 tx: ITransaction, locks: ICourseLocks):
        self.courses = courses
        self.enrollments = enrollments
        self.tx = tx
        self.locks = locks

    def execute(self, course_id: int, user_id: str, granted_by: str = "payment") -> Enrollment:
        if not user_id:
            raise ContentValidationError("user_id is required")
        if granted_by not in GRANTED_BY:
            raise ContentValidationError(f"granted_by must be one of: {', '.join(GRANTED_BY)}")
        with self.locks.hold(course_id):
            try:
                course = self.courses.get(course_id, for_update=True)
                if course.status is not CourseStatus.ACTIVE:
                    raise ContentValidationError(f"course is {course.status.value}")
                enrollment = self.enrollments.enroll(course_id, user_id, course.current_version, granted_by)
                self.tx.commit()
            except Exception:
                self.tx.rollback()
                raise
        logger.info(
            "student_enrolled",
            course_id=course_id,
            user_id=user_id,
            version_enrolled=enrollment.version_enrolled,
            granted_by=granted_by,
        )
        return enrollment
