from datetime import datetime, timezone
from typing import Iterable

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..application.ports import (
    IContentRegistry,
    ICourseRepository,
    IEnrollmentRepository,
    IVersionLedger,
)
from ..domain.bilingual import BilingualText, parse_bilingual
from ..domain.entities import (
    ContentItem,
    Course,
    CourseStatus,
    CourseVersion,
    Enrollment,
    ItemStatus,
    ItemType,
    Material,
    Video,
)
from ..domain.errors import (
    ConcurrencyConflictError,
    ContentValidationError,
    NotFoundError,
    VersionNotFoundError,
)
from .models import CourseORM, CourseVersionORM, EnrollmentORM, MaterialORM, VideoORM
from .storage_keys import is_thumbnail_key, version_from_key

_MODELS = {ItemType.VIDEO: VideoORM, ItemType.MATERIAL: MaterialORM}

# поля, которые правятся на месте и не меняют состав версии
_METADATA_FIELDS = {
    ItemType.VIDEO: {"title", "description", "order", "duration", "is_free_preview"},
    ItemType.MATERIAL: {"title", "description", "order"},
}


def to_course(row: CourseORM, enrolled: Iterable[str] = ()) -> Course:
    return Course(
        id=row.id,
        title=parse_bilingual(row.title),
        description=parse_bilingual(row.description),
        current_version=row.current_version,
        status=CourseStatus(row.status),
        thumbnail_key=row.thumbnail_key,
        created_by=row.created_by,
        created_at=row.created_at,
        enrolled_student_ids=frozenset(enrolled),
    )


def to_version(row: CourseVersionORM) -> CourseVersion:
    return CourseVersion(
        id=row.id,
        course_id=row.course_id,
        version_number=row.version_number,
        video_ids=tuple(row.video_ids or ()),
        material_ids=tuple(row.material_ids or ()),
        change_log=row.change_log,
        created_by=row.created_by,
        created_at=row.created_at,
        status=row.status,
        total_videos=row.total_videos,
        total_materials=row.total_materials,
        total_duration=row.total_duration,
        total_file_size=row.total_file_size,
    )


def to_enrollment(row: EnrollmentORM) -> Enrollment:
    return Enrollment(
        course_id=row.course_id,
        user_id=row.user_id,
        version_enrolled=row.version_enrolled,
        granted_by=row.granted_by,
        status=row.status,
        enrolled_at=row.enrolled_at,
    )


def to_item(row: VideoORM | MaterialORM) -> ContentItem:
    common = dict(
        id=row.id,
        course_id=row.course_id,
        course_version=row.course_version,
        blob_key=row.blob_key,
        title=parse_bilingual(row.title),
        description=parse_bilingual(row.description),
        order=row.order,
        status=ItemStatus(row.status),
        file_size=row.file_size,
        mime_type=row.mime_type,
        original_name=row.original_name,
        uploaded_by=row.uploaded_by,
        created_at=row.created_at,
    )
    if isinstance(row, VideoORM):
        return Video(duration=row.duration, is_free_preview=row.is_free_preview, **common)
    return Material(**common)


class CourseRepository(ICourseRepository):
    def __init__(self, db: Session): self.db = db

    def _row(self, course_id: int, for_update: bool = False) -> CourseORM:
        q = select(CourseORM).where(CourseORM.id == course_id)
        if for_update:
            # на PostgreSQL это блокировка строки курса до конца транзакции
            q = q.with_for_update()
        row = self.db.execute(q).scalar_one_or_none()
        if row is None:
            raise NotFoundError("course not found")
        return row

    def _enrolled(self, course_ids: list[int]) -> dict[int, set[str]]:
        result: dict[int, set[str]] = {cid: set() for cid in course_ids}
        if not course_ids:
            return result
        q = (select(EnrollmentORM.course_id, EnrollmentORM.user_id)
             .where(EnrollmentORM.course_id.in_(course_ids), EnrollmentORM.status == "active"))
        for course_id, user_id in self.db.execute(q).all():
            result[course_id].add(user_id)
        return result

    def get(self, course_id: int, for_update: bool = False) -> Course:
        row = self._row(course_id, for_update=for_update)
        return to_course(row, self._enrolled([row.id])[row.id])

    def list(self, limit: int, offset: int, status: CourseStatus | None = None) -> list[Course]:
        q = select(CourseORM)
        if status is not None:
            q = q.where(CourseORM.status == status.value)
        rows = self.db.execute(q.order_by(CourseORM.id).limit(limit).offset(offset)).scalars().all()
        enrolled = self._enrolled([r.id for r in rows])
        return [to_course(r, enrolled[r.id]) for r in rows]

    def create(self, title: BilingualText, description: BilingualText, created_by: str | None) -> Course:
        row = CourseORM(
            title=title.to_dict(),
            description=description.to_dict(),
            current_version=1,
            status=CourseStatus.ACTIVE.value,
            created_by=created_by,
            last_modified_by=created_by,
        )
        self.db.add(row); self.db.flush()
        return to_course(row)

    def update_details(self, course_id: int, modified_by: str | None, title: BilingualText | None = None,
                       description: BilingualText | None = None) -> Course:
        row = self._row(course_id)
        if title is not None: row.title = title.to_dict()
        if description is not None: row.description = description.to_dict()
        row.last_modified_by = modified_by
        self.db.flush()
        return self.get(course_id)

    def set_thumbnail(self, course_id: int, key: str, modified_by: str | None) -> Course:
        row = self._row(course_id)
        row.thumbnail_key = key
        row.last_modified_by = modified_by
        self.db.flush()
        return self.get(course_id)

    def set_status(self, course_id: int, status: CourseStatus, modified_by: str | None) -> Course:
        row = self._row(course_id)
        row.status = status.value
        row.archived_at = datetime.now(timezone.utc) if status is CourseStatus.ARCHIVED else None
        row.last_modified_by = modified_by
        self.db.flush()
        return self.get(course_id)


class EnrollmentRepository(IEnrollmentRepository):
    """Покупки/записи на курс. Купил курс == есть активная запись."""

    def __init__(self, db: Session): self.db = db

    def _row(self, course_id: int, user_id: str) -> EnrollmentORM | None:
        return self.db.execute(
            select(EnrollmentORM).where(EnrollmentORM.course_id == course_id, EnrollmentORM.user_id == user_id)
        ).scalar_one_or_none()

    def user_has_purchased(self, user_id: str, course_id: int) -> bool:
        row = self._row(course_id, user_id)
        return row is not None and row.status == "active"

    def enrolled_student_ids(self, course_id: int) -> set[str]:
        q = select(EnrollmentORM.user_id).where(
            EnrollmentORM.course_id == course_id, EnrollmentORM.status == "active"
        )
        return set(self.db.execute(q).scalars().all())

    def get(self, course_id: int, user_id: str) -> Enrollment | None:
        row = self._row(course_id, user_id)
        return to_enrollment(row) if row else None

    def enroll(self, course_id: int, user_id: str, version_enrolled: int, granted_by: str) -> Enrollment:
        row = self._row(course_id, user_id)
        if row is None:
            row = EnrollmentORM(
                course_id=course_id,
                user_id=user_id,
                version_enrolled=version_enrolled,
                granted_by=granted_by,
                status="active",
            )
            self.db.add(row)
        else:
            # повторная запись: версия, под которую купили, не меняется
            row.status = "active"
            row.granted_by = granted_by
        self.db.flush()
        return to_enrollment(row)


class VersionLedger(IVersionLedger):
    def __init__(self, db: Session): self.db = db

    def _row(self, course_id: int, version_number: int) -> CourseVersionORM:
        row = self.db.execute(
            select(CourseVersionORM).where(
                CourseVersionORM.course_id == course_id,
                CourseVersionORM.version_number == version_number,
            )
        ).scalar_one_or_none()
        if row is None:
            raise VersionNotFoundError(course_id, version_number)
        return row

    def _mutable_row(self, course_id: int, version_number: int) -> CourseVersionORM:
        row = self._row(course_id, version_number)
        if version_number != self.latest_version_number(course_id):
            # после появления более новой версии манифест заморожен
            raise ConcurrencyConflictError(
                f"version {version_number} of course {course_id} is no longer the latest"
            )
        return row

    def _recompute(self, row: CourseVersionORM) -> None:
        videos = self.db.execute(
            select(VideoORM.duration, VideoORM.file_size).where(VideoORM.id.in_(row.video_ids or []))
        ).all()
        material_sizes = self.db.execute(
            select(MaterialORM.file_size).where(MaterialORM.id.in_(row.material_ids or []))
        ).scalars().all()
        row.total_videos = len(row.video_ids or [])
        row.total_materials = len(row.material_ids or [])
        row.total_duration = sum(d or 0 for d, _ in videos)
        row.total_file_size = sum(s or 0 for _, s in videos) + sum(s or 0 for s in material_sizes)
        self.db.flush()

    def latest_version_number(self, course_id: int) -> int:
        value = self.db.execute(
            select(func.max(CourseVersionORM.version_number)).where(CourseVersionORM.course_id == course_id)
        ).scalar()
        return value or 0

    def next_version_number(self, course_id: int) -> int:
        return self.latest_version_number(course_id) + 1

    def create_version(self, course_id: int, video_ids: Iterable[int] = (), material_ids: Iterable[int] = (),
                       change_log: str = "", created_by: str | None = None,
                       expected_number: int | None = None) -> CourseVersion:
        number = self.next_version_number(course_id)
        if expected_number is not None and number != expected_number:
            raise ConcurrencyConflictError(
                f"course {course_id} expected version {expected_number}, next is {number}"
            )
        row = CourseVersionORM(
            course_id=course_id,
            version_number=number,
            video_ids=list(video_ids),
            material_ids=list(material_ids),
            change_log=change_log,
            created_by=created_by,
            status="active",
        )
        self.db.add(row)
        try:
            self.db.flush()
        except IntegrityError as exc:
            raise ConcurrencyConflictError(f"version {number} of course {course_id} already exists") from exc
        self._recompute(row)
        return to_version(row)

    def get_manifest(self, course_id: int, version_number: int) -> CourseVersion:
        return to_version(self._row(course_id, version_number))

    def list_versions(self, course_id: int) -> list[CourseVersion]:
        rows = self.db.execute(
            select(CourseVersionORM)
            .where(CourseVersionORM.course_id == course_id)
            .order_by(CourseVersionORM.version_number)
        ).scalars().all()
        return [to_version(r) for r in rows]

    def set_current(self, course_id: int, version_number: int, expected: int) -> None:
        if version_number != self.latest_version_number(course_id):
            raise ConcurrencyConflictError(f"version {version_number} is not the latest of course {course_id}")
        # compare-and-set: если указатель уже сдвинул кто-то другой, ничего не пишем
        result = self.db.execute(
            update(CourseORM)
            .where(CourseORM.id == course_id, CourseORM.current_version == expected)
            .values(current_version=version_number)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise ConcurrencyConflictError(f"course {course_id} current version changed concurrently")
        self.db.expire(self.db.get(CourseORM, course_id), ["current_version"])

    def _ids_attr(self, item: ContentItem) -> str:
        return "video_ids" if item.item_type is ItemType.VIDEO else "material_ids"

    def append_item(self, course_id: int, version_number: int, item: ContentItem) -> CourseVersion:
        row = self._mutable_row(course_id, version_number)
        attr = self._ids_attr(item)
        ids = list(getattr(row, attr) or [])
        if item.id not in ids:
            setattr(row, attr, ids + [item.id])
        self._recompute(row)
        return to_version(row)

    def remove_item(self, course_id: int, version_number: int, item: ContentItem) -> CourseVersion:
        row = self._mutable_row(course_id, version_number)
        attr = self._ids_attr(item)
        setattr(row, attr, [i for i in (getattr(row, attr) or []) if i != item.id])
        self._recompute(row)
        return to_version(row)

    def replace_manifest(self, course_id: int, version_number: int, video_ids: Iterable[int],
                         material_ids: Iterable[int]) -> CourseVersion:
        row = self._mutable_row(course_id, version_number)
        row.video_ids = list(video_ids)
        row.material_ids = list(material_ids)
        self._recompute(row)
        return to_version(row)

    def refresh_statistics(self, course_id: int, version_number: int) -> CourseVersion:
        row = self._row(course_id, version_number)
        self._recompute(row)
        return to_version(row)


class ContentRegistry(IContentRegistry):
    def __init__(self, db: Session): self.db = db

    def _row(self, item_type: ItemType, item_id: int) -> VideoORM | MaterialORM:
        row = self.db.get(_MODELS[item_type], item_id)
        if row is None:
            raise NotFoundError(f"{item_type.value} not found")
        return row

    def _normalize(self, item_type: ItemType, fields: dict) -> dict:
        allowed = _METADATA_FIELDS[item_type]
        unknown = set(fields) - allowed
        if unknown:
            raise ContentValidationError(f"fields not editable: {', '.join(sorted(unknown))}")
        out = dict(fields)
        if "title" in out:
            title = parse_bilingual(out["title"])
            if title.is_blank():
                raise ContentValidationError("title is required")
            out["title"] = title.to_dict()
        if "description" in out:
            out["description"] = parse_bilingual(out["description"]).to_dict()
        if "order" in out:
            out["order"] = int(out["order"] or 0)
        if "duration" in out:
            out["duration"] = int(out["duration"] or 0)
        if "is_free_preview" in out:
            if out["is_free_preview"] is None:
                raise ContentValidationError("is_free_preview must be true or false")
            out["is_free_preview"] = bool(out["is_free_preview"])
        return out

    def get(self, item_type: ItemType, item_id: int) -> ContentItem:
        return to_item(self._row(item_type, item_id))

    def list_by_ids(self, item_type: ItemType, ids: Iterable[int], active_only: bool = True) -> list[ContentItem]:
        model = _MODELS[item_type]
        ids = list(ids)
        if not ids:
            return []
        q = select(model).where(model.id.in_(ids))
        if active_only:
            q = q.where(model.status == ItemStatus.ACTIVE.value)
        q = q.order_by(model.order, model.created_at, model.id)
        return [to_item(r) for r in self.db.execute(q).scalars().all()]

    def find_in_version(self, item_type: ItemType, course_id: int, version_number: int,
                        blob_key: str) -> ContentItem | None:
        model = _MODELS[item_type]
        row = self.db.execute(
            select(model).where(
                model.course_id == course_id,
                model.course_version == version_number,
                model.blob_key == blob_key,
                model.status == ItemStatus.ACTIVE.value,
            ).order_by(model.id)
        ).scalars().first()
        return to_item(row) if row else None

    def _check_key(self, blob_key: str, course_version: int) -> None:
        # новый файл лежит в папке той версии, в которую регистрируется
        if is_thumbnail_key(blob_key):
            raise ContentValidationError("thumbnail key cannot be registered as course content")
        key_version = version_from_key(blob_key)
        if key_version is not None and key_version != course_version:
            raise ContentValidationError(
                f"blob key belongs to version {key_version}, not {course_version}"
            )

    def upload(self, item_type: ItemType, course_id: int, course_version: int, blob_key: str,
               fields: dict) -> ContentItem:
        self._check_key(blob_key, course_version)
        metadata = {k: v for k, v in fields.items() if k in _METADATA_FIELDS[item_type]}
        extra = {k: v for k, v in fields.items() if k in ("file_size", "mime_type", "original_name", "uploaded_by")}
        values = self._normalize(item_type, metadata)
        if "title" not in values:
            raise ContentValidationError("title is required")
        row = _MODELS[item_type](
            course_id=course_id,
            course_version=course_version,
            blob_key=blob_key,
            status=ItemStatus.ACTIVE.value,
            **values,
            **extra,
        )
        self.db.add(row); self.db.flush()
        return to_item(row)

    def clone_into(self, items: Iterable[ContentItem], course_version: int) -> list[ContentItem]:
        rows = []
        for item in items:
            values = dict(
                course_id=item.course_id,
                course_version=course_version,
                blob_key=item.blob_key,  # тот же файл, новая строка
                title=item.title.to_dict(),
                description=item.description.to_dict(),
                order=item.order,
                status=ItemStatus.ACTIVE.value,
                file_size=item.file_size,
                mime_type=item.mime_type,
                original_name=item.original_name,
                uploaded_by=item.uploaded_by,
            )
            if isinstance(item, Video):
                values.update(duration=item.duration, is_free_preview=item.is_free_preview)
            row = _MODELS[item.item_type](**values)
            self.db.add(row)
            rows.append(row)
        self.db.flush()
        return [to_item(r) for r in rows]

    def soft_delete(self, item_type: ItemType, item_id: int) -> ContentItem:
        # только статус: файл в хранилище остаётся для старых версий
        row = self._row(item_type, item_id)
        row.status = ItemStatus.DELETED.value
        self.db.flush()
        return to_item(row)

    def restore(self, item_type: ItemType, item_id: int) -> ContentItem:
        row = self._row(item_type, item_id)
        row.status = ItemStatus.ACTIVE.value
        self.db.flush()
        return to_item(row)

    def update_metadata(self, item_type: ItemType, item_id: int, fields: dict) -> ContentItem:
        row = self._row(item_type, item_id)
        for name, value in self._normalize(item_type, fields).items():
            setattr(row, name, value)
        self.db.flush()
        return to_item(row)
