import structlog

from ...domain.bilingual import BilingualText, parse_bilingual
from ...domain.branching import BranchDecider, MutationKind
from ...domain.entities import ItemType
from ...domain.validation import (
    MATERIAL_MIME_TYPES,
    VIDEO_MIME_TYPES,
    UploadedFile,
    parse_duration,
    validate_upload,
)
from ..dto import MutationResult
from ..ports import (
    IBlobStore,
    IContentRegistry,
    ICourseLocks,
    ICourseRepository,
    ITransaction,
    IVersionLedger,
)
from .fork_version import ForkVersion

logger = structlog.get_logger()

_ALLOWED_TYPES = {ItemType.VIDEO: VIDEO_MIME_TYPES, ItemType.MATERIAL: MATERIAL_MIME_TYPES}


class AddContentItem:
    """Загрузка видео или материала в курс.

    Без студентов файл добавляется в текущую версию. Если курс уже купили,
    создаётся версия N+1 с копиями всех активных строк плюс новый файл, и
    только в самом конце current_version переключается на неё.
    """

    def __init__(self, courses: ICourseRepository, ledger: IVersionLedger, registry: IContentRegistry,
                 blob_store: IBlobStore, tx: ITransaction, locks: ICourseLocks,
                 max_sizes: dict[ItemType, int], decider: BranchDecider | None = None):
        self.courses = courses
        self.ledger = ledger
        self.registry = registry
        self.blob_store = blob_store
        self.tx = tx
        self.locks = locks
        self.max_sizes = max_sizes
        self.decider = decider or BranchDecider()
        self.forker = ForkVersion(ledger, registry)

    def _fields(self, item_type: ItemType, upload: UploadedFile, metadata: dict, actor: str | None) -> dict:
        fields = dict(metadata)
        title = parse_bilingual(fields.get("title"))
        if title.is_blank():
            title = BilingualText(primary=upload.original_name)
        fields["title"] = title
        if item_type is ItemType.VIDEO:
            fields["duration"] = parse_duration(fields.get("duration"))
            fields["is_free_preview"] = bool(fields.get("is_free_preview", False))
        fields.update(
            file_size=upload.size,
            mime_type=upload.mime_type,
            original_name=upload.original_name,
            uploaded_by=actor,
        )
        return fields

    def execute(self, course_id: int, item_type: ItemType, upload: UploadedFile | None,
                metadata: dict | None = None, actor: str | None = None) -> MutationResult:
        validate_upload(upload, _ALLOWED_TYPES[item_type], self.max_sizes[item_type])
        fields = self._fields(item_type, upload, metadata or {}, actor)

        with self.locks.hold(course_id):
            try:
                course = self.courses.get(course_id, for_update=True)
                decision = self.decider.decide(MutationKind.ADD, course.has_enrollments)
                target = self.ledger.next_version_number(course_id) if decision.fork else course.current_version

                key = self.blob_store.key_for(item_type.value, upload.original_name, course.title, target)
                # файл кладём до любых записей: упавшая загрузка не оставит строк в БД
                self.blob_store.put(upload.content, key, upload.mime_type)

                if decision.fork:
                    self.forker.execute(
                        course,
                        change_log=f"Version {target} created: {item_type.value} added",
                        created_by=actor,
                        expected_number=target,
                    )
                item = self.registry.upload(item_type, course_id, target, key, fields)
                version = self.ledger.append_item(course_id, target, item)
                if decision.fork:
                    self.ledger.set_current(course_id, target, expected=course.current_version)
                self.tx.commit()
            except Exception:
                self.tx.rollback()
                raise

        logger.info(
            "content_added",
            course_id=course_id,
            item_type=item_type.value,
            item_id=item.id,
            version=target,
            forked=decision.fork,
            reason=decision.reason,
        )
        return MutationResult(item=item, version=version, forked=decision.fork)
