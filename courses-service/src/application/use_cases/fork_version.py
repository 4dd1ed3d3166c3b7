import structlog

from ...domain.entities import ContentItem, Course, CourseVersion, ItemType
from ..ports import IContentRegistry, IVersionLedger

logger = structlog.get_logger()


class ForkVersion:
    """Новая версия курса как копия текущей (copy-on-write по метаданным).

    Каждая активная строка текущей версии копируется в новую строку с тем же
    blob_key; сами файлы не копируются. Старая версия и её строки не
    трогаются. Указатель current_version здесь НЕ двигается и commit не
    делается: это последний шаг вызывающего use case.
    """

    def __init__(self, ledger: IVersionLedger, registry: IContentRegistry):
        self.ledger = ledger
        self.registry = registry

    def execute(self, course: Course, change_log: str, created_by: str | None,
                exclude: ContentItem | None = None, expected_number: int | None = None) -> CourseVersion:
        base = self.ledger.get_manifest(course.id, course.current_version)
        new_version = self.ledger.create_version(
            course.id,
            change_log=change_log,
            created_by=created_by,
            expected_number=expected_number,
        )

        cloned_ids: dict[ItemType, list[int]] = {}
        for item_type in ItemType:
            manifest_ids = base.item_ids(item_type)
            by_id = {i.id: i for i in self.registry.list_by_ids(item_type, manifest_ids)}
            keep = [
                by_id[i] for i in manifest_ids
                if i in by_id and not (exclude is not None and exclude.item_type is item_type and exclude.id == i)
            ]
            clones = self.registry.clone_into(keep, new_version.version_number)
            cloned_ids[item_type] = [c.id for c in clones]

        version = self.ledger.replace_manifest(
            course.id,
            new_version.version_number,
            video_ids=cloned_ids[ItemType.VIDEO],
            material_ids=cloned_ids[ItemType.MATERIAL],
        )
        logger.info(
            "version_forked",
            course_id=course.id,
            from_version=course.current_version,
            to_version=version.version_number,
            cloned_videos=len(version.video_ids),
            cloned_materials=len(version.material_ids),
        )
        return version
