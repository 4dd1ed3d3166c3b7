import structlog

from ...domain.branching import BranchDecider, MutationKind
from ...domain.entities import ItemType
from ...domain.errors import ContentValidationError, NotFoundError
from ..dto import MutationResult
from ..ports import IContentRegistry, ICourseLocks, ICourseRepository, ITransaction, IVersionLedger
from .fork_version import ForkVersion

logger = structlog.get_logger()


class RestoreContentItem:
    """Возврат удалённого видео/материала в текущую версию курса.

    Для ветвления это добавление: у купленного курса создаётся версия N+1,
    куда попадает копия строки с тем же файлом. Без студентов строка
    текущей версии просто снова становится активной.
    """

    def __init__(self, courses: ICourseRepository, ledger: IVersionLedger, registry: IContentRegistry,
                 tx: ITransaction, locks: ICourseLocks, decider: BranchDecider | None = None):
        self.courses = courses
        self.ledger = ledger
        self.registry = registry
        self.tx = tx
        self.locks = locks
        self.decider = decider or BranchDecider()
        self.forker = ForkVersion(ledger, registry)

    def execute(self, course_id: int, item_type: ItemType, item_id: int,
                actor: str | None = None) -> MutationResult:
        with self.locks.hold(course_id):
            try:
                course = self.courses.get(course_id, for_update=True)
                source = self.registry.get(item_type, item_id)
                if source.course_id != course_id:
                    raise NotFoundError(f"{item_type.value} not found")
                current = self.registry.find_in_version(item_type, course_id, course.current_version,
                                                        source.blob_key)
                if current is not None:
                    raise ContentValidationError(f"{item_type.value} is already part of the current version")
                decision = self.decider.decide(MutationKind.ADD, course.has_enrollments)

                if decision.fork:
                    target = self.ledger.next_version_number(course_id)
                    self.forker.execute(
                        course,
                        change_log=f"Version {target} created: {item_type.value} restored",
                        created_by=actor,
                        expected_number=target,
                    )
                    item = self.registry.clone_into([source], target)[0]
                elif source.course_version == course.current_version:
                    target = course.current_version
                    item = self.registry.restore(item_type, source.id)
                else:
                    # строка из старой версии: сама она не меняется, в текущую идёт копия
                    target = course.current_version
                    item = self.registry.clone_into([source], target)[0]

                version = self.ledger.append_item(course_id, target, item)
                if decision.fork:
                    self.ledger.set_current(course_id, target, expected=course.current_version)
                self.tx.commit()
            except Exception:
                self.tx.rollback()
                raise

        logger.info(
            "content_restored",
            course_id=course_id,
            item_type=item_type.value,
            item_id=item.id,
            restored_from=source.id,
            version=target,
            forked=decision.fork,
            reason=decision.reason,
        )
        return MutationResult(item=item, version=version, forked=decision.fork)
