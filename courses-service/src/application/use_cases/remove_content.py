import structlog

from ...domain.branching import BranchDecider, MutationKind
from ...domain.entities import ItemType
from ..dto import MutationResult
from ..ports import IContentRegistry, ICourseLocks, ICourseRepository, ITransaction, IVersionLedger
from .current_item import resolve_current_item
from .fork_version import ForkVersion

logger = structlog.get_logger()


class RemoveContentItem:
    """Удаление видео/материала из курса. Файл в хранилище не удаляется никогда."""

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
                item = resolve_current_item(self.registry, course, item_type, item_id)
                decision = self.decider.decide(MutationKind.REMOVE, course.has_enrollments)

                if decision.fork:
                    target = self.ledger.next_version_number(course_id)
                    version = self.forker.execute(
                        course,
                        change_log=f"Version {target} created: {item_type.value} removed",
                        created_by=actor,
                        exclude=item,
                        expected_number=target,
                    )
                    self.ledger.set_current(course_id, target, expected=course.current_version)
                else:
                    item = self.registry.soft_delete(item_type, item.id)
                    version = self.ledger.remove_item(course_id, course.current_version, item)
                self.tx.commit()
            except Exception:
                self.tx.rollback()
                raise

        logger.info(
            "content_removed",
            course_id=course_id,
            item_type=item_type.value,
            item_id=item.id,
            version=version.version_number,
            forked=decision.fork,
            reason=decision.reason,
        )
        return MutationResult(item=item, version=version, forked=decision.fork)
