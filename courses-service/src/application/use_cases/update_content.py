import structlog

from ...domain.branching import BranchDecider, MutationKind
from ...domain.entities import ItemType
from ...domain.validation import parse_duration
from ..dto import MutationResult
from ..ports import IContentRegistry, ICourseRepository, ITransaction, IVersionLedger
from .current_item import resolve_current_item

logger = structlog.get_logger()


class UpdateContentMetadata:
    """Правка названия, описания, порядка, длительности и флага превью.

    Всегда на месте в текущей версии, новая версия не создаётся.
    """

    def __init__(self, courses: ICourseRepository, ledger: IVersionLedger, registry: IContentRegistry,
                 tx: ITransaction, decider: BranchDecider | None = None):
        self.courses = courses
        self.ledger = ledger
        self.registry = registry
        self.tx = tx
        self.decider = decider or BranchDecider()

    def execute(self, course_id: int, item_type: ItemType, item_id: int, fields: dict,
                actor: str | None = None) -> MutationResult:
        fields = dict(fields)
        if "duration" in fields:
            fields["duration"] = parse_duration(fields["duration"])

        try:
            course = self.courses.get(course_id)
            decision = self.decider.decide(MutationKind.EDIT_METADATA, course.has_enrollments)
            item = resolve_current_item(self.registry, course, item_type, item_id)
            item = self.registry.update_metadata(item_type, item.id, fields)
            version = self.ledger.refresh_statistics(course_id, item.course_version)
            self.tx.commit()
        except Exception:
            self.tx.rollback()
            raise

        logger.info(
            "content_metadata_updated",
            course_id=course_id,
            item_type=item_type.value,
            item_id=item.id,
            fields=sorted(fields),
            updated_by=actor,
        )
        return MutationResult(item=item, version=version, forked=decision.fork)
