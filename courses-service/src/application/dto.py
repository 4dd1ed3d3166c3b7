from dataclasses import dataclass, field

from ..domain.access import AccessDecision
from ..domain.entities import ContentItem, CourseVersion, ItemType


@dataclass
class ItemView:
    item: ContentItem
    access: AccessDecision
    url: str | None = None  # подписанная ссылка, только если есть доступ


@dataclass
class ContentListing:
    course_id: int
    version: int
    item_type: ItemType
    items: list[ItemView] = field(default_factory=list)
    user_has_purchased: bool = False

    @property
    def has_free_previews(self) -> bool:
        return any(getattr(v.item, "is_free_preview", False) for v in self.items)


@dataclass
class MutationResult:
    item: ContentItem
    version: CourseVersion
    forked: bool
