from dataclasses import dataclass

from .entities import Viewer, Video

REASON_ADMIN = "admin"
REASON_PURCHASED = "purchased"
REASON_FREE_PREVIEW = "freePreview"
REASON_REQUIRES_PURCHASE = "requiresPurchase"


@dataclass(frozen=True)
class AccessDecision:
    has_access: bool
    reason: str

    @property
    def lock_reason(self) -> str | None:
        return None if self.has_access else self.reason


class AccessResolver:
    """Доступ к контенту: админ, покупка курса или бесплатное превью.

    purchases — всё, у чего есть user_has_purchased(user_id, course_id).
    Ответ кэшируется на время жизни резолвера (один запрос), чтобы список
    из N видео не делал N запросов в сервис покупок.
    """

    def __init__(self, purchases):
        self.purchases = purchases
        self._purchased: dict[tuple[str, int], bool] = {}

    def has_purchased(self, viewer: Viewer, course_id: int) -> bool:
        if viewer.is_anonymous:
            return False
        key = (viewer.user_id, course_id)
        if key not in self._purchased:
            self._purchased[key] = bool(self.purchases.user_has_purchased(viewer.user_id, course_id))
        return self._purchased[key]

    def resolve_video(self, viewer: Viewer, course_id: int, video: Video) -> AccessDecision:
        if viewer.is_admin:
            return AccessDecision(True, REASON_ADMIN)
        if self.has_purchased(viewer, course_id):
            return AccessDecision(True, REASON_PURCHASED)
        if video.is_free_preview:
            return AccessDecision(True, REASON_FREE_PREVIEW)
        return AccessDecision(False, REASON_REQUIRES_PURCHASE)

    def resolve_material(self, viewer: Viewer, course_id: int) -> AccessDecision:
        # у материалов нет бесплатного превью
        if viewer.is_admin:
            return AccessDecision(True, REASON_ADMIN)
        if self.has_purchased(viewer, course_id):
            return AccessDecision(True, REASON_PURCHASED)
        return AccessDecision(False, REASON_REQUIRES_PURCHASE)
