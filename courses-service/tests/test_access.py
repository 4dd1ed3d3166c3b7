import os
import sys
import pytest
from unittest.mock import MagicMock

CURRENT_DIR = os.path.dirname(__file__)
SERVICE_ROOT = os.path.dirname(CURRENT_DIR)
if SERVICE_ROOT not in sys.path:
    sys.path.insert(0, SERVICE_ROOT)

from src.domain.access import AccessResolver
from src.domain.bilingual import BilingualText
from src.domain.entities import ItemStatus, Video, Viewer

def make_video(is_free_preview=False):
    return Video(
        id=1, course_id=10, course_version=1, blob_key="courses/c/v1/videos/1_a.mp4",
        title=BilingualText("A"), description=BilingualText(), order=0, status=ItemStatus.ACTIVE,
        file_size=100, mime_type="video/mp4", original_name="a.mp4", uploaded_by=None, created_at=None,
        is_free_preview=is_free_preview,
    )

@pytest.fixture
def purchases():
    store = MagicMock()
    store.user_has_purchased.side_effect = lambda user_id, course_id: user_id == "buyer@example.com"
    return store

def test_admin_always_has_access(purchases):
    """Тест: админ видит всё, покупки не проверяются"""
    resolver = AccessResolver(purchases)
    decision = resolver.resolve_video(Viewer("boss@example.com", is_admin=True), 10, make_video())
    assert decision.has_access and decision.reason == "admin"
    purchases.user_has_purchased.assert_not_called()

def test_buyer_has_access(purchases):
    """Тест: купивший курс видит платное видео"""
    decision = AccessResolver(purchases).resolve_video(Viewer("buyer@example.com"), 10, make_video())
    assert decision.has_access and decision.reason == "purchased"

def test_free_preview_open_to_everyone(purchases):
    """Тест: бесплатное превью доступно и анониму"""
    decision = AccessResolver(purchases).resolve_video(Viewer(), 10, make_video(is_free_preview=True))
    assert decision.has_access and decision.reason == "freePreview"
    assert decision.lock_reason is None

def test_paid_video_locked(purchases):
    """Тест: платное видео закрыто для некупившего"""
    decision = AccessResolver(purchases).resolve_video(Viewer("guest@example.com"), 10, make_video())
    assert not decision.has_access
    assert decision.lock_reason == "requiresPurchase"

def test_anonymous_never_checks_purchases(purchases):
    """Тест: для анонима сервис покупок не вызывается"""
    decision = AccessResolver(purchases).resolve_video(Viewer(), 10, make_video())
    assert not decision.has_access
    purchases.user_has_purchased.assert_not_called()

def test_materials_have_no_free_preview(purchases):
    """Тест: материалы открываются только покупкой"""
    resolver = AccessResolver(purchases)
    assert not resolver.resolve_material(Viewer("guest@example.com"), 10).has_access
    assert resolver.resolve_material(Viewer("buyer@example.com"), 10).reason == "purchased"

def test_purchase_lookup_memoized(purchases):
    """Тест: покупка проверяется один раз на резолвер"""
    resolver = AccessResolver(purchases)
    viewer = Viewer("guest@example.com")
    for _ in range(5):
        resolver.resolve_video(viewer, 10, make_video())
    resolver.resolve_material(viewer, 10)
    assert purchases.user_has_purchased.call_count == 1
