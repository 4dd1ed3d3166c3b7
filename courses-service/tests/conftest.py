import pytest
import os
import sys
from unittest.mock import MagicMock

CURRENT_DIR = os.path.dirname(__file__)
SERVICE_ROOT = os.path.dirname(CURRENT_DIR)
if SERVICE_ROOT not in sys.path:
    sys.path.insert(0, SERVICE_ROOT)

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from src.domain.entities import Viewer
from src.infrastructure.blob_store import get_blob_store
from src.infrastructure.db import get_db
from src.infrastructure.locks import CourseLockRegistry, get_course_locks
from src.infrastructure.models import Base
from src.infrastructure.storage_keys import generate_course_file_key
from src.interfaces.http.authz import get_viewer, require_admin

# Тестовая БД в памяти, одно соединение на все потоки TestClient
test_engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)

# Переопределяем engine в infrastructure.db и main.py для тестов
import src.infrastructure.db
import src.main
src.infrastructure.db.engine = test_engine
src.main.engine = test_engine
src.infrastructure.db.SessionLocal = TestingSessionLocal

from src.main import app

ADMIN_CLAIMS = {"sub": "admin@example.com", "role": "admin"}


def override_get_db():
    try:
        db = TestingSessionLocal()
        yield db
    finally:
        db.close()


@pytest.fixture(autouse=True)
def setup_test_environment(monkeypatch):
    """Настройка тестового окружения: Redis подменяем, кэш всегда промахивается"""
    redis_client = MagicMock()
    redis_client.get.return_value = None
    redis_client.keys.return_value = []
    monkeypatch.setattr("src.infrastructure.cache.get_redis", lambda: redis_client)
    return redis_client


@pytest.fixture
def db_session():
    Base.metadata.drop_all(bind=test_engine)
    Base.metadata.create_all(bind=test_engine)
    session = TestingSessionLocal()
    yield session
    session.close()
    Base.metadata.drop_all(bind=test_engine)


@pytest.fixture
def blob_store():
    """Хранилище-заглушка: ключи настоящие, ссылки фиктивные"""
    store = MagicMock()
    store.key_for.side_effect = lambda file_type, file_name, course_title, version=1: generate_course_file_key(
        file_type, file_name, course_title, version, root_prefix=""
    )
    store.put.side_effect = lambda data, key, content_type=None: key
    store.sign_get.side_effect = lambda key, ttl, content_type=None: f"https://signed.example/{key}?ttl={ttl}"
    return store


@pytest.fixture
def locks():
    return CourseLockRegistry(timeout=0.1)


@pytest.fixture
def client(blob_store, locks):
    Base.metadata.drop_all(bind=test_engine)
    Base.metadata.create_all(bind=test_engine)
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_blob_store] = lambda: blob_store
    app.dependency_overrides[get_course_locks] = lambda: locks
    yield TestClient(app)
    app.dependency_overrides.clear()
    Base.metadata.drop_all(bind=test_engine)


@pytest.fixture
def admin_override():
    """Фикстура для переопределения require_admin"""
    app.dependency_overrides[require_admin] = lambda: ADMIN_CLAIMS
    yield
    app.dependency_overrides.pop(require_admin, None)


@pytest.fixture
def as_viewer():
    """Подменяет зрителя контента: as_viewer("student@example.com") или as_viewer(None)"""
    def _set(user_id=None, is_admin=False):
        app.dependency_overrides[get_viewer] = lambda: Viewer(user_id=user_id, is_admin=is_admin)
    yield _set
    app.dependency_overrides.pop(get_viewer, None)
