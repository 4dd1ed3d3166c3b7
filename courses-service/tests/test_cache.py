import os
import sys
import pytest
import redis
from unittest.mock import MagicMock, patch

CURRENT_DIR = os.path.dirname(__file__)
SERVICE_ROOT = os.path.dirname(CURRENT_DIR)
if SERVICE_ROOT not in sys.path:
    sys.path.insert(0, SERVICE_ROOT)

from src.infrastructure.cache import (
    course_key, course_list_key, delete_cache_pattern, get_cache, invalidate_course, set_cache,
)

@patch('src.infrastructure.cache.get_redis')
def test_get_cache_hit(mock_redis):
    """Тест получения значения из кэша (hit)"""
    mock_client = MagicMock()
    mock_client.get.return_value = '{"title": {"primary": "Python", "secondary": "Питон"}}'
    mock_redis.return_value = mock_client

    result = get_cache("course:1:details")
    assert result == {"title": {"primary": "Python", "secondary": "Питон"}}
    mock_client.get.assert_called_once_with("course:1:details")

@patch('src.infrastructure.cache.get_redis')
def test_get_cache_miss(mock_redis):
    """Тест получения значения из кэша (miss)"""
    mock_client = MagicMock()
    mock_client.get.return_value = None
    mock_redis.return_value = mock_client

    assert get_cache("test_key") is None

@patch('src.infrastructure.cache.get_redis')
def test_get_cache_redis_down(mock_redis):
    """Тест: недоступный Redis не ломает чтение"""
    mock_redis.side_effect = redis.ConnectionError("Redis error")

    assert get_cache("test_key") is None

@patch('src.infrastructure.cache.get_redis')
def test_get_cache_broken_json(mock_redis):
    """Тест: битое значение в кэше считается промахом"""
    mock_client = MagicMock()
    mock_client.get.return_value = "{not json"
    mock_redis.return_value = mock_client

    assert get_cache("test_key") is None

@patch('src.infrastructure.cache.get_redis')
def test_set_cache(mock_redis):
    """Тест сохранения значения в кэш"""
    mock_client = MagicMock()
    mock_redis.return_value = mock_client

    result = set_cache("test_key", {"key": "value"}, ttl=300)
    assert result is True
    mock_client.setex.assert_called_once()
    key, ttl, payload = mock_client.setex.call_args.args
    assert (key, ttl) == ("test_key", 300)
    assert payload == '{"key": "value"}'

@patch('src.infrastructure.cache.get_redis')
def test_set_cache_error(mock_redis):
    """Тест обработки ошибки при сохранении в кэш"""
    mock_redis.side_effect = redis.ConnectionError("Redis error")

    assert set_cache("test_key", {"key": "value"}) is False

@patch('src.infrastructure.cache.get_redis')
def test_delete_cache_pattern(mock_redis):
    """Тест удаления по паттерну"""
    mock_client = MagicMock()
    mock_client.keys.return_value = ["key1", "key2", "key3"]
    mock_client.delete.return_value = 3
    mock_redis.return_value = mock_client

    result = delete_cache_pattern("key*")
    assert result == 3
    mock_client.keys.assert_called_once_with("key*")

def test_cache_keys():
    """Тест формата ключей кэша"""
    assert course_list_key(10, 20) == "courses:list:10:20"
    assert course_key(7, "versions") == "course:7:versions"

@patch('src.infrastructure.cache.get_redis')
def test_invalidate_course(mock_redis):
    """Тест: мутация сбрасывает список курсов и всё по курсу"""
    mock_client = MagicMock()
    mock_client.keys.return_value = []
    mock_redis.return_value = mock_client

    invalidate_course(5)
    patterns = [c.args[0] for c in mock_client.keys.call_args_list]
    assert patterns == ["courses:list:*", "course:5:*"]
