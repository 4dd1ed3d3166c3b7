import os
import sys
import threading
import pytest

CURRENT_DIR = os.path.dirname(__file__)
SERVICE_ROOT = os.path.dirname(CURRENT_DIR)
if SERVICE_ROOT not in sys.path:
    sys.path.insert(0, SERVICE_ROOT)

from src.domain.errors import ConcurrencyConflictError
from src.infrastructure.locks import CourseLockRegistry

def test_lock_released_after_use():
    """Тест: после мутации запись о курсе не остаётся в реестре"""
    locks = CourseLockRegistry(timeout=0.1)
    with locks.hold(1):
        assert 1 in locks._locks
    assert locks._locks == {}

def test_lock_released_after_error():
    """Тест: исключение внутри мутации тоже освобождает курс"""
    locks = CourseLockRegistry(timeout=0.1)
    with pytest.raises(RuntimeError):
        with locks.hold(1):
            raise RuntimeError("boom")
    assert locks._locks == {}
    with locks.hold(1):
        pass

def test_busy_course_conflicts_and_other_course_does_not():
    """Тест: занятый курс даёт конфликт, соседний курс свободен"""
    locks = CourseLockRegistry(timeout=0.05)
    with locks.hold(1):
        with locks.hold(2):
            pass
        with pytest.raises(ConcurrencyConflictError):
            with locks.hold(1):
                pass
        # ожидавший ушёл, держатель остался
        assert locks._locks[1].users == 1
    assert locks._locks == {}

def test_waiter_gets_lock_after_release():
    """Тест: ждущий поток получает тот же курс, когда первый освободил его"""
    locks = CourseLockRegistry(timeout=2)
    entered = threading.Event()
    results = []

    def second():
        entered.wait()
        with locks.hold(7):
            results.append("second")

    worker = threading.Thread(target=second)
    worker.start()
    with locks.hold(7):
        entered.set()
        results.append("first")
    worker.join(timeout=5)
    assert results == ["first", "second"]
    assert locks._locks == {}
