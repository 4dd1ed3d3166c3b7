import threading
from contextlib import contextmanager

from ..config import settings
from ..domain.errors import ConcurrencyConflictError


class _CourseLock:
    __slots__ = ("lock", "users")

    def __init__(self):
        self.lock = threading.Lock()
        # держат или ждут блокировку
        self.users = 0


class CourseLockRegistry:
    """Один писатель на курс внутри процесса.

    Между процессами сериализацию дают SELECT ... FOR UPDATE по строке курса
    и compare-and-set указателя current_version в VersionLedger.
    Запись о курсе живёт, пока блокировку кто-то держит или ждёт.
    """

    def __init__(self, timeout: float):
        self.timeout = timeout
        self._guard = threading.Lock()
        self._locks: dict[int, _CourseLock] = {}

    def _checkout(self, course_id: int) -> _CourseLock:
        with self._guard:
            entry = self._locks.get(course_id)
            if entry is None:
                entry = self._locks[course_id] = _CourseLock()
            entry.users += 1
            return entry

    def _checkin(self, course_id: int, entry: _CourseLock) -> None:
        with self._guard:
            entry.users -= 1
            if entry.users == 0:
                del self._locks[course_id]

    @contextmanager
    def hold(self, course_id: int):
        entry = self._checkout(course_id)
        try:
            if not entry.lock.acquire(timeout=self.timeout):
                raise ConcurrencyConflictError(f"course {course_id} is being modified, retry the request")
            try:
                yield
            finally:
                entry.lock.release()
        finally:
            self._checkin(course_id, entry)


course_locks = CourseLockRegistry(settings.COURSE_LOCK_TIMEOUT)


def get_course_locks() -> CourseLockRegistry:
    return course_locks
