class ContentError(Exception):
    """Базовая ошибка доменного слоя курсов."""

    code = "content_error"

    def __init__(self, message: str, code: str | None = None):
        self.message = message
        if code is not None:
            self.code = code
        super().__init__(message)


class NotFoundError(ContentError):
    code = "not_found"


class VersionNotFoundError(NotFoundError):
    code = "version_not_found"

    def __init__(self, course_id: int, version_number: int):
        self.course_id = course_id
        self.version_number = version_number
        super().__init__(f"course {course_id} has no version {version_number}")


class ContentValidationError(ContentError):
    code = "validation_error"


class ConcurrencyConflictError(ContentError):
    """Две конкурирующие мутации курса; клиент повторяет запрос целиком."""

    code = "concurrency_conflict"


class BlobStoreUnavailableError(ContentError):
    """Хранилище недоступно или не ответило вовремя; запрос можно повторить."""

    code = "blob_store_unavailable"


class ForbiddenError(ContentError):
    code = "forbidden"

    def __init__(self, message: str, reason: str | None = None):
        self.reason = reason
        super().__init__(message)


__all__ = [
    "ContentError",
    "NotFoundError",
    "VersionNotFoundError",
    "ContentValidationError",
    "ConcurrencyConflictError",
    "BlobStoreUnavailableError",
    "ForbiddenError",
]
