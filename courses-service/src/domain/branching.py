from dataclasses import dataclass
from enum import Enum


class MutationKind(str, Enum):
    ADD = "add"
    REMOVE = "remove"
    EDIT_METADATA = "editMetadata"


@dataclass(frozen=True)
class BranchDecision:
    fork: bool
    reason: str

    @property
    def in_place(self) -> bool:
        return not self.fork


class BranchDecider:
    """Решает, менять текущую версию курса на месте или форкать новую.

    Метаданные (название, описание, порядок, превью) правятся на месте
    всегда. Добавление и удаление контента форкают версию только если у
    курса уже есть студенты: пока никто не купил курс, защищать нечего.
    """

    def decide(self, kind: MutationKind, has_enrollments: bool) -> BranchDecision:
        if kind is MutationKind.EDIT_METADATA:
            return BranchDecision(fork=False, reason="metadata_edit")
        if not has_enrollments:
            return BranchDecision(fork=False, reason="initial_upload")
        return BranchDecision(fork=True, reason="enrolled_students")
