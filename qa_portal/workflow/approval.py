from dataclasses import dataclass

import psycopg

from qa_portal.database.repositories.record_repository import RecordRepository
from qa_portal.logging.logger import Log
from qa_portal.records.exceptions import NotFoundError, StorageError, ValidationError
from qa_portal.records.models import RecordStatus


@dataclass(frozen=True)
class Transition:
    target: RecordStatus
    sources: frozenset[RecordStatus]


TRANSITIONS: dict[str, Transition] = {
    "approve": Transition(RecordStatus.APPROVED, frozenset({RecordStatus.PENDING})),
    "reject": Transition(RecordStatus.REJECTED, frozenset({RecordStatus.PENDING})),
    "delete": Transition(
        RecordStatus.DELETED,
        frozenset({RecordStatus.PENDING, RecordStatus.APPROVED}),
    ),
}

DECISIONS = ("approve", "reject")


class ApprovalWorkflow:
    """Status state machine for one record kind.

    Pending -> Approved | Rejected by decision, Pending | Approved -> Deleted
    by soft delete. Rejected and Deleted are terminal.
    """

    def __init__(self, repository: RecordRepository) -> None:
        self._repository = repository
        self._label = repository.kind.label

    def decide(self, record_id: int, action: str | None) -> RecordStatus:
        """Approve or reject a pending record and return its new status.

        Raises:
            ValidationError: if action is not 'approve' or 'reject'.
            NotFoundError: if the record is unknown or no longer pending.
            StorageError: if the database update fails.
        """
        if action not in DECISIONS:
            raise ValidationError('Invalid action. Must be "approve" or "reject"')
        return self._apply(record_id, action)

    def delete(self, record_id: int) -> RecordStatus:
        """Soft-delete a pending or approved record.

        Raises:
            NotFoundError: if the record is unknown, rejected or already deleted.
            StorageError: if the database update fails.
        """
        return self._apply(record_id, "delete")

    def _apply(self, record_id: int, action: str) -> RecordStatus:
        transition = TRANSITIONS[action]
        try:
            affected = self._repository.set_status(
                record_id, transition.target, transition.sources
            )
        except psycopg.Error as exc:
            raise StorageError(f"Failed to update {self._label.lower()} {record_id}: {exc}") from exc

        if affected == 0:
            raise NotFoundError(f"{self._label} not found")

        Log.info(f"{self._label} {record_id} -> {transition.target.name.lower()} ({action})")
        return transition.target
