"""In-process guard: at most one ledger write per student at a time."""

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from src.core.exceptions import ConcurrencyConflictError

logger = logging.getLogger(__name__)


class StudentLedgerGuard:
    """
    Tracks students whose ledger is being written by this process.

    A second caller for the same student is rejected instead of queued; the
    client retries. Cross-process exclusion comes from the row lock on the
    student and the conditional writes in PaymentService.
    """

    def __init__(self) -> None:
        self._in_flight: set[int] = set()

    def is_held(self, student_id: int) -> bool:
        return student_id in self._in_flight

    @contextmanager
    def hold(self, student_id: int) -> Iterator[None]:
        # No await between check and add: atomic on the event loop
        if student_id in self._in_flight:
            logger.info("Rejected concurrent ledger write for student %s", student_id)
            raise ConcurrencyConflictError(student_id)
        self._in_flight.add(student_id)
        try:
            yield
        finally:
            self._in_flight.discard(student_id)


ledger_guard = StudentLedgerGuard()
