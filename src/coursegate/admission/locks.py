"""Per-student serialization of admission requests."""

from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field

from coursegate.admission.exceptions import AdmissionTimeoutError


@dataclass
class _Slot:
    lock: threading.Lock = field(default_factory=threading.Lock)
    holders: int = 0


class StudentLockRegistry:
    """Keyed locks, one per student id.

    Requests for the same student run one at a time; requests for different
    students never wait on each other. Entries are reference counted and
    removed once no thread holds or waits on them.
    """

    def __init__(self, timeout: float | None = 10.0) -> None:
        """Initialize the registry.

        Args:
            timeout: Seconds to wait for a student's lock. None waits forever.
        """
        self.timeout = timeout
        self._guard = threading.Lock()
        self._slots: dict[str, _Slot] = {}

    def __len__(self) -> int:
        with self._guard:
            return len(self._slots)

    @contextmanager
    def hold(self, student_id: str) -> Iterator[None]:
        """Hold the student's lock for the duration of the block.

        Raises:
            AdmissionTimeoutError: If the lock isn't acquired within the timeout.
        """
        with self._guard:
            slot = self._slots.setdefault(student_id, _Slot())
            slot.holders += 1

        try:
            acquired = slot.lock.acquire(timeout=-1 if self.timeout is None else self.timeout)
            if not acquired:
                raise AdmissionTimeoutError(
                    f"Timed out after {self.timeout}s waiting to admit student '{student_id}'"
                )
            try:
                yield
            finally:
                slot.lock.release()
        finally:
            with self._guard:
                slot.holders -= 1
                if slot.holders == 0:
                    del self._slots[student_id]
