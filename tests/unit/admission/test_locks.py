"""Unit tests for StudentLockRegistry."""

import threading
import time

import pytest

from coursegate.admission import AdmissionTimeoutError, StudentLockRegistry


@pytest.mark.unit
class TestStudentLockRegistry:
    """Tests for per-student locking."""

    def test_hold_and_release(self) -> None:
        """The slot is removed once released."""
        locks = StudentLockRegistry(timeout=1.0)

        with locks.hold("s-1"):
            assert len(locks) == 1

        assert len(locks) == 0

    def test_released_on_error(self) -> None:
        """An exception inside the block still releases the lock."""
        locks = StudentLockRegistry(timeout=1.0)

        with pytest.raises(RuntimeError), locks.hold("s-1"):
            raise RuntimeError("boom")

        with locks.hold("s-1"):
            pass
        assert len(locks) == 0

    def test_same_student_times_out(self) -> None:
        """A second holder for the same student waits, then times out."""
        locks = StudentLockRegistry(timeout=0.05)
        entered = threading.Event()
        release = threading.Event()

        def holder() -> None:
            with locks.hold("s-1"):
                entered.set()
                release.wait(2)

        thread = threading.Thread(target=holder)
        thread.start()
        entered.wait(2)
        try:
            with pytest.raises(AdmissionTimeoutError), locks.hold("s-1"):
                pass
        finally:
            release.set()
            thread.join()

        assert len(locks) == 0

    def test_different_students_do_not_block(self) -> None:
        """Holding one student's lock doesn't block another student."""
        locks = StudentLockRegistry(timeout=0.05)

        with locks.hold("s-1"), locks.hold("s-2"):
            assert len(locks) == 2

    def test_serializes_same_student(self) -> None:
        """Critical sections for one student never overlap."""
        locks = StudentLockRegistry(timeout=5.0)
        active = 0
        overlaps = 0
        counter_guard = threading.Lock()

        def worker() -> None:
            nonlocal active, overlaps
            with locks.hold("s-1"):
                with counter_guard:
                    active += 1
                    if active > 1:
                        overlaps += 1
                time.sleep(0.005)
                with counter_guard:
                    active -= 1

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert overlaps == 0
        assert len(locks) == 0
