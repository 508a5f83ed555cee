"""
Tests for the per-key lock.
"""
import threading
import time

import pytest

from singlewindow.infra.reliability.keyed_lock import KeyedLock, LockAcquisitionError


class TestKeyedLock:

    def test_same_key_is_serialized(self):
        locks = KeyedLock("test", timeout=5.0)
        inside = []
        overlaps = []

        def worker():
            with locks.hold("K"):
                inside.append(1)
                if len(inside) > 1:
                    overlaps.append(True)
                time.sleep(0.01)
                inside.pop()

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        assert overlaps == []
        assert locks.stats()["acquisitions"] == 8

    def test_different_keys_do_not_block(self):
        locks = KeyedLock("test", timeout=0.5)
        with locks.hold("A"):
            with locks.hold("B"):
                assert locks.active_keys() == 2
        assert locks.active_keys() == 0

    def test_timeout(self):
        locks = KeyedLock("test", timeout=0.05)
        held = threading.Event()
        release = threading.Event()

        def holder():
            with locks.hold("K"):
                held.set()
                release.wait(2)

        thread = threading.Thread(target=holder)
        thread.start()
        held.wait(2)
        try:
            with pytest.raises(LockAcquisitionError) as exc:
                with locks.hold("K"):
                    pass
            assert exc.value.reason_code == "LCK-001"
            assert locks.stats()["timeouts"] == 1
        finally:
            release.set()
            thread.join()
        assert locks.active_keys() == 0

    def test_released_on_exception(self):
        locks = KeyedLock("test", timeout=0.1)
        with pytest.raises(RuntimeError):
            with locks.hold("K"):
                raise RuntimeError("boom")
        with locks.hold("K"):
            pass
