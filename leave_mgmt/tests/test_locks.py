"""
Tests for the per-request lock registry
"""
import threading
import time

import pytest

from leave_mgmt.workflow.locks import LockTimeout, RequestLockRegistry


def test_same_key_times_out_while_held():
    registry = RequestLockRegistry()
    with registry.hold(1):
        with pytest.raises(LockTimeout):
            with registry.hold(1, timeout=0.01):
                pass
    assert registry.active_keys() == 0


def test_different_keys_do_not_block():
    registry = RequestLockRegistry()
    with registry.hold(1):
        with registry.hold(2, timeout=0.01):
            assert registry.active_keys() == 2


def test_holders_of_one_key_serialize():
    registry = RequestLockRegistry()
    inside = []
    overlaps = []

    def worker():
        with registry.hold(7):
            inside.append(1)
            if len(inside) > 1:
                overlaps.append(True)
            time.sleep(0.01)
            inside.pop()

    threads = [threading.Thread(target=worker) for _ in range(5)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert overlaps == []
    assert registry.active_keys() == 0


def test_lock_released_on_exception():
    registry = RequestLockRegistry()
    with pytest.raises(RuntimeError):
        with registry.hold(3):
            raise RuntimeError("boom")
    with registry.hold(3, timeout=0.01):
        pass
